"""
Pydantic schemas for the signing endpoints.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _optional_dimension(v: Any) -> Optional[float]:
    """Unparsable or non-positive viewport sizes fall back to server defaults."""
    if v is None or isinstance(v, bool):
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if f > 0 else None


class CompleteRequest(BaseModel):
    """Body of PUT /docs/{id}/complete."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    # Items stay loose here; the placement normalizer coerces each one
    signatures: List[Any] = Field(..., description="Placement list, in draw order")
    pdf_width: Optional[float] = Field(None, description="Viewport width the client placed against")
    pdf_height: Optional[float] = Field(None, description="Viewport height the client placed against")

    @field_validator("pdf_width", "pdf_height", mode="before")
    @classmethod
    def _coerce_dimension(cls, v: Any) -> Optional[float]:
        return _optional_dimension(v)


class LegacySignRequest(BaseModel):
    """Body of POST /docs/{id}/sign (older clients)."""
    model_config = ConfigDict(extra="ignore")

    annotations: List[Any] = Field(..., description="Legacy annotation list")


class CompleteResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = "Signatures saved successfully"
    doc: Dict[str, Any]
    signed_file_path: str
