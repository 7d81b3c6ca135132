from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class Document(BaseModel):
    """
    Domain model for an uploaded PDF and its latest signing result.

    Adapters persist `model_dump()` (snake_case); the API returns
    `model_dump(by_alias=True)` (camelCase).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    original_name: str = ""
    file_path: str

    # Empty until a signing cycle completes
    signed_file_path: str = ""

    # Owner; None only for corrupt rows (treated as an integrity failure)
    uploaded_by: Optional[str] = None

    status: DocumentStatus = DocumentStatus.PENDING
    signed: bool = False

    # Snapshot of the placements used for the latest signed output
    signatures: List[Dict[str, Any]] = Field(default_factory=list)

    size: int = 0
    mime_type: str = "application/pdf"

    created_at: str = ""
    updated_at: str = ""

    @model_validator(mode="after")
    def _sync_signed_flag(self) -> "Document":
        # `signed` is derived from status and may never disagree with it
        self.signed = self.status == DocumentStatus.COMPLETED
        return self

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
