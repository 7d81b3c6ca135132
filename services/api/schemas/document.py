"""
Pydantic schemas for documents.
"""
from typing import List

from pydantic import BaseModel, Field

from models import Document


class DocumentEnvelope(BaseModel):
    """Single-document response: `{message, doc}`."""
    message: str = Field("", description="Human-readable status")
    doc: dict

    @classmethod
    def of(cls, doc: Document, message: str = "") -> "DocumentEnvelope":
        return cls(message=message, doc=doc.to_api())


class DocumentList(BaseModel):
    """Owner-filtered document listing, newest first."""
    docs: List[dict] = Field(default_factory=list)

    @classmethod
    def of(cls, docs: List[Document]) -> "DocumentList":
        return cls(docs=[d.to_api() for d in docs])
