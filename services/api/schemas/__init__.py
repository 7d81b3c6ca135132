"""
Pydantic schemas for API request/response validation.
"""
from .document import DocumentEnvelope, DocumentList
from .signing import CompleteRequest, CompleteResponse, LegacySignRequest

__all__ = [
    "CompleteRequest",
    "CompleteResponse",
    "DocumentEnvelope",
    "DocumentList",
    "LegacySignRequest",
]
