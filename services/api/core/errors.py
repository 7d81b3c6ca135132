# services/api/core/errors.py
"""
Error taxonomy for the signing service.

Every document-level or storage-level failure is one of these exceptions.
Routers let them propagate; main.py maps them to HTTP responses via
`status_code` and the public `message`. The `detail` attribute carries the
server-side diagnostic, which is only echoed back outside production.
"""
from __future__ import annotations

from typing import Optional

class DocSignError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

class ValidationError(DocSignError):
    """Malformed request shape. Never retried."""
    status_code = 400
    default_message = "Invalid request"

class UnauthorizedError(DocSignError):
    """Acting user does not own the document."""
    status_code = 403
    default_message = "Unauthorized"

class NotFoundError(DocSignError):
    status_code = 404
    default_message = "Document not found"

class BlobNotFoundError(NotFoundError):
    """The document exists but its stored file is gone (upload/storage drift)."""
    default_message = "File not found"

class MalformedSourceError(DocSignError):
    """The stored original cannot be parsed as a PDF."""
    status_code = 500
    default_message = "Could not read the original PDF"

class SerializationError(DocSignError):
    status_code = 500
    default_message = "Could not write the signed PDF"

class StorageError(DocSignError):
    """Blob read/write failure. Callers may retry the whole operation."""
    status_code = 500
    default_message = "Storage error"

class PlacementRenderError(DocSignError):
    """
    A single placement could not be drawn as requested.

    Recoverable: the composition engine converts it into a placeholder mark
    and it never reaches a caller.
    """
    default_message = "Placement could not be rendered"
