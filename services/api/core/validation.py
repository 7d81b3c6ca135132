"""
Validation utilities for the signing service.
Guards the upload intake and the complete/sign payloads before any core logic runs.
"""
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError
from schemas.signing import CompleteRequest, LegacySignRequest

PDF_MIME = "application/pdf"
PDF_MAGIC = b"%PDF-"


def validate_pdf_upload(
    *,
    filename: Optional[str],
    content_type: Optional[str],
    data: Optional[bytes],
    max_bytes: int,
) -> None:
    """
    Validate an uploaded file before it is stored.

    Rules:
    - a file must be present and non-empty
    - declared MIME type must be application/pdf
    - size must not exceed max_bytes
    - content must start with the PDF header (within the first 1 KB)

    Raises:
        ValidationError: 400 if validation fails
    """
    if not filename or data is None:
        raise ValidationError("No file uploaded")

    if not data:
        raise ValidationError("Uploaded file is empty")

    mime = (content_type or "").split(";")[0].strip().lower()
    if mime != PDF_MIME:
        raise ValidationError("Only PDFs allowed")

    if len(data) > max_bytes:
        raise ValidationError(
            f"File too large: {len(data)} bytes exceeds the {max_bytes // (1024 * 1024)} MB limit"
        )

    # PDF readers tolerate junk before the header, but not much
    if PDF_MAGIC not in data[:1024]:
        raise ValidationError("Uploaded file is not a PDF")


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    err = errors[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    if loc in ("signatures", "annotations"):
        return f"{loc} must be an array"
    return f"{loc}: {err.get('msg', 'invalid value')}" if loc else err.get("msg", "Invalid request body")


def parse_complete_request(body: Any) -> CompleteRequest:
    """
    Validate the PUT /docs/{id}/complete body eagerly.

    Raises:
        ValidationError: 400 if the body is not an object or signatures is not a list
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return CompleteRequest.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e)) from e


def parse_legacy_sign_request(body: Any) -> LegacySignRequest:
    """Validate the POST /docs/{id}/sign body (legacy `annotations` shape)."""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return LegacySignRequest.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e)) from e


def annotations_as_placements(annotations: List[Dict[str, Any]]) -> List[Any]:
    """
    Map legacy annotation dicts onto the placement shape.

    Legacy clients sent `text` instead of `signature` and had no type tag;
    everything they drew was text.
    """
    out: List[Any] = []
    for a in annotations:
        if not isinstance(a, dict):
            out.append(a)
            continue
        item = dict(a)
        item.setdefault("signatureType", "text")
        if "signature" not in item and "text" in item:
            item["signature"] = item["text"]
        out.append(item)
    return out
