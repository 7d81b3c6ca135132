from __future__ import annotations

import json
from typing import Any, Dict, List

from . import Document, DocumentStatus


def _signatures_from_row(v: Any) -> List[Dict[str, Any]]:
    """
    Stored placements may come back as a list (JSON store) or as a JSON
    string (older sqlite rows). Anything unreadable is an empty snapshot.
    """
    if v is None:
        return []
    if isinstance(v, list):
        return [s for s in v if isinstance(s, dict)]
    if isinstance(v, str):
        try:
            parsed = json.loads(v or "[]")
        except ValueError:
            return []
        return [s for s in parsed if isinstance(s, dict)] if isinstance(parsed, list) else []
    return []


def _status_from_row(v: Any) -> DocumentStatus:
    try:
        return DocumentStatus(str(v or "").strip().lower())
    except ValueError:
        return DocumentStatus.PENDING


def _ts(v: Any) -> str:
    if v is None:
        return ""
    if hasattr(v, "isoformat"):
        return v.isoformat()
    return str(v)


def document_from_row(row: Dict[str, Any]) -> Document:
    """
    Convert a raw storage dict (JSON store or sqlite row mapping) into a Document.
    """
    return Document(
        id=str(row.get("id") or ""),
        original_name=row.get("original_name") or "",
        file_path=row.get("file_path") or "",
        signed_file_path=row.get("signed_file_path") or "",
        uploaded_by=(str(row["uploaded_by"]) if row.get("uploaded_by") else None),
        status=_status_from_row(row.get("status")),
        signatures=_signatures_from_row(row.get("signatures")),
        size=int(row.get("size") or 0),
        mime_type=row.get("mime_type") or "application/pdf",
        created_at=_ts(row.get("created_at")),
        updated_at=_ts(row.get("updated_at")),
    )
