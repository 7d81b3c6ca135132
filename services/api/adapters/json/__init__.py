"""
JSON file storage adapter for document metadata.
Document-oriented: one JSON list of document records under the data directory.
Not suitable for multi-process deployments (no cross-process locking).
"""
import json
import logging
import threading
import uuid
from typing import List, Dict, Any, Optional
from pathlib import Path

from models import Document, DocumentStatus, utc_now_iso
from models.converters import document_from_row

logger = logging.getLogger(__name__)

# Keys an update may never touch
_IMMUTABLE = {"id", "uploaded_by", "created_at"}


class JsonAdapter:
    """
    JSON file-based document store.
    Uses atomic file operations (tmp file + rename) for basic consistency.
    """

    def __init__(self, data_dir: str = "data"):
        """
        Initialize the JSON adapter.

        Args:
            data_dir: Directory to store JSON files
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.documents_file = self.data_dir / "documents.json"
        self._lock = threading.RLock()

        if not self.documents_file.exists():
            self._write_file(self.documents_file, [])

    def _read_file(self, filepath: Path) -> List[Dict[str, Any]]:
        """Read and parse a JSON file."""
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt JSON store {filepath}: {e}")
            raise
        return data if isinstance(data, list) else []

    def _write_file(self, filepath: Path, data: List[Dict[str, Any]]) -> None:
        """Write data to a JSON file atomically."""
        tmp_file = filepath.with_suffix(".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

        tmp_file.replace(filepath)

    # ========== Documents ==========

    def create_document(
        self,
        *,
        original_name: str,
        file_path: str,
        uploaded_by: str,
        size: int = 0,
        mime_type: str = "application/pdf",
    ) -> Document:
        now = utc_now_iso()
        doc = Document(
            id=uuid.uuid4().hex,
            original_name=original_name,
            file_path=file_path,
            uploaded_by=uploaded_by,
            status=DocumentStatus.PENDING,
            size=size,
            mime_type=mime_type,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            documents = self._read_file(self.documents_file)
            documents.append(doc.to_storage())
            self._write_file(self.documents_file, documents)
        return doc

    def get_document(self, doc_id: str) -> Optional[Document]:
        with self._lock:
            documents = self._read_file(self.documents_file)
        row = next((d for d in documents if d.get("id") == doc_id), None)
        return document_from_row(row) if row else None

    def get_document_by_signed_path(self, signed_file_path: str) -> Optional[Document]:
        if not signed_file_path:
            return None
        with self._lock:
            documents = self._read_file(self.documents_file)
        row = next((d for d in documents if d.get("signed_file_path") == signed_file_path), None)
        return document_from_row(row) if row else None

    def list_documents(self, uploaded_by: str) -> List[Document]:
        with self._lock:
            documents = self._read_file(self.documents_file)
        owned = [d for d in documents if d.get("uploaded_by") == uploaded_by]
        owned.sort(key=lambda d: d.get("created_at") or "", reverse=True)
        return [document_from_row(d) for d in owned]

    def update_document(self, doc_id: str, updates: Dict[str, Any]) -> Optional[Document]:
        with self._lock:
            documents = self._read_file(self.documents_file)
            idx = next((i for i, d in enumerate(documents) if d.get("id") == doc_id), None)
            if idx is None:
                return None

            row = dict(documents[idx])
            for key, value in updates.items():
                if key in _IMMUTABLE:
                    continue
                row[key] = value.value if isinstance(value, DocumentStatus) else value
            row["updated_at"] = utc_now_iso()

            # Round-trip through the model so derived fields stay consistent
            doc = document_from_row(row)
            documents[idx] = doc.to_storage()
            self._write_file(self.documents_file, documents)
        return doc

    def delete_document(self, doc_id: str) -> bool:
        with self._lock:
            documents = self._read_file(self.documents_file)
            remaining = [d for d in documents if d.get("id") != doc_id]
            if len(remaining) == len(documents):
                return False
            self._write_file(self.documents_file, remaining)
        return True
