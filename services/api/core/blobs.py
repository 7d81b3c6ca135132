# services/api/core/blobs.py
"""
Local filesystem blob store for uploaded originals and signed outputs.

Blob references are relative to the store root and always carry their
namespace: "pdf/<name>" for originals, "signed/<name>" for generated PDFs.
"""
from __future__ import annotations

import logging
import os
import re
import time
import uuid
from pathlib import Path, PurePosixPath

from core.errors import BlobNotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)

ORIGINALS = "pdf"
SIGNED = "signed"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_basename(name: str, *, default: str = "document.pdf") -> str:
    """Strip directories and anything outside [A-Za-z0-9._-] from a client filename."""
    base = PurePosixPath((name or "").replace("\\", "/")).name
    base = _UNSAFE_CHARS.sub("_", base).strip("._")
    return base or default


class LocalBlobStore:
    def __init__(self, root: str = "uploads"):
        self.root = Path(root).resolve()

    def ensure_storage_layout(self) -> None:
        """Create the namespace directories. Idempotent; call once at startup."""
        for ns in (ORIGINALS, SIGNED):
            d = self.root / ns
            if not d.is_dir():
                d.mkdir(parents=True, exist_ok=True)
                logger.info(f"Created folder: {d}")

    # ---------- path helpers ----------

    def _resolve(self, ref: str) -> Path:
        if not ref:
            raise ValidationError("Empty file reference")
        path = (self.root / ref).resolve()
        if self.root not in path.parents:
            raise ValidationError("Invalid file reference")
        return path

    def signed_ref(self, name: str) -> str:
        """Reference for a bare file name in the signed namespace."""
        if not name or name != PurePosixPath(name).name or name in (".", ".."):
            raise ValidationError("Invalid file name")
        return f"{SIGNED}/{name}"

    # ---------- operations ----------

    def _write(self, ref: str, data: bytes) -> str:
        path = self._resolve(ref)
        tmp = path.with_name(path.name + ".part")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except OSError as e:
            logger.error(f"Blob write failed for {ref}: {e}")
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            raise StorageError("Failed to store file", detail=str(e)) from e
        return ref

    def save_original(self, filename: str, data: bytes) -> str:
        base = safe_basename(filename)
        ext = PurePosixPath(base).suffix.lower() or ".pdf"
        name = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}{ext}"
        return self._write(f"{ORIGINALS}/{name}", data)

    def save_signed(self, source_ref: str, data: bytes) -> str:
        """
        Store a signed output under a fresh name derived from the current time
        and the original blob's base name.
        """
        base = safe_basename(PurePosixPath(source_ref).name)
        name = f"signed_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}_{base}"
        return self._write(f"{SIGNED}/{name}", data)

    def exists(self, ref: str) -> bool:
        return self._resolve(ref).is_file()

    def read(self, ref: str) -> bytes:
        path = self._resolve(ref)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFoundError(detail=f"{ref} missing from storage") from e
        except OSError as e:
            logger.error(f"Blob read failed for {ref}: {e}")
            raise StorageError("Failed to read file", detail=str(e)) from e

    def delete(self, ref: str) -> bool:
        """Remove a blob. Returns False if it was already gone."""
        path = self._resolve(ref)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError("Failed to delete file", detail=str(e)) from e
        return True
