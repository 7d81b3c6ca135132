# services/api/core/signing.py
"""
Signing workflow: load -> authorize -> normalize -> compose -> store blob -> update record.

Steps before the record update never mutate the document, so any failure up
to and including the blob write leaves it in its prior status. A failure of
the record update itself leaves the freshly written blob orphaned (logged).
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Any, Optional

from adapters.base import StorageAdapter
from core.blobs import LocalBlobStore
from core.compose import ComposeOptions, ComposeResult, compose
from core.errors import DocSignError, NotFoundError, StorageError, UnauthorizedError, ValidationError
from core.placements import normalize_placements
from models import Document, DocumentStatus
from settings import get_settings

logger = logging.getLogger(__name__)

# One lock per document id for the lifetime of in-flight calls (single process)
_document_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(document_id: str) -> asyncio.Lock:
    lock = _document_locks.get(document_id)
    if lock is None:
        lock = asyncio.Lock()
        _document_locks[document_id] = lock
    return lock


# ---------- Ownership ---------------------------------------------------------

def authorize(doc: Document, acting_user_id: str) -> None:
    """
    The whole access model: the acting user must be the uploader.

    Raises:
        UnauthorizedError: not the owner, or the record has no owner at all
    """
    if not doc.uploaded_by:
        logger.error(f"Integrity failure: document {doc.id} has no uploadedBy")
        raise UnauthorizedError()
    if doc.uploaded_by != acting_user_id:
        raise UnauthorizedError()


def load_owned_document(storage: StorageAdapter, doc_id: str, acting_user_id: str) -> Document:
    """
    Raises:
        NotFoundError: no document with this id
        UnauthorizedError: document belongs to someone else
    """
    doc = storage.get_document(doc_id)
    if doc is None:
        raise NotFoundError()
    authorize(doc, acting_user_id)
    return doc


# ---------- Complete ----------------------------------------------------------

@dataclass
class SigningResult:
    document: Document
    signed_file_path: str
    compose: ComposeResult


async def complete_document(
    storage: StorageAdapter,
    blobs: LocalBlobStore,
    document_id: str,
    acting_user_id: str,
    raw_placements: Any,
    declared_page_width: Optional[float] = None,
    declared_page_height: Optional[float] = None,
    *,
    options: Optional[ComposeOptions] = None,
) -> SigningResult:
    """
    Sign a document with the given placements and record the result.

    Returns the updated Document and the new signed blob reference.

    Raises:
        NotFoundError: unknown id, or the original blob is missing from storage
        UnauthorizedError: acting user does not own the document
        ValidationError: raw_placements is not a list
        MalformedSourceError / SerializationError: composition failed
        StorageError: blob or record write failed
    """
    settings = get_settings()
    options = options or ComposeOptions.from_settings(settings)

    async with _lock_for(document_id):
        # 1-3) read-only checks
        doc = load_owned_document(storage, document_id, acting_user_id)
        if not isinstance(raw_placements, list):
            raise ValidationError("signatures must be an array")

        # 4) normalize + compose
        placements = normalize_placements(
            raw_placements,
            declared_page_width,
            declared_page_height,
            default_width=settings.default_page_width,
            default_height=settings.default_page_height,
        )
        original = blobs.read(doc.file_path)
        result = await asyncio.to_thread(compose, original, placements, options)
        logger.info(
            f"Composed document {doc.id}: {result.drawn} drawn, "
            f"{len(result.fallbacks)} placeholder, {len(result.dropped)} dropped "
            f"({result.page_count} pages)"
        )

        # 5) persist output
        signed_ref = blobs.save_signed(doc.file_path, result.data)

        # 6) record update
        try:
            updated = storage.update_document(
                doc.id,
                {
                    "signatures": [p.to_api() for p in placements],
                    "signed_file_path": signed_ref,
                    "status": DocumentStatus.COMPLETED,
                },
            )
        except DocSignError:
            logger.error(f"Record update failed for {doc.id}; {signed_ref} is orphaned")
            raise
        except Exception as e:
            logger.error(f"Record update failed for {doc.id}; {signed_ref} is orphaned: {e}")
            raise StorageError("Failed to update document", detail=str(e)) from e

        if updated is None:
            logger.error(f"Document {doc.id} vanished during signing; {signed_ref} is orphaned")
            raise NotFoundError()

        _discard_previous_output(blobs, doc.signed_file_path, signed_ref)
        return SigningResult(document=updated, signed_file_path=signed_ref, compose=result)


def _discard_previous_output(blobs: LocalBlobStore, previous: str, current: str) -> None:
    """Best-effort removal of the signed blob the record no longer points to."""
    if not previous or previous == current:
        return
    try:
        blobs.delete(previous)
    except DocSignError as e:
        logger.warning(f"Could not remove previous signed file {previous}: {e.detail or e.message}")
