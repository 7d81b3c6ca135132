# services/api/routers/documents.py
from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response

from adapters.base import StorageAdapter
from core.auth import get_current_user_id
from core.blobs import LocalBlobStore
from core.errors import DocSignError, NotFoundError, UnauthorizedError
from core.signing import authorize, load_owned_document
from core.validation import validate_pdf_upload
from main import get_blob_store, get_storage_adapter  # DI helpers from main
from schemas.document import DocumentEnvelope, DocumentList
from settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/docs", tags=["documents"])

# ---- DI aliases (no default value allowed) ----
Storage = Annotated[StorageAdapter, Depends(get_storage_adapter)]
Blobs = Annotated[LocalBlobStore, Depends(get_blob_store)]
CurrentUser = Annotated[str, Depends(get_current_user_id)]


# ====== Endpoints ======

@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_document(
    storage: Storage,
    blobs: Blobs,
    user_id: CurrentUser,
    pdf: Optional[UploadFile] = File(None, description="PDF file (multipart field 'pdf')"),
):
    """
    Store an uploaded PDF and create a pending document owned by the caller.
    """
    settings = get_settings()
    data = None
    if pdf is not None:
        # One byte past the ceiling is enough to know it is too big
        data = await pdf.read(settings.max_upload_bytes + 1)

    validate_pdf_upload(
        filename=pdf.filename if pdf is not None else None,
        content_type=pdf.content_type if pdf is not None else None,
        data=data,
        max_bytes=settings.max_upload_bytes,
    )

    file_ref = blobs.save_original(pdf.filename, data)
    try:
        doc = storage.create_document(
            original_name=pdf.filename,
            file_path=file_ref,
            uploaded_by=user_id,
            size=len(data),
            mime_type="application/pdf",
        )
    except Exception:
        # Don't leave an unreferenced original behind
        blobs.delete(file_ref)
        raise

    logger.info(f"📄 Uploaded {pdf.filename!r} as {doc.id} ({len(data)} bytes) for {user_id}")
    return DocumentEnvelope.of(doc, message="File uploaded")


@router.get("", status_code=status.HTTP_200_OK)
async def list_documents(storage: Storage, user_id: CurrentUser):
    """All documents uploaded by the caller, newest first."""
    return DocumentList.of(storage.list_documents(user_id))


@router.get("/file/{name}")
async def get_signed_file(name: str, storage: Storage, blobs: Blobs, user_id: CurrentUser):
    """
    Serve a signed PDF inline. Only the owner of the document that points at
    this output may read it.
    """
    ref = blobs.signed_ref(name)
    doc = storage.get_document_by_signed_path(ref)
    if doc is None:
        raise NotFoundError("File not found")
    authorize(doc, user_id)

    data = blobs.read(ref)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{name}"',
            "Cache-Control": "no-store",
        },
    )


@router.get("/{doc_id}", status_code=status.HTTP_200_OK)
async def get_document(doc_id: str, storage: Storage, user_id: CurrentUser):
    doc = load_owned_document(storage, doc_id, user_id)
    return DocumentEnvelope.of(doc)


@router.delete("/{doc_id}", status_code=status.HTTP_200_OK)
async def delete_document(doc_id: str, storage: Storage, blobs: Blobs, user_id: CurrentUser):
    """
    Delete the record and, best effort, its original and signed files.
    """
    try:
        doc = load_owned_document(storage, doc_id, user_id)
    except UnauthorizedError:
        raise UnauthorizedError("Unauthorized to delete this document")

    for ref in (doc.file_path, doc.signed_file_path):
        if not ref:
            continue
        try:
            if not blobs.delete(ref):
                logger.warning(f"File not found or already deleted: {ref}")
        except DocSignError as e:
            logger.warning(f"Could not delete {ref}: {e.detail or e.message}")

    if not storage.delete_document(doc.id):
        raise NotFoundError()
    return {"message": "Document deleted successfully"}
