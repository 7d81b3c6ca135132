# services/api/routers/signing.py
from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status

from adapters.base import StorageAdapter
from core.auth import get_current_user_id
from core.blobs import LocalBlobStore
from core.signing import complete_document
from core.validation import (
    annotations_as_placements,
    parse_complete_request,
    parse_legacy_sign_request,
)
from main import get_blob_store, get_storage_adapter  # DI helpers from main
from schemas.signing import CompleteResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/docs", tags=["signing"])

Storage = Annotated[StorageAdapter, Depends(get_storage_adapter)]
Blobs = Annotated[LocalBlobStore, Depends(get_blob_store)]
CurrentUser = Annotated[str, Depends(get_current_user_id)]


@router.put("/{doc_id}/complete", status_code=status.HTTP_200_OK)
async def complete(
    doc_id: str,
    storage: Storage,
    blobs: Blobs,
    user_id: CurrentUser,
    body: Any = Body(...),
):
    """
    Burn the submitted placements into the document's PDF.

    Body: `{ signatures: Placement[], pdfWidth, pdfHeight }`.
    The stored signatures are replaced wholesale by this batch.
    """
    req = parse_complete_request(body)
    result = await complete_document(
        storage,
        blobs,
        doc_id,
        user_id,
        req.signatures,
        req.pdf_width,
        req.pdf_height,
    )
    return CompleteResponse(
        doc=result.document.to_api(),
        signed_file_path=result.signed_file_path,
    ).model_dump(by_alias=True)


@router.post("/{doc_id}/sign", status_code=status.HTTP_200_OK)
async def sign_legacy(
    doc_id: str,
    storage: Storage,
    blobs: Blobs,
    user_id: CurrentUser,
    body: Any = Body(...),
):
    """
    Older clients: `{ annotations: [{page, x, y, text}] }`. Same workflow as /complete.
    """
    req = parse_legacy_sign_request(body)
    result = await complete_document(
        storage,
        blobs,
        doc_id,
        user_id,
        annotations_as_placements(req.annotations),
    )
    return CompleteResponse(
        doc=result.document.to_api(),
        signed_file_path=result.signed_file_path,
    ).model_dump(by_alias=True)
