from __future__ import annotations

from .document import Document, DocumentStatus, utc_now_iso
from .placement import Placement, SIGNATURE_TYPES, RASTER_TYPES

__all__ = [
    "Document",
    "DocumentStatus",
    "Placement",
    "SIGNATURE_TYPES",
    "RASTER_TYPES",
    "utc_now_iso",
]
