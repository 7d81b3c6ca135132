# services/api/core/placements.py
"""
Placement normalizer: turns a client-supplied placement list into Placement records.

Best effort by policy. Nothing in a single element rejects the batch; unusable
entries are kept (in order) and left for the composition engine to drop or
replace with a placeholder.
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from core.errors import ValidationError
from models import Placement

logger = logging.getLogger(__name__)

DEFAULT_PAGE_WIDTH = 800.0
DEFAULT_PAGE_HEIGHT = 600.0


def normalize_placements(
    raw: Any,
    page_width: Optional[float] = None,
    page_height: Optional[float] = None,
    *,
    default_width: float = DEFAULT_PAGE_WIDTH,
    default_height: float = DEFAULT_PAGE_HEIGHT,
) -> List[Placement]:
    """
    Normalize `raw` into Placements, preserving order (later entries draw on top).

    Args:
        raw: ordered list of placement-like dicts (may be empty)
        page_width, page_height: viewport declared for the whole batch; used for
            entries that carry no pageWidth/pageHeight of their own
        default_width, default_height: used when neither is declared

    Raises:
        ValidationError: if `raw` is not a list
    """
    if not isinstance(raw, list):
        raise ValidationError("signatures must be an array")

    width = page_width if page_width and page_width > 0 else default_width
    height = page_height if page_height and page_height > 0 else default_height

    placements: List[Placement] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, Mapping):
            # page 0 is never in range, so the engine drops it
            logger.warning(f"Placement #{idx} is not an object ({type(item).__name__}); keeping as unplaceable")
            placements.append(Placement(page=0, page_width=width, page_height=height))
            continue
        placements.append(
            Placement.from_api(item, default_width=width, default_height=height)
        )

    return placements
