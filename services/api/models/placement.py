# services/api/models/placement.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


TEXT = "text"
IMAGE = "image"
DRAW = "draw"

SIGNATURE_TYPES = (TEXT, IMAGE, DRAW)
RASTER_TYPES = (IMAGE, DRAW)


def _safe_float(val: Any) -> Optional[float]:
  try:
    if val is None or isinstance(val, bool):
      return None
    s = str(val).strip()
    if not s:
      return None
    f = float(s)
    if f != f or f in (float("inf"), float("-inf")):
      return None
    return f
  except Exception:
    return None


def _safe_int(val: Any) -> Optional[int]:
  f = _safe_float(val)
  if f is None or not f.is_integer():
    return None
  return int(f)


def _first(data: Mapping[str, Any], *keys: str) -> Any:
  for k in keys:
    if k in data and data[k] is not None:
      return data[k]
  return None


@dataclass
class Placement:
  """
  One signature to burn into a page.

  Coordinates are in PDF page space (points, origin bottom-left) and are
  used as-is. For raster types `y` is the TOP edge of the image box.
  page_width/page_height are the viewport the client placed against; they
  are carried along and persisted but do not rescale x/y.
  """

  page: int = 0              # 1-based
  x: float = 0.0
  y: float = 0.0

  signature_type: str = TEXT
  signature: str = ""        # text payload, or data URL for image/draw

  page_width: float = 0.0
  page_height: float = 0.0

  font_style: Optional[str] = None
  color: Optional[str] = None

  @property
  def is_raster(self) -> bool:
    return self.signature_type in RASTER_TYPES

  # --------------------
  # Conversions – API / persisted shape (camelCase)
  # --------------------
  @classmethod
  def from_api(
    cls,
    data: Mapping[str, Any],
    *,
    default_width: float,
    default_height: float,
  ) -> "Placement":
    """
    Build from a client dict. Never raises: bad numbers become 0 and the
    composition engine decides what to do with an unusable page index.
    """
    page = _safe_int(data.get("page"))
    x = _safe_float(data.get("x"))
    y = _safe_float(data.get("y"))

    page_width = _safe_float(_first(data, "pageWidth", "page_width"))
    page_height = _safe_float(_first(data, "pageHeight", "page_height"))

    sig_type = _first(data, "signatureType", "signature_type", "type")
    payload = _first(data, "signature", "text")

    return cls(
      page=page if page is not None else 0,
      x=x if x is not None else 0.0,
      y=y if y is not None else 0.0,
      signature_type=str(sig_type or TEXT).strip().lower(),
      signature=payload if isinstance(payload, str) else ("" if payload is None else str(payload)),
      page_width=page_width if page_width and page_width > 0 else default_width,
      page_height=page_height if page_height and page_height > 0 else default_height,
      font_style=_first(data, "fontStyle", "font_style"),
      color=data.get("color"),
    )

  def to_api(self) -> Dict[str, Any]:
    """
    Persisted/returned shape, one entry of Document.signatures.
    """
    out: Dict[str, Any] = {
      "page": self.page,
      "x": self.x,
      "y": self.y,
      "signatureType": self.signature_type,
      "signature": self.signature,
      "pageWidth": self.page_width,
      "pageHeight": self.page_height,
    }
    if self.font_style is not None:
      out["fontStyle"] = self.font_style
    if self.color is not None:
      out["color"] = self.color
    return out
