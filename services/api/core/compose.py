# services/api/core/compose.py
"""
Signed-PDF composition.

Takes the original PDF bytes plus an ordered list of Placements and returns new
PDF bytes with every placement burned into its page:

  1) parse the original with python-pdfium2 (fatal if it is not a PDF)
  2) resolve each placement to a drawable mark; a placement that cannot be
     drawn as requested resolves to a placeholder text mark instead
  3) draw the marks with fpdf2 on a layer document whose pages share the
     target pages' geometry (points, PDF user space)
  4) stamp each layer page onto its target page as a form XObject and save

PDFium is not thread-safe, so one composition runs at a time per process.

Pages that receive no marks keep their original content stream.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import pypdfium2 as pdfium
from fpdf import FPDF
from PIL import Image, UnidentifiedImageError

from core.errors import MalformedSourceError, PlacementRenderError, SerializationError
from models import Placement
from models.placement import TEXT

logger = logging.getLogger(__name__)

# PDFium is not thread-safe; every call into it in this process goes through this lock
_pdfium_lock = threading.Lock()


# ---------- Options -----------------------------------------------------------

@dataclass(frozen=True)
class ComposeOptions:
    font: str = "helvetica"
    font_size: float = 12.0
    placeholder_text: str = "SIGNED"
    max_width: float = 150.0
    max_height: float = 60.0
    max_payload_bytes: int = 5 * 1024 * 1024
    max_pixels: int = 25_000_000

    @classmethod
    def from_settings(cls, settings) -> "ComposeOptions":
        return cls(
            font=settings.text_font,
            font_size=settings.text_font_size,
            placeholder_text=settings.placeholder_text,
            max_width=settings.signature_max_width,
            max_height=settings.signature_max_height,
            max_payload_bytes=settings.max_image_payload_bytes,
            max_pixels=settings.max_image_pixels,
        )


# ---------- Marks -------------------------------------------------------------

@dataclass
class TextMark:
    """Text with its baseline origin at (x, y)."""
    x: float
    y: float
    text: str


@dataclass
class ImageMark:
    """Raster whose box spans (x, y - height) .. (x + width, y)."""
    x: float
    y: float
    image: Image.Image
    width: float
    height: float


RenderedMark = Union[TextMark, ImageMark]


@dataclass
class MarkOutcome:
    """
    Result of resolving one placement. `mark` is always drawable; `error` is
    set when the requested content was replaced by the placeholder.
    """
    index: int
    page_index: int
    mark: RenderedMark
    error: Optional[PlacementRenderError] = None

    @property
    def fell_back(self) -> bool:
        return self.error is not None


@dataclass
class ComposeResult:
    data: bytes
    page_count: int
    drawn: int = 0
    fallbacks: List[int] = field(default_factory=list)   # placement indexes
    dropped: List[int] = field(default_factory=list)     # placement indexes


# ---------- Raster helpers ----------------------------------------------------

_MIME_FORMATS = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/pjpeg": "JPEG",
}


def parse_data_url(value: str) -> Tuple[Optional[str], str]:
    """
    Split a data URL into (mime, base64 body).

    A bare base64 string (no "data:" prefix) is accepted with mime None.
    """
    if not isinstance(value, str) or not value.strip():
        raise PlacementRenderError(detail="empty image payload")

    value = value.strip()
    if not value[:5].lower() == "data:":
        return None, value

    header, sep, body = value[5:].partition(",")
    if not sep:
        raise PlacementRenderError(detail="data URL has no ',' separator")

    params = [p.strip() for p in header.split(";")]
    mime = params[0].lower() or None
    if "base64" not in (p.lower() for p in params[1:]):
        raise PlacementRenderError(detail="data URL is not base64 encoded")
    return mime, body


def raster_format(mime: Optional[str]) -> str:
    """PIL format name for a declared MIME type; PNG when undeclared or unknown."""
    return _MIME_FORMATS.get((mime or "").lower(), "PNG")


def fit_scale(width: float, height: float, max_width: float, max_height: float) -> float:
    """Uniform factor that fits (width, height) into the box; never above 1.0."""
    if width <= 0 or height <= 0:
        raise PlacementRenderError(detail=f"image has no area ({width}x{height})")
    return min(max_width / width, max_height / height, 1.0)


def decode_image(data_url: str, options: ComposeOptions) -> Image.Image:
    """
    Decode a data URL payload into a loaded PIL image.

    The payload size is checked before base64 decoding and the pixel count is
    checked from the image header before the raster is decompressed.
    """
    mime, body = parse_data_url(data_url)
    body = "".join(body.split())

    if len(body) * 3 // 4 > options.max_payload_bytes:
        raise PlacementRenderError(
            detail=f"image payload exceeds {options.max_payload_bytes} bytes"
        )

    try:
        raw = base64.b64decode(body + "=" * (-len(body) % 4), validate=True)
    except (binascii.Error, ValueError) as e:
        raise PlacementRenderError(detail=f"invalid base64: {e}") from e

    fmt = raster_format(mime)
    try:
        img = Image.open(io.BytesIO(raw), formats=[fmt])
        if img.width * img.height > options.max_pixels:
            raise PlacementRenderError(
                detail=f"image too large: {img.width}x{img.height} px"
            )
        img.load()
    except PlacementRenderError:
        raise
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise PlacementRenderError(detail=f"cannot decode {fmt}: {e}") from e

    if img.mode not in ("RGB", "RGBA", "L"):
        has_alpha = "A" in img.getbands() or "transparency" in img.info
        img = img.convert("RGBA" if has_alpha else "RGB")
    return img


# ---------- Placement -> mark -------------------------------------------------

def _encodable(text: str) -> bool:
    # fpdf2 core fonts only cover latin-1
    try:
        text.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def _placeholder(placement: Placement, options: ComposeOptions) -> TextMark:
    return TextMark(x=placement.x, y=placement.y, text=options.placeholder_text)


def _primary_mark(placement: Placement, options: ComposeOptions) -> RenderedMark:
    if placement.signature_type == TEXT:
        text = (placement.signature or "").strip()
        if not text:
            return _placeholder(placement, options)
        if not _encodable(text):
            raise PlacementRenderError(detail="text contains characters outside the standard font")
        return TextMark(x=placement.x, y=placement.y, text=text)

    if placement.is_raster:
        img = decode_image(placement.signature, options)
        scale = fit_scale(img.width, img.height, options.max_width, options.max_height)
        return ImageMark(
            x=placement.x,
            y=placement.y,
            image=img,
            width=img.width * scale,
            height=img.height * scale,
        )

    raise PlacementRenderError(detail=f"unknown signatureType {placement.signature_type!r}")


def resolve_mark(
    index: int,
    placement: Placement,
    page_index: int,
    options: ComposeOptions,
) -> MarkOutcome:
    """Resolve one placement; every failure becomes the placeholder mark."""
    try:
        mark = _primary_mark(placement, options)
        return MarkOutcome(index=index, page_index=page_index, mark=mark)
    except PlacementRenderError as e:
        error = e
    except Exception as e:
        error = PlacementRenderError(detail=f"{type(e).__name__}: {e}")

    logger.warning(
        f"Placement #{index} ({placement.signature_type}) on page {placement.page} "
        f"falls back to placeholder: {error.detail}"
    )
    return MarkOutcome(
        index=index,
        page_index=page_index,
        mark=_placeholder(placement, options),
        error=error,
    )


# ---------- Layer drawing -----------------------------------------------------

PageBox = Tuple[float, float, float, float]   # left, bottom, right, top


class _LayerBuilder:
    """
    fpdf2 document in points with one page per target page that gets marks.
    Each layer page spans the target's media box with its own origin at the
    box's top-left, so PDF (x, y) maps to (x - left, top - y).
    """

    def __init__(self, options: ComposeOptions):
        self.options = options
        self._pdf = FPDF(unit="pt")
        self._pdf.set_auto_page_break(auto=False)
        self._pdf.set_margins(0, 0, 0)
        self._pdf.set_creator("docsign")
        # (target page index, left, bottom) per layer page
        self.page_order: List[Tuple[int, float, float]] = []
        self._left = 0.0
        self._top = 0.0

    def add_page(self, page_index: int, box: PageBox) -> None:
        left, bottom, right, top = box
        self._pdf.add_page(format=(right - left, top - bottom))
        self._pdf.set_font(self.options.font, size=self.options.font_size)
        self._pdf.set_text_color(0, 0, 0)
        self.page_order.append((page_index, left, bottom))
        self._left = left
        self._top = top

    def draw(self, mark: RenderedMark) -> None:
        if isinstance(mark, TextMark):
            self._pdf.text(mark.x - self._left, self._top - mark.y, mark.text)
        else:
            self._pdf.image(
                mark.image,
                x=mark.x - self._left,
                y=self._top - mark.y,
                w=mark.width,
                h=mark.height,
            )

    def build(self) -> bytes:
        data = self._pdf.output()
        if isinstance(data, str):
            return data.encode("latin-1")
        return bytes(data)


# ---------- Public API --------------------------------------------------------

def _open_source(original_bytes: bytes) -> pdfium.PdfDocument:
    if not original_bytes:
        raise MalformedSourceError(detail="source is empty")
    try:
        return pdfium.PdfDocument(original_bytes)
    except pdfium.PdfiumError as e:
        raise MalformedSourceError(detail=f"pdfium could not parse source: {e}") from e


def _page_box(page: pdfium.PdfPage) -> PageBox:
    """The target's media box; a degenerate box falls back to the page size."""
    left, bottom, right, top = page.get_mediabox()
    if right <= left or top <= bottom:
        width, height = page.get_size()
        return 0.0, 0.0, width, height
    return left, bottom, right, top


def compose(
    original_bytes: bytes,
    placements: List[Placement],
    options: Optional[ComposeOptions] = None,
) -> ComposeResult:
    """
    Burn `placements` into `original_bytes` and return the new PDF.

    Safe to call from several threads at once: calls are serialized on a
    process-wide lock.

    Raises:
        MalformedSourceError: original_bytes is not a readable PDF
        SerializationError: the result could not be written
    """
    options = options or ComposeOptions()
    with _pdfium_lock:
        return _compose(original_bytes, placements, options)


def _compose(
    original_bytes: bytes,
    placements: List[Placement],
    options: ComposeOptions,
) -> ComposeResult:
    pdf = _open_source(original_bytes)
    layer: Optional[pdfium.PdfDocument] = None
    try:
        page_count = len(pdf)
        result = ComposeResult(data=b"", page_count=page_count)

        # 1) Resolve marks, grouped per page in placement order
        by_page: Dict[int, List[MarkOutcome]] = {}
        for i, placement in enumerate(placements):
            if placement.page < 1 or placement.page > page_count:
                logger.warning(
                    f"Dropping placement #{i}: page {placement.page} outside 1..{page_count}"
                )
                result.dropped.append(i)
                continue
            outcome = resolve_mark(i, placement, placement.page - 1, options)
            if outcome.fell_back:
                result.fallbacks.append(i)
            by_page.setdefault(outcome.page_index, []).append(outcome)

        if not by_page:
            result.data = _save(pdf)
            return result

        # 2) Draw the layer; a mark that fails to draw is replaced in place
        builder = _LayerBuilder(options)
        for page_index in sorted(by_page):
            builder.add_page(page_index, _page_box(pdf[page_index]))
            for outcome in by_page[page_index]:
                try:
                    builder.draw(outcome.mark)
                except Exception as e:
                    logger.warning(f"Placement #{outcome.index} failed to draw ({e}); using placeholder")
                    if outcome.index not in result.fallbacks:
                        result.fallbacks.append(outcome.index)
                    try:
                        builder.draw(TextMark(
                            x=outcome.mark.x,
                            y=outcome.mark.y,
                            text=options.placeholder_text,
                        ))
                    except Exception as e2:
                        logger.error(f"Placeholder for placement #{outcome.index} failed to draw: {e2}")
                        result.dropped.append(outcome.index)
                        continue
                result.drawn += 1

        # 3) Stamp layer pages onto their targets, moved to the media box origin
        try:
            layer = pdfium.PdfDocument(builder.build())
            for layer_index, (page_index, left, bottom) in enumerate(builder.page_order):
                page = pdf[page_index]
                xobject = layer.page_as_xobject(layer_index, pdf)
                stamp = xobject.as_pageobject()
                if left or bottom:
                    stamp.transform(pdfium.PdfMatrix().translate(left, bottom))
                page.insert_obj(stamp)
                page.gen_content()
        except Exception as e:
            raise SerializationError(detail=f"failed to merge signature layer: {e}") from e

        result.data = _save(pdf)
        return result
    finally:
        if layer is not None:
            layer.close()
        pdf.close()


def _save(pdf: pdfium.PdfDocument) -> bytes:
    buf = io.BytesIO()
    try:
        pdf.save(buf)
    except Exception as e:
        raise SerializationError(detail=f"pdfium could not save: {e}") from e
    data = buf.getvalue()
    if not data:
        raise SerializationError(detail="pdfium produced no output")
    return data
