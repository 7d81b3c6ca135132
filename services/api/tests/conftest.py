"""
Shared fixtures for the DocSign API tests.

Run with: pytest services/api/tests -v
"""
import base64
import io
import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are read once; point them at a throwaway location before any app import
_TMP_ROOT = tempfile.mkdtemp(prefix="docsign-tests-")
os.environ.setdefault("STORAGE_BACKEND", "json")
os.environ.setdefault("DATA_DIR", os.path.join(_TMP_ROOT, "data"))
os.environ.setdefault("UPLOADS_DIR", os.path.join(_TMP_ROOT, "uploads"))
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
import pypdfium2 as pdfium
import pypdfium2.raw as pdfium_c
from fpdf import FPDF
from PIL import Image

from adapters.json import JsonAdapter
from core.blobs import LocalBlobStore


# ---------- builders ----------

def make_pdf(pages: int = 1, width: float = 612, height: float = 792) -> bytes:
    """Blank PDF with `pages` pages of width x height points."""
    pdf = FPDF(unit="pt", format=(width, height))
    for _ in range(pages):
        pdf.add_page()
    return bytes(pdf.output())


def make_image_data_url(width: int, height: int, fmt: str = "PNG", mime: str = "image/png") -> str:
    img = Image.new("RGB", (width, height), (20, 40, 200))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return f"data:{mime};base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def page_text(pdf_bytes: bytes, index: int = 0) -> str:
    pdf = pdfium.PdfDocument(pdf_bytes)
    try:
        return pdf[index].get_textpage().get_text_range()
    finally:
        pdf.close()


def page_count(pdf_bytes: bytes) -> int:
    pdf = pdfium.PdfDocument(pdf_bytes)
    try:
        return len(pdf)
    finally:
        pdf.close()


def image_count(pdf_bytes: bytes, index: int = 0) -> int:
    """Image objects on a page, including those inside stamped form XObjects."""
    pdf = pdfium.PdfDocument(pdf_bytes)
    try:
        objs = pdf[index].get_objects(filter=[pdfium_c.FPDF_PAGEOBJ_IMAGE], max_depth=5)
        return len(list(objs))
    finally:
        pdf.close()


# ---------- fixtures ----------

@pytest.fixture
def storage(tmp_path) -> JsonAdapter:
    return JsonAdapter(data_dir=str(tmp_path / "data"))


@pytest.fixture
def blobs(tmp_path) -> LocalBlobStore:
    store = LocalBlobStore(root=str(tmp_path / "uploads"))
    store.ensure_storage_layout()
    return store


@pytest.fixture
def make_document(storage, blobs):
    """Store a PDF as an original and create its pending record."""
    def _make(owner: str = "user-a", pdf_bytes: bytes = None, name: str = "contract.pdf"):
        data = pdf_bytes if pdf_bytes is not None else make_pdf()
        ref = blobs.save_original(name, data)
        return storage.create_document(
            original_name=name,
            file_path=ref,
            uploaded_by=owner,
            size=len(data),
        )
    return _make
