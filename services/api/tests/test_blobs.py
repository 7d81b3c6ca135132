"""
Tests for the local blob store.

Run with: pytest tests/test_blobs.py -v
"""
import pytest

from core.blobs import LocalBlobStore, safe_basename
from core.errors import BlobNotFoundError, ValidationError


class TestSafeBasename:

    def test_strips_directories(self):
        assert safe_basename("../../etc/passwd") == "passwd"
        assert safe_basename("C:\\Users\\me\\doc.pdf") == "doc.pdf"

    def test_replaces_unsafe_chars(self):
        assert safe_basename("my contract (v2).pdf") == "my_contract_v2_.pdf"

    def test_default(self):
        assert safe_basename("") == "document.pdf"
        assert safe_basename("...") == "document.pdf"


class TestLocalBlobStore:

    def test_layout(self, tmp_path):
        store = LocalBlobStore(root=str(tmp_path / "u"))
        store.ensure_storage_layout()
        store.ensure_storage_layout()
        assert (tmp_path / "u" / "pdf").is_dir()
        assert (tmp_path / "u" / "signed").is_dir()

    def test_save_and_read_original(self, blobs):
        ref = blobs.save_original("Contract.PDF", b"%PDF-1.4")
        assert ref.startswith("pdf/")
        assert ref.endswith(".pdf")
        assert blobs.read(ref) == b"%PDF-1.4"

    def test_original_names_are_unique(self, blobs):
        a = blobs.save_original("x.pdf", b"1")
        b = blobs.save_original("x.pdf", b"2")
        assert a != b

    def test_save_signed_derives_name(self, blobs):
        ref = blobs.save_signed("pdf/1700000000000_abcd1234.pdf", b"%PDF")
        assert ref.startswith("signed/signed_")
        assert ref.endswith("_1700000000000_abcd1234.pdf")
        assert blobs.exists(ref)

    def test_no_part_file_left(self, blobs):
        blobs.save_original("a.pdf", b"data")
        assert not list(blobs.root.rglob("*.part"))

    def test_read_missing(self, blobs):
        with pytest.raises(BlobNotFoundError):
            blobs.read("pdf/missing.pdf")

    def test_delete(self, blobs):
        ref = blobs.save_original("a.pdf", b"data")
        assert blobs.delete(ref) is True
        assert blobs.delete(ref) is False
        assert not blobs.exists(ref)

    def test_rejects_escape(self, blobs):
        with pytest.raises(ValidationError):
            blobs.read("../outside.pdf")
        with pytest.raises(ValidationError):
            blobs.read("")

    def test_signed_ref(self, blobs):
        assert blobs.signed_ref("out.pdf") == "signed/out.pdf"
        for bad in ("", "..", "a/b.pdf"):
            with pytest.raises(ValidationError):
                blobs.signed_ref(bad)
