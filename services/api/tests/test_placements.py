"""
Tests for placement normalization.

Run with: pytest tests/test_placements.py -v
"""
import pytest

from core.errors import ValidationError
from core.placements import normalize_placements
from models import Placement


class TestNormalizePlacements:

    def test_not_a_list(self):
        with pytest.raises(ValidationError):
            normalize_placements({"page": 1})
        with pytest.raises(ValidationError):
            normalize_placements(None)

    def test_empty(self):
        assert normalize_placements([]) == []

    def test_order_preserved(self):
        raw = [{"page": 1, "signature": str(i)} for i in range(5)]
        out = normalize_placements(raw)
        assert [p.signature for p in out] == ["0", "1", "2", "3", "4"]

    def test_full_entry(self):
        out = normalize_placements([{
            "page": 2,
            "x": 10.5,
            "y": "20",
            "signatureType": "IMAGE",
            "signature": "data:image/png;base64,AAAA",
            "pageWidth": 612,
            "pageHeight": 792,
            "fontStyle": "cursive",
            "color": "#000",
        }])
        p = out[0]
        assert p.page == 2
        assert p.x == 10.5
        assert p.y == 20.0
        assert p.signature_type == "image"
        assert p.is_raster
        assert (p.page_width, p.page_height) == (612, 792)
        assert p.font_style == "cursive"
        assert p.color == "#000"

    def test_declared_viewport_fills_missing_dims(self):
        out = normalize_placements([{"page": 1}], 612, 792)
        assert (out[0].page_width, out[0].page_height) == (612, 792)

    def test_server_defaults_when_nothing_declared(self):
        out = normalize_placements([{"page": 1}], None, 0, default_width=800, default_height=600)
        assert (out[0].page_width, out[0].page_height) == (800, 600)

    def test_entry_dims_override_declared(self):
        out = normalize_placements([{"page": 1, "pageWidth": 300, "pageHeight": 400}], 612, 792)
        assert (out[0].page_width, out[0].page_height) == (300, 400)

    def test_coordinates_not_rescaled(self):
        """x/y are used as given even when the viewport differs from the page."""
        out = normalize_placements([{"page": 1, "x": 400, "y": 300, "pageWidth": 800, "pageHeight": 600}])
        assert (out[0].x, out[0].y) == (400, 300)

    def test_bad_numbers_become_zero(self):
        out = normalize_placements([{"page": "two", "x": "left", "y": None}])
        assert out[0].page == 0
        assert out[0].x == 0.0
        assert out[0].y == 0.0

    def test_fractional_page_is_unplaceable(self):
        out = normalize_placements([{"page": 1.5}])
        assert out[0].page == 0

    def test_non_object_kept_as_unplaceable(self):
        out = normalize_placements([42, {"page": 1, "signature": "ok"}])
        assert len(out) == 2
        assert out[0].page == 0
        assert out[1].signature == "ok"

    def test_defaults(self):
        p = normalize_placements([{"page": 1}])[0]
        assert p.signature_type == "text"
        assert p.signature == ""
        assert not p.is_raster

    def test_legacy_keys(self):
        p = normalize_placements([{"page": 1, "type": "draw", "text": "data:image/png;base64,AA"}])[0]
        assert p.signature_type == "draw"
        assert p.signature == "data:image/png;base64,AA"


class TestPlacementShape:

    def test_to_api_is_camel_case(self):
        p = Placement(page=1, x=1, y=2, signature="Bob", page_width=612, page_height=792)
        assert p.to_api() == {
            "page": 1,
            "x": 1,
            "y": 2,
            "signatureType": "text",
            "signature": "Bob",
            "pageWidth": 612,
            "pageHeight": 792,
        }

    def test_optional_style_fields(self):
        p = Placement(page=1, font_style="italic", color="red")
        out = p.to_api()
        assert out["fontStyle"] == "italic"
        assert out["color"] == "red"
