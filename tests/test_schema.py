"""Unit tests for crop-coordinate normalization."""

import pytest

from cropbatch.errors import ManifestError
from cropbatch.manifest.schema import (
    CropRect,
    parse_crop,
    parse_default_size,
    parse_rect,
    sanitize_annotation,
)


class TestParseRect:
    """Tests for the dual coordinate schema."""

    def test_corner_pair_matches_explicit_size(self):
        """Inclusive corners 10..19 describe a 10x10 rectangle."""
        corners = parse_rect({"cropTopLeft": {"x": 10, "y": 10}, "cropBottomRight": {"x": 19, "y": 19}})
        explicit = parse_rect({"x1": 10, "y1": 10, "w": 10, "h": 10})

        assert corners == explicit == CropRect(10, 10, 10, 10)

    def test_explicit_size_wins_over_corner(self):
        """Explicit w/h override values derived from the bottom-right corner."""
        rect = parse_rect(
            {
                "cropTopLeft": {"x": 0, "y": 0},
                "cropBottomRight": {"x": 99, "y": 99},
                "w": 5,
            }
        )

        assert rect == CropRect(0, 0, 5, 100)

    def test_explicit_origin_wins_over_top_left(self):
        """x1/y1 take precedence over cropTopLeft."""
        rect = parse_rect({"x1": 3, "y1": 4, "cropTopLeft": {"x": 50, "y": 60}, "w": 2, "h": 2})

        assert (rect.x1, rect.y1) == (3, 4)

    def test_default_size_fills_missing_dimensions(self):
        """Missing w/h come from the manifest default size."""
        rect = parse_rect({"x1": 1, "y1": 2}, default_size=(64, 32))

        assert rect == CropRect(1, 2, 64, 32)

    def test_half_specified_corner_is_ignored(self):
        """A bottom-right corner with one coordinate contributes nothing."""
        rect = parse_rect(
            {"x1": 0, "y1": 0, "cropBottomRight": {"x": 9}},
            default_size=(7, 8),
        )

        assert rect == CropRect(0, 0, 7, 8)

    def test_unresolvable_rectangle_raises(self):
        """No size and no default is a manifest error."""
        with pytest.raises(ManifestError, match="w, h"):
            parse_rect({"x1": 0, "y1": 0})

    def test_numeric_strings_and_integral_floats_accepted(self):
        """Loose JSON numbers are coerced to ints."""
        rect = parse_rect({"x1": "5", "y1": 6.0, "w": 7, "h": "8"})

        assert rect == CropRect(5, 6, 7, 8)

    def test_non_numeric_value_raises(self):
        """Garbage coordinates fail parsing."""
        with pytest.raises(ManifestError):
            parse_rect({"x1": "left", "y1": 0, "w": 1, "h": 1})

    def test_rect_edges(self):
        """x2/y2 are exclusive edges."""
        rect = CropRect(10, 20, 5, 6)

        assert rect.x2 == 15
        assert rect.y2 == 26
        assert rect.size_label == "5x6"


class TestParseCrop:
    """Tests for full crop entry parsing."""

    def test_fields(self):
        """All optional fields are carried over."""
        crop = parse_crop(
            {
                "imagePath": "a.png",
                "annotation": "left lung",
                "savedAs": "x.png",
                "sinkDir": "/tmp/out",
                "x1": 0,
                "y1": 0,
                "w": 1,
                "h": 1,
            }
        )

        assert crop.image_path == "a.png"
        assert crop.annotation == "left_lung"
        assert crop.saved_as == "x.png"
        assert crop.sink_override == "/tmp/out"

    def test_defaults(self):
        """Annotation defaults to Crop; savedAs and sinkDir to None."""
        crop = parse_crop({"imagePath": "a.png", "x1": 0, "y1": 0, "w": 1, "h": 1})

        assert crop.annotation == "Crop"
        assert crop.saved_as is None
        assert crop.sink_override is None

    def test_non_object_entry_raises(self):
        with pytest.raises(ManifestError):
            parse_crop(["not", "an", "object"])


class TestHelpers:
    """Tests for annotation sanitizing and default size parsing."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Nodule", "Nodule"),
            ("a b/c", "a_b_c"),
            ("ok.name-1_2", "ok.name-1_2"),
            ("", "Crop"),
            ("   ", "Crop"),
            (None, "Crop"),
        ],
    )
    def test_sanitize_annotation(self, raw, expected):
        assert sanitize_annotation(raw) == expected

    def test_default_size_absent(self):
        assert parse_default_size({}) == (None, None)

    def test_default_size_partial(self):
        assert parse_default_size({"defaultCropSize": {"w": 12}}) == (12, None)

    def test_default_size_wrong_type(self):
        with pytest.raises(ManifestError):
            parse_default_size({"defaultCropSize": 12})
