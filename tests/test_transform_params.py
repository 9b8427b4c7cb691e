"""
Tests for mapping transforms onto worker parameters.
"""

import pytest

from signed_transforms.errors import InvalidPositionError, UnsupportedAssetError
from signed_transforms.models import AssetRef, CanonicalParams, FocalPoint, TransformSpec
from signed_transforms.transform_params import (
    TransformParameterMapper,
    format_number,
    is_supported_format,
    parse_position,
)
from signed_transforms.url_signer import serialize_transforms


@pytest.fixture
def mapper() -> TransformParameterMapper:
    return TransformParameterMapper()


class TestFitMapping:

    @pytest.mark.parametrize("mode,upscale,expected", [
        ("fit", True, "contain"),
        ("fit", False, "scale-down"),
        ("stretch", True, "squeeze"),
        ("crop", True, "cover"),
        ("letterbox", True, "pad"),
        ("something-else", True, "scale-down"),
    ])
    def test_fit_values(self, mapper, jpeg_asset, mode, upscale, expected):
        params = mapper.map(TransformSpec(mode=mode, upscale=upscale), jpeg_asset)
        assert params.get("fit") == expected

    def test_letterbox_defaults_to_white_background(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(mode="letterbox"), jpeg_asset)
        assert params.get("background") == "#FFFFFF"

    def test_letterbox_uses_fill(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(mode="letterbox", fill="#000000"), jpeg_asset)
        assert params.get("background") == "#000000"

    def test_background_only_for_letterbox(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(mode="crop", fill="#000000"), jpeg_asset)
        assert "background" not in params


class TestFormatMapping:

    @pytest.mark.parametrize("fmt,interlace,expected", [
        ("jpg", "none", "baseline-jpeg"),
        ("jpg", "line", "jpeg"),
        ("jpg", None, "jpeg"),
        ("webp", None, "webp"),
        ("png", "none", "png"),
        (None, None, "auto"),
        ("", None, ""),
    ])
    def test_format_values(self, mapper, jpeg_asset, fmt, interlace, expected):
        params = mapper.map(TransformSpec(format=fmt, interlace=interlace), jpeg_asset)
        assert params.get("format") == expected


class TestGravity:

    def test_top_left(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(position="top-left"), jpeg_asset)
        assert params.get("gravity") == "0x0"

    def test_bottom_right(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(position="bottom-right"), jpeg_asset)
        assert params.get("gravity") == "1x1"

    def test_center_left_puts_x_first(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(position="center-left"), jpeg_asset)
        assert params.get("gravity") == "0x0.5"

    def test_center_center_omits_gravity(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(position="center-center"), jpeg_asset)
        assert "gravity" not in params

    def test_focal_point_wins_over_position(self, mapper):
        asset = AssetRef("image/jpeg", "https://cdn.example.com/a.jpg", FocalPoint(0.25, 0.75))
        params = mapper.map(TransformSpec(position="top-left"), asset)
        assert params.get("gravity") == "0.25x0.75"

    def test_focal_point_used_even_when_centered(self, mapper):
        asset = AssetRef("image/jpeg", "https://cdn.example.com/a.jpg", FocalPoint(0.0, 1.0))
        params = mapper.map(TransformSpec(), asset)
        assert params.get("gravity") == "0x1"

    @pytest.mark.parametrize("position", ["middle-left", "top-middle", "top", "", "left-top"])
    def test_invalid_positions(self, mapper, jpeg_asset, position):
        with pytest.raises(InvalidPositionError):
            mapper.map(TransformSpec(position=position), jpeg_asset)

    def test_parse_position_returns_x_then_y(self):
        assert parse_position("bottom-left") == (0, 1)

    @pytest.mark.parametrize("value,expected", [
        (0, "0"), (0.0, "0"), (1.0, "1"), (0.5, "0.5"), (0.333, "0.333"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected


class TestDimensionsAndQuality:

    def test_width_and_height_pass_through(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(width=300, height=200), jpeg_asset)
        assert params.get("width") == "300"
        assert params.get("height") == "200"

    def test_zero_and_missing_dimensions_are_omitted(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(width=0), jpeg_asset)
        assert "width" not in params
        assert "height" not in params

    def test_default_quality(self, jpeg_asset):
        mapper = TransformParameterMapper(default_quality=75)
        assert mapper.map(TransformSpec(), jpeg_asset).get("quality") == "75"
        assert mapper.map(TransformSpec(quality=0), jpeg_asset).get("quality") == "75"
        assert mapper.map(TransformSpec(quality=90), jpeg_asset).get("quality") == "90"

    def test_keys_stored_in_vocabulary_order(self, mapper, jpeg_asset):
        params = mapper.map(TransformSpec(width=300, height=200, mode="letterbox", position="top-left"), jpeg_asset)
        assert list(params) == ["width", "height", "quality", "format", "fit", "background", "gravity"]


class TestAssetPolicy:

    def test_gif_rejected_when_disabled(self):
        mapper = TransformParameterMapper(transform_gifs=False)
        with pytest.raises(UnsupportedAssetError):
            mapper.map(TransformSpec(), AssetRef("image/gif", "https://cdn.example.com/a.gif"))

    def test_gif_allowed_when_enabled(self):
        mapper = TransformParameterMapper(transform_gifs=True)
        params = mapper.map(TransformSpec(), AssetRef("image/gif", "https://cdn.example.com/a.gif"))
        assert params.get("fit") == "cover"

    def test_svg_rejected_when_disabled(self):
        mapper = TransformParameterMapper(transform_svgs=False)
        with pytest.raises(UnsupportedAssetError):
            mapper.map(TransformSpec(), AssetRef("image/svg+xml", "https://cdn.example.com/a.svg"))

    def test_pdf_always_allowed(self):
        mapper = TransformParameterMapper(transform_gifs=False, transform_svgs=False)
        params = mapper.map(TransformSpec(width=100), AssetRef("application/pdf", "https://cdn.example.com/a.pdf"))
        assert params.get("width") == "100"

    def test_supported_formats(self):
        assert is_supported_format("JPG")
        assert is_supported_format(".webp")
        assert not is_supported_format("tiff")


class TestCanonicalString:

    def test_map_then_serialize_is_deterministic_and_sorted(self, mapper, jpeg_asset):
        spec = TransformSpec(width=300, height=200, mode="crop", position="top-left")
        first = serialize_transforms(mapper.map(spec, jpeg_asset))
        second = serialize_transforms(mapper.map(spec, jpeg_asset))

        assert first == second
        assert first == "fit=cover&format=auto&gravity=0x0&height=200&quality=82&width=300"

        keys = [pair.split("=", 1)[0] for pair in first.split("&")]
        assert keys == sorted(keys)

    def test_none_values_never_stored(self):
        params = CanonicalParams({"width": 10, "height": None})
        assert params.to_dict() == {"width": "10"}

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValueError):
            CanonicalParams({"blur": 5})
