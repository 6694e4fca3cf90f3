"""Tests for image_utils.py with real Pillow encoding."""

import io

import pytest
from PIL import Image

from images_sync.core.exceptions import TransformError, UnsupportedFormat
from images_sync.core.image_utils import (
    PillowImageTransform,
    derive_content_type,
    extract_captured_at,
    is_supported_key,
    target_size,
)
from images_sync.core.models import DerivativeSpec
from images_sync.testing import create_test_image


class TestTargetSize:
    """Tests for target_size function."""

    @pytest.mark.parametrize(
        "source,spec,expected",
        [
            ((1000, 800), {"width": 800}, (800, 640)),
            ((1000, 800), {"height": 600}, (750, 600)),
            ((1000, 800), {"width": 500, "height": 500}, (500, 500)),
            ((400, 300), {"width": 800}, None),
            ((400, 300), {"height": 300}, None),
            ((400, 1000), {"width": 500, "height": 500}, (500, 500)),
            ((3000, 1), {"width": 10}, (10, 1)),
        ],
    )
    def test_target_size(self, source, spec, expected):
        assert target_size(source, DerivativeSpec(**spec)) == expected


class TestPillowImageTransform:
    """Tests for PillowImageTransform."""

    def setup_method(self):
        self.transform = PillowImageTransform()

    def test_probe(self):
        info = self.transform.probe(create_test_image(120, 80, "PNG"))
        assert (info.width, info.height, info.format) == (120, 80, "png")
        assert info.captured_at is None

    def test_probe_captured_at(self):
        data = create_test_image(10, 10, captured_at="2021:05:06 07:08:09")
        assert self.transform.probe(data).captured_at == "2021-05-06T07:08:09"

    def test_resize_by_width_keeps_aspect_ratio(self):
        result = self.transform.transform(
            create_test_image(200, 100), DerivativeSpec(width=50)
        )
        assert (result.width, result.height, result.format) == (50, 25, "jpeg")
        assert Image.open(io.BytesIO(result.data)).size == (50, 25)

    def test_both_axes_crop_to_exact_size(self):
        result = self.transform.transform(
            create_test_image(200, 100), DerivativeSpec(width=60, height=60)
        )
        assert (result.width, result.height) == (60, 60)

    def test_small_source_is_only_reencoded(self):
        result = self.transform.transform(
            create_test_image(40, 30, "PNG"), DerivativeSpec(width=100, format="webp")
        )
        assert (result.width, result.height, result.format) == (40, 30, "webp")
        assert Image.open(io.BytesIO(result.data)).format == "WEBP"

    def test_rgba_to_jpeg(self):
        data = create_test_image(20, 20, "PNG", mode="RGBA")
        result = self.transform.transform(data, DerivativeSpec(width=10))
        decoded = Image.open(io.BytesIO(result.data))
        assert decoded.format == "JPEG"
        assert decoded.mode == "RGB"

    def test_jpg_format_is_canonical(self):
        result = self.transform.transform(
            create_test_image(20, 20), DerivativeSpec(height=10, format="jpg")
        )
        assert result.format == "jpeg"

    def test_png_output(self):
        result = self.transform.transform(
            create_test_image(20, 20), DerivativeSpec(height=10, format="png")
        )
        assert result.format == "png"
        assert Image.open(io.BytesIO(result.data)).format == "PNG"

    def test_undecodable_bytes(self):
        with pytest.raises(UnsupportedFormat):
            self.transform.transform(b"not an image", DerivativeSpec(width=10))
        with pytest.raises(TransformError):
            self.transform.probe(b"")


class TestHelpers:
    """Tests for content type and key helpers."""

    @pytest.mark.parametrize(
        "fmt,expected",
        [
            ("jpeg", "image/jpeg"),
            ("JPG", "image/jpeg"),
            (".png", "image/png"),
            ("webp", "image/webp"),
            ("tif", "image/tiff"),
            ("unknown", "application/octet-stream"),
            (None, "application/octet-stream"),
        ],
    )
    def test_derive_content_type(self, fmt, expected):
        assert derive_content_type(fmt) == expected

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("images/a.jpg", True),
            ("images/a.JPEG", True),
            ("images/a.webp", True),
            ("images/notes.txt", False),
            ("images/noextension", False),
        ],
    )
    def test_is_supported_key(self, key, expected):
        assert is_supported_key(key) is expected

    def test_extract_captured_at_without_exif(self):
        image = Image.open(io.BytesIO(create_test_image(5, 5, "PNG")))
        assert extract_captured_at(image) is None
