"""Image processing utilities for images sync."""

import io
import logging
import posixpath
from datetime import datetime
from typing import Optional, Tuple

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from .exceptions import TransformError, UnsupportedFormat
from .models import DerivativeSpec
from .protocols import ImageInfo, TransformedImage

# Extensions Pillow can decode as a source image
SUPPORTED_EXTENSIONS = {
    "bmp",
    "gif",
    "jpeg",
    "jpg",
    "jp2",
    "png",
    "ppm",
    "tif",
    "tiff",
    "webp",
}

# Pillow encoder name per configured output format
PIL_FORMATS = {
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
    "tiff": "TIFF",
    "tif": "TIFF",
}

CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "avif": "image/avif",
    "pdf": "application/pdf",
}

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


def derive_content_type(image_format: Optional[str]) -> str:
    """Get the MIME type for a format name or file extension."""
    if not image_format:
        return "application/octet-stream"
    return CONTENT_TYPES.get(image_format.lower().lstrip("."), "application/octet-stream")


def is_supported_key(key: str) -> bool:
    """Check whether the key's extension is a decodable image type."""
    extension = posixpath.splitext(key)[1].lower().lstrip(".")
    return extension in SUPPORTED_EXTENSIONS


def extract_captured_at(img: "Image.Image") -> Optional[str]:
    """
    Extract the capture timestamp from EXIF metadata, if present.

    Uses DateTimeOriginal from the Exif IFD and falls back to the base
    DateTime tag.

    Returns:
        ISO-8601 timestamp, or None when absent or malformed
    """
    exif = img.getexif()
    if not exif:
        return None

    raw_value = exif.get_ifd(ExifTags.IFD.Exif).get(ExifTags.Base.DateTimeOriginal)
    if raw_value is None:
        raw_value = exif.get(ExifTags.Base.DateTime)
    if raw_value is None:
        return None

    if isinstance(raw_value, bytes):
        raw_value = raw_value.decode("utf-8", errors="ignore")

    try:
        return datetime.strptime(str(raw_value).strip("\x00 "), EXIF_DATETIME_FORMAT).isoformat()
    except ValueError:
        return None


def target_size(
    source_size: Tuple[int, int], spec: DerivativeSpec
) -> Optional[Tuple[int, int]]:
    """
    Compute the resize target for ``spec``.

    Returns:
        (width, height) to resize to, or None when the source does not exceed
        the spec on any constrained axis and should only be re-encoded.
    """
    source_width, source_height = source_size
    width, height = spec.width, spec.height

    exceeds = (width is not None and source_width > width) or (
        height is not None and source_height > height
    )
    if not exceeds:
        return None

    if width is not None and height is not None:
        return width, height
    if width is not None:
        return width, max(1, round(source_height * width / source_width))
    return max(1, round(source_width * height / source_height)), height


def _load(image_bytes: bytes) -> "Image.Image":
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise UnsupportedFormat(f"Unable to decode image: {e}") from e
    return img


class PillowImageTransform:
    """
    Resizes and re-encodes images using Pillow.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def probe(self, image_bytes: bytes) -> ImageInfo:
        """Read dimensions, source format and capture time."""
        img = _load(image_bytes)
        return ImageInfo(
            width=img.width,
            height=img.height,
            format=(img.format or "").lower(),
            captured_at=extract_captured_at(img),
        )

    def transform(self, image_bytes: bytes, spec: DerivativeSpec) -> TransformedImage:
        """
        Generate a derivative from image data.

        Resizes only when the source exceeds the spec on a constrained axis;
        otherwise the image is re-encoded to the spec's format and quality.

        Args:
            image_bytes: Original image as bytes
            spec: Target derivative spec

        Returns:
            The encoded derivative with its actual dimensions and format
        """
        img = _load(image_bytes)
        pil_format = PIL_FORMATS[spec.output_format]

        size = target_size(img.size, spec)
        if size is not None:
            if spec.width is not None and spec.height is not None:
                img = ImageOps.fit(img, size, Image.Resampling.LANCZOS)
            else:
                img = img.resize(size, Image.Resampling.LANCZOS)
            self.logger.debug(f"Resized to {size[0]}x{size[1]}")

        output = io.BytesIO()
        try:
            if pil_format == "JPEG":
                img = self._convert_color_mode(img)
                img.save(output, format="JPEG", quality=spec.output_quality, optimize=True)
            elif pil_format == "WEBP":
                img.save(output, format="WEBP", quality=spec.output_quality)
            elif pil_format == "PNG":
                img.save(output, format="PNG", optimize=True)
            else:
                img.save(output, format=pil_format)
        except (OSError, ValueError, KeyError) as e:
            raise TransformError(f"Unable to encode {spec.output_format}: {e}") from e

        return TransformedImage(
            data=output.getvalue(),
            width=img.width,
            height=img.height,
            format=pil_format.lower(),
        )

    def _convert_color_mode(self, img: "Image.Image") -> "Image.Image":
        """Flatten alpha onto white and convert to RGB for JPEG output."""
        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode != "RGB":
            return img.convert("RGB")
        return img
