"""Fake implementations for testing purposes."""

import asyncio
import io
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from PIL import ExifTags, Image

from ..core.exceptions import (
    DeleteError,
    ObjectNotFound,
    StoreUnavailable,
    UnsupportedFormat,
    TransformError,
    UploadError,
)
from ..core.image_utils import PIL_FORMATS, target_size
from ..core.models import DerivativeSpec
from ..core.protocols import ImageInfo, TransformedImage


@dataclass
class StoredObject:
    """Fake stored object for testing."""

    key: str
    body: bytes
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


class FakeObjectStore:
    """In-memory object store implementing the ObjectStore protocol."""

    def __init__(self, page_size: int = 1000):
        self.objects: Dict[str, StoredObject] = {}
        self.page_size = page_size
        self.operation_counts: Dict[str, int] = {
            "list": 0,
            "list_pages": 0,
            "get": 0,
            "put": 0,
            "delete": 0,
        }
        self.should_fail = False
        self.failure_message = "Simulated store failure"
        self.failing_keys: Dict[str, Set[str]] = {"get": set(), "put": set(), "delete": set()}
        self.delay_seconds = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def add_object(
        self,
        key: str,
        body: bytes = b"",
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        """Add object to the store."""
        self.objects[key] = StoredObject(
            key=key, body=body, content_type=content_type, metadata=metadata or {}
        )

    def keys(self) -> List[str]:
        return sorted(self.objects)

    async def __aenter__(self) -> "FakeObjectStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    def set_failure_mode(
        self, should_fail: bool, message: str = "Simulated store failure"
    ) -> None:
        """Make every operation fail as if the store were unreachable."""
        self.should_fail = should_fail
        self.failure_message = message

    def fail_key(self, operation: str, key: str) -> None:
        """Make ``operation`` ("get", "put" or "delete") fail for ``key``."""
        self.failing_keys[operation].add(key)

    def set_delay(self, seconds: float) -> None:
        """Set artificial delay for testing concurrency."""
        self.delay_seconds = seconds

    async def _enter(self, operation: str) -> None:
        self.operation_counts[operation] += 1
        if self.should_fail:
            raise StoreUnavailable(self.failure_message)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay_seconds)
        finally:
            self.in_flight -= 1

    async def list_keys(self, prefix: str) -> List[str]:
        """List keys page by page, like a continuation-token listing."""
        await self._enter("list")
        matching = [key for key in sorted(self.objects) if key.startswith(prefix)]
        keys: List[str] = []
        for start in range(0, len(matching), self.page_size):
            self.operation_counts["list_pages"] += 1
            keys.extend(matching[start : start + self.page_size])
        return keys

    async def get(self, key: str) -> bytes:
        await self._enter("get")
        if key in self.failing_keys["get"]:
            raise StoreUnavailable(self.failure_message, key=key)
        obj = self.objects.get(key)
        if obj is None:
            raise ObjectNotFound(f"Object not found: {key}", key=key)
        return obj.body

    async def put(
        self,
        key: str,
        data: bytes,
        metadata: Dict[str, str],
        content_type: Optional[str] = None,
    ) -> None:
        await self._enter("put")
        if key in self.failing_keys["put"]:
            raise UploadError(self.failure_message, key=key)
        self.add_object(key, data, content_type, dict(metadata))

    async def delete(self, key: str) -> None:
        await self._enter("delete")
        if key in self.failing_keys["delete"]:
            raise DeleteError(self.failure_message, key=key)
        self.objects.pop(key, None)


class FakeImageTransform:
    """
    Deterministic image transform: every source has the same dimensions and
    derivatives are sized with the real resize rules.
    """

    def __init__(
        self,
        width: int = 1000,
        height: int = 800,
        captured_at: Optional[str] = None,
    ):
        self.width = width
        self.height = height
        self.captured_at = captured_at
        self.undecodable: Set[bytes] = set()
        self.failing_formats: Set[str] = set()
        self.probe_calls = 0
        self.transform_calls: List[Tuple[bytes, DerivativeSpec]] = []

    def probe(self, image_bytes: bytes) -> ImageInfo:
        self.probe_calls += 1
        if image_bytes in self.undecodable:
            raise UnsupportedFormat("Simulated undecodable image")
        return ImageInfo(self.width, self.height, "jpeg", self.captured_at)

    def transform(self, image_bytes: bytes, spec: DerivativeSpec) -> TransformedImage:
        self.transform_calls.append((image_bytes, spec))
        if image_bytes in self.undecodable:
            raise UnsupportedFormat("Simulated undecodable image")
        if spec.output_format in self.failing_formats:
            raise TransformError(f"Simulated encoder failure for {spec.output_format}")

        width, height = target_size((self.width, self.height), spec) or (
            self.width,
            self.height,
        )
        return TransformedImage(
            data=f"{width}x{height}".encode(),
            width=width,
            height=height,
            format=PIL_FORMATS[spec.output_format].lower(),
        )


def create_test_image(
    width: int = 100,
    height: int = 100,
    image_format: str = "JPEG",
    mode: str = "RGB",
    captured_at: Optional[str] = None,
) -> bytes:
    """Create a test image in memory, optionally with an EXIF capture time."""
    color = (255, 0, 0, 128) if mode == "RGBA" else "red"
    image = Image.new(mode, (width, height), color=color)

    img_bytes = io.BytesIO()
    save_kwargs = {}
    if captured_at:
        exif = Image.Exif()
        exif[ExifTags.Base.DateTime] = captured_at
        save_kwargs["exif"] = exif
    image.save(img_bytes, format=image_format, **save_kwargs)
    return img_bytes.getvalue()
