"""Protocol definitions for the injected collaborators."""

from typing import Dict, List, NamedTuple, Optional, Protocol

from .models import DerivativeSpec


class ImageInfo(NamedTuple):
    """Dimensions (and capture time, when embedded) of a decoded image."""

    width: int
    height: int
    format: str = ""
    captured_at: Optional[str] = None


class TransformedImage(NamedTuple):
    """Encoded derivative with its actual dimensions and format."""

    data: bytes
    width: int
    height: int
    format: str


class ObjectStore(Protocol):
    """Protocol for the object store operations the engine needs."""

    async def list_keys(self, prefix: str) -> List[str]:
        """Return every key under ``prefix``, paginating transparently."""
        ...

    async def get(self, key: str) -> bytes:
        """Download an object; raises ObjectNotFound if absent."""
        ...

    async def put(
        self,
        key: str,
        data: bytes,
        metadata: Dict[str, str],
        content_type: Optional[str] = None,
    ) -> None:
        """Upload an object with user metadata."""
        ...

    async def delete(self, key: str) -> None:
        """Delete an object."""
        ...


class ImageTransform(Protocol):
    """Protocol for decoding, resizing and encoding images."""

    def probe(self, image_bytes: bytes) -> ImageInfo:
        """Read dimensions; raises UnsupportedFormat for undecodable bytes."""
        ...

    def transform(self, image_bytes: bytes, spec: DerivativeSpec) -> TransformedImage:
        """Produce the derivative described by ``spec``."""
        ...
