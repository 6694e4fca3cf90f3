"""Testing utilities and fakes for images sync."""

from .fakes import (
    FakeImageTransform,
    FakeObjectStore,
    StoredObject,
    create_test_image,
)

__all__ = [
    "FakeImageTransform",
    "FakeObjectStore",
    "StoredObject",
    "create_test_image",
]
