"""Bounded-concurrency passes that mutate the object store."""

from .creation import create_derivatives
from .deletion import delete_objects
from .executor import apply, apply_async
from .upload import upload_files

__all__ = [
    "create_derivatives",
    "delete_objects",
    "apply",
    "apply_async",
    "upload_files",
]
