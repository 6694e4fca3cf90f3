"""Custom exceptions for the images sync engine."""

from __future__ import annotations


class ImagesSyncError(Exception):
    """Base exception for all images sync errors."""


class ConfigError(ImagesSyncError):
    """Error raised for invalid configuration options."""


class StoreError(ImagesSyncError):
    """Error raised for object store related failures."""

    def __init__(self, message: str, key: str = "") -> None:
        super().__init__(message)
        self.key = key


class StoreUnavailable(StoreError):
    """The store could not be reached or listed; fatal for the run."""


class ObjectNotFound(StoreError):
    """The requested object does not exist."""


class UploadError(StoreError):
    """Uploading a single object failed."""


class DeleteError(StoreError):
    """Deleting a single object failed."""


class TransformError(ImagesSyncError):
    """Error raised when decoding or encoding a source image fails."""


class UnsupportedFormat(TransformError):
    """The bytes (or the key's extension) are not a decodable image."""
