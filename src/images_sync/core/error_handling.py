# src/images_sync/core/error_handling.py

import functools
import logging

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import (
    DeleteError,
    ImagesSyncError,
    ObjectNotFound,
    StoreError,
    StoreUnavailable,
    UploadError,
)

NOT_FOUND_ERROR_CODES = ("NoSuchKey", "404", "NotFound")

_ERRORS_BY_OPERATION = {
    "list": StoreUnavailable,
    "get": StoreError,
    "put": UploadError,
    "delete": DeleteError,
}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def translate_store_errors(operation):
    """
    A decorator mapping botocore failures of an async store operation onto
    the StoreError hierarchy. The wrapped coroutine's first positional
    argument after ``self`` is taken to be the key or prefix.
    """
    error_class = _ERRORS_BY_OPERATION[operation]

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, key, *args, **kwargs):
            logger = logging.getLogger(func.__module__ + "." + func.__name__)
            try:
                return await func(self, key, *args, **kwargs)
            except ImagesSyncError:
                raise
            except ClientError as e:
                if operation == "get" and _error_code(e) in NOT_FOUND_ERROR_CODES:
                    raise ObjectNotFound(f"Object not found: {key}", key=key) from e
                logger.debug(f"S3 {operation} failed for '{key}': {e}")
                raise error_class(
                    f"S3 {operation} failed for '{key}': {e}", key=key
                ) from e
            except BotoCoreError as e:
                # Connection and credential problems: the store is unreachable
                raise StoreUnavailable(
                    f"S3 {operation} failed for '{key}': {e}", key=key
                ) from e

        return wrapper

    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """

    def __init__(self, operation_name="Batch Operation", logger=None):
        self.operation_name = operation_name
        self.errors = []
        self.logger = logger or logging.getLogger(
            self.__class__.__module__ + "." + self.__class__.__name__
        )

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        elif self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i + 1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Unhandled exceptions propagate
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item"):
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message (str): The error message or exception string.
            item_identifier (str): The item that failed (e.g. an object key).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}"
        )
