"""
S3ObjectStore - async S3 operations for listing, downloading, uploading and
deleting objects in one bucket.
"""

import contextlib
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import aioboto3
from aiobotocore.config import AioConfig

from .error_handling import translate_store_errors
from .models import StoreSettings

if TYPE_CHECKING:
    from types_aiobotocore_s3 import S3Client
else:
    S3Client = Any

LIST_PAGE_SIZE = 1000
MAX_POOL_CONNECTIONS = 50


class S3ObjectStore:
    """
    Wrapper around a shared aioboto3 S3 client bound to a single bucket.

    Use as an async context manager; the client holds no per-task state and
    is shared by every concurrent job.
    """

    def __init__(
        self,
        bucket: str,
        settings: Optional[StoreSettings] = None,
        session: Optional[aioboto3.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.bucket = bucket
        self.settings = settings or StoreSettings()
        self.logger = logger or logging.getLogger(__name__)
        self._session = session or aioboto3.Session()
        self._stack: Optional[contextlib.AsyncExitStack] = None
        self._client: Optional[S3Client] = None

    @property
    def client(self) -> S3Client:
        """Return the underlying client; only valid inside ``async with``."""
        if self._client is None:
            raise RuntimeError("S3ObjectStore must be entered with 'async with'")
        return self._client

    async def __aenter__(self) -> "S3ObjectStore":
        self._stack = contextlib.AsyncExitStack()
        self._client = await self._stack.enter_async_context(
            self._session.client(
                "s3",
                endpoint_url=self.settings.endpoint_url,
                aws_access_key_id=self.settings.access_key_id,
                aws_secret_access_key=self.settings.secret_key,
                region_name=self.settings.region,
                config=AioConfig(
                    retries={
                        "max_attempts": self.settings.max_attempts,
                        "mode": "standard",
                    },
                    max_pool_connections=MAX_POOL_CONNECTIONS,
                ),
            )
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._stack is not None:
            await self._stack.aclose()
        self._stack = None
        self._client = None

    @translate_store_errors("list")
    async def list_keys(self, prefix: str) -> List[str]:
        """List every key under ``prefix``, one page in flight at a time."""
        keys: List[str] = []
        paginator = self.client.get_paginator("list_objects_v2")
        async for page in paginator.paginate(
            Bucket=self.bucket,
            Prefix=prefix,
            PaginationConfig={"PageSize": LIST_PAGE_SIZE},
        ):
            for obj in page.get("Contents", []):
                key = obj["Key"]
                if not key.endswith("/"):
                    keys.append(key)

        self.logger.debug(f"Listed {len(keys)} objects in s3://{self.bucket}/{prefix}")
        return keys

    @translate_store_errors("get")
    async def get(self, key: str) -> bytes:
        """Download an object."""
        response = await self.client.get_object(Bucket=self.bucket, Key=key)
        async with response["Body"] as stream:
            return await stream.read()

    @translate_store_errors("put")
    async def put(
        self,
        key: str,
        data: bytes,
        metadata: Dict[str, str],
        content_type: Optional[str] = None,
    ) -> None:
        """Upload an object with user metadata."""
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "Metadata": metadata,
        }
        if content_type:
            params["ContentType"] = content_type
        await self.client.put_object(**params)

    @translate_store_errors("delete")
    async def delete(self, key: str) -> None:
        """Delete an object."""
        await self.client.delete_object(Bucket=self.bucket, Key=key)
