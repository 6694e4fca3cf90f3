"""Deletion pass - removes orphaned derivatives with bounded concurrency."""

import asyncio
from typing import List, Sequence

from ..core import get_logger
from ..core.config import check_pool_size
from ..core.exceptions import StoreError
from ..core.models import DeletionResult
from ..core.protocols import ObjectStore

DEFAULT_DELETE_CONCURRENCY = 25

logger = get_logger("images_sync.deletion")


async def delete_key(
    key: str, index: int, total: int, store: ObjectStore
) -> DeletionResult:
    """Delete one object; failures are recorded on the result."""
    logger.info(f"{index + 1}/{total}: deleting key {key}")
    try:
        await store.delete(key)
    except StoreError as e:
        logger.error(f"[{key}] Delete failed: {e}")
        return DeletionResult(key=key, success=False, error=str(e))
    return DeletionResult(key=key, success=True)


async def delete_objects(
    keys: Sequence[str],
    store: ObjectStore,
    concurrency: int = DEFAULT_DELETE_CONCURRENCY,
) -> List[DeletionResult]:
    """Issue one delete per key, at most ``concurrency`` in flight."""
    check_pool_size("concurrency", concurrency)
    semaphore = asyncio.Semaphore(concurrency)

    async def bounded(index: int, key: str) -> DeletionResult:
        async with semaphore:
            return await delete_key(key, index, len(keys), store)

    outcomes = await asyncio.gather(
        *(bounded(index, key) for index, key in enumerate(keys)),
        return_exceptions=True,
    )

    # Convert unexpected exceptions to failed results
    results: List[DeletionResult] = []
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, Exception):
            logger.error(
                f"[{key}] Unexpected error: {outcome}",
                exc_info=(type(outcome), outcome, outcome.__traceback__),
            )
            results.append(DeletionResult(key=key, success=False, error=str(outcome)))
        else:
            results.append(outcome)
    return results
