"""Creation pass - downloads each source once and uploads its derivatives."""

import asyncio
from typing import Dict, List

from ..core import get_logger
from ..core.config import check_pool_size
from ..core.exceptions import StoreError, TransformError
from ..core.image_utils import derive_content_type, is_supported_key
from ..core.keys import derivative_key
from ..core.models import CreationResult, JobState, PendingMutation, SyncConfig
from ..core.protocols import ImageTransform, ObjectStore, TransformedImage

DEFAULT_CREATE_CONCURRENCY = 15

logger = get_logger("images_sync.creation")


def build_metadata(derivative: TransformedImage, captured_at=None) -> Dict[str, str]:
    metadata = {"width": str(derivative.width), "height": str(derivative.height)}
    if captured_at:
        metadata["captured-at"] = captured_at
    return metadata


async def create_group(
    base_key: str,
    mutations: List[PendingMutation],
    config: SyncConfig,
    store: ObjectStore,
    transform: ImageTransform,
) -> CreationResult:
    """Create every pending derivative of one base key.

    Pending -> Downloading -> TransformFailed | Transformed -> Uploading ->
    Done | PartialFailure. Errors are recorded on the result, never raised.
    """
    source_key = mutations[0].source_input_key
    result = CreationResult(
        base_key=base_key, source_key=source_key, requested=len(mutations)
    )

    if not is_supported_key(source_key):
        logger.warning(f"[{source_key}] Skipping non-image file")
        result.state = JobState.TRANSFORM_FAILED
        result.errors.append(f"Unsupported file extension: {source_key}")
        return result

    # Step 1: Download the source once for all specs
    result.state = JobState.DOWNLOADING
    logger.debug(f"[{source_key}] Downloading source")
    try:
        source_bytes = await store.get(source_key)
    except StoreError as e:
        logger.error(f"[{source_key}] Download failed: {e}")
        result.state = JobState.DOWNLOAD_FAILED
        result.errors.append(str(e))
        return result

    # Step 2: Transform for every spec before uploading anything
    try:
        info = await asyncio.to_thread(transform.probe, source_bytes)
        logger.debug(f"[{source_key}] Loaded image: {info.width}x{info.height}")
        derivatives = [
            await asyncio.to_thread(transform.transform, source_bytes, mutation.spec)
            for mutation in mutations
        ]
    except TransformError as e:
        logger.error(f"[{source_key}] Image processing failed: {e}")
        result.state = JobState.TRANSFORM_FAILED
        result.errors.append(str(e))
        return result
    result.state = JobState.TRANSFORMED
    logger.debug(f"[{source_key}] Transformed {len(derivatives)} derivative(s)")

    # Step 3: Upload each derivative independently
    result.state = JobState.UPLOADING
    for derivative in derivatives:
        output_key = derivative_key(
            config.output_prefix,
            base_key,
            derivative.width,
            derivative.height,
            derivative.format,
        )
        logger.debug(f"[{source_key}] Uploading to {output_key}")
        try:
            await store.put(
                output_key,
                derivative.data,
                build_metadata(derivative, info.captured_at),
                derive_content_type(derivative.format),
            )
        except StoreError as e:
            logger.error(f"[{source_key}] Upload of {output_key} failed: {e}")
            result.errors.append(str(e))
            continue
        result.created_keys.append(output_key)
        logger.info(f"Output: {output_key}")

    result.state = JobState.DONE if not result.errors else JobState.PARTIAL_FAILURE
    return result


async def create_derivatives(
    pending_mutations: Dict[str, List[PendingMutation]],
    config: SyncConfig,
    store: ObjectStore,
    transform: ImageTransform,
    concurrency: int = DEFAULT_CREATE_CONCURRENCY,
) -> List[CreationResult]:
    """Run :func:`create_group` for every base key, at most ``concurrency`` at a time."""
    check_pool_size("concurrency", concurrency)
    semaphore = asyncio.Semaphore(concurrency)
    groups = [(base_key, group) for base_key, group in pending_mutations.items() if group]

    async def bounded(base_key: str, group: List[PendingMutation]) -> CreationResult:
        async with semaphore:
            logger.info(f"Processing key: {group[0].source_input_key}")
            return await create_group(base_key, group, config, store, transform)

    results = await asyncio.gather(
        *(bounded(base_key, group) for base_key, group in groups),
        return_exceptions=True,
    )

    # Convert unexpected exceptions to failed results
    processed_results: List[CreationResult] = []
    for (base_key, group), outcome in zip(groups, results):
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, Exception):
            logger.error(
                f"[{base_key}] Unexpected error: {outcome}",
                exc_info=(type(outcome), outcome, outcome.__traceback__),
            )
            processed_results.append(
                CreationResult(
                    base_key=base_key,
                    source_key=group[0].source_input_key,
                    state=JobState.TRANSFORM_FAILED,
                    requested=len(group),
                    errors=[str(outcome)],
                )
            )
        else:
            processed_results.append(outcome)

    return processed_results
