"""Mutation executor - applies a reconciliation state to the store."""

import asyncio
from typing import Optional

from ..core import get_logger
from ..core.config import check_pool_size
from ..core.error_handling import BatchOperationContextManager
from ..core.exceptions import ConfigError
from ..core.image_utils import PillowImageTransform
from ..core.matching import validate_specs
from ..core.models import ExecutionReport, ReconciliationState, SyncConfig
from ..core.protocols import ImageTransform, ObjectStore
from .creation import DEFAULT_CREATE_CONCURRENCY, create_derivatives
from .deletion import DEFAULT_DELETE_CONCURRENCY, delete_objects

logger = get_logger("images_sync.executor")


def check_preconditions(
    state: ReconciliationState,
    config: SyncConfig,
    create_concurrency: int = DEFAULT_CREATE_CONCURRENCY,
    delete_concurrency: int = DEFAULT_DELETE_CONCURRENCY,
) -> None:
    """
    Raise ConfigError for an invalid configuration, a worker pool size below
    one, or pending mutations whose spec is not part of ``config``.
    """
    validate_specs(config.output_images)
    check_pool_size("create_concurrency", create_concurrency)
    check_pool_size("delete_concurrency", delete_concurrency)
    for base_key, mutations in state.pending_mutations.items():
        for mutation in mutations:
            if mutation.spec not in config.output_images:
                raise ConfigError(
                    f"Pending mutation for '{base_key}' uses a spec that is not "
                    f"configured: {mutation.spec.model_dump(exclude_none=True)}"
                )


async def apply_async(
    state: ReconciliationState,
    config: SyncConfig,
    store: ObjectStore,
    transform: ImageTransform,
    create_concurrency: int = DEFAULT_CREATE_CONCURRENCY,
    delete_concurrency: int = DEFAULT_DELETE_CONCURRENCY,
    delete_orphans: bool = True,
) -> ExecutionReport:
    """
    Create pending derivatives, then delete orphans.

    Per-item failures are isolated and reported; only precondition failures
    raise.

    Args:
        state: Output of the state builder
        config: Active configuration the state was built from
        store: Object store to mutate
        transform: Image transform used for every derivative
        create_concurrency: Creation worker pool size
        delete_concurrency: Deletion worker pool size
        delete_orphans: Skip the deletion pass when False

    Returns:
        Counts and per-item results of both passes
    """
    check_preconditions(state, config, create_concurrency, delete_concurrency)
    report = ExecutionReport()

    with BatchOperationContextManager("Derivative creation", logger) as batch:
        report.creation_results = await create_derivatives(
            state.pending_mutations, config, store, transform, create_concurrency
        )
        for result in report.creation_results:
            for error in result.errors:
                batch.add_error(error, result.base_key)

    if delete_orphans and state.orphan_keys:
        with BatchOperationContextManager("Orphan deletion", logger) as batch:
            report.deletion_results = await delete_objects(
                state.orphan_keys, store, delete_concurrency
            )
            for deletion in report.deletion_results:
                if not deletion.success:
                    batch.add_error(deletion.error, deletion.key)

    return report


def apply(
    state: ReconciliationState,
    config: SyncConfig,
    store: ObjectStore,
    transform: Optional[ImageTransform] = None,
    **kwargs,
) -> ExecutionReport:
    """
    Synchronous wrapper that runs :func:`apply_async` in a new event loop.

    The store must not be bound to another running loop.
    """
    if transform is None:
        transform = PillowImageTransform()
    return asyncio.run(apply_async(state, config, store, transform, **kwargs))
