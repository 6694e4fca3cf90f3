"""Command workflows shared by the CLI: run, check, upload and delete."""

import asyncio
import time
from pathlib import Path
from typing import Callable, Optional

from .core import AppConfig, ExecutionReport, ReconciliationState, get_logger
from .core.config import check_pool_size
from .core.image_utils import PillowImageTransform
from .core.protocols import ImageTransform
from .core.state import StateBuilder
from .core.storage import S3ObjectStore
from .processors.creation import DEFAULT_CREATE_CONCURRENCY
from .processors.deletion import DEFAULT_DELETE_CONCURRENCY, delete_objects
from .processors.executor import apply_async
from .processors.upload import find_files, upload_files

logger = get_logger("images_sync.runner")

StoreFactory = Callable[[AppConfig], S3ObjectStore]
Confirm = Callable[[str], bool]


def default_store_factory(config: AppConfig) -> S3ObjectStore:
    return S3ObjectStore(config.bucket_name, config.credentials)


def prompt_confirm(message: str) -> bool:
    """Ask a yes/no question on the terminal; defaults to no."""
    answer = input(f"{message} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]
    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, max(decimals, 0)):g} {units[index]}"


def log_configuration(config: AppConfig, command: str) -> None:
    """Log the run configuration."""
    sync = config.input_config
    logger.info("=" * 80)
    logger.info(f"IMAGES SYNC {command.upper()}")
    logger.info("=" * 80)
    logger.info(f"  Bucket:        {config.bucket_name}")
    logger.info(f"  Input:         s3://{config.bucket_name}/{sync.input_prefix}")
    logger.info(f"  Output:        s3://{config.bucket_name}/{sync.output_prefix}")
    for spec in sync.output_images:
        logger.info(f"  Output image:  {spec.model_dump(exclude_none=True, mode='json')}")
    logger.info("=" * 80)


def log_final_statistics(report: ExecutionReport, total_time: float) -> None:
    """Log the execution report."""
    logger.info("=" * 80)
    logger.info("PROCESSING COMPLETED")
    logger.info("=" * 80)
    logger.info(f"Total execution time: {total_time:.1f}s")
    logger.info(f"Derivatives created: {report.created}")
    logger.info(f"Derivatives failed: {report.failed}")
    logger.info(f"Source images skipped: {report.skipped_groups}")
    logger.info(f"Orphans deleted: {report.deleted}")
    logger.info(f"Orphan deletes failed: {report.failed_deletes}")
    logger.info("=" * 80)


async def run_sync(
    config: AppConfig,
    delete: bool = False,
    create_concurrency: int = DEFAULT_CREATE_CONCURRENCY,
    delete_concurrency: int = DEFAULT_DELETE_CONCURRENCY,
    store_factory: StoreFactory = default_store_factory,
    transform: Optional[ImageTransform] = None,
) -> ExecutionReport:
    """Build the state, create missing derivatives and optionally delete orphans."""
    check_pool_size("create_concurrency", create_concurrency)
    check_pool_size("delete_concurrency", delete_concurrency)
    log_configuration(config, "run")
    start_time = time.time()

    async with store_factory(config) as store:
        state = await StateBuilder(store).build(config.input_config)
        if state.orphan_keys and not delete:
            logger.info(
                f"{len(state.orphan_keys)} unmatched output images kept; "
                "pass --delete to remove them"
            )
        report = await apply_async(
            state,
            config.input_config,
            store,
            transform or PillowImageTransform(),
            create_concurrency=create_concurrency,
            delete_concurrency=delete_concurrency,
            delete_orphans=delete,
        )

    log_final_statistics(report, time.time() - start_time)
    return report


async def check_state(
    config: AppConfig,
    output: Optional[Path] = None,
    store_factory: StoreFactory = default_store_factory,
) -> ReconciliationState:
    """Build the state without mutating anything, optionally saving it as JSON."""
    async with store_factory(config) as store:
        state = await StateBuilder(store).build(config.input_config)

    if output is not None:
        output = output.resolve()
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"State written to {output}")
    return state


async def upload_path(
    config: AppConfig,
    src: Path,
    dest: str,
    show_files: bool = False,
    force: bool = False,
    confirm: Confirm = prompt_confirm,
    store_factory: StoreFactory = default_store_factory,
) -> int:
    """Upload a local directory tree; returns the number of failed files."""
    files = await asyncio.to_thread(find_files, src)
    if not files:
        logger.info("No files to upload from that path")
        return 0

    total_size = sum(path.stat().st_size for path in files)
    logger.info(f"Number of items to upload: {len(files)}")
    logger.info(f"Total size to upload: {format_bytes(total_size)}")
    if show_files:
        for path in files:
            logger.info(f" - {path}")

    if not force and not confirm(
        f"Are you sure you want to upload {len(files)} items ({format_bytes(total_size)})?"
    ):
        logger.info("Upload aborted by the user.")
        return 0

    async with store_factory(config) as store:
        results = await upload_files(src, dest, files, store)

    failed = sum(1 for result in results if not result.success)
    if failed:
        logger.warning(f"Uploaded {len(results) - failed} files, {failed} failed")
    else:
        logger.info("Done!")
    return failed


async def delete_path(
    config: AppConfig,
    prefix: str,
    show_files: bool = False,
    force: bool = False,
    confirm: Confirm = prompt_confirm,
    store_factory: StoreFactory = default_store_factory,
) -> int:
    """Delete every object under ``prefix``; returns the number of failed deletes."""
    async with store_factory(config) as store:
        keys = await store.list_keys(prefix)
        if not keys:
            logger.info("No files to delete for that path")
            return 0

        logger.info(f"Number of items to delete: {len(keys)}")
        if show_files:
            for key in keys:
                logger.info(f" - {key}")

        if not force and not confirm(
            f"Are you sure you want to delete {len(keys)} items?"
        ):
            logger.info("Deletion aborted by the user.")
            return 0

        results = await delete_objects(keys, store)

    failed = sum(1 for result in results if not result.success)
    if failed:
        logger.warning(f"Deleted {len(results) - failed} objects, {failed} failed")
    else:
        logger.info("Done!")
    return failed
