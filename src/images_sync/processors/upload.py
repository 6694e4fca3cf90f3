"""Upload pass - copies a local directory tree into the store."""

import asyncio
from pathlib import Path
from typing import List, NamedTuple, Sequence

from ..core import get_logger
from ..core.config import check_pool_size
from ..core.exceptions import StoreError
from ..core.image_utils import derive_content_type
from ..core.protocols import ObjectStore

DEFAULT_UPLOAD_CONCURRENCY = 25

logger = get_logger("images_sync.upload")


class UploadResult(NamedTuple):
    path: str
    key: str
    success: bool
    error: str = ""


def find_files(src: Path) -> List[Path]:
    """All regular files below ``src``, sorted."""
    return sorted(path for path in src.rglob("*") if path.is_file())


def destination_key(src: Path, path: Path, dest: str) -> str:
    relative = path.relative_to(src).as_posix()
    dest = dest.strip("/")
    return f"{dest}/{relative}" if dest else relative


async def upload_files(
    src: Path,
    dest: str,
    files: Sequence[Path],
    store: ObjectStore,
    concurrency: int = DEFAULT_UPLOAD_CONCURRENCY,
) -> List[UploadResult]:
    """Upload ``files`` (below ``src``) to ``dest`` with bounded concurrency."""
    check_pool_size("concurrency", concurrency)
    semaphore = asyncio.Semaphore(concurrency)

    async def upload_one(index: int, path: Path) -> UploadResult:
        key = destination_key(src, path, dest)
        async with semaphore:
            logger.info(f"{index + 1}/{len(files)}: uploading {path} to {key}")
            try:
                data = await asyncio.to_thread(path.read_bytes)
                await store.put(key, data, {}, derive_content_type(path.suffix))
            except (OSError, StoreError) as e:
                logger.error(f"Error uploading file {path}: {e}")
                return UploadResult(str(path), key, False, str(e))
        return UploadResult(str(path), key, True)

    return list(
        await asyncio.gather(*(upload_one(index, path) for index, path in enumerate(files)))
    )
