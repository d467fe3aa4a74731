"""
Backend selection for uploads and URL-driven dispatch for deletes.

Every call takes the settings snapshot of the current request, so a change of
storage mode applies to the very next operation.
"""
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from apps.api.services.cos_storage import CosStorage
from apps.api.services.errors import StorageWriteError
from apps.api.services.local_file_storage import LocalFileStorage
from apps.api.services.media_storage import (
    CloudAsset,
    DeleteOutcome,
    LocalAsset,
    MediaStorage,
    StorageSettings,
    parse_asset_url,
)
from apps.api.services.metrics import STORAGE_DELETE_FAILURES

logger = logging.getLogger("artshare.storage")


def resolve_local_root(settings: StorageSettings) -> Path:
    """Directory served under /uploads/"""
    path = Path(settings.local_storage_path or "uploads")
    if path.is_absolute():
        return path
    return Path(os.getenv("PUBLIC_ROOT", "./public")) / path


def get_storage(settings: StorageSettings, force_local: bool = False) -> MediaStorage:
    """
    Pick the backend for a new upload.

    Cloud mode with any credential missing degrades to local storage.
    """
    if not force_local and settings.wants_cos:
        if settings.cos_configured:
            return CosStorage.from_settings(settings)
        logger.warning("COS storage selected but credentials are incomplete; using local storage")
    return LocalFileStorage(resolve_local_root(settings))


async def upload_file(
    data: bytes,
    file_name: str,
    folder: str,
    mime_type: str,
    settings: StorageSettings,
    force_local: bool = False
) -> str:
    """Store an upload and return its URL, raising StorageWriteError on failure"""
    storage = get_storage(settings, force_local=force_local)
    try:
        return await storage.put(data, file_name, folder, mime_type)
    except Exception as e:
        logger.error(f"Upload of {folder}/{file_name} failed on {type(storage).__name__}: {e}")
        raise StorageWriteError(f"Failed to store file: {e}") from e


async def delete_file(url: Optional[str], settings: StorageSettings) -> bool:
    """
    Delete the file behind a stored URL.

    Local failures other than absence propagate. Cloud failures are logged
    by the COS backend and reported as False.
    """
    location = parse_asset_url(url)
    if location is None:
        return False

    if isinstance(location, LocalAsset):
        return await LocalFileStorage(resolve_local_root(settings)).delete(url)

    if isinstance(location, CloudAsset):
        if not settings.cos_configured:
            logger.warning(f"COS credentials missing, cannot delete {url}")
            return False
        return await CosStorage.from_settings(settings).delete(url)

    return False


async def delete_files(urls: Iterable[Optional[str]], settings: StorageSettings) -> DeleteOutcome:
    """Delete several URLs, continuing past individual failures"""
    outcome = DeleteOutcome()
    for url in urls:
        if not url:
            continue
        try:
            deleted = await delete_file(url, settings)
        except Exception as e:
            STORAGE_DELETE_FAILURES.labels(backend="local").inc()
            logger.error(f"Failed to delete file {url}: {e}")
            outcome.failed.append(url)
            continue
        if deleted:
            outcome.succeeded.append(url)
        else:
            outcome.failed.append(url)
    return outcome
