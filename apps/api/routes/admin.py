"""Admin routes - batch moderation, orphan cleanup, storage report, settings"""
from fastapi import APIRouter, Depends
import asyncio
import logging

from apps.api.deps import get_store, get_cache
from apps.api.auth.dependencies import require_admin
from apps.api.auth.models import CurrentUser
from apps.api.routes.portfolios import http_error
from apps.api.schemas import (
    BatchRequest,
    BatchResponse,
    CleanupResponse,
    SettingsOut,
    SettingsUpdate,
    StorageReport,
)
from apps.api.services.cache import MediaCache, PUBLIC_PORTFOLIOS_PATTERN
from apps.api.services.errors import MediaError
from apps.api.services.file_storage import resolve_local_root
from apps.api.services.media_storage import StorageSettings
from apps.api.services.orphan_cleanup import collect_valid_urls, reconcile
from apps.api.services.portfolio_deletion import batch_delete_portfolios, batch_set_status, validate_batch
from apps.api.services.utils.image_utils import format_file_size, get_directory_size
from apps.api.storage.portfolio_store import PortfolioStore

logger = logging.getLogger("artshare.admin")

router = APIRouter(prefix="/admin", tags=["admin"])


async def storage_used_bytes(root) -> int:
    """Size of the upload tree, walked off the event loop"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, get_directory_size, root)


@router.post("/portfolios/batch", response_model=BatchResponse)
async def batch_portfolios(
    request: BatchRequest,
    admin: CurrentUser = Depends(require_admin),
    store: PortfolioStore = Depends(get_store),
    cache: MediaCache = Depends(get_cache)
):
    """Approve, reject or delete up to 100 portfolios at once"""
    try:
        ids = validate_batch(request.action, request.ids)
        if request.action == "delete":
            settings = await store.get_settings()
            result = await batch_delete_portfolios(store, ids, settings)
        else:
            result = await batch_set_status(store, ids, request.action)
    except MediaError as e:
        raise http_error(e) from e

    logger.info(f"Admin {admin.id} ran batch {request.action} on {len(ids)} portfolios")
    await cache.delete_pattern(PUBLIC_PORTFOLIOS_PATTERN)
    return result.to_dict()


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_orphans(
    admin: CurrentUser = Depends(require_admin),
    store: PortfolioStore = Depends(get_store)
):
    """Delete local upload files that no record references"""
    settings = await store.get_settings()
    root = resolve_local_root(settings)

    valid_urls = await collect_valid_urls(store)
    report = await reconcile(root, valid_urls)

    logger.info(f"Admin {admin.id} ran orphan cleanup on {root}")
    return {**report.to_dict(), "storage_used": format_file_size(await storage_used_bytes(root))}


@router.get("/storage", response_model=StorageReport)
async def storage_report(
    admin: CurrentUser = Depends(require_admin),
    store: PortfolioStore = Depends(get_store)
):
    settings = await store.get_settings()
    used = await storage_used_bytes(resolve_local_root(settings))
    counts = await store.counts()
    return {
        "storage_type": settings.storage_type,
        "storage_used": format_file_size(used),
        "storage_used_bytes": used,
        **counts,
    }


def settings_out(settings: StorageSettings) -> dict:
    return {
        "storage_type": settings.storage_type,
        "max_file_size": settings.max_file_size,
        "local_storage_path": settings.local_storage_path,
        "require_approval": settings.require_approval,
        "cos_secret_id": settings.cos_secret_id,
        "cos_bucket": settings.cos_bucket,
        "cos_region": settings.cos_region,
        "cos_configured": settings.cos_configured,
    }


@router.get("/settings", response_model=SettingsOut)
async def get_settings(
    admin: CurrentUser = Depends(require_admin),
    store: PortfolioStore = Depends(get_store)
):
    return settings_out(await store.get_settings())


@router.put("/settings", response_model=SettingsOut)
async def update_settings(
    update: SettingsUpdate,
    admin: CurrentUser = Depends(require_admin),
    store: PortfolioStore = Depends(get_store)
):
    """Change storage mode and limits; the next request uses the new values"""
    fields = update.model_dump(exclude_unset=True)
    settings = await store.upsert_settings(**fields)
    if settings.wants_cos and not settings.cos_configured:
        logger.warning("COS storage selected with incomplete credentials; uploads stay local")
    logger.info(f"Admin {admin.id} updated settings: {sorted(fields)}")
    return settings_out(settings)
