"""Portfolio routes - create, update, upload items, delete items, browse, cover, delete"""
from fastapi import APIRouter, UploadFile, File, HTTPException, Depends
from typing import Optional
import logging

from apps.api.deps import get_store, get_cache, get_media_service
from apps.api.auth.dependencies import get_current_user, require_auth
from apps.api.auth.models import CurrentUser
from apps.api.schemas import (
    CoverUpdate,
    ItemDeleted,
    PortfolioCreate,
    PortfolioItemOut,
    PortfolioOut,
    PortfolioPage,
    PortfolioUpdate,
)
from apps.api.services.cache import (
    MediaCache,
    PUBLIC_PORTFOLIOS_PATTERN,
    PUBLIC_PORTFOLIOS_TTL,
    public_portfolios_key,
)
from apps.api.services.errors import MediaError
from apps.api.services.portfolio_deletion import delete_portfolio
from apps.api.services.portfolio_media import PortfolioMediaService
from apps.api.storage.models import STATUS_APPROVED
from apps.api.storage.portfolio_store import PortfolioStore

logger = logging.getLogger("artshare")

router = APIRouter(prefix="/portfolios", tags=["portfolios"])


def http_error(e: MediaError) -> HTTPException:
    """Translate a service error into the matching HTTP response"""
    if e.status_code >= 500:
        logger.error(f"{type(e).__name__}: {e.message}")
    return HTTPException(e.status_code, e.message)


@router.post("/{portfolio_id}/items", response_model=PortfolioItemOut)
async def upload_item(
    portfolio_id: str,
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_auth),
    store: PortfolioStore = Depends(get_store),
    cache: MediaCache = Depends(get_cache),
    service: PortfolioMediaService = Depends(get_media_service)
):
    """Add an image or video to a portfolio"""
    data = await file.read()
    settings = await store.get_settings()
    try:
        item = await service.add_item(
            portfolio_id=portfolio_id,
            user=current_user,
            data=data,
            filename=file.filename,
            content_type=file.content_type,
            settings=settings,
        )
    except MediaError as e:
        raise http_error(e) from e

    await cache.delete_pattern(PUBLIC_PORTFOLIOS_PATTERN)
    return item


@router.delete("/{portfolio_id}/items/{item_id}", response_model=ItemDeleted)
async def delete_item(
    portfolio_id: str,
    item_id: str,
    current_user: CurrentUser = Depends(require_auth),
    store: PortfolioStore = Depends(get_store),
    cache: MediaCache = Depends(get_cache),
    service: PortfolioMediaService = Depends(get_media_service)
):
    settings = await store.get_settings()
    try:
        result = await service.delete_item(portfolio_id, item_id, current_user, settings)
    except MediaError as e:
        raise http_error(e) from e
    except (OSError, ValueError) as e:
        logger.error(f"Failed to delete files of item {item_id}: {e}")
        raise HTTPException(500, "Failed to delete the file, please try again later")

    await cache.delete_pattern(PUBLIC_PORTFOLIOS_PATTERN)
    return result


@router.get("", response_model=PortfolioPage)
async def list_portfolios(
    page: int = 1,
    limit: int = 12,
    store: PortfolioStore = Depends(get_store),
    cache: MediaCache = Depends(get_cache)
):
    """Public gallery: approved and public portfolios, newest first"""
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    async def fetch():
        return await store.list_public_portfolios(page=page, limit=limit)

    return await cache.get_or_set(public_portfolios_key(page, limit), fetch, PUBLIC_PORTFOLIOS_TTL)


@router.post("", response_model=PortfolioOut)
async def create_portfolio(
    body: PortfolioCreate,
    current_user: CurrentUser = Depends(require_auth),
    store: PortfolioStore = Depends(get_store),
    cache: MediaCache = Depends(get_cache),
    service: PortfolioMediaService = Depends(get_media_service)
):
    """Create an empty portfolio; items are added through /items"""
    settings = await store.get_settings()
    try:
        doc = await service.create_portfolio(current_user, body.title, body.description, settings)
    except MediaError as e:
        raise http_error(e) from e

    if doc["status"] == STATUS_APPROVED:
        await cache.delete_pattern(PUBLIC_PORTFOLIOS_PATTERN)
    return doc


@router.put("/{portfolio_id}", response_model=PortfolioOut)
async def update_portfolio(
    portfolio_id: str,
    body: PortfolioUpdate,
    current_user: CurrentUser = Depends(require_auth),
    cache: MediaCache = Depends(get_cache),
    service: PortfolioMediaService = Depends(get_media_service)
):
    try:
        doc = await service.update_portfolio(portfolio_id, current_user, **body.model_dump(exclude_unset=True))
    except MediaError as e:
        raise http_error(e) from e

    await cache.delete_pattern(PUBLIC_PORTFOLIOS_PATTERN)
    return doc


@router.get("/{portfolio_id}", response_model=PortfolioOut)
async def get_portfolio(
    portfolio_id: str,
    current_user: Optional[CurrentUser] = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store)
):
    doc = await store.fetch_portfolio(portfolio_id, with_items=True)
    if not doc:
        raise HTTPException(404, "Portfolio not found")

    visible = doc["status"] == STATUS_APPROVED and doc["is_public"]
    if not current_user:
        if not visible:
            raise HTTPException(404, "Portfolio not found")
    elif not current_user.can_view_portfolio(doc["user_id"], visible):
        raise HTTPException(403, "Access denied")

    # Owners looking at their own work do not count as views
    if visible and (not current_user or current_user.id != doc["user_id"]):
        await store.increment_view_count(portfolio_id)
        doc["view_count"] += 1

    return doc


@router.patch("/{portfolio_id}/cover", response_model=PortfolioOut)
async def update_cover(
    portfolio_id: str,
    update: CoverUpdate,
    current_user: CurrentUser = Depends(require_auth),
    cache: MediaCache = Depends(get_cache),
    service: PortfolioMediaService = Depends(get_media_service)
):
    try:
        doc = await service.set_cover(portfolio_id, current_user, update.cover)
    except MediaError as e:
        raise http_error(e) from e

    await cache.delete_pattern(PUBLIC_PORTFOLIOS_PATTERN)
    return doc


@router.delete("/{portfolio_id}")
async def remove_portfolio(
    portfolio_id: str,
    current_user: CurrentUser = Depends(require_auth),
    store: PortfolioStore = Depends(get_store),
    cache: MediaCache = Depends(get_cache)
):
    """Delete a portfolio; its files are removed in the background"""
    settings = await store.get_settings()
    try:
        report = await delete_portfolio(store, portfolio_id, current_user, settings)
    except MediaError as e:
        raise http_error(e) from e

    await cache.delete_pattern(PUBLIC_PORTFOLIOS_PATTERN)
    return {"success": True, "id": portfolio_id, "files_scheduled": len(report.file_urls)}
