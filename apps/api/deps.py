import os
import logging

from apps.api.services.cache import MediaCache
from apps.api.services.portfolio_media import PortfolioMediaService
from apps.api.storage.portfolio_store import PortfolioStore

logger = logging.getLogger("artshare")

_store = None
_cache = None
_media_service = None


def get_store() -> PortfolioStore:
    global _store
    if _store is None:
        _store = PortfolioStore(os.getenv("DATABASE_URL"))
    return _store


def get_cache() -> MediaCache:
    global _cache
    if _cache is None:
        redis_url = os.getenv("REDIS_URL") or None
        _cache = MediaCache(redis_url)
        logger.info(f"Cache backend: {'redis' if redis_url else 'memory'}")
    return _cache


def get_media_service() -> PortfolioMediaService:
    global _media_service
    if _media_service is None:
        _media_service = PortfolioMediaService(get_store())
    return _media_service
