"""Health check and metrics routes"""
from fastapi import APIRouter, Depends, Response
import asyncio
import logging

from apps.api.deps import get_store, get_cache
from apps.api.services.cache import MediaCache
from apps.api.storage.portfolio_store import PortfolioStore

logger = logging.getLogger("artshare")

router = APIRouter(tags=["health"])


@router.get("/", include_in_schema=False)
def root():
    return {"status": "ok"}


@router.get("/healthz", include_in_schema=False)
def healthz():
    return {"status": "ok"}


@router.get("/health")
async def health(
    store: PortfolioStore = Depends(get_store),
    cache: MediaCache = Depends(get_cache)
):
    """Database reachability plus cache backend state"""
    try:
        await store.ping()
        database = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"

    status = "ok" if database == "ok" else "degraded"
    return {"status": status, "database": database, "cache": await cache.stats()}


async def _generate_metrics_async():
    """Helper to generate metrics in thread pool to avoid blocking"""
    from prometheus_client import REGISTRY, generate_latest, CONTENT_TYPE_LATEST

    loop = asyncio.get_running_loop()
    metrics_output = await loop.run_in_executor(None, generate_latest, REGISTRY)
    return metrics_output, CONTENT_TYPE_LATEST


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    try:
        metrics_output, content_type = await asyncio.wait_for(
            _generate_metrics_async(),
            timeout=5.0
        )
        return Response(content=metrics_output, media_type=content_type)
    except asyncio.TimeoutError:
        return Response(content="Metrics generation timed out", status_code=504)
