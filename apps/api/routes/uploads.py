"""Serve locally stored uploads under /uploads/"""
from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import FileResponse
import mimetypes
import logging

from apps.api.deps import get_store
from apps.api.services.file_storage import resolve_local_root
from apps.api.services.local_file_storage import LocalFileStorage
from apps.api.storage.portfolio_store import PortfolioStore

logger = logging.getLogger("artshare.uploads")

router = APIRouter(prefix="/uploads", tags=["uploads"])

CACHE_CONTROL = "public, max-age=31536000, immutable"


@router.get("/{file_path:path}")
async def serve_upload(file_path: str, store: PortfolioStore = Depends(get_store)):
    settings = await store.get_settings()
    storage = LocalFileStorage(resolve_local_root(settings))

    try:
        path = storage.path_for_url(f"/uploads/{file_path}")
    except ValueError:
        logger.warning(f"Rejected upload path outside storage root: {file_path}")
        raise HTTPException(403, "Access denied")

    if not path.is_file():
        raise HTTPException(404, "File not found")

    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return FileResponse(path, media_type=media_type, headers={"Cache-Control": CACHE_CONTROL})
