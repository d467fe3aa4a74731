"""
Portfolio media lifecycle: accepting uploads into a portfolio, deleting single
items, and keeping the portfolio cover pointed at a live item.
"""
import logging
import re
import secrets
import time
from pathlib import Path
from typing import Optional

from apps.api.auth.models import CurrentUser
from apps.api.services.errors import (
    NotFoundError,
    PermissionDeniedError,
    PortfolioInUseError,
    StorageWriteError,
    UploadValidationError,
    ValidationError,
)
from apps.api.services.file_storage import delete_file, resolve_local_root, upload_file
from apps.api.services.media_storage import LocalAsset, StorageSettings, parse_asset_url
from apps.api.services.metrics import THUMBNAIL_FAILURES, UPLOAD_REJECTIONS, UPLOADS
from apps.api.services.utils.image_utils import generate_thumbnail, generate_thumbnail_from_bytes, is_image_file
from apps.api.storage.models import KIND_IMAGE, KIND_VIDEO, STATUS_APPROVED, STATUS_PENDING
from apps.api.storage.portfolio_store import PortfolioStore

logger = logging.getLogger("artshare.media")

# Letters, digits, underscore, hyphen and CJK ideographs survive; everything else becomes "_"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9\u4e00-\u9fa5_-]")
_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,10}$")
MAX_BASE_NAME = 50


def generate_filename(original_name: Optional[str]) -> str:
    """
    Collision resistant storage name that still resembles the upload.

    e.g. "My Photo.JPG" -> "My_Photo_1718000000000_a1b2c3.JPG"
    """
    name = Path(original_name or "").name or "upload"
    path = Path(name)
    ext = path.suffix if _SAFE_EXTENSION.match(path.suffix or "") else ""
    stem = name[: -len(path.suffix)] if path.suffix else name
    base = _UNSAFE_CHARS.sub("_", stem)[:MAX_BASE_NAME] or "file"
    timestamp = int(time.time() * 1000)
    suffix = secrets.token_hex(3)
    return f"{base}_{timestamp}_{suffix}{ext}"


def media_kind(content_type: Optional[str]) -> Optional[str]:
    """'image', 'video', or None for anything else"""
    content_type = (content_type or "").lower()
    if content_type.startswith("image/"):
        return KIND_IMAGE
    if content_type.startswith("video/"):
        return KIND_VIDEO
    return None


def validate_upload(content_type: Optional[str], size: int, settings: StorageSettings) -> str:
    """Check kind and size against the settings snapshot; returns the media kind"""
    kind = media_kind(content_type)
    if kind is None:
        UPLOAD_REJECTIONS.labels(reason="kind").inc()
        raise UploadValidationError("Only image and video files are supported")
    if size <= 0:
        UPLOAD_REJECTIONS.labels(reason="empty").inc()
        raise UploadValidationError("Please choose a file to upload")
    if size > settings.max_file_size:
        UPLOAD_REJECTIONS.labels(reason="size").inc()
        limit_mb = round(settings.max_file_size / 1024 / 1024)
        raise UploadValidationError(f"File exceeds the size limit ({limit_mb}MB)")
    return kind


class CoverResolver:
    """Keeps Portfolio.cover pointing at a live item (or empty)"""

    def __init__(self, store: PortfolioStore):
        self.store = store

    async def after_insert(self, portfolio: dict, item: dict, pre_count: int) -> Optional[str]:
        # Only the empty -> non-empty transition sets the cover
        if pre_count == 0:
            await self.store.update_portfolio(portfolio["id"], cover=item["url"])
            return item["url"]
        return portfolio.get("cover")

    async def after_delete(self, portfolio: dict, removed: dict) -> Optional[str]:
        cover = portfolio.get("cover")
        if not cover or cover not in (removed["url"], removed.get("thumbnail")):
            return cover
        first = await self.store.first_item(portfolio["id"])
        cover = first["url"] if first else None
        await self.store.update_portfolio(portfolio["id"], cover=cover)
        return cover


class PortfolioMediaService:
    """Upload and delete items of one portfolio on behalf of a resolved user"""

    def __init__(self, store: PortfolioStore):
        self.store = store
        self.covers = CoverResolver(store)

    async def _load_modifiable(self, portfolio_id: str, user: CurrentUser) -> dict:
        portfolio = await self.store.fetch_portfolio(portfolio_id)
        if not portfolio:
            raise NotFoundError("Portfolio not found")
        if not user.can_modify_portfolio(portfolio["user_id"]):
            raise PermissionDeniedError("You don't have permission to modify this portfolio")
        return portfolio

    async def _derive_thumbnail(self, url: str, data: bytes, file_name: str, folder: str,
                                settings: StorageSettings) -> Optional[str]:
        location = parse_asset_url(url)
        if isinstance(location, LocalAsset):
            root = resolve_local_root(settings)
            return await generate_thumbnail(root / location.relative_path, "thumbnail", root)

        if not is_image_file(file_name):
            return None
        # Original went to the cloud; keep the derivative on local storage
        thumb_bytes = await generate_thumbnail_from_bytes(data, "thumbnail")
        if not thumb_bytes:
            return None
        thumb_name = f"{Path(file_name).stem}_thumbnail.webp"
        try:
            return await upload_file(thumb_bytes, thumb_name, folder, "image/webp", settings, force_local=True)
        except StorageWriteError as e:
            logger.warning(f"Thumbnail upload failed for {url}: {e}")
            return None

    async def add_item(
        self,
        portfolio_id: str,
        user: CurrentUser,
        data: bytes,
        filename: Optional[str],
        content_type: Optional[str],
        settings: StorageSettings
    ) -> dict:
        """
        Store an upload and append it to the portfolio.

        Steps run strictly in order: file write, thumbnail, item row, cover,
        re-review. A StorageWriteError leaves no item row behind.

        Raises:
            NotFoundError, PermissionDeniedError, UploadValidationError, StorageWriteError
        """
        portfolio = await self._load_modifiable(portfolio_id, user)
        kind = validate_upload(content_type, len(data or b""), settings)

        # No lock: concurrent uploads may share an order value
        pre_count = await self.store.count_items(portfolio_id)

        file_name = generate_filename(filename)
        folder = portfolio["user_id"]
        try:
            url = await upload_file(data, file_name, folder, content_type, settings)
        except StorageWriteError:
            UPLOAD_REJECTIONS.labels(reason="storage").inc()
            raise

        thumbnail = None
        if kind == KIND_IMAGE:
            thumbnail = await self._derive_thumbnail(url, data, file_name, folder, settings)
            if thumbnail is None:
                THUMBNAIL_FAILURES.inc()

        item = await self.store.create_item(
            portfolio_id=portfolio_id,
            kind=kind,
            url=url,
            thumbnail=thumbnail,
            original_name=filename,
            order=pre_count,
        )

        await self.covers.after_insert(portfolio, item, pre_count)

        # Content changes to an approved portfolio go back to review
        if settings.require_approval and portfolio["status"] == STATUS_APPROVED:
            await self.store.update_portfolio(portfolio_id, status=STATUS_PENDING, is_public=False)
            logger.info(f"Portfolio {portfolio_id} returned to review after upload")

        UPLOADS.labels(kind=kind).inc()
        logger.info(f"Stored {kind} {url} in portfolio {portfolio_id} (order={pre_count})")
        return item

    async def delete_item(
        self,
        portfolio_id: str,
        item_id: str,
        user: CurrentUser,
        settings: StorageSettings
    ) -> dict:
        """
        Delete one item's files and row, then repair the cover.

        Local filesystem errors propagate before the row is touched.
        """
        portfolio = await self._load_modifiable(portfolio_id, user)

        item = await self.store.fetch_item(item_id)
        if not item or item["portfolio_id"] != portfolio_id:
            raise NotFoundError("Item not found")

        await delete_file(item["url"], settings)
        if item["thumbnail"]:
            await delete_file(item["thumbnail"], settings)

        await self.store.delete_item(item_id)
        cover = await self.covers.after_delete(portfolio, item)

        logger.info(f"Deleted item {item_id} from portfolio {portfolio_id}")
        return {"success": True, "id": item_id, "cover": cover}

    async def create_portfolio(
        self,
        user: CurrentUser,
        title: str,
        description: Optional[str],
        settings: StorageSettings
    ) -> dict:
        """New empty portfolio; published straight away only when review is off"""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Please enter a portfolio title")
        portfolio = await self.store.create_portfolio(
            user.id,
            title,
            description=description or None,
            status=STATUS_PENDING if settings.require_approval else STATUS_APPROVED,
            is_public=not settings.require_approval,
        )
        logger.info(f"User {user.id} created portfolio {portfolio['id']} ({portfolio['status']})")
        return portfolio

    async def update_portfolio(self, portfolio_id: str, user: CurrentUser, **changes) -> dict:
        """
        Apply title, description, cover and is_public changes.

        Only the keys present in changes are touched. Visibility can only be
        changed once a portfolio is approved, and it cannot be made private
        while an active carousel album links to it. Linked albums follow the
        title, description and cover.
        """
        portfolio = await self._load_modifiable(portfolio_id, user)

        fields = {}
        if "title" in changes:
            title = (changes["title"] or "").strip()
            if not title:
                raise ValidationError("Please enter a portfolio title")
            fields["title"] = title
        if "description" in changes:
            fields["description"] = changes["description"] or None
        if "cover" in changes:
            fields["cover"] = changes["cover"] or None
        if changes.get("is_public") is not None and portfolio["status"] == STATUS_APPROVED:
            if not changes["is_public"] and await self.store.linked_portfolio_ids([portfolio_id], active_only=True):
                raise PortfolioInUseError(
                    "This portfolio is shown in the home page carousel and cannot be made private"
                )
            fields["is_public"] = bool(changes["is_public"])

        await self.store.update_portfolio(portfolio_id, **fields)
        album_fields = {k: v for k, v in fields.items() if k in ("title", "description", "cover")}
        await self.store.sync_linked_albums(portfolio_id, **album_fields)
        return await self.store.fetch_portfolio(portfolio_id, with_items=True)

    async def set_cover(self, portfolio_id: str, user: CurrentUser, cover: Optional[str]) -> dict:
        """Explicit cover override; carousel albums linking here follow it"""
        return await self.update_portfolio(portfolio_id, user, cover=cover)
