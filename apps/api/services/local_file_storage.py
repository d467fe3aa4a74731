"""
Local filesystem implementation of MediaStorage.
Files live under the public web root and are served from /uploads/.
"""
import asyncio
import logging
from pathlib import Path
from typing import Union

from apps.api.services.media_storage import LOCAL_URL_PREFIX, LocalAsset, MediaStorage, parse_asset_url
from apps.api.services.utils.image_utils import delete_file_with_thumbnails

logger = logging.getLogger("artshare.storage")


class LocalFileStorage(MediaStorage):
    """Local filesystem storage, one folder per owner"""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _resolve(self, relative_path: str) -> Path:
        """Absolute path for a root-relative path, refusing anything outside root"""
        root = self.root.resolve()
        candidate = (root / relative_path).resolve()
        if candidate != root and root not in candidate.parents:
            raise ValueError(f"Path escapes storage root: {relative_path}")
        return candidate

    def path_for_url(self, url: str) -> Path:
        location = parse_asset_url(url)
        if not isinstance(location, LocalAsset):
            raise ValueError(f"Not a local upload URL: {url}")
        return self._resolve(location.relative_path)

    async def put(
        self,
        data: bytes,
        file_name: str,
        folder: str,
        mime_type: str
    ) -> str:
        """Write bytes to root/folder/file_name and return /uploads/folder/file_name"""
        relative = f"{folder}/{file_name}" if folder else file_name
        target = self._resolve(relative)

        def write():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        # Use executor to avoid blocking event loop
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, write)

        logger.debug(f"Stored {len(data)} bytes ({mime_type}) at {target}")
        return f"{LOCAL_URL_PREFIX}{relative}"

    async def delete(self, url: str) -> bool:
        """Delete the file behind a local URL together with its derivatives"""
        target = self.path_for_url(url)
        loop = asyncio.get_running_loop()
        existed = await loop.run_in_executor(None, delete_file_with_thumbnails, target)
        if not existed:
            logger.debug(f"Local file already absent: {url}")
        return True
