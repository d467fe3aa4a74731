"""
Abstract interface for media storage backends.
Supports the local filesystem under the public web root and Tencent COS.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Union
from dataclasses import dataclass, field
from urllib.parse import unquote, urlparse

LOCAL_URL_PREFIX = "/uploads/"

DEFAULT_MAX_FILE_SIZE = 52428800  # 50MB
DEFAULT_LOCAL_STORAGE_PATH = "uploads"


@dataclass(frozen=True)
class StorageSettings:
    """Snapshot of the system settings that drive storage decisions"""
    storage_type: str = "local"  # 'local' or 'cos'
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    local_storage_path: str = DEFAULT_LOCAL_STORAGE_PATH
    cos_secret_id: Optional[str] = None
    cos_secret_key: Optional[str] = None
    cos_bucket: Optional[str] = None
    cos_region: Optional[str] = None
    require_approval: bool = True

    @classmethod
    def from_row(cls, row) -> "StorageSettings":
        """Build a snapshot from a SystemSettings row (or defaults when None)"""
        if row is None:
            return cls()
        return cls(
            storage_type=row.storage_type or "local",
            max_file_size=row.max_file_size or DEFAULT_MAX_FILE_SIZE,
            local_storage_path=row.local_storage_path or DEFAULT_LOCAL_STORAGE_PATH,
            cos_secret_id=row.cos_secret_id,
            cos_secret_key=row.cos_secret_key,
            cos_bucket=row.cos_bucket,
            cos_region=row.cos_region,
            require_approval=True if row.require_approval is None else row.require_approval,
        )

    @property
    def cos_configured(self) -> bool:
        return all([self.cos_secret_id, self.cos_secret_key, self.cos_bucket, self.cos_region])

    @property
    def wants_cos(self) -> bool:
        return self.storage_type == "cos"


@dataclass(frozen=True)
class LocalAsset:
    """File under the local storage root, addressed relative to it"""
    relative_path: str

    @property
    def url(self) -> str:
        return f"{LOCAL_URL_PREFIX}{self.relative_path}"


@dataclass(frozen=True)
class CloudAsset:
    """Object in the cloud bucket"""
    key: str
    host: str = ""


AssetLocation = Union[LocalAsset, CloudAsset]


def parse_asset_url(url: Optional[str]) -> Optional[AssetLocation]:
    """
    Classify a stored URL by where its bytes live.

    The decision is made from the URL shape alone, never from the current
    storage mode, since older assets may have been written under another mode.

    Returns:
        LocalAsset, CloudAsset, or None for empty/unrecognised values
    """
    if not url:
        return None
    if url.startswith(LOCAL_URL_PREFIX) or url.startswith("uploads/"):
        relative = url.lstrip("/")[len("uploads/"):]
        return LocalAsset(relative_path=relative) if relative else None
    if url.startswith("http://") or url.startswith("https://"):
        parsed = urlparse(url)
        key = unquote(parsed.path.lstrip("/"))
        return CloudAsset(key=key, host=parsed.netloc) if key else None
    return None


@dataclass
class DeleteOutcome:
    """Result of a best-effort multi-file delete"""
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def merge(self, other: "DeleteOutcome") -> "DeleteOutcome":
        self.succeeded.extend(other.succeeded)
        self.failed.extend(other.failed)
        return self


class MediaStorage(ABC):
    """Abstract base class for media storage backends"""

    @abstractmethod
    async def put(
        self,
        data: bytes,
        file_name: str,
        folder: str,
        mime_type: str
    ) -> str:
        """
        Store bytes and return the public URL.

        Args:
            data: Raw file bytes
            file_name: Target file name (already collision resistant)
            folder: Folder inside the storage root, e.g. the owner's id
            mime_type: Content type of the file

        Returns:
            URL string recorded on the asset
        """
        pass

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """
        Delete the object behind a URL previously returned by put.

        Deleting something that is already gone is not an error.

        Returns:
            True if the backend accepted the delete, False if it was skipped
        """
        pass
