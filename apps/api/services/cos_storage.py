"""
Tencent COS implementation of MediaStorage.
Talks to COS through its S3-compatible endpoint with boto3.
"""
import asyncio
import logging
from functools import lru_cache
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from apps.api.services.media_storage import CloudAsset, MediaStorage, StorageSettings, parse_asset_url
from apps.api.services.metrics import STORAGE_DELETE_FAILURES

logger = logging.getLogger("artshare.storage")

CACHE_CONTROL = "public, max-age=31536000"  # 1 year


@lru_cache(maxsize=8)
def _client_for(secret_id: str, secret_key: str, region: str):
    """One boto3 client per credential set"""
    return boto3.client(
        "s3",
        endpoint_url=f"https://cos.{region}.myqcloud.com",
        aws_access_key_id=secret_id,
        aws_secret_access_key=secret_key,
        region_name=region,
        config=Config(signature_version="s3v4", s3={"addressing_style": "virtual"}),
    )


class CosStorage(MediaStorage):
    """Public-read object storage in a COS bucket"""

    def __init__(
        self,
        secret_id: str,
        secret_key: str,
        bucket: str,
        region: str,
        client=None
    ):
        """
        Initialize COS storage.

        Args:
            secret_id: COS SecretId
            secret_key: COS SecretKey
            bucket: Bucket name including the APPID suffix
            region: COS region, e.g. ap-shanghai
            client: Pre-built S3 client (tests inject a mock here)
        """
        self.bucket = bucket
        self.region = region
        self._credentials = (secret_id, secret_key)
        self._client = client

    @property
    def client(self):
        # Built on first use; a malformed region surfaces as a provider error
        if self._client is None:
            self._client = _client_for(*self._credentials, self.region)
        return self._client

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "CosStorage":
        if not settings.cos_configured:
            raise ValueError("COS credentials are incomplete")
        return cls(
            secret_id=settings.cos_secret_id,
            secret_key=settings.cos_secret_key,
            bucket=settings.cos_bucket,
            region=settings.cos_region,
        )

    def public_url(self, key: str) -> str:
        location = f"{self.bucket}.cos.{self.region}.myqcloud.com/{quote(key, safe='/')}"
        # Ensure HTTPS
        if not location.startswith("http"):
            location = f"https://{location}"
        return location

    async def put(
        self,
        data: bytes,
        file_name: str,
        folder: str,
        mime_type: str
    ) -> str:
        """Upload to {folder}/{file_name}; provider errors propagate"""
        key = f"{folder}/{file_name}" if folder else file_name

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            lambda: self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=mime_type,
                CacheControl=CACHE_CONTROL,
                ACL="public-read",
            )
        )
        return self.public_url(key)

    async def delete(self, url: str) -> bool:
        """Delete the object behind an absolute URL; failures are logged, never raised"""
        location = parse_asset_url(url)
        if not isinstance(location, CloudAsset):
            logger.warning(f"Not a cloud URL, skipping COS delete: {url}")
            return False

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: self.client.delete_object(Bucket=self.bucket, Key=location.key)
            )
            return True
        except (ClientError, BotoCoreError, ValueError) as e:
            STORAGE_DELETE_FAILURES.labels(backend="cos").inc()
            logger.error(f"COS delete error for {location.key}: {e}")
            return False
