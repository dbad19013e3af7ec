"""
Shutterbox Backend — DigitalOcean Spaces Upload Provider
==========================================================

What:  Stores images in an S3-compatible bucket (DigitalOcean Spaces).
How:   boto3's S3 client. boto3 is synchronous, so every call runs in
       Starlette's thread pool to keep the event loop free.
Who:   Active when UPLOAD_PROVIDER=spaces.

Object keys:   <prefix>/YYYY/MM/DD/<uuid>.<ext>   (the storage_id)
Public URL:    <cdn_base_url>/<key>, or the bucket's origin endpoint
Thumbnail:     <url>?thumbnail=400x300 (resized by the CDN edge; no second object)

Spaces reports no image metadata, so dimensions are read locally with Pillow
before upload.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import boto3
from botocore.config import Config
from fastapi.concurrency import run_in_threadpool

from shutterbox.services.upload.base import (
    THUMBNAIL_HEIGHT,
    THUMBNAIL_WIDTH,
    UploadHints,
    UploadProvider,
    UploadResult,
    read_image_info,
)

logger = logging.getLogger(__name__)


class SpacesProvider(UploadProvider):
    """
    S3-compatible object store backend.

    Args:
        bucket, region, endpoint: Where objects live.
        access_key, secret_key: Spaces API key pair.
        cdn_base_url: Public base URL; defaults to the bucket origin.
        prefix: Key prefix for every object.
        timeout: Connect/read timeout in seconds.
        client: Pre-built S3 client (tests pass a MagicMock).
    """

    tag = "spaces"

    def __init__(
        self,
        bucket: str,
        region: str,
        endpoint: str,
        access_key: str,
        secret_key: str,
        cdn_base_url: str = "",
        prefix: str = "photography",
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ):
        self.bucket = bucket
        self.region = region
        self.endpoint = endpoint
        self.prefix = prefix.strip("/")
        self.public_base_url = (
            cdn_base_url or f"https://{bucket}.{region}.digitaloceanspaces.com"
        ).rstrip("/")
        self._access_key = access_key
        self._secret_key = secret_key
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> Any:
        # Built on first use so a misconfigured deployment still starts
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                endpoint_url=self.endpoint,
                aws_access_key_id=self._access_key,
                aws_secret_access_key=self._secret_key,
                config=Config(
                    connect_timeout=self._timeout,
                    read_timeout=self._timeout,
                    retries={"mode": "standard", "max_attempts": 1},
                ),
            )
        return self._client

    def object_key(self, extension: str) -> str:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        return f"{self.prefix}/{date_dir}/{uuid.uuid4()}{extension}"

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def thumbnail_for(self, url: str) -> str:
        return f"{url}?thumbnail={THUMBNAIL_WIDTH}x{THUMBNAIL_HEIGHT}"

    async def _store(self, content: bytes, hints: UploadHints) -> UploadResult:
        key = self.object_key(hints.extension)
        width, height, fmt = read_image_info(content)

        await run_in_threadpool(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=content,
            ACL="public-read",
            ContentType=hints.content_type or "application/octet-stream",
        )

        url = self.public_url(key)
        return UploadResult(
            url=url,
            thumbnail_url=self.thumbnail_for(url),
            storage_id=key,
            provider=self.tag,
            width=width,
            height=height,
            format=fmt,
            size_kb=round(len(content) / 1024, 2),
        )

    async def _delete(self, storage_id: str) -> None:
        await run_in_threadpool(self.client.delete_object, Bucket=self.bucket, Key=storage_id)

    async def health_check(self) -> bool:
        return bool(self.bucket and self._access_key and self._secret_key)
