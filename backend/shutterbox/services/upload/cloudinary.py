"""
Shutterbox Backend — Cloudinary Upload Provider
=================================================

What:  Stores images on Cloudinary, the managed image CDN.
How:   The official `cloudinary` SDK (cloudinary.uploader.upload / destroy).
       The SDK is synchronous, so each call runs in Starlette's thread pool,
       the same way SpacesProvider runs boto3. Credentials are passed per
       call rather than through the SDK's global config, so several
       providers (and tests) never share state.
Who:   Active when UPLOAD_PROVIDER=cloudinary (the default).

Asset layout:
    folder:     photography/
    quality:    quality=auto:good, fetch_format=auto
    watermark:  optional overlay of the `watermark_logo` asset, bottom right,
                30% opacity
    thumbnail:  derived, never uploaded:
                .../image/upload/v123/photography/x.jpg
                → .../image/upload/c_thumb,w_400,h_300/v123/photography/x.jpg
"""

import io
import logging
from typing import Any, Dict, List, Optional

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi.concurrency import run_in_threadpool

from shutterbox.exceptions import UploadBackendError, UploadDeleteError
from shutterbox.services.upload.base import (
    THUMBNAIL_HEIGHT,
    THUMBNAIL_WIDTH,
    UploadHints,
    UploadProvider,
    UploadResult,
)

logger = logging.getLogger(__name__)

THUMBNAIL_TRANSFORMATION = f"c_thumb,w_{THUMBNAIL_WIDTH},h_{THUMBNAIL_HEIGHT}"


class CloudinaryProvider(UploadProvider):
    """
    Cloudinary backend.

    Args:
        cloud_name, api_key, api_secret: Account credentials.
        folder: Folder every asset is placed under.
        watermark_public_id: Public id of the overlay used when a caller asks
            for a watermark.
        timeout: Per-request network timeout in seconds.
    """

    tag = "cloudinary"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "photography",
        watermark_public_id: str = "watermark_logo",
        timeout: float = 60.0,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self._api_secret = api_secret
        self.folder = folder
        self.watermark_public_id = watermark_public_id
        self.timeout = timeout

    def _options(self, **extra: Any) -> Dict[str, Any]:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self._api_secret,
            "timeout": self.timeout,
            **extra,
        }

    def _transformation(self, add_watermark: bool) -> Optional[List[Dict[str, Any]]]:
        if not add_watermark:
            return None
        return [{"overlay": self.watermark_public_id, "gravity": "south_east", "opacity": 30}]

    def thumbnail_for(self, url: str) -> str:
        return url.replace("/upload/", f"/upload/{THUMBNAIL_TRANSFORMATION}/", 1)

    async def _store(self, content: bytes, hints: UploadHints) -> UploadResult:
        options = self._options(
            resource_type="image",
            folder=self.folder,
            quality="auto:good",
            fetch_format="auto",
        )
        transformation = self._transformation(hints.add_watermark)
        if transformation:
            options["transformation"] = transformation
        if hints.filename:
            options["filename"] = hints.filename

        try:
            body: Dict[str, Any] = await run_in_threadpool(
                cloudinary.uploader.upload, io.BytesIO(content), **options
            )
        except CloudinaryError as e:
            raise UploadBackendError(
                provider=self.tag,
                diagnostic=str(e) or type(e).__name__,
                context={"error_type": type(e).__name__},
            ) from e

        url = body["secure_url"]
        size_bytes = body.get("bytes")
        return UploadResult(
            url=url,
            thumbnail_url=self.thumbnail_for(url),
            storage_id=body["public_id"],
            provider=self.tag,
            width=body.get("width"),
            height=body.get("height"),
            format=body.get("format"),
            size_kb=round(size_bytes / 1024, 2) if size_bytes is not None else None,
        )

    async def _delete(self, storage_id: str) -> None:
        try:
            body: Dict[str, Any] = await run_in_threadpool(
                cloudinary.uploader.destroy,
                storage_id,
                **self._options(resource_type="image", invalidate=True),
            )
        except CloudinaryError as e:
            raise UploadDeleteError(self.tag, storage_id, str(e) or type(e).__name__) from e

        result = body.get("result")
        if result != "ok":
            # "not found" also lands here: there was nothing for us to delete
            raise UploadDeleteError(self.tag, storage_id, f"destroy returned {result!r}")

    async def health_check(self) -> bool:
        return bool(self.cloud_name and self.api_key and self._api_secret)
