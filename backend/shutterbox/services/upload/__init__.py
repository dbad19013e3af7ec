"""
Shutterbox Backend — Upload Providers
=======================================

What:  The storage backends photos are uploaded to, behind one interface.
How:   build_upload_provider() reads UPLOAD_PROVIDER once and constructs the
       matching backend with its credentials. The result is the process-wide
       `upload_provider`; routes receive it through get_upload_provider() so
       tests can override it.

Variants (closed set):
    cloudinary  → CloudinaryProvider  (managed image CDN, default)
    spaces      → SpacesProvider      (S3-compatible object store)
    local       → LocalProvider       (filesystem, development)
"""

import logging

from shutterbox.config import Settings, settings
from shutterbox.services.upload.base import (
    EXTENSIONS_BY_CONTENT_TYPE,
    UploadHints,
    UploadProvider,
    UploadResult,
    detect_content_type,
)
from shutterbox.services.upload.cloudinary import CloudinaryProvider
from shutterbox.services.upload.local import LocalProvider
from shutterbox.services.upload.spaces import SpacesProvider

logger = logging.getLogger(__name__)

__all__ = [
    "EXTENSIONS_BY_CONTENT_TYPE",
    "CloudinaryProvider",
    "LocalProvider",
    "SpacesProvider",
    "UploadHints",
    "UploadProvider",
    "UploadResult",
    "build_upload_provider",
    "detect_content_type",
    "get_upload_provider",
    "upload_provider",
]


def build_upload_provider(config: Settings) -> UploadProvider:
    """Construct the backend named by config.upload_provider."""
    name = config.upload_provider
    if name == "cloudinary":
        provider: UploadProvider = CloudinaryProvider(
            cloud_name=config.cloudinary_cloud_name,
            api_key=config.cloudinary_api_key,
            api_secret=config.cloudinary_api_secret,
            folder=config.cloudinary_folder,
            watermark_public_id=config.cloudinary_watermark_public_id,
            timeout=config.upload_timeout,
        )
    elif name == "spaces":
        provider = SpacesProvider(
            bucket=config.spaces_bucket,
            region=config.spaces_region,
            endpoint=config.spaces_endpoint,
            access_key=config.spaces_access_key,
            secret_key=config.spaces_secret_key,
            cdn_base_url=config.spaces_cdn_base_url,
            prefix=config.spaces_prefix,
            timeout=config.upload_timeout,
        )
    elif name == "local":
        provider = LocalProvider(storage_root=config.storage_root)
    else:
        raise ValueError(f"Unsupported upload provider: {name}")

    logger.info("Upload provider selected: %s", provider.tag)
    return provider


# ── Singleton Instance ────────────────────────────────────────────────────
upload_provider = build_upload_provider(settings)


def get_upload_provider() -> UploadProvider:
    """FastAPI dependency returning the active provider."""
    return upload_provider
