"""
Shutterbox Backend — Local Filesystem Upload Provider
=======================================================

What:  Stores images on local disk for development and single-box installs.
How:   Async file I/O (aiofiles) into date-organized directories with UUID
       filenames; files are served back by GET /api/files/{path}.
Who:   Active when UPLOAD_PROVIDER=local, and in the test suite.

Directory Structure:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-5678.jpg
                └── e5f6g7h8-9012.png

Security:
    Filenames are generated, never taken from the client, so uploads cannot
    traverse out of storage_root. resolve() re-checks every path handed back
    in (file serving, deletion) against the root.
"""

import io
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from PIL import Image

from shutterbox.exceptions import NotFoundError, UploadDeleteError
from shutterbox.services.upload.base import (
    THUMBNAIL_HEIGHT,
    THUMBNAIL_WIDTH,
    UploadHints,
    UploadProvider,
    UploadResult,
    read_image_info,
)

logger = logging.getLogger(__name__)

FILES_ROUTE = "/api/files"


class LocalProvider(UploadProvider):
    """Filesystem backend rooted at `storage_root`."""

    tag = "local"

    def __init__(self, storage_root: str, public_base: str = FILES_ROUTE):
        self.storage_root = Path(storage_root).resolve()
        self.public_base = public_base.rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalProvider initialized with storage_root=%s", self.storage_root)

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def resolve(self, storage_id: str) -> Path:
        """
        Map a storage id (relative path) to an absolute path inside the root.

        Raises:
            NotFoundError: the path escapes storage_root or cannot name a
                file at all (e.g. an embedded NUL byte). Reported as a
                missing file so probing reveals nothing about the disk.
        """
        try:
            candidate = (self.storage_root / storage_id).resolve()
        except (ValueError, OSError) as e:
            logger.warning("Rejected unusable storage path %r: %s", storage_id, e)
            raise NotFoundError(resource="file")
        if candidate != self.storage_root and self.storage_root not in candidate.parents:
            logger.warning("Rejected path outside storage root: %s", storage_id)
            raise NotFoundError(resource="file")
        return candidate

    def public_url(self, relative_path: str) -> str:
        return f"{self.public_base}/{relative_path}"

    def thumbnail_for(self, url: str) -> str:
        return f"{url}?w={THUMBNAIL_WIDTH}&h={THUMBNAIL_HEIGHT}"

    def render_thumbnail(
        self,
        path: Path,
        width: Optional[int],
        height: Optional[int],
    ) -> Tuple[bytes, str]:
        """
        Downscale a stored image to fit within width x height (aspect kept).

        Blocking; callers run it in the thread pool.
        """
        with Image.open(path) as img:
            fmt = img.format or "JPEG"
            img.thumbnail((width or img.width, height or img.height))
            buffer = io.BytesIO()
            img.save(buffer, format=fmt)
        return buffer.getvalue(), Image.MIME.get(fmt, "application/octet-stream")

    async def _store(self, content: bytes, hints: UploadHints) -> UploadResult:
        absolute_path, relative_path = self._generate_storage_path(hints.extension)
        absolute_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(absolute_path, "wb") as f:
            await f.write(content)

        width, height, fmt = read_image_info(content)
        url = self.public_url(relative_path)
        return UploadResult(
            url=url,
            thumbnail_url=self.thumbnail_for(url),
            storage_id=relative_path,
            provider=self.tag,
            width=width,
            height=height,
            format=fmt,
            size_kb=round(len(content) / 1024, 2),
        )

    async def _delete(self, storage_id: str) -> None:
        path = self.resolve(storage_id)
        if not path.is_file():
            raise UploadDeleteError(self.tag, storage_id, "file does not exist")
        os.remove(path)

    async def health_check(self) -> bool:
        return self.storage_root.is_dir() and os.access(self.storage_root, os.W_OK)
