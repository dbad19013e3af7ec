"""
Shutterbox Backend — Abstract Upload Provider Interface
=========================================================

What:  Abstract base class defining the contract every storage backend meets.
Why:   The photo service should not know or care whether bytes end up on a
       managed image CDN, in an S3-compatible bucket or on local disk. This
       is the Strategy pattern, with the shared rules held in the base class.
How:   Concrete providers implement the hooks _store(), _delete() and
       thumbnail_for(). Callers only ever use the public store() / delete().
Who:   PhotoService on create (store), delete and failed-create cleanup (delete).
When:  One provider is built at startup (see build_upload_provider) and used
       for the life of the process.

Contract enforced here, once, for every backend:
    store()
        1. Empty or missing buffer → UploadInputError, before any backend call
        2. Backend hook runs exactly once (no retries; the user retries)
        3. Any backend exception → UploadBackendError carrying its message
    delete()
        - Returns True when the asset is gone, False otherwise
        - Never raises: failures are logged. A failed cleanup must not turn a
          successful record deletion into an error response.
        - A provider tag naming a different backend is refused (False)
"""

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from shutterbox.exceptions import UploadBackendError, UploadInputError

logger = logging.getLogger(__name__)

# Accepted image content types and the file extension each one is stored under
EXTENSIONS_BY_CONTENT_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

THUMBNAIL_WIDTH = 400
THUMBNAIL_HEIGHT = 300


@dataclass(frozen=True)
class UploadHints:
    """Caller-supplied context for an upload. Every field is optional."""

    title: Optional[str] = None
    add_watermark: bool = False
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        if self.content_type in EXTENSIONS_BY_CONTENT_TYPE:
            return EXTENSIONS_BY_CONTENT_TYPE[self.content_type]
        if self.filename and "." in self.filename:
            return "." + self.filename.rsplit(".", 1)[1].lower()
        return ".bin"


@dataclass(frozen=True)
class UploadResult:
    """
    Normalized outcome of a successful upload.

    `storage_id` plus `provider` is all that is needed to delete the asset
    later; the Photo row persists exactly those two values.
    """

    url: str
    thumbnail_url: str
    storage_id: str
    provider: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    size_kb: Optional[float] = None


def read_image_info(content: bytes) -> Tuple[Optional[int], Optional[int], Optional[str]]:
    """
    Read width, height and format from image bytes with Pillow.

    Only the header is parsed. Returns (None, None, None) when Pillow cannot
    identify the data; dimensions are metadata, not a reason to fail an upload.
    """
    try:
        with Image.open(io.BytesIO(content)) as img:
            width, height = img.size
            fmt = img.format.lower() if img.format else None
            return width, height, fmt
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        logger.debug("Could not read image dimensions: %s", e)
        return None, None, None


def detect_content_type(content: bytes) -> Optional[str]:
    """
    Identify the image format from the bytes themselves.

    What:    Pillow parses the header and verify() walks the file structure.
    Why:     The multipart Content-Type is whatever the client claims; a
             renamed executable labelled image/png must not reach storage.

    Returns:
        The MIME type Pillow detected (e.g. "image/jpeg"), or None when the
        bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(content)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        logger.debug("Image verification failed: %s", e)
        return None

    if fmt is None:
        return None
    # Camera JPEGs with embedded previews are reported as MPO
    if fmt == "MPO":
        return "image/jpeg"
    return Image.MIME.get(fmt)


class UploadProvider(ABC):
    """
    Uniform store/delete interface over interchangeable storage backends.

    Subclasses set `tag` (the value persisted in Photo.provider) and
    implement the three hooks below.
    """

    tag: str = ""

    async def store(
        self,
        content: Optional[bytes],
        hints: Optional[UploadHints] = None,
    ) -> UploadResult:
        """
        Persist image bytes and return where they ended up.

        Raises:
            UploadInputError: content is None or empty (no backend call made)
            UploadBackendError: the backend rejected the upload or was unreachable
        """
        if not content:
            logger.error(
                "Refusing %s upload: file buffer is empty or missing (filename=%s)",
                self.tag,
                hints.filename if hints else None,
            )
            raise UploadInputError()

        hints = hints or UploadHints()
        logger.info(
            "Uploading %d bytes to %s (content_type=%s, watermark=%s)",
            len(content),
            self.tag,
            hints.content_type,
            hints.add_watermark,
        )

        try:
            result = await self._store(content, hints)
        except UploadBackendError:
            raise
        except Exception as e:
            logger.error("%s upload failed: %s", self.tag, e, exc_info=True)
            raise UploadBackendError(
                provider=self.tag,
                diagnostic=str(e) or type(e).__name__,
                context={"error_type": type(e).__name__},
            ) from e

        logger.info(
            "Upload to %s succeeded: storage_id=%s (%sx%s)",
            self.tag,
            result.storage_id,
            result.width,
            result.height,
        )
        return result

    async def delete(self, storage_id: Optional[str], provider: Optional[str] = None) -> bool:
        """
        Remove a stored asset. Best effort; never raises.

        Args:
            storage_id: Identifier returned in UploadResult.storage_id
            provider: Tag recorded alongside it. When given, it must name
                      this backend; assets held elsewhere cannot be reached.

        Returns:
            True if the backend confirmed the deletion, False otherwise.
        """
        if not storage_id:
            logger.warning("Skipping %s delete: no storage id", self.tag)
            return False

        if provider is not None and provider != self.tag:
            logger.warning(
                "Cannot delete %s: asset belongs to provider %r but %r is active",
                storage_id,
                provider,
                self.tag,
            )
            return False

        try:
            await self._delete(storage_id)
        except Exception as e:
            logger.warning("Failed to delete %s from %s: %s", storage_id, self.tag, e)
            return False

        logger.info("Deleted %s from %s", storage_id, self.tag)
        return True

    async def health_check(self) -> bool:
        """Whether the backend looks usable. Cheap; never uploads anything."""
        return True

    @abstractmethod
    async def _store(self, content: bytes, hints: UploadHints) -> UploadResult:
        """Backend hook: write non-empty bytes. May raise anything."""
        ...

    @abstractmethod
    async def _delete(self, storage_id: str) -> None:
        """Backend hook: remove one asset. Raise on any failure."""
        ...

    @abstractmethod
    def thumbnail_for(self, url: str) -> str:
        """Derive the thumbnail URL for a stored asset's main URL."""
        ...
