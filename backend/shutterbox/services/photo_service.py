"""
Shutterbox Backend — Photo Service (Catalogue Orchestrator)
=============================================================

What:  Upload, listing, update and deletion of catalogue photos.
How:   Composes the active UploadProvider (bytes) with the `photos` table
       (records). Routes stay thin; every business rule lives here.
Who:   Called by the /api/photos route handlers.

Create Flow (POST /api/photos):
    ┌──────────┐   ┌────────────┐   ┌──────────────┐   ┌──────────┐
    │ Validate │──▶│ Title free?│──▶│ provider     │──▶│  Insert  │
    │ title,   │   │            │   │ .store()     │   │  (flush) │
    │ bytes    │   └────────────┘   └──────────────┘   └──────────┘
    └──────────┘

    The declared Content-Type must be an accepted image type AND Pillow must
    recognise the bytes as one. The detected type is what gets stored.

    On failure:
    - Validation / duplicate title → nothing stored, nothing to undo
    - store() fails → UploadInputError / UploadBackendError, no record
    - Insert fails  → provider.delete() (best effort), DatabaseError

Delete Flow:
    The record deletion is committed first, then the asset is removed. A
    failed commit therefore leaves both in place. The asset delete never
    fails the request; the response reports whether it succeeded.

Input normalization (form fields arrive as strings):
    tags     list | '["a","b"]' | "a, b"  → ["a", "b"] (trimmed, lower-cased,
             de-duplicated in order, ≤ 100 chars each, ≤ 50 tags)
    booleans True | "true" → True;  False | "false" | absent → False
    title    trimmed; required, ≤ 200 chars, letters, digits, spaces and
             basic punctuation only (shared with albums)
"""

import json
import logging
import re
import uuid
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.config import settings
from shutterbox.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from shutterbox.models.photo import Photo
from shutterbox.schemas.photo import (
    TITLE_PATTERN,
    Pagination,
    PhotoFullResponse,
    PhotoDeleteResponse,
    PhotoListResponse,
    PhotoMetadata,
    PhotoResponse,
    PhotoUpdateRequest,
)
from shutterbox.services.pagination import clamp, fetch_page, like_pattern, page_info
from shutterbox.services.upload import (
    EXTENSIONS_BY_CONTENT_TYPE,
    UploadHints,
    UploadProvider,
    detect_content_type,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_TAGS = 50
MAX_TAG_LENGTH = 100
MAX_PAGE_SIZE = 50
MAX_FEATURED_PAGE_SIZE = 20


# ══════════════════════════════════════════════════════════════════════════
# Input Normalization
# ══════════════════════════════════════════════════════════════════════════

def normalize_tags(value: Any, max_tags: int = MAX_TAGS) -> List[str]:
    """
    Turn any accepted tag input into a clean list.

    Raises:
        ValidationError: bad JSON, a non-string tag, a tag over 100 chars,
            or more than `max_tags` tags.
    """
    if value is None:
        return []

    if isinstance(value, str):
        raw = value.strip()
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValidationError(message=f"Invalid tags format: {e.msg}", field="tags")
            items = parsed if isinstance(parsed, list) else [parsed]
        else:
            items = raw.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [value]

    tags: List[str] = []
    for item in items:
        if not isinstance(item, str):
            raise ValidationError(message="Each tag must be a string", field="tags")
        tag = item.strip().lower()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationError(
                message=f"Each tag must be at most {MAX_TAG_LENGTH} characters",
                field="tags",
                context={"tag": tag[:20] + "..."},
            )
        if tag not in tags:
            tags.append(tag)

    if len(tags) > max_tags:
        raise ValidationError(
            message=f"Maximum {max_tags} tags allowed",
            field="tags",
            context={"count": len(tags)},
        )
    return tags


def normalize_bool(value: Any, field: str) -> bool:
    """Strict form-field boolean: only true/false (bool or string) are accepted."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    raise ValidationError(message=f"{field} must be a boolean value", field=field)


def parse_metadata(raw: Optional[str]) -> PhotoMetadata:
    """Parse the JSON `metadata` form field. Absent or blank means no metadata."""
    if raw is None or not raw.strip():
        return PhotoMetadata()
    try:
        return PhotoMetadata.model_validate_json(raw)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            message=f"Invalid metadata: {first.get('msg', 'malformed JSON')}",
            field="metadata",
            context={"location": loc} if loc else None,
        )


def normalize_title(value: Optional[str]) -> str:
    """
    Trim a title and check it is non-empty and uses only permitted characters.

    Shared by photos and albums; the same rule as the update schemas.
    """
    title = (value or "").strip()
    if not title:
        raise ValidationError(message="Title is required", field="title")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            message=f"Title must be at most {MAX_TITLE_LENGTH} characters",
            field="title",
        )
    if not re.match(TITLE_PATTERN, title):
        raise ValidationError(message="Title contains invalid characters", field="title")
    return title


def normalize_url(value: Optional[str], field: str) -> str:
    """
    Accept an absolute http(s) URL or a site-relative path such as the
    local provider's /api/files/... links.
    """
    url = (value or "").strip()
    parsed = urlparse(url)
    absolute = parsed.scheme in ("http", "https") and bool(parsed.netloc)
    relative = url.startswith("/") and not url.startswith("//")
    if not (absolute or relative):
        raise ValidationError(message=f"{field} must be a valid URL", field=field)
    return url


# ══════════════════════════════════════════════════════════════════════════
# Photo Service
# ══════════════════════════════════════════════════════════════════════════

class PhotoService:
    """
    Business logic for the photo catalogue.

    Stateless: the session and the upload provider are passed in per call,
    so tests can hand in mocks for either.
    """

    def validate_upload(self, content_type: Optional[str], content: Optional[bytes]) -> Optional[str]:
        """
        Check the declared type, the size and the bytes themselves.

        Returns:
            The content type detected from the bytes (the declared type for
            an empty buffer, which the provider rejects on its own).

        Raises:
            ValidationError: unsupported declared type, too large, or bytes
                that are not an accepted image
        """
        if content_type not in EXTENSIONS_BY_CONTENT_TYPE:
            raise ValidationError(
                message=(
                    f"File type '{content_type}' is not supported. "
                    "Only JPEG, PNG, GIF and WebP images are allowed."
                ),
                field="file",
                context={"content_type": content_type, "allowed": sorted(EXTENSIONS_BY_CONTENT_TYPE)},
            )

        size = len(content or b"")
        if size > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

        if not content:
            return content_type

        detected = detect_content_type(content)
        if detected not in EXTENSIONS_BY_CONTENT_TYPE:
            logger.warning(
                "Rejected upload declared as %s: content detected as %s",
                content_type,
                detected or "not an image",
            )
            raise ValidationError(
                message="File content is not a valid JPEG, PNG, GIF or WebP image.",
                field="file",
                context={"declared": content_type, "detected": detected},
            )
        if detected != content_type:
            logger.info("Upload declared as %s is actually %s", content_type, detected)
        return detected

    async def _ensure_title_free(
        self,
        db: AsyncSession,
        title: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Photo.id).where(Photo.title == title)
        if exclude_id is not None:
            query = query.where(Photo.id != exclude_id)
        result = await db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise ConflictError(resource="photo", field="title")

    async def _load(self, db: AsyncSession, photo_id: uuid.UUID) -> Photo:
        try:
            result = await db.execute(select(Photo).where(Photo.id == photo_id))
        except SQLAlchemyError as e:
            logger.error("Database error fetching photo %s: %s", photo_id, e)
            raise DatabaseError(context={"photo_id": str(photo_id)})
        photo = result.scalar_one_or_none()
        if photo is None:
            raise NotFoundError(resource="photo", resource_id=str(photo_id))
        return photo

    async def create_photo(
        self,
        db: AsyncSession,
        provider: UploadProvider,
        *,
        content: Optional[bytes],
        filename: Optional[str],
        content_type: Optional[str],
        title: str,
        description: Optional[str] = None,
        tags: Any = None,
        is_featured: Any = None,
        add_watermark: Any = None,
        metadata: Optional[PhotoMetadata] = None,
    ) -> PhotoFullResponse:
        """
        Upload an image and record it in the catalogue.

        Raises:
            ValidationError: blank or invalid title, unsupported type, not an
                image, too large, bad tags/booleans
            ConflictError: a photo with this title already exists
            UploadInputError: empty file (raised by the provider, no upload made)
            UploadBackendError: the provider rejected the upload
            DatabaseError: the record could not be written (asset cleaned up)
        """
        title = normalize_title(title)
        content_type = self.validate_upload(content_type, content)
        clean_tags = normalize_tags(tags)
        featured = normalize_bool(is_featured, "is_featured")
        watermark = normalize_bool(add_watermark, "add_watermark")
        meta = metadata or PhotoMetadata()

        await self._ensure_title_free(db, title)

        result = await provider.store(
            content,
            UploadHints(
                title=title,
                add_watermark=watermark,
                filename=filename,
                content_type=content_type,
            ),
        )

        photo = Photo(
            id=uuid.uuid4(),
            title=title,
            description=description.strip() if description else None,
            tags=clean_tags,
            is_featured=featured,
            is_hidden=False,
            image_url=result.url,
            thumbnail_url=result.thumbnail_url,
            storage_id=result.storage_id,
            provider=result.provider,
            width=result.width or meta.width,
            height=result.height or meta.height,
            original_width=meta.original_width or result.width,
            original_height=meta.original_height or result.height,
            original_size_kb=meta.original_size_kb or result.size_kb,
            size_kb=result.size_kb or meta.size_kb,
            format=result.format or meta.format,
            location=meta.location,
            photographer=meta.photographer,
            date_taken=meta.date_taken,
        )
        db.add(photo)

        try:
            await db.flush()
        except Exception as e:
            # The asset is already stored; remove it so nothing is orphaned
            logger.error("Failed to save photo %r, removing uploaded asset: %s", title, e)
            await provider.delete(result.storage_id, result.provider)
            if isinstance(e, IntegrityError):
                raise ConflictError(resource="photo", field="title")
            raise DatabaseError(
                message="Could not save the photo. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Photo %s created (%s, %s)", photo.id, result.provider, result.storage_id)
        return PhotoFullResponse.model_validate(photo)

    async def _page(
        self,
        db: AsyncSession,
        page: int,
        limit: int,
        filters: List[Any],
    ) -> PhotoListResponse:
        photos, total = await fetch_page(
            db,
            select(Photo).where(*filters),
            page,
            limit,
            Photo.created_at.desc(),
            resource="photos",
        )
        info = page_info(page, limit, total)
        return PhotoListResponse(
            photos=[PhotoResponse.model_validate(p) for p in photos],
            pagination=Pagination(
                current_page=info.current_page,
                total_pages=info.total_pages,
                total_photos=total,
                limit=limit,
                has_next_page=info.has_next_page,
                has_prev_page=info.has_prev_page,
            ),
        )

    async def list_photos(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 12,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ) -> PhotoListResponse:
        """Newest-first public listing; hidden photos are never included."""
        page = max(page, 1)
        limit = clamp(limit, 1, MAX_PAGE_SIZE)

        filters: List[Any] = [Photo.is_hidden.is_(False)]
        if tag and tag.strip():
            filters.append(Photo.tags.contains([tag.strip().lower()]))
        if search and search.strip():
            pattern = like_pattern(search.strip())
            filters.append(or_(
                Photo.title.ilike(pattern, escape="\\"),
                Photo.description.ilike(pattern, escape="\\"),
            ))
        return await self._page(db, page, limit, filters)

    async def list_featured(self, db: AsyncSession, page: int = 1, limit: int = 6) -> PhotoListResponse:
        page = max(page, 1)
        limit = clamp(limit, 1, MAX_FEATURED_PAGE_SIZE)
        return await self._page(
            db, page, limit, [Photo.is_featured.is_(True), Photo.is_hidden.is_(False)]
        )

    async def get_photo(self, db: AsyncSession, photo_id: uuid.UUID) -> PhotoResponse:
        photo = await self._load(db, photo_id)
        if photo.is_hidden:
            raise NotFoundError(resource="photo", resource_id=str(photo_id))
        return PhotoResponse.model_validate(photo)

    async def get_photo_full(self, db: AsyncSession, photo_id: uuid.UUID) -> PhotoFullResponse:
        return PhotoFullResponse.model_validate(await self._load(db, photo_id))

    async def update_photo(
        self,
        db: AsyncSession,
        photo_id: uuid.UUID,
        request: PhotoUpdateRequest,
    ) -> PhotoFullResponse:
        """
        Apply a partial update. Only fields present in the body change;
        tags and booleans are normalized exactly as on upload.
        """
        photo = await self._load(db, photo_id)
        changes: Dict[str, Any] = request.model_dump(exclude_unset=True)

        if "tags" in changes:
            changes["tags"] = normalize_tags(changes["tags"])
        for flag in ("is_featured", "is_hidden"):
            if flag in changes:
                changes[flag] = normalize_bool(changes[flag], flag)

        if changes.get("title") is None:
            changes.pop("title", None)
        elif changes["title"] != photo.title:
            await self._ensure_title_free(db, changes["title"], exclude_id=photo.id)

        for field, value in changes.items():
            setattr(photo, field, value)

        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(resource="photo", field="title")

        logger.info("Photo %s updated: %s", photo.id, sorted(changes))
        return PhotoFullResponse.model_validate(photo)

    async def delete_photo(
        self,
        db: AsyncSession,
        provider: UploadProvider,
        photo_id: uuid.UUID,
    ) -> PhotoDeleteResponse:
        """
        Delete the record, then its stored asset.

        The deletion is committed before the provider is called. If the
        commit fails the asset is untouched and the record still points at
        it; if the asset delete fails afterwards the asset is orphaned and
        only logged.
        """
        photo = await self._load(db, photo_id)
        storage_id, provider_tag = photo.storage_id, photo.provider

        try:
            await db.delete(photo)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to delete photo %s, asset kept: %s", photo_id, e)
            raise DatabaseError(
                message="Could not delete the photo. Please try again.",
                context={"photo_id": str(photo_id)},
            )

        asset_deleted = await provider.delete(storage_id, provider_tag)
        if not asset_deleted:
            logger.warning(
                "Photo %s deleted but its asset %s (%s) was not removed",
                photo_id,
                storage_id,
                provider_tag,
            )
        return PhotoDeleteResponse(id=photo_id, asset_deleted=asset_deleted)


# ── Singleton Instance ────────────────────────────────────────────────────
photo_service = PhotoService()
