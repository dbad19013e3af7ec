"""
Shutterbox Backend — Album Service
====================================

What:  Create, list, update and delete albums of catalogue photos.
How:   Same normalization rules as photo uploads (title, tags, flags), plus
       membership checks: every photo id named must exist.
Who:   Called by the /api/albums route handlers.

Visibility:
    Public listings and GET /api/albums/{id} never show hidden albums; a
    hidden album answers 404 exactly like a missing one, and hidden photos
    are dropped from public album bodies. Administrators address hidden
    albums through update and delete.

Limits:
    ≤ 100 photos per album, ≤ 20 tags per album
    list page size 1..20 (default 10), featured page size 1..10 (default 5)
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import String, cast, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from shutterbox.models.album import Album
from shutterbox.models.photo import Photo
from shutterbox.schemas.album import (
    MAX_ALBUM_PHOTOS,
    AlbumCreateRequest,
    AlbumFullResponse,
    AlbumListResponse,
    AlbumPhoto,
    AlbumResponse,
    AlbumUpdateRequest,
)
from shutterbox.schemas.common import MessageResponse
from shutterbox.services.pagination import clamp, fetch_page, like_pattern, page_info
from shutterbox.services.photo_service import (
    normalize_bool,
    normalize_tags,
    normalize_title,
    normalize_url,
)

logger = logging.getLogger(__name__)

MAX_ALBUM_TAGS = 20
MAX_PAGE_SIZE = 20
MAX_FEATURED_PAGE_SIZE = 10


def public_view(album: Album) -> AlbumResponse:
    """Public shape of an album; hidden photos inside it are left out."""
    return AlbumResponse.model_validate(album).model_copy(update={
        "photos": [AlbumPhoto.model_validate(p) for p in album.photos if not p.is_hidden],
    })


class AlbumService:

    async def _load(self, db: AsyncSession, album_id: uuid.UUID) -> Album:
        try:
            result = await db.execute(select(Album).where(Album.id == album_id))
        except SQLAlchemyError as e:
            logger.error("Database error fetching album %s: %s", album_id, e)
            raise DatabaseError(context={"album_id": str(album_id)})
        album = result.scalar_one_or_none()
        if album is None:
            raise NotFoundError(resource="album", resource_id=str(album_id))
        return album

    async def _ensure_title_free(
        self,
        db: AsyncSession,
        title: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Album.id).where(Album.title == title)
        if exclude_id is not None:
            query = query.where(Album.id != exclude_id)
        result = await db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise ConflictError(resource="album", field="title")

    async def _resolve_photos(self, db: AsyncSession, photo_ids: Sequence[uuid.UUID]) -> List[Photo]:
        """
        Load the named photos, keeping the caller's order.

        Raises:
            ValidationError: too many ids, or any id without a photo
        """
        wanted = list(dict.fromkeys(photo_ids))
        if not wanted:
            return []
        if len(wanted) > MAX_ALBUM_PHOTOS:
            raise ValidationError(
                message=f"Maximum {MAX_ALBUM_PHOTOS} photos allowed per album",
                field="photo_ids",
            )

        result = await db.execute(select(Photo).where(Photo.id.in_(wanted)))
        found: Dict[uuid.UUID, Photo] = {p.id: p for p in result.scalars().all()}
        missing = [str(pid) for pid in wanted if pid not in found]
        if missing:
            raise ValidationError(
                message="One or more photos not found",
                field="photo_ids",
                context={"missing": missing},
            )
        return [found[pid] for pid in wanted]

    async def create_album(
        self,
        db: AsyncSession,
        created_by: Optional[uuid.UUID],
        request: AlbumCreateRequest,
    ) -> AlbumFullResponse:
        """
        Raises:
            ValidationError: bad title, cover URL, tags, flags or photo ids
            ConflictError: title already used by another album
        """
        title = normalize_title(request.title)
        cover = normalize_url(request.cover_image_url, "cover_image_url")
        tags = normalize_tags(request.tags, max_tags=MAX_ALBUM_TAGS)
        featured = normalize_bool(request.is_featured, "is_featured")
        hidden = normalize_bool(request.is_hidden, "is_hidden")

        await self._ensure_title_free(db, title)
        photos = await self._resolve_photos(db, request.photo_ids)

        album = Album(
            id=uuid.uuid4(),
            title=title,
            description=request.description or None,
            cover_image_url=cover,
            tags=tags,
            is_featured=featured,
            is_hidden=hidden,
            created_by=created_by,
            photos=photos,
        )
        db.add(album)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent create of the same title
            raise ConflictError(resource="album", field="title")

        logger.info("Album %s created with %d photos", album.id, len(photos))
        return AlbumFullResponse.model_validate(album)

    async def _page(
        self,
        db: AsyncSession,
        page: int,
        limit: int,
        filters: List[Any],
    ) -> AlbumListResponse:
        albums, total = await fetch_page(
            db,
            select(Album).where(*filters),
            page,
            limit,
            Album.created_at.desc(),
            resource="albums",
        )
        return AlbumListResponse(
            albums=[public_view(a) for a in albums],
            pagination=page_info(page, limit, total),
        )

    async def list_albums(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ) -> AlbumListResponse:
        """Newest first; search matches title, description or any tag."""
        page = max(page, 1)
        limit = clamp(limit, 1, MAX_PAGE_SIZE)

        filters: List[Any] = [Album.is_hidden.is_(False)]
        if tag and tag.strip():
            filters.append(Album.tags.contains([tag.strip().lower()]))
        if search and search.strip():
            pattern = like_pattern(search.strip())
            filters.append(or_(
                Album.title.ilike(pattern, escape="\\"),
                Album.description.ilike(pattern, escape="\\"),
                cast(Album.tags, String).ilike(pattern, escape="\\"),
            ))
        return await self._page(db, page, limit, filters)

    async def list_featured(self, db: AsyncSession, page: int = 1, limit: int = 5) -> AlbumListResponse:
        page = max(page, 1)
        limit = clamp(limit, 1, MAX_FEATURED_PAGE_SIZE)
        return await self._page(
            db, page, limit, [Album.is_featured.is_(True), Album.is_hidden.is_(False)]
        )

    async def get_album(self, db: AsyncSession, album_id: uuid.UUID) -> AlbumResponse:
        album = await self._load(db, album_id)
        if album.is_hidden:
            raise NotFoundError(resource="album", resource_id=str(album_id))
        return public_view(album)

    async def update_album(
        self,
        db: AsyncSession,
        album_id: uuid.UUID,
        request: AlbumUpdateRequest,
    ) -> AlbumFullResponse:
        album = await self._load(db, album_id)
        changes: Dict[str, Any] = request.model_dump(exclude_unset=True)

        if changes.get("title") is not None:
            changes["title"] = normalize_title(changes["title"])
            if changes["title"] != album.title:
                await self._ensure_title_free(db, changes["title"], exclude_id=album.id)
        else:
            changes.pop("title", None)

        if changes.get("cover_image_url") is not None:
            changes["cover_image_url"] = normalize_url(changes["cover_image_url"], "cover_image_url")
        else:
            changes.pop("cover_image_url", None)

        if "tags" in changes:
            changes["tags"] = normalize_tags(changes["tags"], max_tags=MAX_ALBUM_TAGS)
        for flag in ("is_featured", "is_hidden"):
            if flag in changes:
                changes[flag] = normalize_bool(changes[flag], flag)

        photo_ids = changes.pop("photo_ids", None)
        if photo_ids is not None:
            album.photos = await self._resolve_photos(db, photo_ids)

        for field, value in changes.items():
            setattr(album, field, value)

        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(resource="album", field="title")

        logger.info("Album %s updated: %s", album.id, sorted(request.model_fields_set))
        return AlbumFullResponse.model_validate(album)

    async def delete_album(self, db: AsyncSession, album_id: uuid.UUID) -> MessageResponse:
        """Removes the album and its memberships; the photos themselves stay."""
        album = await self._load(db, album_id)
        await db.delete(album)
        await db.flush()
        logger.info("Album %s deleted", album_id)
        return MessageResponse(message="Album deleted successfully")


# ── Singleton Instance ────────────────────────────────────────────────────
album_service = AlbumService()
