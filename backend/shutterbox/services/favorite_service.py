"""
Shutterbox Backend — Favorite Service
=======================================

What:  A user's favorited photos and products.
How:   One join table per kind (favorite_photos, favorite_products); the
       `type` parameter picks which one a call works on.
Who:   Called by the /api/users/me/favorites route handlers.

Rules:
    - Only things the public can see can be favorited: a hidden photo
      answers 404 exactly like a missing one, and is left out of listings.
    - Favoriting twice → 409; removing something not favorited is a no-op.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Type

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.exceptions import ConflictError, NotFoundError
from shutterbox.models.favorite import FavoritePhoto, FavoriteProduct
from shutterbox.models.photo import Photo
from shutterbox.models.product import Product
from shutterbox.schemas.favorite import (
    FavoriteChangeResponse,
    FavoriteKind,
    FavoriteListResponse,
    FavoriteStatusResponse,
)
from shutterbox.schemas.photo import PhotoResponse
from shutterbox.schemas.product import ProductResponse
from shutterbox.services.pagination import clamp, fetch_page, page_info

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


@dataclass(frozen=True)
class FavoriteTable:
    """Where one kind of favorite lives and how it is shown."""

    link: Type[Any]
    target: Type[Any]
    link_column: str
    response: Type[Any]
    public_only: bool


TABLES = {
    FavoriteKind.PHOTO: FavoriteTable(FavoritePhoto, Photo, "photo_id", PhotoResponse, True),
    FavoriteKind.PRODUCT: FavoriteTable(FavoriteProduct, Product, "product_id", ProductResponse, False),
}


class FavoriteService:

    def _visible(self, table: FavoriteTable) -> list:
        return [table.target.is_hidden.is_(False)] if table.public_only else []

    async def _ensure_target(self, db: AsyncSession, kind: FavoriteKind, item_id: uuid.UUID) -> None:
        table = TABLES[kind]
        result = await db.execute(
            select(table.target.id).where(table.target.id == item_id, *self._visible(table))
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError(resource=kind.value, resource_id=str(item_id))

    async def list_favorites(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        kind: FavoriteKind,
        page: int = 1,
        limit: int = 10,
    ) -> FavoriteListResponse:
        """Most recently favorited first."""
        table = TABLES[kind]
        page = max(page, 1)
        limit = clamp(limit, 1, MAX_PAGE_SIZE)
        link_column = getattr(table.link, table.link_column)

        query = (
            select(table.target)
            .join(table.link, and_(link_column == table.target.id, table.link.user_id == user_id))
            .where(*self._visible(table))
        )
        items, total = await fetch_page(
            db, query, page, limit, table.link.created_at.desc(), resource="favorites"
        )
        return FavoriteListResponse(
            type=kind,
            favorites=[table.response.model_validate(item) for item in items],
            pagination=page_info(page, limit, total),
        )

    async def is_favorited(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        kind: FavoriteKind,
        item_id: uuid.UUID,
    ) -> FavoriteStatusResponse:
        table = TABLES[kind]
        result = await db.execute(
            select(table.link.user_id).where(
                table.link.user_id == user_id,
                getattr(table.link, table.link_column) == item_id,
            )
        )
        return FavoriteStatusResponse(is_favorited=result.scalar_one_or_none() is not None)

    async def add_favorite(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        kind: FavoriteKind,
        item_id: uuid.UUID,
    ) -> FavoriteChangeResponse:
        """
        Raises:
            NotFoundError: no such (visible) photo or product
            ConflictError: already favorited
        """
        await self._ensure_target(db, kind, item_id)
        if (await self.is_favorited(db, user_id, kind, item_id)).is_favorited:
            raise ConflictError(resource="favorite", field="id")

        table = TABLES[kind]
        db.add(table.link(user_id=user_id, **{table.link_column: item_id}))
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(resource="favorite", field="id")

        logger.info("User %s favorited %s %s", user_id, kind.value, item_id)
        return FavoriteChangeResponse(message="Added to favorites", id=item_id, type=kind)

    async def remove_favorite(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        kind: FavoriteKind,
        item_id: uuid.UUID,
    ) -> FavoriteChangeResponse:
        table = TABLES[kind]
        await db.execute(
            delete(table.link).where(
                table.link.user_id == user_id,
                getattr(table.link, table.link_column) == item_id,
            )
        )
        return FavoriteChangeResponse(message="Removed from favorites", id=item_id, type=kind)


# ── Singleton Instance ────────────────────────────────────────────────────
favorite_service = FavoriteService()
