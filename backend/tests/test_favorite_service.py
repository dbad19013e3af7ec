"""
Shutterbox Backend — Favorite Service Unit Tests
==================================================

What:  Tests for favoriting photos and products.
How:   Mock DB sessions with `execute` results in query order.

What we test:
    ✅ Add: target must exist (hidden photos count as missing)
    ✅ Add twice → 409
    ✅ Remove is idempotent
    ✅ Listing returns the right response model per type
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from shutterbox.exceptions import ConflictError, NotFoundError
from shutterbox.models.favorite import FavoritePhoto, FavoriteProduct
from shutterbox.models.photo import Photo
from shutterbox.models.product import Product
from shutterbox.schemas.favorite import FavoriteKind
from shutterbox.services.favorite_service import FavoriteService

CREATED = datetime(2026, 2, 1, tzinfo=timezone.utc)


class TestFavoriteService:

    def setup_method(self):
        self.service = FavoriteService()
        self.user = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_add_photo(self, mock_db_session, make_result):
        photo_id = uuid.uuid4()
        mock_db_session.execute = AsyncMock(side_effect=[make_result(one=photo_id), make_result(one=None)])

        result = await self.service.add_favorite(mock_db_session, self.user, FavoriteKind.PHOTO, photo_id)

        assert result.message == "Added to favorites"
        added = mock_db_session.add.call_args.args[0]
        assert isinstance(added, FavoritePhoto)
        assert added.user_id == self.user
        assert added.photo_id == photo_id

    @pytest.mark.asyncio
    async def test_add_product(self, mock_db_session, make_result):
        product_id = uuid.uuid4()
        mock_db_session.execute = AsyncMock(side_effect=[make_result(one=product_id), make_result(one=None)])

        await self.service.add_favorite(mock_db_session, self.user, FavoriteKind.PRODUCT, product_id)

        added = mock_db_session.add.call_args.args[0]
        assert isinstance(added, FavoriteProduct)
        assert added.product_id == product_id

    @pytest.mark.asyncio
    async def test_add_missing_or_hidden_target(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))

        with pytest.raises(NotFoundError):
            await self.service.add_favorite(mock_db_session, self.user, FavoriteKind.PHOTO, uuid.uuid4())

        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_twice(self, mock_db_session, make_result):
        photo_id = uuid.uuid4()
        mock_db_session.execute = AsyncMock(side_effect=[make_result(one=photo_id), make_result(one=self.user)])

        with pytest.raises(ConflictError) as exc_info:
            await self.service.add_favorite(mock_db_session, self.user, FavoriteKind.PHOTO, photo_id)

        assert exc_info.value.field == "id"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_race_is_conflict(self, mock_db_session, make_result):
        photo_id = uuid.uuid4()
        mock_db_session.execute = AsyncMock(side_effect=[make_result(one=photo_id), make_result(one=None)])
        mock_db_session.flush = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("pk")))

        with pytest.raises(ConflictError):
            await self.service.add_favorite(mock_db_session, self.user, FavoriteKind.PHOTO, photo_id)

    @pytest.mark.asyncio
    async def test_is_favorited(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))

        status = await self.service.is_favorited(mock_db_session, self.user, FavoriteKind.PRODUCT, uuid.uuid4())

        assert status.is_favorited is False

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, mock_db_session):
        item = uuid.uuid4()

        first = await self.service.remove_favorite(mock_db_session, self.user, FavoriteKind.PHOTO, item)
        second = await self.service.remove_favorite(mock_db_session, self.user, FavoriteKind.PHOTO, item)

        assert first.message == second.message == "Removed from favorites"
        assert mock_db_session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_list_photos(self, mock_db_session, make_result):
        photo = Photo(
            id=uuid.uuid4(),
            title="Dawn",
            tags=[],
            is_featured=False,
            is_hidden=False,
            image_url="https://cdn.example.com/photography/dawn.jpg",
            thumbnail_url="https://cdn.example.com/photography/dawn.jpg?thumb",
            storage_id="photography/dawn",
            provider="fake",
            created_at=CREATED,
            updated_at=CREATED,
        )
        mock_db_session.execute = AsyncMock(side_effect=[make_result(scalar=1), make_result(rows=[photo])])

        result = await self.service.list_favorites(mock_db_session, self.user, FavoriteKind.PHOTO)

        assert result.type == FavoriteKind.PHOTO
        assert result.favorites[0].title == "Dawn"
        assert result.pagination.total == 1

    @pytest.mark.asyncio
    async def test_list_products(self, mock_db_session, make_result):
        product = Product(
            id=uuid.uuid4(),
            name="Misty Pines",
            description="Archival print",
            price=Decimal("20.00"),
            category="prints",
            stock=1,
            thumbnail_url="https://cdn.example.com/products/pines.jpg",
            tags=[],
            type="print",
            is_featured=False,
            is_latest=False,
            is_on_sale=False,
            print_sizes=[],
            paper_types=[],
            frame_options=[],
        )
        mock_db_session.execute = AsyncMock(side_effect=[make_result(scalar=1), make_result(rows=[product])])

        result = await self.service.list_favorites(mock_db_session, self.user, FavoriteKind.PRODUCT, limit=500)

        assert result.favorites[0].name == "Misty Pines"
        assert result.pagination.limit == 50
