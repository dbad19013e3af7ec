"""
Shutterbox Backend — Product Service Unit Tests
=================================================

What:  Tests for the shop catalogue: create, list, update.
How:   Mock DB sessions; products are real ORM objects with Decimal prices.

What we test:
    ✅ Digital products need a download URL; prints do not
    ✅ Option lists trimmed and de-duplicated, case kept
    ✅ Public view never carries the download URL
    ✅ Search shorter than 2 characters → 400
    ✅ Update ignores nulls on required fields and keeps the digital rule
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from shutterbox.exceptions import NotFoundError, ValidationError
from shutterbox.models.product import Product
from shutterbox.schemas.product import ProductCreateRequest, ProductResponse, ProductUpdateRequest
from shutterbox.services.product_service import ProductService, clean_options

CREATED = datetime(2026, 2, 1, tzinfo=timezone.utc)


def make_product(**overrides) -> Product:
    data = dict(
        id=uuid.uuid4(),
        name="Misty Pines Print",
        description="Archival print of a foggy forest",
        price=Decimal("49.99"),
        category="prints",
        stock=10,
        thumbnail_url="https://cdn.example.com/products/pines.jpg",
        tags=["forest"],
        type="print",
        is_featured=False,
        is_latest=False,
        is_on_sale=False,
        digital_file_url=None,
        print_sizes=["A4", "A3"],
        paper_types=["Matte"],
        frame_options=["None", "Oak"],
        created_at=CREATED,
        updated_at=CREATED,
    )
    data.update(overrides)
    return Product(**data)


def create_request(**overrides) -> ProductCreateRequest:
    data = dict(
        name=" Misty Pines ",
        description="Archival print",
        price="49.99",
        category="prints",
        thumbnail_url="https://cdn.example.com/products/pines.jpg",
        type="print",
    )
    data.update(overrides)
    return ProductCreateRequest(**data)


def test_clean_options():
    assert clean_options([" A4 Matte ", "A4 Matte", "", "a4 matte"]) == ["A4 Matte", "a4 matte"]


# ══════════════════════════════════════════════════════════════════════════
# Create
# ══════════════════════════════════════════════════════════════════════════

class TestCreateProduct:

    def setup_method(self):
        self.service = ProductService()

    @pytest.mark.asyncio
    async def test_print(self, mock_db_session):
        product = await self.service.create_product(
            mock_db_session,
            create_request(print_sizes=[" A4 ", "A4", "A3"], tags="Forest, Fog", is_on_sale="true"),
        )

        assert product.name == "Misty Pines"
        assert product.price == pytest.approx(49.99)
        assert product.print_sizes == ["A4", "A3"]
        assert product.tags == ["forest", "fog"]
        assert product.is_on_sale is True
        assert product.is_featured is False
        mock_db_session.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_digital_requires_file(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_product(mock_db_session, create_request(type="digital"))

        assert exc_info.value.field == "digital_file_url"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_digital_with_file(self, mock_db_session):
        product = await self.service.create_product(
            mock_db_session,
            create_request(type="digital", digital_file_url="https://cdn.example.com/dl/pines.tiff"),
        )

        assert product.type == "digital"
        assert product.digital_file_url == "https://cdn.example.com/dl/pines.tiff"

    @pytest.mark.asyncio
    async def test_bad_thumbnail_url(self, mock_db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_product(mock_db_session, create_request(thumbnail_url="pines.jpg"))
        assert exc_info.value.field == "thumbnail_url"

    def test_public_view_has_no_download_url(self):
        product = make_product(type="digital", digital_file_url="https://cdn.example.com/dl/x.tiff")
        assert "digital_file_url" not in ProductResponse.model_validate(product).model_dump()


# ══════════════════════════════════════════════════════════════════════════
# List / Get
# ══════════════════════════════════════════════════════════════════════════

class TestListProducts:

    def setup_method(self):
        self.service = ProductService()

    @pytest.mark.asyncio
    async def test_filters(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(scalar=1),
            make_result(rows=[make_product()]),
        ])

        result = await self.service.list_products(
            mock_db_session, category="prints", tag="Forest", search="pine", featured=False, on_sale=False
        )

        assert result.products[0].price == pytest.approx(49.99)
        assert result.pagination.total == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("search", ["", " p ", "x"])
    async def test_short_search(self, mock_db_session, search):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.list_products(mock_db_session, search=search)

        assert exc_info.value.field == "search"
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_latest(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(rows=[make_product(), make_product()]))

        latest = await self.service.list_latest(mock_db_session, limit=2)

        assert len(latest) == 2

    @pytest.mark.asyncio
    async def test_missing(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))

        with pytest.raises(NotFoundError):
            await self.service.get_product(mock_db_session, uuid.uuid4())


# ══════════════════════════════════════════════════════════════════════════
# Update / Delete
# ══════════════════════════════════════════════════════════════════════════

class TestUpdateProduct:

    def setup_method(self):
        self.service = ProductService()

    @pytest.mark.asyncio
    async def test_partial(self, mock_db_session, make_result):
        product = make_product()
        mock_db_session.execute = AsyncMock(return_value=make_result(one=product))

        result = await self.service.update_product(
            mock_db_session,
            product.id,
            ProductUpdateRequest(price="39.50", name=None, frame_options=None, is_on_sale="true"),
        )

        assert product.price == Decimal("39.50")
        assert product.name == "Misty Pines Print"
        assert product.frame_options == []
        assert result.is_on_sale is True

    @pytest.mark.asyncio
    async def test_cannot_clear_digital_file(self, mock_db_session, make_result):
        product = make_product(type="digital", digital_file_url="https://cdn.example.com/dl/x.tiff")
        mock_db_session.execute = AsyncMock(return_value=make_result(one=product))

        with pytest.raises(ValidationError):
            await self.service.update_product(
                mock_db_session, product.id, ProductUpdateRequest(digital_file_url=None)
            )

        assert product.digital_file_url == "https://cdn.example.com/dl/x.tiff"

    @pytest.mark.asyncio
    async def test_type_is_fixed(self, mock_db_session, make_result):
        product = make_product()
        mock_db_session.execute = AsyncMock(return_value=make_result(one=product))

        await self.service.update_product(
            mock_db_session, product.id, ProductUpdateRequest.model_validate({"type": "digital"})
        )

        assert product.type == "print"

    @pytest.mark.asyncio
    async def test_delete(self, mock_db_session, make_result):
        product = make_product()
        mock_db_session.execute = AsyncMock(return_value=make_result(one=product))

        result = await self.service.delete_product(mock_db_session, product.id)

        assert result.message == "Product deleted successfully"
        mock_db_session.delete.assert_awaited_once_with(product)
