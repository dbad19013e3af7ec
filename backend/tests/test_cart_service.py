"""
Shutterbox Backend — Cart Service Unit Tests
==============================================

What:  Tests for adding, merging and removing cart lines.
How:   Mock DB sessions; the sequence of `execute` results mirrors the
       service's queries (product, existing line, reload).

What we test:
    ✅ Empty cart is an empty body, not an error
    ✅ Subtotal and item count from Decimal prices
    ✅ Adding an existing product raises its quantity
    ✅ Print options must be offered; digital products take none
    ✅ Removing is a no-op when the product is not in the cart
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from shutterbox.exceptions import NotFoundError, ValidationError
from shutterbox.models.cart import CartItem
from shutterbox.models.product import Product
from shutterbox.schemas.cart import CartAddRequest, CartRemoveRequest, SelectedOptions
from shutterbox.services.cart_service import CartService, build_cart, check_options


def make_product(**overrides) -> Product:
    data = dict(
        id=uuid.uuid4(),
        name="Misty Pines Print",
        description="Archival print",
        price=Decimal("20.00"),
        category="prints",
        stock=5,
        thumbnail_url="https://cdn.example.com/products/pines.jpg",
        tags=[],
        type="print",
        is_featured=False,
        is_latest=False,
        is_on_sale=False,
        print_sizes=["A4", "A3"],
        paper_types=["Matte", "Gloss"],
        frame_options=[],
    )
    data.update(overrides)
    return Product(**data)


def make_line(product: Product, quantity: int = 1, **overrides) -> CartItem:
    data = dict(
        id=uuid.uuid4(),
        product_id=product.id,
        product=product,
        quantity=quantity,
        item_type=product.type,
        selected_options={},
    )
    data.update(overrides)
    return CartItem(**data)


class TestCartMath:

    def test_totals(self):
        print_ = make_product(price=Decimal("19.99"))
        digital = make_product(price=Decimal("5.01"), type="digital", print_sizes=[], paper_types=[])

        cart = build_cart([make_line(print_, 3), make_line(digital, 1)])

        assert cart.item_count == 4
        assert cart.subtotal == pytest.approx(64.98)
        assert cart.items[0].line_total == pytest.approx(59.97)

    def test_empty(self):
        cart = build_cart([])
        assert cart.items == []
        assert cart.item_count == 0
        assert cart.subtotal == 0

    def test_options_must_be_offered(self):
        product = make_product()
        check_options(product, SelectedOptions(size="A3", paper_type="Gloss"))

        with pytest.raises(ValidationError) as exc_info:
            check_options(product, SelectedOptions(frame_option="Oak"))
        assert exc_info.value.field == "selected_options.frame_option"


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════

class TestCartService:

    def setup_method(self):
        self.service = CartService()
        self.user = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_get_empty_cart(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(rows=[]))

        cart = await self.service.get_cart(mock_db_session, self.user)

        assert cart.item_count == 0

    @pytest.mark.asyncio
    async def test_add_new_line(self, mock_db_session, make_result):
        product = make_product()
        stored = make_line(product, 2, selected_options={"size": "A4"})
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(one=product),
            make_result(one=None),
            make_result(rows=[stored]),
        ])

        result = await self.service.add_item(
            mock_db_session,
            self.user,
            CartAddRequest(product_id=product.id, quantity=2, selected_options={"size": "A4"}),
        )

        added = mock_db_session.add.call_args.args[0]
        assert added.user_id == self.user
        assert added.quantity == 2
        assert added.item_type == "print"
        assert added.selected_options == {"size": "A4"}
        assert result.message == "Cart updated"
        assert result.cart.subtotal == pytest.approx(40.0)

    @pytest.mark.asyncio
    async def test_add_existing_line_raises_quantity(self, mock_db_session, make_result):
        product = make_product()
        line = make_line(product, 1)
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(one=product),
            make_result(one=line),
            make_result(rows=[line]),
        ])

        result = await self.service.add_item(
            mock_db_session, self.user, CartAddRequest(product_id=product.id, quantity=3)
        )

        assert line.quantity == 4
        assert result.cart.item_count == 4
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_digital_product_takes_no_options(self, mock_db_session, make_result):
        product = make_product(type="digital", digital_file_url="https://cdn.example.com/dl/x.tiff")
        mock_db_session.execute = AsyncMock(return_value=make_result(one=product))

        with pytest.raises(ValidationError) as exc_info:
            await self.service.add_item(
                mock_db_session,
                self.user,
                CartAddRequest(product_id=product.id, selected_options={"size": "A4"}),
            )

        assert exc_info.value.field == "selected_options"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_option(self, mock_db_session, make_result):
        product = make_product()
        mock_db_session.execute = AsyncMock(return_value=make_result(one=product))

        with pytest.raises(ValidationError) as exc_info:
            await self.service.add_item(
                mock_db_session,
                self.user,
                CartAddRequest(product_id=product.id, selected_options={"size": "Billboard"}),
            )

        assert exc_info.value.context["available"] == ["A4", "A3"]

    @pytest.mark.asyncio
    async def test_missing_product(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))

        with pytest.raises(NotFoundError):
            await self.service.add_item(mock_db_session, self.user, CartAddRequest(product_id=uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_remove_absent_product(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(rows=[]))

        result = await self.service.remove_item(
            mock_db_session, self.user, CartRemoveRequest(product_id=uuid.uuid4())
        )

        assert result.message == "Removed from cart"
        assert result.cart.items == []
        assert mock_db_session.execute.await_count == 2
