"""
Shutterbox Backend — Order Service Unit Tests
===============================================

What:  Tests for checkout and order administration.
How:   Mock DB sessions; cart lines, products and orders are real ORM
       objects that never touch a database.

What we test:
    ✅ Checkout snapshots prices, sums in Decimal and empties the cart
    ✅ Empty cart → 400 with nothing written
    ✅ Order type: digital, print or mixed
    ✅ Download links hidden until the order is paid
    ✅ Owners and admins read an order; other users get 403
    ✅ Status changes stamp paid_at once
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from shutterbox.exceptions import AuthorizationError, NotFoundError, ValidationError
from shutterbox.middleware.access_guard import CurrentIdentity
from shutterbox.models.cart import CartItem
from shutterbox.models.order import Order, OrderItem, OrderStatus
from shutterbox.models.product import Product
from shutterbox.schemas.order import OrderCreateRequest, OrderUpdateRequest
from shutterbox.services.order_service import OrderService, order_type_for, to_response

CREATED = datetime(2026, 2, 1, tzinfo=timezone.utc)
DOWNLOAD = "https://cdn.example.com/dl/pines.tiff"


def make_product(**overrides) -> Product:
    data = dict(
        id=uuid.uuid4(),
        name="Misty Pines",
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
        print_sizes=["A4"],
        paper_types=[],
        frame_options=[],
    )
    data.update(overrides)
    return Product(**data)


def make_order(user_id: uuid.UUID, status: str = "pending", **overrides) -> Order:
    data = dict(
        id=uuid.uuid4(),
        user_id=user_id,
        type="digital",
        status=status,
        total_price=Decimal("15.00"),
        is_free_shipping=False,
        shipping_address={},
        items=[OrderItem(
            id=uuid.uuid4(),
            product_id=uuid.uuid4(),
            product_name="Misty Pines",
            product_type="digital",
            quantity=1,
            unit_price=Decimal("15.00"),
            selected_options={},
            download_link=DOWNLOAD,
        )],
        created_at=CREATED,
        updated_at=CREATED,
    )
    data.update(overrides)
    return Order(**data)


@pytest.mark.parametrize("types, expected", [
    (["digital"], "digital"),
    (["print", "print"], "print"),
    (["digital", "print"], "mixed"),
])
def test_order_type_for(types, expected):
    assert order_type_for(types) == expected


def test_download_link_hidden_until_paid():
    owner = uuid.uuid4()
    assert to_response(make_order(owner, "pending")).items[0].download_link is None
    assert to_response(make_order(owner, "cancelled")).items[0].download_link is None
    assert to_response(make_order(owner, "paid")).items[0].download_link == DOWNLOAD
    assert to_response(make_order(owner, "completed")).items[0].download_link == DOWNLOAD


# ══════════════════════════════════════════════════════════════════════════
# Checkout
# ══════════════════════════════════════════════════════════════════════════

class TestCheckout:

    def setup_method(self):
        self.service = OrderService()
        self.user = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_creates_order_and_clears_cart(self, mock_db_session, make_result):
        print_ = make_product(price=Decimal("19.99"))
        digital = make_product(
            name="Pines (digital)", price=Decimal("5.01"), type="digital", digital_file_url=DOWNLOAD
        )
        lines = [
            CartItem(id=uuid.uuid4(), product=print_, quantity=3, item_type="print", selected_options={"size": "A4"}),
            CartItem(id=uuid.uuid4(), product=digital, quantity=1, item_type="digital", selected_options={}),
        ]
        mock_db_session.execute = AsyncMock(side_effect=[make_result(rows=lines), make_result()])

        result = await self.service.create_order(
            mock_db_session,
            self.user,
            OrderCreateRequest(shipping_address={"full_name": "Ann Example", "city": "Oslo"}),
        )

        order = result.order
        assert result.message == "Order created"
        assert order.status == "pending"
        assert order.type == "mixed"
        assert order.total_price == pytest.approx(64.98)
        assert order.shipping_address.city == "Oslo"
        assert [i.quantity for i in order.items] == [3, 1]
        assert order.items[0].selected_options.size == "A4"
        # Pending orders do not reveal the file yet
        assert order.items[1].download_link is None

        stored = mock_db_session.add.call_args.args[0]
        assert stored.total_price == Decimal("64.98")
        assert stored.items[1].download_link == DOWNLOAD
        assert stored.items[0].download_link is None
        assert mock_db_session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_price_snapshot(self, mock_db_session, make_result):
        product = make_product(price=Decimal("10.00"))
        line = CartItem(id=uuid.uuid4(), product=product, quantity=1, item_type="print", selected_options={})
        mock_db_session.execute = AsyncMock(side_effect=[make_result(rows=[line]), make_result()])

        await self.service.create_order(mock_db_session, self.user, OrderCreateRequest())
        product.price = Decimal("99.00")

        stored = mock_db_session.add.call_args.args[0]
        assert stored.items[0].unit_price == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_empty_cart(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(rows=[]))

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_order(mock_db_session, self.user, OrderCreateRequest())

        assert exc_info.value.field == "cart"
        mock_db_session.add.assert_not_called()
        assert mock_db_session.execute.await_count == 1


# ══════════════════════════════════════════════════════════════════════════
# Access
# ══════════════════════════════════════════════════════════════════════════

class TestOrderAccess:

    def setup_method(self):
        self.service = OrderService()
        self.owner = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_owner_reads(self, mock_db_session, make_result):
        order = make_order(self.owner)
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        result = await self.service.get_order(
            mock_db_session, CurrentIdentity(id=str(self.owner), role="user"), order.id
        )
        assert result.id == order.id

    @pytest.mark.asyncio
    async def test_admin_reads(self, mock_db_session, make_result):
        order = make_order(self.owner)
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        result = await self.service.get_order(
            mock_db_session, CurrentIdentity(id=str(uuid.uuid4()), role="admin"), order.id
        )
        assert result.user_id == self.owner

    @pytest.mark.asyncio
    async def test_other_user_refused(self, mock_db_session, make_result):
        order = make_order(self.owner)
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        with pytest.raises(AuthorizationError):
            await self.service.get_order(
                mock_db_session, CurrentIdentity(id=str(uuid.uuid4()), role="user"), order.id
            )

    @pytest.mark.asyncio
    async def test_missing_order(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(return_value=make_result(one=None))

        with pytest.raises(NotFoundError):
            await self.service.get_order(
                mock_db_session, CurrentIdentity(id=str(self.owner), role="user"), uuid.uuid4()
            )

    @pytest.mark.asyncio
    async def test_other_users_listing_refused_before_query(self, mock_db_session):
        with pytest.raises(AuthorizationError):
            await self.service.list_user_orders(
                mock_db_session, CurrentIdentity(id=str(uuid.uuid4()), role="user"), self.owner
            )
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_own_listing(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(side_effect=[
            make_result(scalar=1),
            make_result(rows=[make_order(self.owner)]),
        ])

        result = await self.service.list_user_orders(
            mock_db_session, CurrentIdentity(id=str(self.owner), role="user"), self.owner
        )

        assert result.pagination.total == 1
        assert result.orders[0].user_id == self.owner


# ══════════════════════════════════════════════════════════════════════════
# Administration
# ══════════════════════════════════════════════════════════════════════════

class TestOrderAdmin:

    def setup_method(self):
        self.service = OrderService()

    @pytest.mark.asyncio
    async def test_paid_stamps_paid_at_once(self, mock_db_session, make_result):
        order = make_order(uuid.uuid4())
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        result = await self.service.update_status(mock_db_session, order.id, OrderStatus.PAID)
        first_paid_at = order.paid_at

        assert result.status == "paid"
        assert first_paid_at is not None
        assert result.items[0].download_link == DOWNLOAD

        await self.service.update_status(mock_db_session, order.id, OrderStatus.PAID)
        assert order.paid_at == first_paid_at

    @pytest.mark.asyncio
    async def test_update_fields(self, mock_db_session, make_result):
        order = make_order(uuid.uuid4())
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        result = await self.service.update_order(
            mock_db_session,
            order.id,
            OrderUpdateRequest(
                status="shipped",
                is_free_shipping=True,
                payment_method="card",
                shipping_address={"city": "Bergen"},
            ),
        )

        assert result.status == "shipped"
        assert result.is_free_shipping is True
        assert result.payment_method == "card"
        assert order.shipping_address == {"city": "Bergen"}
        assert order.paid_at is None

    @pytest.mark.asyncio
    async def test_null_free_shipping_ignored(self, mock_db_session, make_result):
        order = make_order(uuid.uuid4(), is_free_shipping=True)
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        await self.service.update_order(mock_db_session, order.id, OrderUpdateRequest(is_free_shipping=None))

        assert order.is_free_shipping is True

    @pytest.mark.asyncio
    async def test_list_filters(self, mock_db_session, make_result):
        mock_db_session.execute = AsyncMock(side_effect=[make_result(scalar=0), make_result(rows=[])])

        result = await self.service.list_orders(
            mock_db_session, status=OrderStatus.PAID, user_id=uuid.uuid4(), limit=500
        )

        assert result.orders == []
        assert result.pagination.limit == 50

    @pytest.mark.asyncio
    async def test_delete(self, mock_db_session, make_result):
        order = make_order(uuid.uuid4())
        mock_db_session.execute = AsyncMock(return_value=make_result(one=order))

        result = await self.service.delete_order(mock_db_session, order.id)

        assert result.message == "Order deleted successfully"
        mock_db_session.delete.assert_awaited_once_with(order)
