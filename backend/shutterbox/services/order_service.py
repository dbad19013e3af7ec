"""
Shutterbox Backend — Order Service
====================================

What:  Checkout (cart → order) and order administration.
Who:   Called by the /api/orders route handlers.

Checkout Flow (POST /api/orders):
    ┌────────────┐   ┌──────────────┐   ┌──────────────┐   ┌────────────┐
    │ Load cart  │──▶│ Snapshot each│──▶│ Insert order │──▶│ Clear cart │
    │ (≥ 1 line) │   │ line's price │   │ + items      │   │            │
    └────────────┘   └──────────────┘   └──────────────┘   └────────────┘

    All four steps share the request's transaction: a failure anywhere
    leaves the cart untouched and no order behind.

    total  = Σ unit_price × quantity, computed in Decimal
    type   = "digital" | "print" when every line agrees, else "mixed"
    status = "pending"

Access:
    Customers read their own orders (ensure_owner_or_admin); every other
    operation is administrator-only and enforced at the route.

Download links:
    Digital items keep the product's file URL from checkout, but responses
    only reveal it once the order is paid, shipped or completed.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.exceptions import DatabaseError, NotFoundError, ValidationError
from shutterbox.middleware.access_guard import CurrentIdentity, ensure_owner_or_admin
from shutterbox.models.order import Order, OrderItem, OrderStatus, OrderType
from shutterbox.models.product import ProductType
from shutterbox.schemas.cart import SelectedOptions
from shutterbox.schemas.common import MessageResponse
from shutterbox.schemas.order import (
    OrderCreateRequest,
    OrderCreateResponse,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    OrderUpdateRequest,
    ShippingAddress,
)
from shutterbox.services.cart_service import cart_service
from shutterbox.services.pagination import clamp, fetch_page, page_info

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50
LATEST_COUNT = 10
DOWNLOADABLE = {OrderStatus.PAID.value, OrderStatus.SHIPPED.value, OrderStatus.COMPLETED.value}


def order_type_for(product_types: List[str]) -> str:
    kinds = set(product_types)
    if kinds == {ProductType.DIGITAL.value}:
        return OrderType.DIGITAL.value
    if kinds == {ProductType.PRINT.value}:
        return OrderType.PRINT.value
    return OrderType.MIXED.value


def to_response(order: Order) -> OrderResponse:
    reveal = order.status in DOWNLOADABLE
    return OrderResponse(
        id=order.id,
        user_id=order.user_id,
        type=order.type,
        status=order.status,
        total_price=float(order.total_price),
        is_free_shipping=order.is_free_shipping,
        shipping_address=ShippingAddress(**(order.shipping_address or {})),
        payment_id=order.payment_id,
        payment_method=order.payment_method,
        paid_at=order.paid_at,
        items=[
            OrderItemResponse(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                product_type=item.product_type,
                quantity=item.quantity,
                unit_price=float(item.unit_price),
                selected_options=SelectedOptions(**(item.selected_options or {})),
                download_link=item.download_link if reveal else None,
            )
            for item in order.items
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


class OrderService:

    async def _load(self, db: AsyncSession, order_id: uuid.UUID) -> Order:
        try:
            result = await db.execute(select(Order).where(Order.id == order_id))
        except SQLAlchemyError as e:
            logger.error("Database error fetching order %s: %s", order_id, e)
            raise DatabaseError(context={"order_id": str(order_id)})
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError(resource="order", resource_id=str(order_id))
        return order

    async def _page(
        self,
        db: AsyncSession,
        filters: List[Any],
        page: int,
        limit: int,
    ) -> OrderListResponse:
        page = max(page, 1)
        limit = clamp(limit, 1, MAX_PAGE_SIZE)
        orders, total = await fetch_page(
            db,
            select(Order).where(*filters),
            page,
            limit,
            Order.created_at.desc(),
            resource="orders",
        )
        return OrderListResponse(
            orders=[to_response(o) for o in orders],
            pagination=page_info(page, limit, total),
        )

    async def create_order(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        request: OrderCreateRequest,
    ) -> OrderCreateResponse:
        """
        Turn the user's cart into a pending order and empty the cart.

        Raises:
            ValidationError: the cart is empty
        """
        lines = [line for line in await cart_service.load_lines(db, user_id) if line.product is not None]
        if not lines:
            raise ValidationError(message="Cart is empty", field="cart")

        total = Decimal("0")
        items: List[OrderItem] = []
        for line in lines:
            product = line.product
            total += product.price * line.quantity
            is_digital = product.type == ProductType.DIGITAL.value
            items.append(OrderItem(
                id=uuid.uuid4(),
                product_id=product.id,
                product_name=product.name,
                product_type=product.type,
                quantity=line.quantity,
                unit_price=product.price,
                selected_options=dict(line.selected_options or {}),
                download_link=product.digital_file_url if is_digital else None,
            ))

        shipping = request.shipping_address.model_dump(exclude_none=True) if request.shipping_address else {}
        order = Order(
            id=uuid.uuid4(),
            user_id=user_id,
            type=order_type_for([line.product.type for line in lines]),
            status=OrderStatus.PENDING.value,
            total_price=total,
            is_free_shipping=False,
            shipping_address=shipping,
            items=items,
        )
        db.add(order)
        await db.flush()
        await cart_service.clear(db, user_id)

        logger.info("Order %s created by %s: %d items, total %s", order.id, user_id, len(items), total)
        return OrderCreateResponse(order=to_response(order))

    async def get_order(
        self,
        db: AsyncSession,
        identity: CurrentIdentity,
        order_id: uuid.UUID,
    ) -> OrderResponse:
        """
        Raises:
            NotFoundError: no such order
            AuthorizationError: the caller neither owns it nor is an admin
        """
        order = await self._load(db, order_id)
        ensure_owner_or_admin(identity, order.user_id, resource="order")
        return to_response(order)

    async def list_user_orders(
        self,
        db: AsyncSession,
        identity: CurrentIdentity,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
    ) -> OrderListResponse:
        ensure_owner_or_admin(identity, user_id, resource="order")
        return await self._page(db, [Order.user_id == user_id], page, limit)

    async def list_orders(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        status: Optional[OrderStatus] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> OrderListResponse:
        """Administrator listing, newest first."""
        filters: List[Any] = []
        if status is not None:
            filters.append(Order.status == status.value)
        if user_id is not None:
            filters.append(Order.user_id == user_id)
        return await self._page(db, filters, page, limit)

    async def list_latest(self, db: AsyncSession, limit: int = LATEST_COUNT) -> List[OrderResponse]:
        limit = clamp(limit, 1, MAX_PAGE_SIZE)
        try:
            result = await db.execute(select(Order).order_by(Order.created_at.desc()).limit(limit))
        except SQLAlchemyError as e:
            logger.error("Database error listing latest orders: %s", e)
            raise DatabaseError(message="Could not retrieve orders. Please try again.")
        return [to_response(o) for o in result.scalars().all()]

    def _apply_status(self, order: Order, status: OrderStatus) -> None:
        if order.status != status.value:
            logger.info("Order %s status %s → %s", order.id, order.status, status.value)
        order.status = status.value
        if status is OrderStatus.PAID and order.paid_at is None:
            order.paid_at = datetime.now(timezone.utc)

    async def update_order(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        request: OrderUpdateRequest,
    ) -> OrderResponse:
        order = await self._load(db, order_id)
        changes: Dict[str, Any] = request.model_dump(exclude_unset=True)

        status = changes.pop("status", None)
        if "shipping_address" in changes:
            address = changes.pop("shipping_address") or {}
            order.shipping_address = {k: v for k, v in address.items() if v is not None}
        if changes.get("is_free_shipping") is None:
            changes.pop("is_free_shipping", None)

        for field, value in changes.items():
            setattr(order, field, value)
        if status is not None:
            self._apply_status(order, OrderStatus(status))

        await db.flush()
        return to_response(order)

    async def update_status(
        self,
        db: AsyncSession,
        order_id: uuid.UUID,
        status: OrderStatus,
    ) -> OrderResponse:
        order = await self._load(db, order_id)
        self._apply_status(order, status)
        await db.flush()
        return to_response(order)

    async def delete_order(self, db: AsyncSession, order_id: uuid.UUID) -> MessageResponse:
        order = await self._load(db, order_id)
        await db.delete(order)
        await db.flush()
        logger.info("Order %s deleted", order_id)
        return MessageResponse(message="Order deleted successfully")


# ── Singleton Instance ────────────────────────────────────────────────────
order_service = OrderService()
