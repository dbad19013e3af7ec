"""
Shutterbox Backend — Cart Service
===================================

What:  The signed-in user's cart: view, add a product, remove a product.
How:   One `cart_items` row per (user, product). Adding a product that is
       already in the cart raises its quantity instead of adding a line.
Who:   Called by the /api/cart route handlers and by OrderService at
       checkout (load_lines / clear).

Print options:
    A selected size, paper type or frame option must be one the product
    offers. Digital products take no options.
"""

import logging
import uuid
from decimal import Decimal
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.exceptions import DatabaseError, ValidationError
from shutterbox.models.cart import CartItem
from shutterbox.models.product import Product, ProductType
from shutterbox.schemas.cart import (
    CartAddRequest,
    CartLine,
    CartRemoveRequest,
    CartResponse,
    CartUpdateResponse,
    SelectedOptions,
)
from shutterbox.schemas.product import ProductResponse
from shutterbox.services.product_service import product_service

logger = logging.getLogger(__name__)

OPTION_SOURCES = (
    ("size", "print_sizes"),
    ("paper_type", "paper_types"),
    ("frame_option", "frame_options"),
)


def check_options(product: Product, options: SelectedOptions) -> None:
    """
    Raises:
        ValidationError: an option the product does not offer
    """
    for field, source in OPTION_SOURCES:
        chosen = getattr(options, field)
        if chosen is None:
            continue
        offered = getattr(product, source) or []
        if chosen not in offered:
            raise ValidationError(
                message=f"'{chosen}' is not an available {field.replace('_', ' ')} for this product",
                field=f"selected_options.{field}",
                context={"available": offered},
            )


def build_cart(lines: List[CartItem]) -> CartResponse:
    items: List[CartLine] = []
    subtotal = Decimal("0")
    for line in lines:
        line_total = line.product.price * line.quantity
        subtotal += line_total
        items.append(CartLine(
            product=ProductResponse.model_validate(line.product),
            quantity=line.quantity,
            type=line.item_type,
            selected_options=SelectedOptions(**(line.selected_options or {})),
            line_total=float(line_total),
        ))
    return CartResponse(
        items=items,
        item_count=sum(line.quantity for line in lines),
        subtotal=float(subtotal),
    )


class CartService:

    async def load_lines(self, db: AsyncSession, user_id: uuid.UUID) -> List[CartItem]:
        try:
            result = await db.execute(
                select(CartItem)
                .where(CartItem.user_id == user_id)
                .order_by(CartItem.created_at)
            )
        except SQLAlchemyError as e:
            logger.error("Database error loading cart of %s: %s", user_id, e)
            raise DatabaseError(message="Could not retrieve the cart. Please try again.")
        return list(result.scalars().all())

    async def clear(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        await db.execute(delete(CartItem).where(CartItem.user_id == user_id))

    async def get_cart(self, db: AsyncSession, user_id: uuid.UUID) -> CartResponse:
        """A user who never added anything has an empty cart, not a missing one."""
        return build_cart(await self.load_lines(db, user_id))

    async def add_item(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        request: CartAddRequest,
    ) -> CartUpdateResponse:
        """
        Raises:
            NotFoundError: no such product
            ValidationError: options on a digital product, or options the
                product does not offer
        """
        product = await product_service.load_product(db, request.product_id)

        options = request.selected_options
        if options is not None:
            if product.type == ProductType.DIGITAL.value and options.model_dump(exclude_none=True):
                raise ValidationError(
                    message="Digital products have no print options",
                    field="selected_options",
                )
            check_options(product, options)

        result = await db.execute(
            select(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.product_id == product.id,
            )
        )
        line = result.scalar_one_or_none()

        if line is not None:
            line.quantity += request.quantity
            if request.type:
                line.item_type = request.type
            if options is not None:
                line.selected_options = options.model_dump(exclude_none=True)
        else:
            db.add(CartItem(
                id=uuid.uuid4(),
                user_id=user_id,
                product_id=product.id,
                product=product,
                quantity=request.quantity,
                item_type=request.type or product.type,
                selected_options=options.model_dump(exclude_none=True) if options else {},
            ))
        await db.flush()

        logger.info("User %s added %d x product %s to cart", user_id, request.quantity, product.id)
        return CartUpdateResponse(message="Cart updated", cart=await self.get_cart(db, user_id))

    async def remove_item(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        request: CartRemoveRequest,
    ) -> CartUpdateResponse:
        """Removing a product that is not in the cart is a no-op."""
        await db.execute(
            delete(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.product_id == request.product_id,
            )
        )
        logger.info("User %s removed product %s from cart", user_id, request.product_id)
        return CartUpdateResponse(message="Removed from cart", cart=await self.get_cart(db, user_id))


# ── Singleton Instance ────────────────────────────────────────────────────
cart_service = CartService()
