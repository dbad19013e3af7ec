"""
Shutterbox Backend — Order Route Handlers
===========================================

What:  Checkout and order administration.
Who:   Customers check out and read their own orders; administrators see
       and manage every order.

Access:
    POST /api/orders                        authenticated (checks out own cart)
    GET  /api/orders/user/{user_id}         owner or admin
    GET  /api/orders/{id}                   owner or admin
    GET  /api/orders, /latest               admin
    PUT  /api/orders/{id}, /{id}/status     admin
    DELETE /api/orders/{id}                 admin

    Reading someone else's order is a 403: the token is valid, but it is
    not the owner's and not an administrator's.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.database import get_db_session
from shutterbox.middleware.access_guard import CurrentIdentity, admin_only, authenticated, identity_uuid
from shutterbox.models.order import OrderStatus
from shutterbox.schemas.common import ErrorResponse, MessageResponse
from shutterbox.schemas.order import (
    OrderCreateRequest,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusRequest,
    OrderUpdateRequest,
)
from shutterbox.services.order_service import order_service

router = APIRouter(prefix="/api/orders", tags=["Orders"])

UNAUTHORIZED = {401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}}
OWNER_ERRORS = {
    **UNAUTHORIZED,
    403: {"description": "Not the owner and not an administrator", "model": ErrorResponse},
}
ADMIN_ERRORS = {
    **UNAUTHORIZED,
    403: {"description": "Caller is not an administrator", "model": ErrorResponse},
}
NOT_FOUND = {404: {"description": "Order not found", "model": ErrorResponse}}


# ── Customer ──────────────────────────────────────────────────────────────

@router.post(
    "",
    status_code=201,
    response_model=OrderCreateResponse,
    responses={**UNAUTHORIZED, 400: {"description": "Cart is empty", "model": ErrorResponse}},
    summary="Check out the cart",
)
async def create_order(
    body: OrderCreateRequest,
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> OrderCreateResponse:
    """Prices are fixed at checkout; the cart is emptied."""
    return await order_service.create_order(db, identity_uuid(identity), body)


@router.get("/user/{user_id}", response_model=OrderListResponse, responses=OWNER_ERRORS, summary="A user's orders")
async def list_user_orders(
    user_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> OrderListResponse:
    return await order_service.list_user_orders(db, identity, user_id, page=page, limit=limit)


# ── Admin ─────────────────────────────────────────────────────────────────

@router.get("", response_model=OrderListResponse, responses=ADMIN_ERRORS, summary="List all orders")
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
    status: Optional[OrderStatus] = Query(default=None),
    user_id: Optional[UUID] = Query(default=None),
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> OrderListResponse:
    return await order_service.list_orders(db, page=page, limit=limit, status=status, user_id=user_id)


@router.get("/latest", response_model=List[OrderResponse], responses=ADMIN_ERRORS, summary="Latest orders")
async def list_latest(
    limit: int = Query(default=10, ge=1, le=50),
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> List[OrderResponse]:
    return await order_service.list_latest(db, limit=limit)


# ── Single order ──────────────────────────────────────────────────────────

@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={**OWNER_ERRORS, **NOT_FOUND},
    summary="Get an order",
)
async def get_order(
    order_id: UUID,
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> OrderResponse:
    return await order_service.get_order(db, identity, order_id)


@router.put(
    "/{order_id}",
    response_model=OrderResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Update an order",
)
async def update_order(
    order_id: UUID,
    body: OrderUpdateRequest,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> OrderResponse:
    return await order_service.update_order(db, order_id, body)


@router.put(
    "/{order_id}/status",
    response_model=OrderResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Change an order's status",
)
async def update_order_status(
    order_id: UUID,
    body: OrderStatusRequest,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> OrderResponse:
    """Moving to `paid` stamps paid_at once."""
    return await order_service.update_status(db, order_id, body.status)


@router.delete(
    "/{order_id}",
    response_model=MessageResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Delete an order",
)
async def delete_order(
    order_id: UUID,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await order_service.delete_order(db, order_id)
