"""
Shutterbox Backend — Cart Route Handlers
==========================================

What:  The signed-in caller's shopping cart.
Who:   Any authenticated role; the cart always belongs to the token's user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.database import get_db_session
from shutterbox.middleware.access_guard import CurrentIdentity, authenticated, identity_uuid
from shutterbox.schemas.cart import CartAddRequest, CartRemoveRequest, CartResponse, CartUpdateResponse
from shutterbox.schemas.common import ErrorResponse
from shutterbox.services.cart_service import cart_service

router = APIRouter(prefix="/api/cart", tags=["Cart"])

UNAUTHORIZED = {401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}}


@router.get("", response_model=CartResponse, responses=UNAUTHORIZED, summary="View cart")
async def get_cart(
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> CartResponse:
    return await cart_service.get_cart(db, identity_uuid(identity))


@router.put(
    "/add",
    response_model=CartUpdateResponse,
    responses={
        **UNAUTHORIZED,
        400: {"description": "Option not offered by the product", "model": ErrorResponse},
        404: {"description": "Product not found", "model": ErrorResponse},
    },
    summary="Add a product to the cart",
)
async def add_to_cart(
    body: CartAddRequest,
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> CartUpdateResponse:
    """Adding a product already in the cart raises its quantity."""
    return await cart_service.add_item(db, identity_uuid(identity), body)


@router.put("/remove", response_model=CartUpdateResponse, responses=UNAUTHORIZED, summary="Remove a product")
async def remove_from_cart(
    body: CartRemoveRequest,
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> CartUpdateResponse:
    return await cart_service.remove_item(db, identity_uuid(identity), body)
