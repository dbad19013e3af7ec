"""
Shutterbox Backend — Product Route Handlers
=============================================

What:  The storefront catalogue of digital downloads and prints.
Who:   Shop pages (list, latest, detail) and the admin dashboard.

Access:
    GET  /api/products, /latest, /{id}      public
    GET  /api/products/{id}/full            admin (includes the download URL)
    POST/PUT/DELETE                         admin
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.database import get_db_session
from shutterbox.middleware.access_guard import CurrentIdentity, admin_only
from shutterbox.schemas.common import ErrorResponse, MessageResponse
from shutterbox.schemas.product import (
    ProductCreateRequest,
    ProductFullResponse,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
)
from shutterbox.services.product_service import product_service

router = APIRouter(prefix="/api/products", tags=["Products"])

ADMIN_ERRORS = {
    401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
    403: {"description": "Caller is not an administrator", "model": ErrorResponse},
}
NOT_FOUND = {404: {"description": "Product not found", "model": ErrorResponse}}


# ── Public ────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=ProductListResponse,
    responses={400: {"description": "Search term too short", "model": ErrorResponse}},
    summary="List products",
)
async def list_products(
    response: Response,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=50),
    category: Optional[str] = Query(default=None, max_length=100),
    tag: Optional[str] = Query(default=None, max_length=100),
    search: Optional[str] = Query(default=None, max_length=200),
    featured: Optional[bool] = Query(default=None),
    on_sale: Optional[bool] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> ProductListResponse:
    result = await product_service.list_products(
        db,
        page=page,
        limit=limit,
        category=category,
        tag=tag,
        search=search,
        featured=featured,
        on_sale=on_sale,
    )
    response.headers["X-Total-Count"] = str(result.pagination.total)
    return result


@router.get("/latest", response_model=List[ProductResponse], summary="Latest products")
async def list_latest(
    limit: int = Query(default=10, ge=1, le=50),
    db: AsyncSession = Depends(get_db_session),
) -> List[ProductResponse]:
    return await product_service.list_latest(db, limit=limit)


@router.get("/{product_id}", response_model=ProductResponse, responses=NOT_FOUND, summary="Get a product")
async def get_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ProductResponse:
    return await product_service.get_product(db, product_id)


# ── Admin ─────────────────────────────────────────────────────────────────

@router.get(
    "/{product_id}/full",
    response_model=ProductFullResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Product with its download URL",
)
async def get_product_full(
    product_id: UUID,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> ProductFullResponse:
    return await product_service.get_product_full(db, product_id)


@router.post(
    "",
    status_code=201,
    response_model=ProductFullResponse,
    responses={**ADMIN_ERRORS, 400: {"description": "Invalid product fields", "model": ErrorResponse}},
    summary="Create a product",
)
async def create_product(
    body: ProductCreateRequest,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> ProductFullResponse:
    return await product_service.create_product(db, body)


@router.put(
    "/{product_id}",
    response_model=ProductFullResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Update a product",
)
async def update_product(
    product_id: UUID,
    body: ProductUpdateRequest,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> ProductFullResponse:
    return await product_service.update_product(db, product_id, body)


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Delete a product",
)
async def delete_product(
    product_id: UUID,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await product_service.delete_product(db, product_id)
