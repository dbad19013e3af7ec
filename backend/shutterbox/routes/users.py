"""
Shutterbox Backend — User Route Handlers
==========================================

What:  The signed-in caller's own account: profile, password, display fields
       and favorites.
Who:   Any authenticated role. There is no way to address another user's
       account here; the identity always comes from the token.

Favorites:
    GET    /api/users/me/favorites?type=photo|product
    GET    /api/users/me/favorites/{id}?type=...     → {"is_favorited": bool}
    PUT    /api/users/me/favorites                  body {"id", "type"}
    DELETE /api/users/me/favorites/{id}?type=...
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.database import get_db_session
from shutterbox.middleware.access_guard import CurrentIdentity, authenticated, identity_uuid
from shutterbox.schemas.auth import ChangePasswordRequest, UpdateProfileRequest, UserResponse
from shutterbox.schemas.common import ErrorResponse, MessageResponse
from shutterbox.schemas.favorite import (
    FavoriteChangeResponse,
    FavoriteKind,
    FavoriteListResponse,
    FavoriteRequest,
    FavoriteStatusResponse,
)
from shutterbox.services.auth_service import auth_service
from shutterbox.services.favorite_service import favorite_service

router = APIRouter(prefix="/api/users", tags=["Users"])

UNAUTHORIZED = {401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}}


@router.get("/me", response_model=UserResponse, responses=UNAUTHORIZED, summary="Current profile")
async def get_me(
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await auth_service.get_profile(db, identity)


@router.put(
    "/me/password",
    response_model=MessageResponse,
    responses={
        **UNAUTHORIZED,
        400: {"description": "Current password is incorrect", "model": ErrorResponse},
    },
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    """
    Requires the current password. Tokens issued before the change stay
    valid until they expire.
    """
    return await auth_service.change_password(db, identity, body)


@router.put(
    "/me/profile",
    response_model=UserResponse,
    responses={
        **UNAUTHORIZED,
        409: {"description": "Username already taken", "model": ErrorResponse},
    },
    summary="Update name, username or profile picture",
)
async def update_profile(
    body: UpdateProfileRequest,
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return await auth_service.update_profile(db, identity, body)


# ── Favorites ─────────────────────────────────────────────────────────────

@router.get("/me/favorites", response_model=FavoriteListResponse, responses=UNAUTHORIZED, summary="List favorites")
async def list_favorites(
    type: FavoriteKind = Query(default=FavoriteKind.PHOTO),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> FavoriteListResponse:
    return await favorite_service.list_favorites(db, identity_uuid(identity), type, page=page, limit=limit)


@router.get(
    "/me/favorites/{item_id}",
    response_model=FavoriteStatusResponse,
    responses=UNAUTHORIZED,
    summary="Is this favorited?",
)
async def check_favorite(
    item_id: UUID,
    type: FavoriteKind = Query(default=FavoriteKind.PHOTO),
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> FavoriteStatusResponse:
    return await favorite_service.is_favorited(db, identity_uuid(identity), type, item_id)


@router.put(
    "/me/favorites",
    response_model=FavoriteChangeResponse,
    responses={
        **UNAUTHORIZED,
        404: {"description": "Photo or product not found", "model": ErrorResponse},
        409: {"description": "Already favorited", "model": ErrorResponse},
    },
    summary="Add a favorite",
)
async def add_favorite(
    body: FavoriteRequest,
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> FavoriteChangeResponse:
    return await favorite_service.add_favorite(db, identity_uuid(identity), body.type, body.id)


@router.delete(
    "/me/favorites/{item_id}",
    response_model=FavoriteChangeResponse,
    responses=UNAUTHORIZED,
    summary="Remove a favorite",
)
async def remove_favorite(
    item_id: UUID,
    type: FavoriteKind = Query(default=FavoriteKind.PHOTO),
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> FavoriteChangeResponse:
    return await favorite_service.remove_favorite(db, identity_uuid(identity), type, item_id)
