"""
Shutterbox Backend — Album Route Handlers
===========================================

What:  Curated albums of catalogue photos.
Who:   Gallery pages read albums; the admin dashboard curates them.

Access:
    GET  /api/albums, /featured, /{id}      public (hidden albums → 404)
    POST/PUT/DELETE                         admin
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.database import get_db_session
from shutterbox.middleware.access_guard import CurrentIdentity, admin_only, identity_uuid
from shutterbox.schemas.album import (
    AlbumCreateRequest,
    AlbumFullResponse,
    AlbumListResponse,
    AlbumResponse,
    AlbumUpdateRequest,
)
from shutterbox.schemas.common import ErrorResponse, MessageResponse
from shutterbox.services.album_service import album_service

router = APIRouter(prefix="/api/albums", tags=["Albums"])

ADMIN_ERRORS = {
    401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
    403: {"description": "Caller is not an administrator", "model": ErrorResponse},
}
NOT_FOUND = {404: {"description": "Album not found", "model": ErrorResponse}}
CONFLICT = {409: {"description": "Album title already in use", "model": ErrorResponse}}


# ── Public ────────────────────────────────────────────────────────────────

@router.get("", response_model=AlbumListResponse, summary="List albums")
async def list_albums(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=20),
    tag: Optional[str] = Query(default=None, max_length=100),
    search: Optional[str] = Query(default=None, max_length=200, description="Title, description or tag substring"),
    db: AsyncSession = Depends(get_db_session),
) -> AlbumListResponse:
    return await album_service.list_albums(db, page=page, limit=limit, tag=tag, search=search)


@router.get("/featured", response_model=AlbumListResponse, summary="Featured albums")
async def list_featured(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=5, ge=1, le=10),
    db: AsyncSession = Depends(get_db_session),
) -> AlbumListResponse:
    return await album_service.list_featured(db, page=page, limit=limit)


@router.get("/{album_id}", response_model=AlbumResponse, responses=NOT_FOUND, summary="Get an album")
async def get_album(
    album_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> AlbumResponse:
    return await album_service.get_album(db, album_id)


# ── Admin ─────────────────────────────────────────────────────────────────

@router.post(
    "",
    status_code=201,
    response_model=AlbumFullResponse,
    responses={
        **ADMIN_ERRORS,
        **CONFLICT,
        400: {"description": "Invalid title, cover URL, tags or photo ids", "model": ErrorResponse},
    },
    summary="Create an album",
)
async def create_album(
    body: AlbumCreateRequest,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> AlbumFullResponse:
    return await album_service.create_album(db, identity_uuid(identity), body)


@router.put(
    "/{album_id}",
    response_model=AlbumFullResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND, **CONFLICT},
    summary="Update an album",
)
async def update_album(
    album_id: UUID,
    body: AlbumUpdateRequest,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> AlbumFullResponse:
    """`photo_ids`, when given, replaces the album's photos in that order."""
    return await album_service.update_album(db, album_id, body)


@router.delete(
    "/{album_id}",
    response_model=MessageResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Delete an album",
)
async def delete_album(
    album_id: UUID,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await album_service.delete_album(db, album_id)
