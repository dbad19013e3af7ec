"""
Shutterbox Backend — Photo Route Handlers
===========================================

What:  The public photo catalogue and its administrator operations.
Who:   Public gallery pages (list, featured, detail) and the admin dashboard
       (full view, upload, edit, delete).

Access:
    GET  /api/photos, /featured, /{id}      public
    GET  /api/photos/{id}/full              admin
    POST/PUT/DELETE                         admin

    A signed-in `user` calling an admin route gets 403, not 401: the token is
    fine, the role is not.

Upload (POST, multipart/form-data):
    file            image bytes (JPEG, PNG, GIF, WebP)
    title           required, unique
    description     optional
    tags            '["a","b"]' or "a, b"
    is_featured     "true" / "false"
    add_watermark   "true" / "false" (Cloudinary overlay)
    metadata        JSON object (dimensions, location, photographer, date_taken)
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.database import get_db_session
from shutterbox.middleware.access_guard import CurrentIdentity, admin_only
from shutterbox.schemas.common import ErrorResponse
from shutterbox.schemas.photo import (
    PhotoCreateResponse,
    PhotoDeleteResponse,
    PhotoFullResponse,
    PhotoListResponse,
    PhotoResponse,
    PhotoUpdateRequest,
)
from shutterbox.services.photo_service import parse_metadata, photo_service
from shutterbox.services.upload import UploadProvider, get_upload_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/photos", tags=["Photos"])

ADMIN_ERRORS = {
    401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
    403: {"description": "Caller is not an administrator", "model": ErrorResponse},
}
NOT_FOUND = {404: {"description": "Photo not found", "model": ErrorResponse}}


# ── Public ────────────────────────────────────────────────────────────────

@router.get("", response_model=PhotoListResponse, summary="List photos")
async def list_photos(
    response: Response,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=50),
    tag: Optional[str] = Query(default=None, max_length=100, description="Exact tag match"),
    search: Optional[str] = Query(default=None, max_length=200, description="Title/description substring"),
    db: AsyncSession = Depends(get_db_session),
) -> PhotoListResponse:
    """Newest first. Hidden photos are excluded."""
    result = await photo_service.list_photos(db, page=page, limit=limit, tag=tag, search=search)
    response.headers["X-Total-Count"] = str(result.pagination.total_photos)
    response.headers["Cache-Control"] = "public, max-age=60"
    return result


@router.get("/featured", response_model=PhotoListResponse, summary="Featured photos")
async def list_featured(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=6, ge=1, le=20),
    db: AsyncSession = Depends(get_db_session),
) -> PhotoListResponse:
    return await photo_service.list_featured(db, page=page, limit=limit)


@router.get("/{photo_id}", response_model=PhotoResponse, responses=NOT_FOUND, summary="Get a photo")
async def get_photo(
    photo_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> PhotoResponse:
    return await photo_service.get_photo(db, photo_id)


# ── Admin ─────────────────────────────────────────────────────────────────

@router.get(
    "/{photo_id}/full",
    response_model=PhotoFullResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Full-resolution asset details",
)
async def get_photo_full(
    photo_id: UUID,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> PhotoFullResponse:
    return await photo_service.get_photo_full(db, photo_id)


@router.post(
    "",
    status_code=201,
    response_model=PhotoCreateResponse,
    responses={
        **ADMIN_ERRORS,
        400: {"description": "Invalid file, tags or metadata", "model": ErrorResponse},
        409: {"description": "Title already in use", "model": ErrorResponse},
        502: {"description": "Upload provider rejected the file", "model": ErrorResponse},
    },
    summary="Upload a photo",
)
async def create_photo(
    identity: CurrentIdentity = Depends(admin_only),
    file: UploadFile = File(..., description="JPEG, PNG, GIF or WebP image"),
    title: str = Form(..., min_length=1, max_length=200),
    description: Optional[str] = Form(default=None, max_length=1000),
    tags: Optional[str] = Form(default=None),
    is_featured: Optional[str] = Form(default=None),
    add_watermark: Optional[str] = Form(default=None),
    metadata: Optional[str] = Form(default=None),
    provider: UploadProvider = Depends(get_upload_provider),
    db: AsyncSession = Depends(get_db_session),
) -> PhotoCreateResponse:
    try:
        content = await file.read()
    finally:
        await file.close()

    logger.info(
        "Photo upload by %s: filename=%s, size=%d bytes, type=%s",
        identity.id,
        file.filename or "unknown",
        len(content),
        file.content_type,
    )

    photo = await photo_service.create_photo(
        db,
        provider,
        content=content,
        filename=file.filename,
        content_type=file.content_type,
        title=title,
        description=description,
        tags=tags,
        is_featured=is_featured,
        add_watermark=add_watermark,
        metadata=parse_metadata(metadata),
    )
    return PhotoCreateResponse(photo=photo)


@router.put(
    "/{photo_id}",
    response_model=PhotoFullResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND, 409: {"description": "Title already in use", "model": ErrorResponse}},
    summary="Update a photo",
)
async def update_photo(
    photo_id: UUID,
    body: PhotoUpdateRequest,
    identity: CurrentIdentity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
) -> PhotoFullResponse:
    return await photo_service.update_photo(db, photo_id, body)


@router.delete(
    "/{photo_id}",
    response_model=PhotoDeleteResponse,
    responses={**ADMIN_ERRORS, **NOT_FOUND},
    summary="Delete a photo and its stored asset",
)
async def delete_photo(
    photo_id: UUID,
    identity: CurrentIdentity = Depends(admin_only),
    provider: UploadProvider = Depends(get_upload_provider),
    db: AsyncSession = Depends(get_db_session),
) -> PhotoDeleteResponse:
    """The record is always removed; `asset_deleted` reports the storage cleanup."""
    logger.info("Photo %s deleted by %s", photo_id, identity.id)
    return await photo_service.delete_photo(db, provider, photo_id)
