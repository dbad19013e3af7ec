"""
Shutterbox Backend — Photo Schemas
====================================

What:  Request/response models for the photo catalogue.
Why:   Public listings and the admin view expose different fields. Public
       responses never include the storage id or the hidden flag's effects.

Pagination:
    Offset-based (page/limit). The catalogue is small and curated, and the
    storefront shows numbered pages, which cursors cannot provide.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

TITLE_PATTERN = r"^[a-zA-Z0-9\s\-_.,!?()'\"]+$"
MAX_DIMENSION = 50_000
EARLIEST_DATE_TAKEN = datetime(1826, 1, 1, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PhotoMetadata(BaseModel):
    """
    Client-supplied image metadata sent with an upload (JSON form field).

    Dimensions reported by the upload provider take precedence; these fill
    the gaps and carry what only the photographer knows.
    """

    width: Optional[int] = Field(default=None, ge=0, le=MAX_DIMENSION)
    height: Optional[int] = Field(default=None, ge=0, le=MAX_DIMENSION)
    original_width: Optional[int] = Field(default=None, ge=0, le=MAX_DIMENSION)
    original_height: Optional[int] = Field(default=None, ge=0, le=MAX_DIMENSION)
    original_size_kb: Optional[float] = Field(default=None, ge=0)
    size_kb: Optional[float] = Field(default=None, ge=0)
    format: Optional[str] = Field(default=None, max_length=32)
    location: Optional[str] = Field(default=None, max_length=200)
    photographer: Optional[str] = Field(default=None, max_length=100)
    date_taken: Optional[datetime] = None

    @field_validator("date_taken")
    @classmethod
    def validate_date_taken(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        if v > datetime.now(timezone.utc):
            raise ValueError("Date taken cannot be in the future")
        if v < EARLIEST_DATE_TAKEN:
            raise ValueError("Date taken is too old")
        return v


class PhotoUpdateRequest(BaseModel):
    """
    Partial update. Only the fields listed here can be changed; anything
    else in the body is ignored. Tags and booleans accept the same loose
    forms as the upload form and are normalized by the service.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=200, pattern=TITLE_PATTERN)
    description: Optional[str] = Field(default=None, max_length=1000)
    tags: Optional[Union[List[str], str]] = None
    is_featured: Optional[Union[bool, str]] = None
    is_hidden: Optional[Union[bool, str]] = None
    photographer: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=200)

    model_config = {"extra": "ignore"}

    @field_validator("title", "description", "photographer", "location", mode="before")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PhotoResponse(BaseModel):
    """Public view of a catalogue photo."""

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_featured: bool = False
    image_url: str
    thumbnail_url: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    location: Optional[str] = None
    photographer: Optional[str] = None
    date_taken: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PhotoFullResponse(PhotoResponse):
    """Administrator view: full-resolution asset details and storage location."""

    is_hidden: bool = False
    storage_id: str
    provider: str
    original_width: Optional[int] = None
    original_height: Optional[int] = None
    original_size_kb: Optional[float] = None
    size_kb: Optional[float] = None
    updated_at: Optional[datetime] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_photos: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


class PhotoListResponse(BaseModel):
    photos: List[PhotoResponse]
    pagination: Pagination


class PhotoCreateResponse(BaseModel):
    message: str = "Photo uploaded successfully"
    photo: PhotoFullResponse


class PhotoDeleteResponse(BaseModel):
    """
    Outcome of a delete. `asset_deleted` is False when the stored file could
    not be removed; the record is gone either way.
    """

    message: str = "Photo deleted successfully"
    id: uuid.UUID
    asset_deleted: bool
