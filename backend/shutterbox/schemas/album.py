"""
Shutterbox Backend — Album Schemas
====================================

What:  Request/response models for albums.
Why:   Bodies are JSON, but tags and flags still accept the loose forms the
       photo upload form does ("a, b", "true"), so admin tooling can reuse
       one code path. The service normalizes them.
"""

import uuid
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from shutterbox.schemas.common import PageInfo

MAX_ALBUM_PHOTOS = 100


class AlbumCreateRequest(BaseModel):
    # Title characters and blank titles are checked by the service
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    cover_image_url: str = Field(max_length=2048)
    photo_ids: List[uuid.UUID] = Field(default_factory=list, max_length=MAX_ALBUM_PHOTOS)
    tags: Optional[Union[List[str], str]] = None
    is_featured: Optional[Union[bool, str]] = None
    is_hidden: Optional[Union[bool, str]] = None

    @field_validator("title", "description", "cover_image_url", mode="before")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


class AlbumUpdateRequest(BaseModel):
    """Partial update; fields left out keep their value."""

    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    cover_image_url: Optional[str] = Field(default=None, max_length=2048)
    photo_ids: Optional[List[uuid.UUID]] = Field(default=None, max_length=MAX_ALBUM_PHOTOS)
    tags: Optional[Union[List[str], str]] = None
    is_featured: Optional[Union[bool, str]] = None
    is_hidden: Optional[Union[bool, str]] = None

    model_config = {"extra": "ignore"}

    @field_validator("title", "description", "cover_image_url", mode="before")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


class AlbumPhoto(BaseModel):
    """The slice of a photo an album page needs."""

    id: uuid.UUID
    title: str
    image_url: str
    thumbnail_url: str

    model_config = {"from_attributes": True}


class AlbumResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    cover_image_url: str
    tags: List[str] = Field(default_factory=list)
    is_featured: bool = False
    photos: List[AlbumPhoto] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AlbumFullResponse(AlbumResponse):
    is_hidden: bool = False
    created_by: Optional[uuid.UUID] = None


class AlbumListResponse(BaseModel):
    albums: List[AlbumResponse]
    pagination: PageInfo
