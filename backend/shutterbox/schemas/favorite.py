"""
Shutterbox Backend — Favorite Schemas
=======================================

What:  Request/response models for /api/users/me/favorites.
"""

import enum
import uuid
from typing import List, Union

from pydantic import BaseModel

from shutterbox.schemas.common import PageInfo
from shutterbox.schemas.photo import PhotoResponse
from shutterbox.schemas.product import ProductResponse


class FavoriteKind(str, enum.Enum):
    PHOTO = "photo"
    PRODUCT = "product"


class FavoriteRequest(BaseModel):
    id: uuid.UUID
    type: FavoriteKind


class FavoriteChangeResponse(BaseModel):
    message: str
    id: uuid.UUID
    type: FavoriteKind


class FavoriteStatusResponse(BaseModel):
    is_favorited: bool


class FavoriteListResponse(BaseModel):
    type: FavoriteKind
    favorites: Union[List[PhotoResponse], List[ProductResponse]]
    pagination: PageInfo
