"""
Shutterbox Backend — Product Schemas
======================================

What:  Request/response models for the product catalogue.
Why:   The public view never carries `digital_file_url`; buyers receive the
       download link on their paid order instead.

Money:
    Requests take Decimal (exact, two places). Responses render floats,
    which is what storefront clients expect in JSON.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from shutterbox.schemas.common import PageInfo

ProductKind = Literal["digital", "print"]


class ProductCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    category: str = Field(min_length=1, max_length=100)
    stock: int = Field(default=0, ge=0)
    thumbnail_url: str = Field(max_length=2048)
    tags: Optional[Union[List[str], str]] = None
    type: ProductKind
    is_featured: Optional[Union[bool, str]] = None
    is_latest: Optional[Union[bool, str]] = None
    is_on_sale: Optional[Union[bool, str]] = None
    digital_file_url: Optional[str] = Field(default=None, max_length=2048)
    digital_file_size: Optional[int] = Field(default=None, ge=0)
    digital_format: Optional[str] = Field(default=None, max_length=16)
    print_sizes: List[str] = Field(default_factory=list, max_length=20)
    paper_types: List[str] = Field(default_factory=list, max_length=20)
    frame_options: List[str] = Field(default_factory=list, max_length=20)
    shipping_details: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("name", "description", "category", "thumbnail_url", mode="before")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


class ProductUpdateRequest(BaseModel):
    """Partial update. `type` is fixed at creation."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    stock: Optional[int] = Field(default=None, ge=0)
    thumbnail_url: Optional[str] = Field(default=None, max_length=2048)
    tags: Optional[Union[List[str], str]] = None
    is_featured: Optional[Union[bool, str]] = None
    is_latest: Optional[Union[bool, str]] = None
    is_on_sale: Optional[Union[bool, str]] = None
    digital_file_url: Optional[str] = Field(default=None, max_length=2048)
    digital_file_size: Optional[int] = Field(default=None, ge=0)
    digital_format: Optional[str] = Field(default=None, max_length=16)
    print_sizes: Optional[List[str]] = Field(default=None, max_length=20)
    paper_types: Optional[List[str]] = Field(default=None, max_length=20)
    frame_options: Optional[List[str]] = Field(default=None, max_length=20)
    shipping_details: Optional[str] = Field(default=None, max_length=1000)

    model_config = {"extra": "ignore"}

    @field_validator("name", "description", "category", "thumbnail_url", mode="before")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


class ProductResponse(BaseModel):
    """Public view of a product."""

    id: uuid.UUID
    name: str
    description: str
    price: float
    category: str
    stock: int
    thumbnail_url: str
    tags: List[str] = Field(default_factory=list)
    type: str
    is_featured: bool = False
    is_latest: bool = False
    is_on_sale: bool = False
    digital_file_size: Optional[int] = None
    digital_format: Optional[str] = None
    print_sizes: List[str] = Field(default_factory=list)
    paper_types: List[str] = Field(default_factory=list)
    frame_options: List[str] = Field(default_factory=list)
    shipping_details: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProductFullResponse(ProductResponse):
    """Administrator view, including the download file location."""

    digital_file_url: Optional[str] = None
    updated_at: Optional[datetime] = None


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    pagination: PageInfo
