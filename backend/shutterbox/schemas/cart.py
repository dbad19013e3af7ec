"""
Shutterbox Backend — Cart Schemas
===================================

What:  Request/response models for the signed-in user's cart.
"""

import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from shutterbox.schemas.product import ProductResponse

LineType = Literal["digital", "print", "mixed"]


class SelectedOptions(BaseModel):
    """Print choices; each must be one the product offers."""

    size: Optional[str] = Field(default=None, max_length=50)
    paper_type: Optional[str] = Field(default=None, max_length=50)
    frame_option: Optional[str] = Field(default=None, max_length=50)


class CartAddRequest(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(default=1, ge=1, le=100)
    type: Optional[LineType] = None
    selected_options: Optional[SelectedOptions] = None


class CartRemoveRequest(BaseModel):
    product_id: uuid.UUID


class CartLine(BaseModel):
    product: ProductResponse
    quantity: int
    type: str
    selected_options: SelectedOptions
    line_total: float


class CartResponse(BaseModel):
    items: List[CartLine] = Field(default_factory=list)
    item_count: int = 0
    subtotal: float = 0.0


class CartUpdateResponse(BaseModel):
    message: str
    cart: CartResponse
