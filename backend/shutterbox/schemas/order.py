"""
Shutterbox Backend — Order Schemas
====================================

What:  Request/response models for checkout and order administration.
Why:   Customers only ever send a shipping address; everything else on an
       order is derived from their cart or set by an administrator.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from shutterbox.models.order import OrderStatus
from shutterbox.schemas.cart import SelectedOptions
from shutterbox.schemas.common import PageInfo


class ShippingAddress(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=100)
    street: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = Field(default=None, max_length=100)
    zip: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)


class OrderCreateRequest(BaseModel):
    shipping_address: Optional[ShippingAddress] = None


class OrderStatusRequest(BaseModel):
    status: OrderStatus


class OrderUpdateRequest(BaseModel):
    """Administrator edit. Items and totals are fixed at checkout."""

    status: Optional[OrderStatus] = None
    is_free_shipping: Optional[bool] = None
    shipping_address: Optional[ShippingAddress] = None
    payment_id: Optional[str] = Field(default=None, max_length=255)
    payment_method: Optional[str] = Field(default=None, max_length=50)
    paid_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}


class OrderItemResponse(BaseModel):
    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    product_type: str
    quantity: int
    unit_price: float
    selected_options: SelectedOptions
    # Withheld until the order is paid
    download_link: Optional[str] = None


class OrderResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    status: str
    total_price: float
    is_free_shipping: bool = False
    shipping_address: ShippingAddress
    payment_id: Optional[str] = None
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None
    items: List[OrderItemResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderCreateResponse(BaseModel):
    message: str = "Order created"
    order: OrderResponse


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    pagination: PageInfo
