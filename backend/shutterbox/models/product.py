"""
Shutterbox Backend — Product SQLAlchemy Model
===============================================

What:  ORM model for `products`: things the storefront sells.
Why:   Two kinds share one table. A `digital` product carries a download
       file; a `print` product carries the size, paper and frame choices a
       buyer picks from. Columns for the other kind stay empty.

Prices are NUMERIC(10, 2) and handled as Decimal end to end; floats only
appear in JSON responses.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from shutterbox.database import Base


class ProductType(str, enum.Enum):
    DIGITAL = "digital"
    PRINT = "print"


class Product(Base):
    """A sellable digital download or physical print."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    thumbnail_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    tags: Mapped[List[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)

    # ── Display flags ─────────────────────────────────────────────────────
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_latest: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_on_sale: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # ── Digital download ──────────────────────────────────────────────────
    digital_file_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    digital_file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    digital_format: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # ── Print options ─────────────────────────────────────────────────────
    print_sizes: Mapped[List[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    paper_types: Mapped[List[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    frame_options: Mapped[List[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    shipping_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("type IN ('digital', 'print')", name="ck_products_type"),
        CheckConstraint("price > 0", name="ck_products_price"),
        CheckConstraint("stock >= 0", name="ck_products_stock"),
        Index("idx_products_created_at", created_at.desc()),
        Index("idx_products_category", "category"),
        Index("idx_products_tags", "tags", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', type='{self.type}')>"
