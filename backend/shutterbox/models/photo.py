"""
Shutterbox Backend — Photo SQLAlchemy Model
=============================================

What:  ORM model for the `photos` table (the storefront's image catalogue).
Why:   Each row points at one asset held by an upload provider. The row
       references the asset, it does not own the bytes: `storage_id` plus
       `provider` is everything needed to delete the asset later, even after
       the deployment has switched to a different provider.

Query Patterns:
    - Newest first listing:    ORDER BY created_at DESC  → idx_photos_created_at
    - Featured strip:          WHERE is_featured          → idx_photos_featured
    - Tag filter:              tags @> '["tag"]'         → idx_photos_tags (GIN)
    - Search:                  ILIKE on title, description (small catalogue, no index)
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, Float, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from shutterbox.database import Base


class Photo(Base):
    """A catalogue photo and the provider asset backing it."""

    __tablename__ = "photos"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[List[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_hidden: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # ── Provider asset ────────────────────────────────────────────────────
    image_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    thumbnail_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    storage_id: Mapped[str] = mapped_column(String(512), nullable=False)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)

    # ── Image metadata ────────────────────────────────────────────────────
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    original_width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    original_height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    original_size_kb: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    size_kb: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    format: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    photographer: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    date_taken: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

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
        Index("idx_photos_created_at", created_at.desc()),
        Index("idx_photos_featured", "is_featured"),
        Index("idx_photos_tags", "tags", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<Photo(id={self.id}, title='{self.title}', provider='{self.provider}')>"
