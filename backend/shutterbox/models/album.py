"""
Shutterbox Backend — Album SQLAlchemy Model
=============================================

What:  ORM model for `albums`: curated, titled groups of catalogue photos.
Why:   Photos belong to any number of albums, so membership lives in the
       `album_photos` association table rather than on either row.

Query Patterns:
    - Newest first listing:    ORDER BY created_at DESC  → idx_albums_created_at
    - Featured strip:          WHERE is_featured          → idx_albums_featured
    - Tag filter:              tags @> '["tag"]'         → idx_albums_tags (GIN)
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Table, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shutterbox.database import Base
from shutterbox.models.photo import Photo

album_photos = Table(
    "album_photos",
    Base.metadata,
    Column("album_id", UUID(as_uuid=True), ForeignKey("albums.id", ondelete="CASCADE"), primary_key=True),
    Column("photo_id", UUID(as_uuid=True), ForeignKey("photos.id", ondelete="CASCADE"), primary_key=True),
)


class Album(Base):
    """A titled collection of photos with its own cover image."""

    __tablename__ = "albums"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_image_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    tags: Mapped[List[str]] = mapped_column(
        JSONB, nullable=False, default=list, server_default=text("'[]'::jsonb")
    )
    is_featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_hidden: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    # Survives the creator's account being deleted
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    photos: Mapped[List[Photo]] = relationship(
        secondary=album_photos,
        lazy="selectin",
        order_by=Photo.created_at.desc(),
    )

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
        Index("idx_albums_created_at", created_at.desc()),
        Index("idx_albums_featured", "is_featured"),
        Index("idx_albums_tags", "tags", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<Album(id={self.id}, title='{self.title}', photos={len(self.photos)})>"
