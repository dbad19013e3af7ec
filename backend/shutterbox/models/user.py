"""
Shutterbox Backend — User SQLAlchemy Model
============================================

What:  ORM model for the `users` table: the identity behind every token.
Who:   Written by AuthService (register, password change); read by login and
       the /me endpoints. The access guard never loads it; tokens carry
       everything the guard needs.

Secret Handling:
    The raw password never touches a mapped column. set_password() parks it
    in a plain instance attribute and flips `secret_state` to PENDING_HASH.
    CredentialStore.seal() performs the single PENDING_HASH → HASHED
    transition, writing `password_hash`. A mapper event refuses to flush a
    record that is still PENDING_HASH, so a forgotten seal() fails loudly
    instead of persisting garbage.

    Rows loaded from the database start HASHED (see _init_on_load), which is
    what makes "hash exactly once per secret-setting event" hold: loading,
    editing a name and saving again never re-hashes.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, event, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, reconstructor, validates

from shutterbox.database import Base


class Role(str, enum.Enum):
    """Closed set of account roles carried in tokens."""

    USER = "user"
    ADMIN = "admin"


class SecretState(enum.Enum):
    """Whether the in-memory secret still needs hashing."""

    PENDING_HASH = "pending_hash"
    HASHED = "hashed"


class User(Base):
    """A registered storefront account."""

    __tablename__ = "users"

    # Non-persisted secret tracking; see module docstring
    secret_state = SecretState.HASHED
    _pending_secret = None

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)

    # Stored lower-cased; the unique index therefore behaves case-insensitively
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)

    # bcrypt output is 60 chars ("$2b$12$" + 22 salt + 31 hash)
    password_hash: Mapped[str] = mapped_column(String(72), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.USER.value,
        server_default=text("'user'"),
    )
    profile_picture: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

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

    @reconstructor
    def _init_on_load(self) -> None:
        self.secret_state = SecretState.HASHED
        self._pending_secret = None

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()

    def set_password(self, raw: str) -> None:
        """Park a new secret for hashing. Nothing is hashed until seal()."""
        self._pending_secret = raw
        self.secret_state = SecretState.PENDING_HASH

    def take_pending_secret(self) -> Optional[str]:
        """Hand the parked secret to the credential store and forget it."""
        raw, self._pending_secret = self._pending_secret, None
        return raw

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"


@event.listens_for(User, "before_insert")
@event.listens_for(User, "before_update")
def _refuse_unhashed_secret(mapper, connection, target: User) -> None:
    if target.secret_state is SecretState.PENDING_HASH:
        raise ValueError(
            f"User {target.username!r} has a password that was never sealed; "
            "call CredentialStore.seal() before flushing"
        )
