"""
Shutterbox Backend — Auth Service (Identity Workflows)
========================================================

What:  Registration, login, and the signed-in user's own account operations.
How:   Composes the CredentialStore (hashing) and TokenService (tokens) over
       the `users` table.
Who:   Called by the /api/auth and /api/users route handlers.

Registration / Login Flow:
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐    ┌─────────┐
    │ Register │───▶│ set_password │───▶│ seal (bcrypt)│───▶│  flush  │──▶ token
    └──────────┘    └──────────────┘    └──────────────┘    └─────────┘
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐
    │  Login   │───▶│ lookup email │───▶│   compare    │──▶ token
    └──────────┘    └──────────────┘    └──────────────┘

Login failures are indistinguishable: unknown email and wrong password both
raise CredentialMismatchError("Invalid credentials").

Password change does not revoke tokens. Tokens already issued keep working
until they expire; see token_service for the reasoning.

Design Decision:
    AuthService is stateless apart from its two collaborators. It receives a
    session per call, so each request's work stays inside its own transaction.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.exceptions import (
    ConflictError,
    CredentialMismatchError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from shutterbox.middleware.access_guard import CurrentIdentity
from shutterbox.models.user import Role, User
from shutterbox.schemas.auth import (
    AuthCheckResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UpdateProfileRequest,
    UserResponse,
)
from shutterbox.schemas.common import MessageResponse
from shutterbox.services.credential_store import CredentialStore, credential_store
from shutterbox.services.token_service import TokenService, token_service

logger = logging.getLogger(__name__)


class AuthService:
    """
    Identity workflows.

    Args:
        credentials: Hashing backend (tests pass a low-rounds instance).
        tokens: Token issuer (tests pass one with a fixed clock/key).
    """

    def __init__(self, credentials: CredentialStore, tokens: TokenService):
        self.credentials = credentials
        self.tokens = tokens

    def issue_token(self, user: User) -> str:
        return self.tokens.issue(
            identity_id=user.id,
            role=user.role,
            email=user.email,
            username=user.username,
        )

    async def register(self, db: AsyncSession, request: RegisterRequest) -> TokenResponse:
        """
        Create a standard account and sign the caller in.

        Raises:
            ConflictError: email or username already taken (→ 409)
            DatabaseError: persistence failed (→ 500)
        """
        result = await db.execute(
            select(User).where(or_(User.email == request.email, User.username == request.username))
        )
        existing = result.scalars().first()
        if existing is not None:
            field = "email" if existing.email == request.email else "username"
            logger.info("Registration rejected: %s already taken", field)
            raise ConflictError(resource="user", field=field)

        user = User(
            id=uuid.uuid4(),
            username=request.username,
            first_name=request.first_name,
            last_name=request.last_name,
            email=request.email,
            role=Role.USER.value,
        )
        user.set_password(request.password)
        await self.credentials.seal(user)

        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same name
            logger.info("Registration hit unique constraint: %s", type(e).__name__)
            raise ConflictError(resource="user", field="email or username")
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", e, exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("Registered user %s (%s)", user.id, user.username)
        return TokenResponse(token=self.issue_token(user), message="User registered successfully")

    async def login(self, db: AsyncSession, request: LoginRequest) -> TokenResponse:
        """
        Exchange email + password for a token.

        Raises:
            CredentialMismatchError: unknown email or wrong password (→ 401)
        """
        result = await db.execute(select(User).where(User.email == request.email))
        user: Optional[User] = result.scalar_one_or_none()

        if user is None or not await self.credentials.compare_async(request.password, user.password_hash):
            logger.info("Login failed")
            raise CredentialMismatchError()

        logger.info("User %s logged in", user.id)
        return TokenResponse(token=self.issue_token(user))

    async def _load_user(self, db: AsyncSession, identity: CurrentIdentity) -> User:
        try:
            user_id = uuid.UUID(identity.id)
        except ValueError:
            raise NotFoundError(resource="user", resource_id=identity.id)

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            # Token outlived its account
            raise NotFoundError(resource="user", resource_id=identity.id)
        return user

    async def check(self, db: AsyncSession, identity: CurrentIdentity) -> AuthCheckResponse:
        user = await self._load_user(db, identity)
        return AuthCheckResponse(is_authenticated=True, user=UserResponse.model_validate(user))

    async def get_profile(self, db: AsyncSession, identity: CurrentIdentity) -> UserResponse:
        user = await self._load_user(db, identity)
        return UserResponse.model_validate(user)

    async def change_password(
        self,
        db: AsyncSession,
        identity: CurrentIdentity,
        request: ChangePasswordRequest,
    ) -> MessageResponse:
        """
        Replace the caller's password after re-checking the current one.

        Raises:
            ValidationError: current password is wrong (→ 400)
        """
        user = await self._load_user(db, identity)
        if not await self.credentials.compare_async(request.current_password, user.password_hash):
            raise ValidationError(message="Current password is incorrect", field="current_password")

        user.set_password(request.new_password)
        await self.credentials.seal(user)
        await db.flush()

        logger.info("Password changed for user %s", user.id)
        return MessageResponse(message="Password updated successfully")

    async def update_profile(
        self,
        db: AsyncSession,
        identity: CurrentIdentity,
        request: UpdateProfileRequest,
    ) -> UserResponse:
        """Apply the fields present in the request body to the caller's account."""
        user = await self._load_user(db, identity)
        changes = request.model_dump(exclude_unset=True)

        new_username = changes.get("username")
        if new_username is not None and new_username != user.username:
            result = await db.execute(
                select(User.id).where(User.username == new_username, User.id != user.id)
            )
            if result.scalar_one_or_none() is not None:
                raise ConflictError(resource="user", field="username")

        for field, value in changes.items():
            if value is not None:
                setattr(user, field, value)

        await db.flush()
        logger.info("Profile updated for user %s: %s", user.id, sorted(changes))
        return UserResponse.model_validate(user)


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService(credentials=credential_store, tokens=token_service)
