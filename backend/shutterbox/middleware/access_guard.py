"""
Shutterbox Backend — Access Guard
===================================

What:  Request-boundary authentication and role check for protected routes.
How:   A FastAPI dependency. It reads the Authorization header, asks the
       TokenService to verify the token, checks the role set, and either
       raises (request denied, handler never runs) or returns the caller's
       CurrentIdentity.
Who:   Declared on every protected route, e.g.
           identity: CurrentIdentity = Depends(admin_only)

State Machine:
    UNAUTHENTICATED ──(token verifies)──▶ AUTHENTICATED_NO_ROLE
                                               │
                             (role ∈ required, or no roles required)
                                               ▼
                                     AUTHENTICATED_ROLE_OK  ──▶ admit

    Terminal outcomes:
        UNAUTHENTICATED        → AuthenticationError (401)
        AUTHENTICATED_NO_ROLE  → AuthorizationError  (403)
        AUTHENTICATED_ROLE_OK  → handler runs with request.state.identity set

    There are no retries: a denied request must come back with a new token.

Token Carrier:
    Authorization: Bearer <token>      (standard)
    Authorization: <token>             (bare token, accepted for older clients)

Why a dependency rather than Starlette middleware:
    Role requirements differ per route. A dependency is configured right on
    the route declaration, shows up in the OpenAPI schema, and runs before
    the route's own dependencies (e.g. the DB session) when declared first.

Ownership:
    Routes that serve one user's records (orders) admit any authenticated
    caller, then ensure_owner_or_admin() compares the record owner with the
    token identity.
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Union

from fastapi import Header, Request

from shutterbox.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from shutterbox.models.user import Role
from shutterbox.services.token_service import (
    InvalidToken,
    TokenFailure,
    TokenService,
    token_service,
)

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "

FAILURE_MESSAGES = {
    TokenFailure.MISSING: "Access denied. No token provided.",
    TokenFailure.MALFORMED: "Invalid token format.",
    TokenFailure.BAD_SIGNATURE: "Invalid token.",
    TokenFailure.EXPIRED: "Token expired.",
}


class GuardState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_NO_ROLE = "authenticated_no_role"
    AUTHENTICATED_ROLE_OK = "authenticated_role_ok"


@dataclass(frozen=True)
class CurrentIdentity:
    """Who is calling, as proven by the token. The only source of caller identity."""

    id: str
    role: str
    email: Optional[str] = None
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    identity: Optional[CurrentIdentity] = None
    failure: Optional[TokenFailure] = None

    @property
    def admitted(self) -> bool:
        return self.state is GuardState.AUTHENTICATED_ROLE_OK


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an Authorization header value.

    Returns None when the header is absent, "" when it only carries the
    scheme, and the token otherwise.
    """
    if authorization is None:
        return None
    value = authorization.strip()
    if value.lower().startswith(BEARER_PREFIX):
        return value[len(BEARER_PREFIX):].strip()
    if value.lower() == BEARER_PREFIX.strip():
        return ""
    return value


class AccessGuard:
    """
    Configurable authentication/authorization dependency.

    Args:
        service: TokenService used to verify tokens (injected for testability).
        roles: Roles allowed through. Empty means any authenticated caller.
    """

    def __init__(self, service: TokenService, roles: Iterable[Union[Role, str]] = ()):
        self.token_service = service
        self.roles: FrozenSet[str] = frozenset(
            r.value if isinstance(r, Role) else str(r) for r in roles
        )

    def evaluate(self, authorization: Optional[str]) -> GuardDecision:
        """Run the state machine on a header value. Pure; never raises."""
        result = self.token_service.verify(extract_token(authorization))
        if isinstance(result, InvalidToken):
            return GuardDecision(GuardState.UNAUTHENTICATED, failure=result.reason)

        identity = CurrentIdentity(
            id=result.identity_id,
            role=result.role,
            email=result.email,
            username=result.username,
        )
        if self.roles and identity.role not in self.roles:
            return GuardDecision(GuardState.AUTHENTICATED_NO_ROLE, identity=identity)
        return GuardDecision(GuardState.AUTHENTICATED_ROLE_OK, identity=identity)

    async def __call__(
        self,
        request: Request,
        authorization: Optional[str] = Header(default=None),
    ) -> CurrentIdentity:
        decision = self.evaluate(authorization)

        if decision.state is GuardState.UNAUTHENTICATED:
            failure = decision.failure or TokenFailure.MALFORMED
            logger.info(
                "Authentication failed on %s %s: %s",
                request.method,
                request.url.path,
                failure.value,
            )
            raise AuthenticationError(message=FAILURE_MESSAGES[failure], reason=failure.value)

        identity = decision.identity
        if decision.state is GuardState.AUTHENTICATED_NO_ROLE:
            logger.warning(
                "Authorization failed on %s %s: user %s has role %r, requires %s",
                request.method,
                request.url.path,
                identity.id,
                identity.role,
                sorted(self.roles),
            )
            raise AuthorizationError(required_roles=self.roles, role=identity.role)

        request.state.identity = identity
        logger.debug("Admitted user %s (role=%s)", identity.id, identity.role)
        return identity


def require_roles(*roles: Union[Role, str]) -> AccessGuard:
    """Guard bound to the process-wide TokenService."""
    return AccessGuard(token_service, roles)


# Shared guards for route declarations
authenticated = require_roles()
admin_only = require_roles(Role.ADMIN)


def identity_uuid(identity: CurrentIdentity) -> uuid.UUID:
    """The caller's account id as a UUID. A token naming no real account id is a missing user."""
    try:
        return uuid.UUID(identity.id)
    except ValueError:
        raise NotFoundError(resource="user", resource_id=identity.id)


def ensure_owner_or_admin(identity: CurrentIdentity, owner_id: uuid.UUID, resource: str = "record") -> None:
    """
    Admit administrators and the record's owner; refuse everyone else with 403.

    Ownership comes from the stored record and the token, never from the
    request body or path.
    """
    if identity.is_admin or identity.id.lower() == str(owner_id):
        return
    logger.warning("User %s denied access to another user's %s", identity.id, resource)
    raise AuthorizationError(
        required_roles=[Role.ADMIN.value],
        role=identity.role,
        message=f"Access denied. You can only view your own {resource}s.",
    )
