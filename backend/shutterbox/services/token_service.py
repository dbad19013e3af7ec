"""
Shutterbox Backend — Token Service
====================================

What:  Issues and verifies signed, time-limited identity tokens (JWT, HS256).
Who:   AuthService calls issue() after register/login; the access guard calls
       verify() on every protected request.
How:   PyJWT signs {id, role, email, username, iat, exp} with the server key.

Verification contract:
    verify() never raises. It returns either TokenClaims or InvalidToken with
    a TokenFailure reason, so the guard can tell the caller *why* it was
    turned away:

        MISSING        no token at all (header absent or blank)
        MALFORMED      not a JWT, or a JWT without the id/exp claims
        BAD_SIGNATURE  signature does not match our key (tampered or foreign)
        EXPIRED        signature fine, but now >= exp

    The signature is checked before expiry. A token that is both tampered
    and old reports BAD_SIGNATURE; we never trust the exp of a forged token.

No revocation:
    Tokens are stateless. A password change, role change or logout leaves
    outstanding tokens valid until their embedded exp. The only global kill
    switch is rotating JWT_SECRET. Adding a deny-list would change the
    security model and is intentionally not done here.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Union

import jwt

from shutterbox.config import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenFailure(str, enum.Enum):
    """Why a token was rejected."""

    MISSING = "missing"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenClaims:
    """The verified contents of a token."""

    identity_id: str
    role: str
    issued_at: datetime
    expires_at: datetime
    email: Optional[str] = None
    username: Optional[str] = None


@dataclass(frozen=True)
class InvalidToken:
    """A rejected token and the reason it was rejected."""

    reason: TokenFailure
    detail: str = ""


VerifyResult = Union[TokenClaims, InvalidToken]


class TokenService:
    """
    Stateless JWT issuer/verifier.

    The signing key, algorithm, lifetime and clock are all injected, so tests
    can build a service with a fixed clock and a throwaway key. The service
    holds no per-request state and is safe to share across concurrent requests.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=7),
        clock: Clock = utc_now,
    ):
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret key")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self._clock = clock

    def issue(
        self,
        identity_id: Any,
        role: str,
        email: Optional[str] = None,
        username: Optional[str] = None,
    ) -> str:
        """
        Sign a new token for an identity.

        Args:
            identity_id: User primary key (stringified into the `id` claim).
            role: Role string carried into the guard's role check.
            email, username: Optional display claims surfaced to handlers.

        Returns:
            Compact JWT string.
        """
        now = self._clock()
        payload: Dict[str, Any] = {
            "id": str(identity_id),
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        if email is not None:
            payload["email"] = email
        if username is not None:
            payload["username"] = username

        token = jwt.encode(payload, self._secret_key, algorithm=self.algorithm)
        logger.debug("Issued token for identity %s (role=%s)", payload["id"], role)
        return token

    def verify(self, token: Optional[str]) -> VerifyResult:
        """
        Check signature and expiry. Never raises.

        Expiry is compared against the injected clock rather than PyJWT's
        wall clock, so the boundary is exact and testable.
        """
        if token is None or not token.strip():
            return InvalidToken(TokenFailure.MISSING, "No token provided")

        try:
            claims = jwt.decode(
                token.strip(),
                self._secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["id", "exp"]},
            )
        # InvalidSignatureError subclasses DecodeError; it must be caught first
        except jwt.InvalidSignatureError as e:
            return InvalidToken(TokenFailure.BAD_SIGNATURE, str(e))
        except (jwt.DecodeError, jwt.MissingRequiredClaimError) as e:
            return InvalidToken(TokenFailure.MALFORMED, str(e))
        except jwt.InvalidTokenError as e:
            # Remaining PyJWT failures (bad iat, unsupported alg, ...) are format problems
            return InvalidToken(TokenFailure.MALFORMED, str(e))

        try:
            expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
            issued_at = datetime.fromtimestamp(int(claims.get("iat", claims["exp"])), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as e:
            return InvalidToken(TokenFailure.MALFORMED, f"Unreadable timestamp claim: {e}")

        if not claims.get("id"):
            return InvalidToken(TokenFailure.MALFORMED, "Token has an empty id claim")

        if self._clock() >= expires_at:
            return InvalidToken(TokenFailure.EXPIRED, "Token expired")

        return TokenClaims(
            identity_id=str(claims["id"]),
            role=str(claims.get("role") or ""),
            issued_at=issued_at,
            expires_at=expires_at,
            email=claims.get("email"),
            username=claims.get("username"),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
# Key and lifetime are fixed at startup; the instance is read-only afterwards
token_service = TokenService(
    secret_key=settings.jwt_secret,
    algorithm=settings.jwt_algorithm,
    ttl=timedelta(days=settings.token_ttl_days),
)
