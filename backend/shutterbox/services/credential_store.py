"""
Shutterbox Backend — Credential Store
=======================================

What:  One-way, salted, deliberately slow password hashing (bcrypt).
Who:   AuthService on register, login and password change.
How:   bcrypt.hashpw with a fresh gensalt() per call; checkpw for comparison.

Contract:
    hash(secret)             -> "$2b$<rounds>$<salt><hash>"
    compare(candidate, hash) -> bool, constant time in the secret's content
                                (delegated to bcrypt.checkpw)
    seal(user)               -> performs the PENDING_HASH → HASHED transition
                                on a User exactly once

bcrypt only looks at the first 72 bytes of input, and current releases reject
longer input outright. hash() refuses such secrets with a ValidationError
instead of silently truncating them; compare() treats them as a mismatch
since nothing this store produced can match them.

Hashing is CPU-bound (≈250ms at 12 rounds). The async wrappers run it in
Starlette's thread pool so one login does not stall every other request on
the event loop.
"""

import logging

import bcrypt
from fastapi.concurrency import run_in_threadpool

from shutterbox.config import settings
from shutterbox.exceptions import ValidationError
from shutterbox.models.user import SecretState, User

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


class CredentialStore:
    """bcrypt hashing with a fixed work factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, secret: str) -> str:
        encoded = secret.encode("utf-8")
        if not encoded:
            raise ValidationError(message="Password cannot be empty", field="password")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise ValidationError(
                message=f"Password must be at most {BCRYPT_MAX_BYTES} bytes",
                field="password",
            )
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def compare(self, candidate: str, hashed: str) -> bool:
        encoded = candidate.encode("utf-8")
        if not encoded or len(encoded) > BCRYPT_MAX_BYTES or not hashed:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("ascii"))
        except ValueError:
            # Stored value is not a bcrypt hash (corrupt row or legacy data)
            logger.error("Stored password hash is not a valid bcrypt hash")
            return False

    async def hash_async(self, secret: str) -> str:
        return await run_in_threadpool(self.hash, secret)

    async def compare_async(self, candidate: str, hashed: str) -> bool:
        return await run_in_threadpool(self.compare, candidate, hashed)

    async def seal(self, user: User) -> bool:
        """
        Hash the user's parked secret if, and only if, one is pending.

        Returns:
            True when a hash was written, False when the record was already
            HASHED (a no-op, never a re-hash of the existing hash).
        """
        if user.secret_state is not SecretState.PENDING_HASH:
            return False

        raw = user.take_pending_secret()
        if raw is None:
            raise ValueError("User is PENDING_HASH but holds no secret")

        user.password_hash = await self.hash_async(raw)
        user.secret_state = SecretState.HASHED
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
credential_store = CredentialStore(rounds=settings.bcrypt_rounds)
