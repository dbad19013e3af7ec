"""
Shutterbox Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a user-safe message and an optional context dict.
       Global handlers (registered in main.py) translate them into structured
       JSON error responses with the right HTTP status code.
Who:   Raised by services, the access guard and upload providers.

Exception Hierarchy:
    ShutterboxError (base)
    ├── ValidationError          → 400 Bad Request
    ├── ConflictError            → 409 Conflict
    ├── NotFoundError            → 404 Not Found
    ├── AuthenticationError      → 401 Unauthorized (no/invalid/expired token)
    ├── CredentialMismatchError  → 401 Unauthorized (bad login)
    ├── AuthorizationError       → 403 Forbidden (valid token, wrong role)
    ├── UploadInputError         → 400 Bad Request (empty buffer, before any network call)
    ├── UploadBackendError       → 502 Bad Gateway (provider rejected / network failed)
    ├── UploadDeleteError        → never surfaces; swallowed by UploadProvider.delete()
    ├── DatabaseError            → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests

Authentication vs Authorization:
    The two are deliberately separate classes. A caller with no token, a
    forged token or an expired token gets 401 and should log in again. A
    caller whose valid token carries the wrong role gets 403; logging in
    again would not help.
"""

from typing import Any, Dict, Iterable, Optional


class ShutterboxError(Exception):
    """
    Base exception for all Shutterbox application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where a handler opts in)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ShutterboxError):
    """
    Raised when client input fails a business rule.

    HTTP: 400. Schema-level problems are already rejected by FastAPI with 422;
    this covers rules Pydantic cannot express (tag limits, file types, ...).
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(ShutterboxError):
    """Raised when a unique value (username, email, photo title) is already taken."""

    def __init__(
        self,
        resource: str,
        field: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"resource": resource, "field": field})
        super().__init__(message=f"A {resource} with this {field} already exists", context=ctx)
        self.field = field


class NotFoundError(ShutterboxError):
    """Raised when a requested record does not exist. HTTP: 404."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class AuthenticationError(ShutterboxError):
    """
    Raised by the access guard when the caller cannot be identified.

    What:    Token missing, malformed, badly signed or expired.
    HTTP:    401 Unauthorized
    reason:  The TokenFailure value ("missing", "malformed", "bad_signature",
             "expired") so clients can tell an expired session from a forged one.
    """

    def __init__(
        self,
        message: str = "Access denied.",
        reason: str = "invalid",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        super().__init__(message=message, context=ctx)
        self.reason = reason


class CredentialMismatchError(ShutterboxError):
    """
    Raised when a login attempt fails.

    The message is identical whether the email is unknown or the password is
    wrong, so the endpoint cannot be used to enumerate registered accounts.
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid credentials", context=context)


class AuthorizationError(ShutterboxError):
    """
    Raised by the access guard when a verified caller lacks a required role,
    and by ownership checks when a non-admin addresses someone else's record.

    HTTP: 403 Forbidden. Never raised for an unauthenticated caller.
    """

    def __init__(
        self,
        required_roles: Iterable[str],
        role: Optional[str],
        context: Optional[Dict[str, Any]] = None,
        message: str = "Access denied. Insufficient permissions.",
    ):
        ctx = context or {}
        self.required_roles = sorted(required_roles)
        self.role = role
        ctx.update({"required": self.required_roles, "user_role": role})
        super().__init__(message=message, context=ctx)


class UploadInputError(ShutterboxError):
    """
    Raised when an upload is attempted with a missing or empty byte buffer.

    Raised before any network call is made, so nothing needs cleaning up.
    """

    def __init__(
        self,
        message: str = "File buffer is empty or missing",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UploadBackendError(ShutterboxError):
    """
    Raised when the storage backend rejects an upload or cannot be reached.

    What:    Wraps the backend's own diagnostic message.
    HTTP:    502 Bad Gateway. The user may retry; there is no internal retry.
    """

    def __init__(
        self,
        provider: str,
        diagnostic: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"provider": provider, "diagnostic": diagnostic})
        super().__init__(message=f"Failed to upload to {provider}: {diagnostic}", context=ctx)
        self.provider = provider
        self.diagnostic = diagnostic


class UploadDeleteError(ShutterboxError):
    """
    Raised by a provider backend hook when an asset could not be deleted.

    UploadProvider.delete() catches it, logs it and returns False. It never
    reaches a route handler.
    """

    def __init__(
        self,
        provider: str,
        storage_id: str,
        diagnostic: str,
    ):
        super().__init__(
            message=f"Failed to delete {storage_id} from {provider}: {diagnostic}",
            context={"provider": provider, "storage_id": storage_id},
        )
        self.provider = provider
        self.storage_id = storage_id


class DatabaseError(ShutterboxError):
    """
    Raised when database operations fail unexpectedly. HTTP: 500.

    The client always sees a generic message; details stay in server logs.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(ShutterboxError):
    """Raised when a client exceeds a per-IP request window. HTTP: 429."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many attempts. Please wait {retry_after} seconds before trying again."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
