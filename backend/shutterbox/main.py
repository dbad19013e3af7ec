"""
Shutterbox Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (uvicorn shutterbox.main:app) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware:  Rate Limit → Request ID → Logging → GZip   │
    │               → CORS                                     │
    │                                                          │
    │  Routes:      /api/auth   /api/users   /api/photos       │
    │               /api/albums /api/products /api/cart       │
    │               /api/orders /api/files  /health           │
    │                                                          │
    │  Dependencies on protected routes:                       │
    │               AccessGuard (401 / 403) → DB session       │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400  Auth→401  Forbidden→403  Conflict→409   │
    │  Upload→400/502  DB→500                                  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → configuration check → provider banner
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from shutterbox import __version__
from shutterbox.config import settings
from shutterbox.database import dispose_engine
from shutterbox.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    CredentialMismatchError,
    DatabaseError,
    NotFoundError,
    RateLimitExceededError,
    ShutterboxError,
    UploadBackendError,
    UploadInputError,
    ValidationError,
)
from shutterbox.middleware.logging import RequestLoggingMiddleware
from shutterbox.middleware.rate_limit import RateLimitMiddleware
from shutterbox.middleware.request_id import RequestIDMiddleware, request_id_var
from shutterbox.routes import albums, auth, cart, files, health, orders, photos, products, users
from shutterbox.services.upload import upload_provider

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] shutterbox.access: GET /api/photos 200 ...

    Third-party loggers that log every query, HTTP call or S3 request are
    raised to WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "cloudinary", "urllib3", "botocore", "boto3", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Shutterbox Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and public browsing still work
        logger.error("Configuration error: %s", e)
        logger.error("Fix the configuration and restart the server.")

    logger.info("Upload provider: %s", upload_provider.tag)
    logger.info("Token lifetime: %d days", settings.token_ttl_days)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Shutterbox Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the shared error body.

    Handler table:
        ValidationError          → 400 validation_error
        UploadInputError         → 400 upload_input_error
        AuthenticationError      → 401 unauthorized (+ WWW-Authenticate)
        CredentialMismatchError  → 401 invalid_credentials
        AuthorizationError       → 403 forbidden
        NotFoundError            → 404 not_found
        ConflictError            → 409 conflict
        RateLimitExceededError   → 429 rate_limit_exceeded
        DatabaseError            → 500 server_error (generic message)
        UploadBackendError       → 502 upload_failed
        ShutterboxError (base)   → 500 server_error
        Exception (fallback)     → 500 internal_server_error

    Security: responses never carry stack traces, SQL or file paths. Server
    logs get the details, keyed by request ID.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(UploadInputError)
    async def handle_upload_input_error(request: Request, exc: UploadInputError):
        logger.warning("[%s] Upload input error: %s", request_id_var.get(""), exc.message)
        return _error(400, "upload_input_error", exc.message)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error(
            401,
            "unauthorized",
            exc.message,
            {"reason": exc.reason},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(CredentialMismatchError)
    async def handle_credential_mismatch(request: Request, exc: CredentialMismatchError):
        return _error(401, "invalid_credentials", exc.message)

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        return _error(403, "forbidden", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error(409, "conflict", exc.message, {"field": exc.field})

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error(
            429,
            "rate_limit_exceeded",
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(UploadBackendError)
    async def handle_upload_backend_error(request: Request, exc: UploadBackendError):
        rid = request_id_var.get("")
        logger.error("[%s] Upload backend error: %s", rid, exc.message)
        return _error(502, "upload_failed", exc.message, {"provider": exc.provider})

    @app.exception_handler(ShutterboxError)
    async def handle_shutterbox_error(request: Request, exc: ShutterboxError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled application error %s: %s", rid, type(exc).__name__, exc.message)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, exc, exc_info=True)
        return _error(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Shutterbox API",
        description=(
            "Backend for a photography storefront: accounts and signed-token "
            "authentication, role-gated administration, a photo catalogue backed "
            "by a pluggable upload provider, albums, and a shop of digital and "
            "print products with cart, checkout and favorites."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(photos.router)
    app.include_router(albums.router)
    app.include_router(products.router)
    app.include_router(cart.router)
    app.include_router(orders.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


# uvicorn expects `shutterbox.main:app`
app = create_app()
