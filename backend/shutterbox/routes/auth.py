"""
Shutterbox Backend — Auth Route Handlers
==========================================

What:  Registration, login and token check.
Who:   Called by the storefront's sign-up / sign-in forms and on page load.

Rate limiting:
    POST register/login share a strict per-IP window (5 per 10 minutes),
    applied by RateLimitMiddleware before these handlers run.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shutterbox.database import get_db_session
from shutterbox.middleware.access_guard import CurrentIdentity, authenticated
from shutterbox.schemas.auth import AuthCheckResponse, LoginRequest, RegisterRequest, TokenResponse
from shutterbox.schemas.common import ErrorResponse
from shutterbox.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=TokenResponse,
    responses={
        409: {"description": "Email or username already taken", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    """Create a standard (non-admin) account and return a 7-day token."""
    return await auth_service.register(db, body)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Sign in",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> TokenResponse:
    return await auth_service.login(db, body)


@router.get(
    "/check",
    response_model=AuthCheckResponse,
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
    summary="Validate the caller's token and return their profile",
)
async def check(
    identity: CurrentIdentity = Depends(authenticated),
    db: AsyncSession = Depends(get_db_session),
) -> AuthCheckResponse:
    return await auth_service.check(db, identity)
