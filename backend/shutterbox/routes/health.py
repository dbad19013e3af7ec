"""
Shutterbox Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer health checks.
How:   Checks the database (SELECT 1) and asks the active upload provider
       whether it looks usable (credentials present / directory writable).

Status levels:
    - healthy:   database and upload provider fine (HTTP 200)
    - degraded:  uploads unavailable, browsing still works (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shutterbox import __version__
from shutterbox.database import engine
from shutterbox.schemas.common import HealthResponse
from shutterbox.services.upload import UploadProvider, get_upload_provider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(provider: UploadProvider = Depends(get_upload_provider)):
    db_status = "connected"
    storage_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    try:
        usable = await provider.health_check()
    except Exception as e:
        usable = False
        logger.warning("Health check: upload provider check failed: %s", e)
    if not usable:
        storage_status = "unavailable"
        if overall == "healthy":
            overall = "degraded"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        upload_provider=provider.tag,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
