"""
Shutterbox Backend — Shared Response Schemas
==============================================

What:  Response models used across every resource: errors, health, messages,
       pagination.
Why:   Clients parse one error shape no matter which endpoint failed.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "Access denied. Insufficient permissions.",
            "details": {"required": ["admin"], "user_role": "user"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable outcome")


class PageInfo(BaseModel):
    """Offset pagination block shared by album, product, order and favorite listings."""
    current_page: int
    total_pages: int
    total: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for load balancers and monitoring.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    upload_provider: str = Field(description="Active upload provider tag")
    storage: str = Field(description="Upload provider status: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
