"""
Dog Spotter Backend — Shared Response Schemas
==============================================

Error envelope, health report and pagination metadata used across routes.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement body for mutations without a payload."""
    message: str = Field(description="Human-readable result")


class Pagination(BaseModel):
    """
    What:  Offset pagination metadata.
    How:   total_pages = ceil(total / limit); 0 when there are no records.
    """
    page: int = Field(ge=1, description="Current page (1-based)")
    limit: int = Field(ge=1, description="Page size")
    total: int = Field(ge=0, description="Total records matching the query")
    total_pages: int = Field(ge=0, description="Number of pages at this page size")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found_or_forbidden",
            "message": "record not found or not permitted",
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    ml_service: str = Field(description="Breed prediction: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
