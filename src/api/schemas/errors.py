"""Error response body shared by every failed request.

Key models:
- **ErrorResponse**: The public error, its code and request identifiers
- **ServiceInfo**: Which service, version and environment answered

``details`` is only filled for client errors (4xx); server errors carry the
generic message of their kind and nothing else about the cause.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class ServiceInfo(BaseModel):
    """Identifies the service instance that produced an error."""

    name: str = Field(..., description="Name of the service", examples=["Backplane"])
    version: str = Field(..., description="Version of the service", examples=["0.1.0"])
    environment: str = Field(
        ...,
        description="Environment where the service is running",
        examples=["development", "staging", "production"],
    )


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str = Field(
        ...,
        description="Message safe to show clients",
        examples=["database error", "validation error: email: value is not valid"],
    )

    error_code: str = Field(
        ...,
        description="Machine-readable error kind",
        examples=["VALIDATION_ERROR", "RELATIONAL_STORE_ERROR"],
    )

    details: dict[str, Any] | None = Field(
        default=None,
        description="Field-level details, client errors only",
        examples=[{"validation_errors": {"email": ["value is not a valid email"]}}],
    )

    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for tracing and debugging",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )

    request_id: str | None = Field(
        default=None,
        description="Identifier of this single request",
        examples=["req-550e8400-e29b-41d4-a716-446655440000"],
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the error occurred (UTC)",
    )

    severity: str | None = Field(
        default=None,
        description="Error severity (LOW, MEDIUM, HIGH, CRITICAL)",
        examples=["LOW", "HIGH"],
    )

    service_info: ServiceInfo | None = Field(
        default=None,
        description="Information about the service that generated the error",
    )
