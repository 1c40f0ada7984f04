"""
Common API schemas used across endpoints.
"""

from typing import Dict, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    code: str = Field(..., description="Error code")
    timestamp: str = Field(..., description="ISO 8601 timestamp")

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "Validation Error",
                "detail": "Query parameter 'identifier' is required",
                "code": "VALIDATION_ERROR",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
    }


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    services: Dict[str, bool] = Field(
        ..., description="Status of dependent services"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "timestamp": "2024-01-15T10:30:00Z",
                "services": {
                    "configuration": True,
                    "query_coordinator": True,
                },
            }
        }
    }
