"""
API schemas for request and response models.

This module defines Pydantic models used for API serialization.
"""

from api.schemas.common import ErrorResponse, HealthCheckResponse
from api.schemas.timeseries import TimeSeriesResponse

__all__ = [
    "ErrorResponse",
    "HealthCheckResponse",
    "TimeSeriesResponse",
]
