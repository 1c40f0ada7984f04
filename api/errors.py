"""
Client-facing API errors.

Each error carries the HTTP status and error code used in the JSON error
body. Server-side failures (configuration, storage) are mapped in
``api.main`` instead.
"""

from fastapi import status


class APIError(Exception):
    """Base class for errors caused by the caller."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    error: str = "Bad Request"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class QueryValidationError(APIError):
    """Raised when query parameters are missing or inconsistent."""

    code = "VALIDATION_ERROR"
    error = "Validation Error"


class AuthenticationError(APIError):
    """Raised when the security token is missing or does not match."""

    code = "AUTH_ERROR"
    error = "Authentication Error"
