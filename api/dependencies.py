"""
FastAPI dependency injection providers.

This module provides the query coordinator, the security token cache and
the security token check. Everything is built once in the application
lifespan and read from the application state here.
"""

import hmac
from typing import Annotated, Optional

from fastapi import Depends, Header

from api.errors import AuthenticationError
from tiered_timeseries.config import ConfigurationError
from tiered_timeseries.ingestion.credentials import CredentialCache
from tiered_timeseries.query import QueryCoordinator


def _require_ready(component: Optional[object], name: str):
    from api.main import app_state

    if app_state.config_error is not None:
        raise app_state.config_error
    if component is None:
        raise ConfigurationError([name], role="api", reason="Component not initialized")
    return component


# Service dependencies

async def get_coordinator() -> QueryCoordinator:
    """
    Get the query coordinator from application state.

    Raises:
        ConfigurationError: If the API started without its required settings
    """
    from api.main import app_state
    return _require_ready(app_state.coordinator, "query coordinator")


async def get_token_cache() -> CredentialCache:
    """
    Get the security token cache from application state.

    Raises:
        ConfigurationError: If the API started without its required settings
    """
    from api.main import app_state
    return _require_ready(app_state.token_cache, "security token")


# Security token authentication

async def verify_security_token(
    x_security_token: Annotated[Optional[str], Header()] = None,
    token_cache: CredentialCache = Depends(get_token_cache),
) -> str:
    """
    Verify the shared secret from the ``x-security-token`` header.

    Args:
        x_security_token: Token presented by the caller
        token_cache: Cache holding the expected token

    Returns:
        The presented token if it matches

    Raises:
        AuthenticationError: If the token is missing or does not match
    """
    if not x_security_token:
        raise AuthenticationError("Security token is required. Provide x-security-token header.")

    expected = await token_cache.get()
    if not hmac.compare_digest(x_security_token.encode(), expected.encode()):
        raise AuthenticationError("Invalid security token")

    return x_security_token
