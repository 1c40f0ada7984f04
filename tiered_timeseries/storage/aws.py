"""
Shared aioboto3 client configuration.

Every AWS adapter opens short-lived clients from one session through this
factory so retry, timeout and endpoint settings stay identical across the
time store, the key-value store, the queue and the parameter store.
"""

import logging
from typing import Any, Dict, Optional

import aioboto3
from botocore.config import Config

from tiered_timeseries.config import (
    CLIENT_MAX_ATTEMPTS,
    CLIENT_TIMEOUT_SECONDS,
    Settings,
)

logger = logging.getLogger(__name__)


class AWSClientFactory:
    """Creates aioboto3 clients with consistent configuration."""

    def __init__(
        self,
        region_name: str = "us-west-2",
        endpoint_url: Optional[str] = None,
        session: Optional[Any] = None,
        max_attempts: int = CLIENT_MAX_ATTEMPTS,
        timeout_seconds: int = CLIENT_TIMEOUT_SECONDS,
        max_pool_connections: int = 50,
    ):
        """
        Initialize the client factory.

        Args:
            region_name: AWS region name
            endpoint_url: Custom endpoint URL (LocalStack, etc.)
            session: aioboto3 session (a new one is created if omitted)
            max_attempts: Total attempts per call, with exponential backoff
            timeout_seconds: Connect and read timeout per call
            max_pool_connections: HTTP connection pool size per client
        """
        self._region_name = region_name
        self._endpoint_url = endpoint_url
        self._session = session or aioboto3.Session()
        self._config = Config(
            retries={"max_attempts": max_attempts, "mode": "standard"},
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
            max_pool_connections=max_pool_connections,
        )

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[Any] = None) -> "AWSClientFactory":
        return cls(
            region_name=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url,
            session=session,
        )

    def _get_client_kwargs(self) -> Dict[str, Any]:
        """Get client configuration."""
        config: Dict[str, Any] = {
            "region_name": self._region_name,
            "config": self._config,
        }

        if self._endpoint_url:
            config["endpoint_url"] = self._endpoint_url

        return config

    def client(self, service_name: str):
        """
        Open a client for a service.

        Use as ``async with factory.client("dynamodb") as client:``.
        """
        return self._session.client(service_name, **self._get_client_kwargs())
