"""
Credential cache.

Resolves a secret once and keeps it for later calls. The value comes from
the environment when present, otherwise from the parameter store. The
cache is an ordinary object owned by whoever builds the pipeline or the
API, and can be invalidated or refreshed explicitly.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from tiered_timeseries.storage.interfaces import ParameterStore

logger = logging.getLogger(__name__)


class CredentialError(Exception):
    """Raised when a credential cannot be resolved to a non-empty value."""
    pass


class CredentialCache:
    """
    Lazily populated cache for a single secret.

    Resolution order: ``value`` (from the environment), then
    ``parameter_name`` looked up in ``parameter_store``.

    With ``ttl_seconds`` set the cached value is re-resolved after it ages
    out; without it the value lives until ``invalidate()`` or ``refresh()``.
    """

    def __init__(
        self,
        value: Optional[str] = None,
        parameter_name: Optional[str] = None,
        parameter_store: Optional[ParameterStore] = None,
        ttl_seconds: Optional[int] = None,
        name: str = "credential",
        clock: Callable[[], float] = time.monotonic,
    ):
        if not value and not parameter_name:
            raise CredentialError(f"No source configured for {name}")
        if not value and parameter_store is None:
            raise CredentialError(f"{name} needs a parameter store to read {parameter_name}")

        self._value = value
        self._parameter_name = parameter_name
        self._parameter_store = parameter_store
        self._ttl_seconds = ttl_seconds
        self._name = name
        self._clock = clock

        self._cached: Optional[str] = None
        self._loaded_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def is_cached(self) -> bool:
        return self._cached is not None and not self._expired()

    def _expired(self) -> bool:
        if self._ttl_seconds is None or self._loaded_at is None:
            return False
        return self._clock() - self._loaded_at >= self._ttl_seconds

    async def _resolve(self) -> str:
        if self._value:
            return self._value

        logger.info(f"Fetching {self._name} from parameter {self._parameter_name}")
        value = await self._parameter_store.get_parameter(self._parameter_name)
        if not value:
            raise CredentialError(
                f"{self._name} has not been set up in parameter {self._parameter_name}"
            )
        return value

    async def get(self) -> str:
        """
        Return the credential, resolving it on first use or after expiry.

        Raises:
            CredentialError: If the credential resolves to nothing
            StorageError: If the parameter store lookup fails
        """
        if self.is_cached:
            return self._cached

        async with self._lock:
            if not self.is_cached:
                self._cached = await self._resolve()
                self._loaded_at = self._clock()
        return self._cached

    def invalidate(self) -> None:
        """Drop the cached value; the next ``get()`` resolves again."""
        self._cached = None
        self._loaded_at = None

    async def refresh(self) -> str:
        """Resolve the credential now, replacing any cached value."""
        self.invalidate()
        return await self.get()
