"""
Sample sources.

The pipeline fetches raw samples per identifier through the ``SampleSource``
protocol. ``StubSampleSource`` generates synthetic data and stands in until
a real upstream API client is plugged in.
"""

import logging
import random
import time
from typing import Callable, List, Optional, Protocol

from tiered_timeseries.query.relative_time import round_half_up
from tiered_timeseries.types import Sample

logger = logging.getLogger(__name__)


class SampleSource(Protocol):
    """Upstream provider of samples for an identifier."""

    async def fetch(self, identifier: str, api_key: str) -> List[Sample]:
        """
        Fetch samples for one identifier.

        Args:
            identifier: Series identifier
            api_key: Credential for the upstream API

        Returns:
            Samples in any order
        """
        ...


class StubSampleSource(SampleSource):
    """
    Synthetic sample generator.

    Produces one sample every ``step_seconds`` from ``window_seconds`` before
    now up to (not including) ``window_seconds`` after now, with random
    values between 0 and 100. Samples are tagged "Past" or "Future" in
    their metadata.
    """

    def __init__(
        self,
        window_seconds: int = 24 * 60 * 60,
        step_seconds: int = 5 * 60,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        if step_seconds < 1:
            raise ValueError("step_seconds must be at least 1")
        self._window_seconds = window_seconds
        self._step_seconds = step_seconds
        self._clock = clock
        self._rng = rng or random.Random()

    async def fetch(self, identifier: str, api_key: str) -> List[Sample]:
        logger.debug(f"API key provided but not used by stub source for {identifier}")

        now = round_half_up(self._clock())
        current = now - self._window_seconds
        end = now + self._window_seconds

        samples = []
        while current < end:
            samples.append(
                Sample(
                    identifier=identifier,
                    value=str(round_half_up(self._rng.random() * 100)),
                    time=current,
                    metadata="Past" if current < now else "Future",
                )
            )
            current += self._step_seconds
        return samples
