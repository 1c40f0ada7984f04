#!/usr/bin/env python3
"""
End-to-end hydration check for a deployed stack.

This script:
1. Registers the "test-run" identifier in the identifier table
2. Dispatches all identifiers to the ingestion queue once
3. Polls the API until historical rows for "test-run" show up

Requires the dispatch settings (IDENTIFIER_TABLE, IDENTIFIER_QUEUE), the
API base URL (API_URL) and the security token (API_SECURITY_TOKEN).
"""

import asyncio
import os
import sys
import time
from pathlib import Path

import httpx

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tiered_timeseries.config import get_settings
from tiered_timeseries.ingestion.dispatcher import IdentifierDispatcher
from tiered_timeseries.storage import AWSClientFactory, DynamoDBIdentifierRepository

TEST_IDENTIFIER = "test-run"
WINDOW_MS = 4 * 24 * 60 * 60 * 1000
MAX_TRIES = 300
MAX_ERRORS = 20
POLL_INTERVAL_SECONDS = 1.0


async def register_and_dispatch() -> None:
    """Put the test identifier into the table and run one dispatch."""
    settings = get_settings().require_dispatch()
    clients = AWSClientFactory.from_settings(settings)

    identifiers = DynamoDBIdentifierRepository(clients, settings.identifier_table)
    await identifiers.add_identifier(TEST_IDENTIFIER)
    print(f"✅ Registered identifier {TEST_IDENTIFIER!r}")

    dispatcher = IdentifierDispatcher.from_settings(settings, clients=clients)
    summary = await dispatcher.dispatch()
    print(f"✅ Dispatched {summary.batches} batches for {summary.identifiers} identifiers")


async def wait_for_data(api_url: str, token: str) -> bool:
    """
    Poll the range endpoint until historical rows appear.

    Returns:
        True if rows appeared within the allowed tries
    """
    errors = 0
    async with httpx.AsyncClient(base_url=api_url, timeout=30.0) as client:
        for attempt in range(1, MAX_TRIES + 1):
            now_ms = int(time.time() * 1000)
            params = {
                "startDate": now_ms - WINDOW_MS,
                "endDate": now_ms + WINDOW_MS,
                "identifier": TEST_IDENTIFIER,
            }

            try:
                response = await client.get(
                    "/timeSeries-data",
                    params=params,
                    headers={"x-security-token": token},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                errors += 1
                print(f"⚠️  Request {attempt} failed ({errors}/{MAX_ERRORS}): {e}")
                if errors >= MAX_ERRORS:
                    return False
                await asyncio.sleep(POLL_INTERVAL_SECONDS)
                continue

            body = response.json()
            historical = body.get("historicalRows", [])
            future = body.get("futureRows", [])
            if historical:
                print(
                    f"✅ Data arrived after {attempt} tries: "
                    f"{len(historical)} historical rows, {len(future)} future rows"
                )
                return True

            await asyncio.sleep(POLL_INTERVAL_SECONDS)

    return False


async def main() -> int:
    print("=" * 80)
    print("HYDRATION CHECK")
    print("=" * 80)

    api_url = os.getenv("API_URL", "http://localhost:8000")
    token = os.getenv("API_SECURITY_TOKEN")
    if not token:
        print("❌ API_SECURITY_TOKEN is not set")
        return 1

    await register_and_dispatch()

    if await wait_for_data(api_url, token):
        print("\n✅ Hydration check passed")
        return 0

    print("\n❌ Hydration check failed: no historical rows")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
