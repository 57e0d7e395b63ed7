"""
Kalshi trade-api v2 client for event discovery.

Endpoints used (all public, no auth):
  GET /events?with_nested_markets=true&limit=N   -- open events with their markets
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

KALSHI_BASE = "https://api.elections.kalshi.com/trade-api/v2"
TIMEOUT = 30.0


_client: httpx.AsyncClient | None = None

async def _get_client() -> httpx.AsyncClient:
    """Get or create shared HTTP client."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=TIMEOUT)
    return _client


def set_client(client: httpx.AsyncClient | None) -> None:
    """Replace the shared HTTP client (tests, custom transports)."""
    global _client
    _client = client


async def _get(path: str, params: dict[str, Any] | None = None) -> Any:
    """Issue a GET to the Kalshi API and return parsed JSON."""
    client = await _get_client()
    url = f"{KALSHI_BASE}{path}"
    logger.debug("GET %s params=%s", url, params)
    resp = await client.get(url, params=params)
    resp.raise_for_status()
    return resp.json()


async def list_events(limit: int = 200, with_nested_markets: bool = True) -> list[dict]:
    """Bulk event listing; each event carries its ``markets`` when nested."""
    data = await _get("/events", params={
        "with_nested_markets": str(with_nested_markets).lower(),
        "limit": limit,
    })
    if not isinstance(data, dict):
        return []
    events = data.get("events")
    if not isinstance(events, list):
        logger.warning("Kalshi /events returned no event list")
        return []
    return [e for e in events if isinstance(e, dict)]
