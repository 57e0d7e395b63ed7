"""
Gamma API client for Polymarket event/market discovery.

Endpoints used (all public, no auth):
  GET /public-search?q=X&limit=N   -- relevance-ranked events with nested markets
  GET /markets?active=true&...     -- market listing (trending by 24h volume)
  GET /markets?slug=X              -- single market by slug
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

GAMMA_BASE = "https://gamma-api.polymarket.com"
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
    """Issue a GET to the Gamma API and return parsed JSON."""
    client = await _get_client()
    url = f"{GAMMA_BASE}{path}"
    logger.debug("GET %s params=%s", url, params)
    resp = await client.get(url, params=params)
    resp.raise_for_status()
    return resp.json()


def _is_open(market: dict) -> bool:
    # Gamma has served these flags both as JSON booleans and as "True"/"False"
    return str(market.get("active")).lower() == "true" and str(market.get("closed")).lower() == "false"


# ── Search ───────────────────────────────────────────────────────────

async def public_search(query: str, limit: int = 8) -> dict:
    """Relevance-ranked search; returns ``{"events": [{..., "markets": [...]}]}``."""
    result = await _get("/public-search", params={"q": query, "limit": limit})
    return result if isinstance(result, dict) else {}


async def search_open_markets(query: str, limit: int = 8, max_markets: int | None = None) -> list[dict]:
    """
    Search events and flatten their nested markets, keeping only open ones.

    Args:
        query: Free-text search
        limit: Number of events requested from Gamma
        max_markets: Stop once this many open markets are collected
    """
    data = await public_search(query, limit=limit)
    events = data.get("events")
    if not isinstance(events, list):
        return []
    markets: list[dict] = []
    for event in events:
        if not isinstance(event, dict) or not isinstance(event.get("markets"), list):
            continue
        nested = [m for m in event["markets"] if isinstance(m, dict)]
        title = event.get("title")
        event_title = title if len(nested) > 1 and isinstance(title, str) else None
        for market in nested:
            if not _is_open(market):
                continue
            if event_title:
                market = {**market, "eventTitle": event_title}
            markets.append(market)
        if max_markets is not None and len(markets) >= max_markets:
            return markets[:max_markets]
    return markets


# ── Markets ──────────────────────────────────────────────────────────

async def list_markets(
    *,
    active: bool = True,
    closed: bool = False,
    order: str = "volume_24hr",
    ascending: bool = False,
    limit: int = 6,
) -> list[dict]:
    """List markets, by default the currently hottest open ones."""
    params: dict[str, Any] = {
        "active": str(active).lower(),
        "closed": str(closed).lower(),
        "order": order,
        "ascending": str(ascending).lower(),
        "limit": limit,
    }
    result = await _get("/markets", params=params)
    return result if isinstance(result, list) else []


async def get_market_by_slug(slug: str) -> dict | None:
    """Fetch a single market by slug (includes clobTokenIds)."""
    results = await _get("/markets", params={"slug": slug})
    if isinstance(results, list) and results:
        return results[0]
    if isinstance(results, dict):
        return results
    return None
