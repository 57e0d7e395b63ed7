"""
CLOB API client for Polymarket orderbook data.

Endpoints used (all public, no auth):
  GET /book?token_id=X             -- full orderbook (bids + asks)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .utils import safe_json

logger = logging.getLogger(__name__)

CLOB_BASE = "https://clob.polymarket.com"
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
    """Issue a GET to the CLOB API and return parsed JSON."""
    client = await _get_client()
    url = f"{CLOB_BASE}{path}"
    logger.debug("GET %s params=%s", url, params)
    resp = await client.get(url, params=params)
    resp.raise_for_status()
    return resp.json()


# ── Orderbook ────────────────────────────────────────────────────────

async def get_orderbook(token_id: str) -> dict:
    """Bids and asks for one outcome token, passed through to MCP clients as-is."""
    book = await _get("/book", params={"token_id": token_id})
    return book if isinstance(book, dict) else {}


def yes_token_id(market: dict) -> str | None:
    """Token ID of a Gamma market's first (YES) outcome, if any."""
    tokens = market.get("tokens")
    if isinstance(tokens, list) and tokens and isinstance(tokens[0], dict):
        tid = tokens[0].get("token_id")
        if tid:
            return str(tid)
    ids = safe_json(market.get("clobTokenIds"))
    return str(ids[0]) if ids else None
