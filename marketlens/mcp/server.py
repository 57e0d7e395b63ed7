"""
MCP server exposing cross-venue prediction market tools.

Tools:
  - get_prediction_insight  — ranked Polymarket + Kalshi match, consensus, Grok briefing
  - search_markets          — open Polymarket markets for a topic
  - get_trending_markets    — open Polymarket markets by 24h volume
  - get_market_detail       — one Polymarket market plus its live orderbook
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import mcp.server.stdio
import mcp.types as types
from mcp.server import Server

from ..insight.cache import ListingCache
from ..insight.config import load_config
from ..insight.orchestrator import InsightOrchestrator
from ..polymarket import clob, gamma
from ..polymarket.utils import safe_json, to_number

logger = logging.getLogger(__name__)

BROWSE_TTL = 30
DEFAULT_LIMIT = 6
MAX_LIMIT = 20


def _clamp_limit(raw: Any) -> int:
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, limit))


class MarketLensMCPServer:

    def __init__(
        self,
        orchestrator: Optional[InsightOrchestrator] = None,
        name: str = "marketlens",
    ):
        self.orchestrator = orchestrator or InsightOrchestrator(load_config())
        self.cache = ListingCache()
        self.server = Server(name)
        self._register_handlers()

    def _register_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return self._tools()

        @self.server.call_tool()
        async def call_tool(
            name: str, arguments: dict[str, Any]
        ) -> list[types.TextContent]:
            try:
                result = await self._dispatch(name, arguments or {})
                text = json.dumps(result, indent=2, default=str)
            except Exception as e:
                logger.error("Tool %s failed: %s", name, e)
                text = json.dumps({"error": str(e), "tool": name}, indent=2)
            return [types.TextContent(type="text", text=text)]

    @staticmethod
    def _tools() -> list[types.Tool]:
        return [
            types.Tool(
                name="get_prediction_insight",
                description=(
                    "Answer a question about the likelihood of a future event with live "
                    "prediction market data. Finds the best matching Polymarket and Kalshi "
                    "markets, a volume-weighted consensus probability, and a real-time "
                    "news/X briefing. E.g. 'Who will Trump nominate as Fed Chair?'"
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "Natural-language question or topic.",
                        },
                    },
                    "required": ["query"],
                },
            ),
            types.Tool(
                name="search_markets",
                description=(
                    "Search live Polymarket prediction markets by topic and show "
                    "real-time probabilities. Only open markets are returned."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "Topic, e.g. 'bitcoin', 'US election', 'AI regulation'.",
                        },
                        "limit": {
                            "type": "integer",
                            "description": "Max results (default 6, max 20).",
                            "default": DEFAULT_LIMIT,
                        },
                    },
                    "required": ["query"],
                },
            ),
            types.Tool(
                name="get_trending_markets",
                description=(
                    "Get the hottest open Polymarket markets right now, ranked by "
                    "24-hour trading volume."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "limit": {
                            "type": "integer",
                            "description": "Number of markets (default 6, max 20).",
                            "default": DEFAULT_LIMIT,
                        },
                    },
                },
            ),
            types.Tool(
                name="get_market_detail",
                description=(
                    "Get full details for one Polymarket market, including the live "
                    "orderbook of its YES token. Requires the market slug from a "
                    "previous search, e.g. 'will-btc-reach-200k-in-2025'."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "slug": {
                            "type": "string",
                            "description": "Market slug.",
                        },
                    },
                    "required": ["slug"],
                },
            ),
        ]

    async def _dispatch(self, name: str, args: dict[str, Any]) -> Any:

        if name == "get_prediction_insight":
            insight = await self.orchestrator.get_insight(args["query"])
            return insight.to_payload()

        if name == "search_markets":
            query = args["query"]
            limit = _clamp_limit(args.get("limit", DEFAULT_LIMIT))
            markets = await self.cache.get_or_fill(
                f"search:{query}:{limit}", BROWSE_TTL,
                lambda: gamma.search_open_markets(query, limit=10, max_markets=limit),
            )
            return {
                "title": f'Prediction Markets: "{query}"',
                "summary": f'Found {len(markets)} active markets for "{query}" on Polymarket',
                "markets": format_markets(markets),
            }

        if name == "get_trending_markets":
            limit = _clamp_limit(args.get("limit", DEFAULT_LIMIT))
            markets = await self.cache.get_or_fill(
                f"trending:{limit}", BROWSE_TTL,
                lambda: gamma.list_markets(limit=limit),
            )
            return {
                "title": "Trending Prediction Markets",
                "summary": f"Top {len(markets)} prediction markets by trading volume on Polymarket",
                "markets": format_markets(markets),
            }

        if name == "get_market_detail":
            slug = args["slug"]
            market, orderbook = await self.cache.get_or_fill(
                f"detail:{slug}", BROWSE_TTL, lambda: _load_market_detail(slug),
            )
            return {
                "summary": market_summary_line(market),
                "market": market,
                "orderbook": orderbook,
            }

        return {"error": f"Unknown tool: {name}"}

    async def run(self) -> None:
        logger.info("Starting MCP server '%s' ...", self.server.name)
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


async def _load_market_detail(slug: str) -> tuple[dict, Optional[dict]]:
    market = await gamma.get_market_by_slug(slug)
    if not market:
        raise ValueError(f"Market not found: {slug}")

    orderbook = None
    token_id = clob.yes_token_id(market)
    if token_id:
        try:
            orderbook = await clob.get_orderbook(token_id)
        except Exception as e:
            logger.warning("Orderbook unavailable for %s: %s", slug, e)
    return market, orderbook


def market_summary_line(market: dict) -> str:
    prices = safe_json(market.get("outcomePrices"))
    yes_pct = f"{to_number(prices[0]) * 100:.1f}" if prices else "?"
    return f"{market.get('question') or market.get('slug')}: YES {yes_pct}%"


def format_markets(markets: list[dict]) -> list[dict]:
    results = []
    for m in markets:
        outcomes = safe_json(m.get("outcomes", "[]"))
        prices = safe_json(m.get("outcomePrices", "[]"))
        odds: dict[str, dict] = {}
        for i, outcome in enumerate(outcomes):
            price = to_number(prices[i]) if i < len(prices) else 0
            odds[str(outcome)] = {
                "price": price,
                "implied_pct": f"{price * 100:.1f}%",
            }
        results.append({
            "question": m.get("question"),
            "slug": m.get("slug"),
            "volume": f"${to_number(m.get('volume')):,.0f}",
            "volume_24h": f"${to_number(m.get('volume24hr')):,.0f}",
            "liquidity": f"${to_number(m.get('liquidity')):,.0f}",
            "end_date": m.get("endDate"),
            "odds": odds,
            "url": f"https://polymarket.com/event/{m.get('slug')}",
        })
    return results


# ── Entry point ──────────────────────────────────────────────────────

def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    server = MarketLensMCPServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
