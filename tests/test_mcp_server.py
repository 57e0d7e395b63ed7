from __future__ import annotations

import httpx
import pytest

from marketlens.insight.models import Insight
from marketlens.mcp import server as mcp_server
from marketlens.mcp.server import (
    MarketLensMCPServer,
    _clamp_limit,
    format_markets,
    market_summary_line,
)
from tests.factories import pm, pm_market


class FakeOrchestrator:
    def __init__(self):
        self.queries = []

    async def get_insight(self, query):
        self.queries.append(query)
        match = pm("fed-cut", score=1.2, probability=0.7, volume=100)
        return Insight(
            query=query,
            event_title=match.title,
            generated_at="2026-01-01T00:00:00+00:00",
            consensus_probability=0.7,
            polymarket=match,
            kalshi=None,
            polymarket_candidates=[match],
            kalshi_candidates=[],
            grok_analysis="briefing",
        )


@pytest.fixture
def server():
    return MarketLensMCPServer(orchestrator=FakeOrchestrator())


def test_clamp_limit():
    assert _clamp_limit(5) == 5
    assert _clamp_limit("7") == 7
    assert _clamp_limit(0) == 1
    assert _clamp_limit(500) == 20
    assert _clamp_limit(None) == 6
    assert _clamp_limit("lots") == 6


def test_format_markets():
    market = pm_market("Bitcoin above 200k?", "btc-200k", prices=["0.25", "0.75"],
                       volume="1234567.8", volume24hr=4321)
    [row] = format_markets([market])

    assert row["slug"] == "btc-200k"
    assert row["volume"] == "$1,234,568"
    assert row["volume_24h"] == "$4,321"
    assert row["liquidity"] == "$2,500"
    assert row["odds"]["Yes"] == {"price": 0.25, "implied_pct": "25.0%"}
    assert row["odds"]["No"]["implied_pct"] == "75.0%"
    assert row["url"] == "https://polymarket.com/event/btc-200k"


def test_format_markets_tolerates_missing_prices():
    [row] = format_markets([{"slug": "x", "outcomes": '["Yes", "No"]'}])
    assert row["odds"]["No"] == {"price": 0, "implied_pct": "0.0%"}


def test_market_summary_line():
    market = pm_market("Bitcoin above 200k?", "btc-200k", prices=["0.25", "0.75"])
    assert market_summary_line(market) == "Bitcoin above 200k?: YES 25.0%"
    assert market_summary_line({"slug": "bare"}) == "bare: YES ?%"


@pytest.mark.asyncio
async def test_prediction_insight_tool(server):
    payload = await server._dispatch("get_prediction_insight", {"query": "fed cut"})

    assert server.orchestrator.queries == ["fed cut"]
    assert payload["consensusProbability"] == 0.7
    assert payload["polymarket"]["slug"] == "fed-cut"
    assert payload["kalshi"] is None


@pytest.mark.asyncio
async def test_search_markets_tool_is_cached(server, monkeypatch):
    calls = []

    async def fake_search(query, limit=8, max_markets=None):
        calls.append((query, limit, max_markets))
        return [pm_market("Bitcoin above 200k?", "btc-200k")]

    monkeypatch.setattr(mcp_server.gamma, "search_open_markets", fake_search)
    first = await server._dispatch("search_markets", {"query": "bitcoin", "limit": 3})
    second = await server._dispatch("search_markets", {"query": "bitcoin", "limit": 3})

    assert first == second
    assert calls == [("bitcoin", 10, 3)]
    assert first["summary"] == 'Found 1 active markets for "bitcoin" on Polymarket'
    assert first["markets"][0]["slug"] == "btc-200k"


@pytest.mark.asyncio
async def test_trending_tool(server, monkeypatch):
    async def fake_list(**kwargs):
        return [pm_market("A?", "a"), pm_market("B?", "b")][: kwargs["limit"]]

    monkeypatch.setattr(mcp_server.gamma, "list_markets", fake_list)
    result = await server._dispatch("get_trending_markets", {"limit": 1})

    assert result["title"] == "Trending Prediction Markets"
    assert [m["slug"] for m in result["markets"]] == ["a"]


@pytest.mark.asyncio
async def test_market_detail_tool(server, monkeypatch):
    async def fake_market(slug):
        return pm_market("Bitcoin above 200k?", slug, prices=["0.4", "0.6"])

    async def fake_book(token_id):
        return {"asset_id": token_id, "bids": [], "asks": []}

    monkeypatch.setattr(mcp_server.gamma, "get_market_by_slug", fake_market)
    monkeypatch.setattr(mcp_server.clob, "get_orderbook", fake_book)
    result = await server._dispatch("get_market_detail", {"slug": "btc-200k"})

    assert result["summary"] == "Bitcoin above 200k?: YES 40.0%"
    assert result["orderbook"]["asset_id"] == "111"


@pytest.mark.asyncio
async def test_market_detail_without_orderbook(server, monkeypatch):
    async def fake_market(slug):
        return pm_market("Bitcoin above 200k?", slug)

    async def broken_book(token_id):
        raise httpx.ConnectError("refused")

    monkeypatch.setattr(mcp_server.gamma, "get_market_by_slug", fake_market)
    monkeypatch.setattr(mcp_server.clob, "get_orderbook", broken_book)
    result = await server._dispatch("get_market_detail", {"slug": "btc-200k"})

    assert result["market"]["slug"] == "btc-200k"
    assert result["orderbook"] is None


@pytest.mark.asyncio
async def test_market_detail_not_found(server, monkeypatch):
    async def no_market(slug):
        return None

    monkeypatch.setattr(mcp_server.gamma, "get_market_by_slug", no_market)
    with pytest.raises(ValueError, match="Market not found"):
        await server._dispatch("get_market_detail", {"slug": "nope"})


@pytest.mark.asyncio
async def test_unknown_tool(server):
    assert await server._dispatch("place_order", {}) == {"error": "Unknown tool: place_order"}
