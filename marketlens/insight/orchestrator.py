"""
Insight orchestrator: domain pipeline for one query:
  fetch (both venues, concurrently) -> rank -> select -> fuse -> analyze -> assemble

Upstream failures never abort an insight: a venue that cannot be reached
contributes no candidates, and a failed analysis becomes a placeholder.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

import httpx

from ..kalshi import client as kalshi_client
from ..matching.adapters import build_kalshi_candidates, build_polymarket_candidates
from ..matching.selection import compute_consensus, pick_primary
from ..polymarket import gamma
from .analyst import GrokAnalyst
from .cache import ListingCache
from .config import DEFAULTS, load_config
from .models import Insight

logger = logging.getLogger(__name__)

PolymarketFetcher = Callable[[str], Awaitable[list[dict]]]
KalshiFetcher = Callable[[], Awaitable[list[dict]]]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class InsightOrchestrator:
    """
    Builds Insights. Construct once and reuse: the instance owns the
    listing cache shared by all queries it serves.
    """

    def __init__(
        self,
        config: Optional[dict] = None,
        analyst: Optional[GrokAnalyst] = None,
        cache: Optional[ListingCache] = None,
        fetch_polymarket: Optional[PolymarketFetcher] = None,
        fetch_kalshi: Optional[KalshiFetcher] = None,
    ):
        self.config = config if config is not None else load_config()
        cache_cfg = self.config.get("cache", DEFAULTS["cache"])
        matching_cfg = self.config.get("matching", DEFAULTS["matching"])
        timeouts = self.config.get("timeouts", DEFAULTS["timeouts"])

        self.ttl_short = cache_cfg.get("ttl_short", 30)
        self.ttl_long = cache_cfg.get("ttl_long", 300)
        self.confidence_floor = matching_cfg.get("confidence_floor", 0.34)
        self.max_candidates = matching_cfg.get("max_candidates", 3)
        self.source_timeout = timeouts.get("source", 15.0)
        self.analysis_timeout = timeouts.get("analysis", 45.0)

        self.analyst = analyst or GrokAnalyst(self.config.get("analysis", {}))
        self.cache = cache if cache is not None else ListingCache(cache_cfg.get("max_entries", 512))
        self._fetch_polymarket = fetch_polymarket or self._search_polymarket
        self._fetch_kalshi = fetch_kalshi or self._list_kalshi_events

    # ── Default upstream fetchers ────────────────────────────────────

    async def _search_polymarket(self, query: str) -> list[dict]:
        limit = self.config.get("polymarket", {}).get("search_limit", 8)
        return await gamma.search_open_markets(query, limit=limit)

    async def _list_kalshi_events(self) -> list[dict]:
        limit = self.config.get("kalshi", {}).get("events_limit", 200)
        return await kalshi_client.list_events(limit=limit)

    # ── FETCH_RAW ────────────────────────────────────────────────────

    async def _guarded(self, source: str, key: str, ttl: float, producer: Callable[[], Awaitable[list]]) -> list:
        """Cached, time-bounded fetch that degrades to ``[]`` on any upstream failure."""
        try:
            return await asyncio.wait_for(
                self.cache.get_or_fill(key, ttl, producer),
                timeout=self.source_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("%s fetch timed out after %.1fs", source, self.source_timeout)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s fetch failed: %s", source, e)
        except Exception as e:
            logger.warning("%s fetch returned an unusable payload: %s: %s", source, type(e).__name__, e)
        return []

    async def fetch_raw(self, query: str) -> tuple[list, list]:
        """Fetch Polymarket search results and Kalshi events concurrently."""
        return await asyncio.gather(
            self._guarded(
                "polymarket", f"pm:search:{query}", self.ttl_short,
                lambda: self._fetch_polymarket(query),
            ),
            self._guarded("kalshi", "kalshi:events", self.ttl_long, self._fetch_kalshi),
        )

    # ── AUGMENT_EXTERNAL ─────────────────────────────────────────────

    async def _analyze(self, query: str, polymarket, kalshi, pm_candidates, kalshi_candidates) -> str:
        try:
            return await asyncio.wait_for(
                self.analyst.analyze(query, polymarket, kalshi, pm_candidates, kalshi_candidates),
                timeout=self.analysis_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Grok analysis timed out after %.1fs", self.analysis_timeout)
            return f"Grok unavailable: timed out after {self.analysis_timeout:g}s"
        except Exception as e:
            logger.error("Grok analysis error: %s", e)
            return f"Grok unavailable: {e}"

    # ── Main entry ───────────────────────────────────────────────────

    async def get_insight(self, query: str) -> Insight:
        """Build the Insight for ``query``. Never raises for upstream conditions."""
        start = time.monotonic()
        logger.info("[insight] start query=%r", query)

        source_start = time.monotonic()
        pm_raw, kalshi_raw = await self.fetch_raw(query)
        logger.info(
            "[insight] sources pm_markets=%d kalshi_events=%d elapsed_ms=%d",
            len(pm_raw), len(kalshi_raw), _elapsed_ms(source_start),
        )

        rank_start = time.monotonic()
        pm_candidates = build_polymarket_candidates(query, pm_raw, self.max_candidates)
        kalshi_candidates = build_kalshi_candidates(query, kalshi_raw, self.max_candidates)
        logger.info(
            "[insight] ranked pm_candidates=%d kalshi_candidates=%d elapsed_ms=%d",
            len(pm_candidates), len(kalshi_candidates), _elapsed_ms(rank_start),
        )

        polymarket = pick_primary(query, pm_candidates, self.confidence_floor)
        kalshi = pick_primary(query, kalshi_candidates, self.confidence_floor)
        consensus = compute_consensus(polymarket, kalshi)

        grok_start = time.monotonic()
        analysis = await self._analyze(query, polymarket, kalshi, pm_candidates, kalshi_candidates)
        logger.info("[insight] grok elapsed_ms=%d", _elapsed_ms(grok_start))

        insight = Insight(
            query=query,
            event_title=(polymarket.title if polymarket else None)
            or (kalshi.title if kalshi else None)
            or query,
            generated_at=datetime.now(timezone.utc).isoformat(),
            consensus_probability=consensus,
            polymarket=polymarket,
            kalshi=kalshi,
            polymarket_candidates=pm_candidates,
            kalshi_candidates=kalshi_candidates,
            grok_analysis=analysis,
        )
        logger.info("[insight] total elapsed_ms=%d", _elapsed_ms(start))
        return insight


async def get_insight(query: str, orchestrator: Optional[InsightOrchestrator] = None) -> Insight:
    """Convenience entry point; builds a default orchestrator when none is given."""
    return await (orchestrator or InsightOrchestrator()).get_insight(query)
