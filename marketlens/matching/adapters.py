"""
Source adapters: raw venue listings -> scored, ranked candidates.

Each adapter validates raw payloads into typed records, drops listings that
are not open, extracts a probability through an ordered chain of price
strategies, scores the listing against the query and keeps the best few.

Price strategies return ``None`` when they cannot produce a quote; the chain
stops at the first quote returned, even if the adapter later rejects it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, TypeVar, Union

from pydantic import ValidationError

from ..kalshi.models import KalshiMatch, KalshiRawEvent, KalshiRawMarket
from ..polymarket.models import PolymarketMatch, PolymarketRawMarket
from ..polymarket.utils import to_number
from .scoring import match_score

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 3
MAX_KALSHI_TITLE_CHARS = 220

POLYMARKET_EVENT_URL = "https://polymarket.com/event/{slug}"
KALSHI_MARKET_URL = "https://kalshi.com/markets/{event_ticker}"


@dataclass(frozen=True)
class PriceQuote:
    """Probability extracted from a listing, with the outcome it refers to."""
    probability: float
    label: str


M = TypeVar("M")
PriceStrategy = Callable[[M], Optional[PriceQuote]]
Candidate = TypeVar("Candidate", PolymarketMatch, KalshiMatch)


def extract_price(raw: M, strategies: Sequence[PriceStrategy]) -> Optional[PriceQuote]:
    """Run ``strategies`` in order and return the first quote produced."""
    for strategy in strategies:
        quote = strategy(raw)
        if quote is not None:
            return quote
    return None


def rank_candidates(candidates: Iterable[Candidate], limit: int = MAX_CANDIDATES) -> list[Candidate]:
    """Score desc, then probability desc, then volume desc; keep ``limit``."""
    ordered = sorted(
        candidates,
        key=lambda c: (c.score, c.probability, c.volume),
        reverse=True,
    )
    return ordered[:limit]


# ── Polymarket ───────────────────────────────────────────────────────

def _outcome_prices(market: PolymarketRawMarket) -> list[float]:
    return [to_number(p) for p in market.outcome_price_strings]


def yes_outcome_price(market: PolymarketRawMarket) -> Optional[PriceQuote]:
    """Price of the outcome labeled "yes", if it lies in [0, 1]."""
    prices = _outcome_prices(market)
    if not prices:
        return None
    labels = [label.lower() for label in market.outcome_labels]
    if "yes" not in labels:
        return None
    idx = labels.index("yes")
    if idx >= len(prices):
        return None
    prob = prices[idx]
    if 0 <= prob <= 1:
        return PriceQuote(prob, "YES")
    return None


def top_outcome_price(market: PolymarketRawMarket) -> Optional[PriceQuote]:
    """Highest-priced outcome; accepts the boundary price 0."""
    prices = _outcome_prices(market)
    if not prices:
        return None
    top_idx = 0
    for i in range(1, len(prices)):
        if prices[i] > prices[top_idx]:
            top_idx = i
    prob = prices[top_idx]
    if prob < 0 or prob > 1:
        return None
    labels = market.outcome_labels
    label = labels[top_idx] if top_idx < len(labels) else "Top outcome"
    return PriceQuote(prob, label.upper())


POLYMARKET_PRICE_STRATEGIES: tuple[PriceStrategy, ...] = (
    yes_outcome_price,
    top_outcome_price,
)


def _parse_polymarket(raw: Union[dict, PolymarketRawMarket]) -> Optional[PolymarketRawMarket]:
    if isinstance(raw, PolymarketRawMarket):
        return raw
    try:
        return PolymarketRawMarket.model_validate(raw)
    except ValidationError as e:
        logger.debug("Skipping malformed Polymarket market: %s", e.errors()[:1])
        return None


def polymarket_candidate(query: str, raw: Union[dict, PolymarketRawMarket]) -> Optional[PolymarketMatch]:
    """Build one scored candidate, or ``None`` if the listing is unusable or irrelevant."""
    market = _parse_polymarket(raw)
    if market is None or not market.is_open:
        return None

    title = (market.question or "").strip()
    slug = (market.slug or "").strip()
    if not title or not slug:
        return None

    quote = extract_price(market, POLYMARKET_PRICE_STRATEGIES)
    if quote is None:
        return None

    volume = to_number(market.volume)
    score = match_score(query, title, volume)
    if market.event_title:
        score = max(score, match_score(query, market.event_title, volume))
    if score <= 0:
        return None

    return PolymarketMatch(
        title=title,
        slug=slug,
        clob_token_id=market.first_token_id,
        probability=quote.probability,
        probability_label=quote.label,
        volume=volume,
        liquidity=to_number(market.liquidity),
        end_date=market.end_date,
        url=POLYMARKET_EVENT_URL.format(slug=slug),
        score=score,
    )


def build_polymarket_candidates(
    query: str,
    markets: Iterable[Union[dict, PolymarketRawMarket]],
    limit: int = MAX_CANDIDATES,
) -> list[PolymarketMatch]:
    candidates = []
    for raw in markets:
        candidate = polymarket_candidate(query, raw)
        if candidate is not None:
            candidates.append(candidate)
    return rank_candidates(candidates, limit)


# ── Kalshi ───────────────────────────────────────────────────────────

def last_traded_price(market: KalshiRawMarket) -> Optional[PriceQuote]:
    last = to_number(market.last_price_dollars)
    return PriceQuote(last, "YES") if last > 0 else None


def bid_ask_midpoint(market: KalshiRawMarket) -> Optional[PriceQuote]:
    bid = to_number(market.yes_bid_dollars)
    ask = to_number(market.yes_ask_dollars)
    if bid > 0 and ask > 0:
        return PriceQuote((bid + ask) / 2, "YES")
    return None


KALSHI_PRICE_STRATEGIES: tuple[PriceStrategy, ...] = (
    last_traded_price,
    bid_ask_midpoint,
)


def _parse_kalshi_markets(event: KalshiRawEvent) -> list[KalshiRawMarket]:
    markets = []
    for raw in event.markets:
        try:
            markets.append(KalshiRawMarket.model_validate(raw))
        except ValidationError as e:
            logger.debug(
                "Skipping malformed Kalshi market in %s: %s",
                event.event_ticker, e.errors()[:1],
            )
    return markets


def _kalshi_outcome_label(market: KalshiRawMarket, multi_market: bool) -> str:
    if not multi_market:
        return "YES"
    sub_title = market.yes_sub_title if market.yes_sub_title is not None else market.subtitle
    return (sub_title or "").strip() or "YES"


def kalshi_event_candidates(query: str, raw: Union[dict, KalshiRawEvent]) -> list[KalshiMatch]:
    """Scored candidates for every open market of one event."""
    if isinstance(raw, KalshiRawEvent):
        event = raw
    else:
        try:
            event = KalshiRawEvent.model_validate(raw)
        except ValidationError as e:
            logger.debug("Skipping malformed Kalshi event: %s", e.errors()[:1])
            return []

    open_markets = [m for m in _parse_kalshi_markets(event) if m.is_open]
    if not open_markets:
        return []

    event_volume = sum(to_number(m.volume) for m in open_markets)
    event_score = match_score(query, event.title or "", event_volume)
    multi_market = len(open_markets) > 1

    candidates = []
    for market in open_markets:
        if not market.title or len(market.title) > MAX_KALSHI_TITLE_CHARS:
            continue

        quote = extract_price(market, KALSHI_PRICE_STRATEGIES)
        if quote is None or quote.probability <= 0 or quote.probability > 1:
            continue

        volume = to_number(market.volume)
        score = max(event_score, match_score(query, market.title, volume))
        if score <= 0:
            continue

        close_time = (
            market.close_time if market.close_time is not None
            else market.expected_expiration_time
        )
        candidates.append(KalshiMatch(
            title=market.title,
            ticker=market.ticker,
            event_ticker=event.event_ticker,
            probability=quote.probability,
            probability_label=_kalshi_outcome_label(market, multi_market),
            volume=volume,
            volume_24h=to_number(market.volume_24h),
            open_interest=to_number(market.open_interest),
            close_time=close_time,
            yes_bid=str(market.yes_bid_dollars if market.yes_bid_dollars is not None else "0"),
            yes_ask=str(market.yes_ask_dollars if market.yes_ask_dollars is not None else "0"),
            url=KALSHI_MARKET_URL.format(event_ticker=event.event_ticker),
            score=score,
        ))
    return candidates


def build_kalshi_candidates(
    query: str,
    events: Iterable[Union[dict, KalshiRawEvent]],
    limit: int = MAX_CANDIDATES,
) -> list[KalshiMatch]:
    candidates: list[KalshiMatch] = []
    for raw in events:
        candidates.extend(kalshi_event_candidates(query, raw))
    return rank_candidates(candidates, limit)
