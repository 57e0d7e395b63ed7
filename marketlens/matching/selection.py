"""Primary-match selection and cross-venue consensus."""

from __future__ import annotations

from typing import Optional, Sequence, TypeVar

from ..kalshi.models import KalshiMatch
from ..polymarket.models import PolymarketMatch
from .scoring import is_open_ended_query

CONFIDENCE_FLOOR = 0.34

Candidate = TypeVar("Candidate", PolymarketMatch, KalshiMatch)


def pick_primary(
    query: str,
    candidates: Sequence[Candidate],
    confidence_floor: float = CONFIDENCE_FLOOR,
) -> Optional[Candidate]:
    """
    Choose at most one primary match from a source's ranked candidates.

    Candidates below ``confidence_floor`` are never returned. For open-ended
    queries ("who will…", "which…") the most likely confident outcome wins;
    otherwise the best-scored confident candidate does.
    """
    confident = [c for c in candidates if c.score >= confidence_floor]
    if not confident:
        return None

    if is_open_ended_query(query):
        return sorted(confident, key=lambda c: (c.probability, c.score), reverse=True)[0]

    return confident[0]


def compute_consensus(
    polymarket: Optional[PolymarketMatch],
    kalshi: Optional[KalshiMatch],
) -> Optional[float]:
    """Volume-weighted probability across venues; ``None`` when neither matched."""
    if polymarket is not None and kalshi is not None:
        total_volume = polymarket.volume + kalshi.volume
        if total_volume <= 0:
            return (polymarket.probability + kalshi.probability) / 2
        return (
            polymarket.probability * polymarket.volume
            + kalshi.probability * kalshi.volume
        ) / total_volume

    if polymarket is not None:
        return polymarket.probability
    if kalshi is not None:
        return kalshi.probability
    return None
