"""The query-scoped Insight handed to the presentation layer."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..kalshi.models import KalshiMatch
from ..polymarket.models import PolymarketMatch


class Insight(BaseModel):
    """
    Cross-venue view of one query.

    ``polymarket`` / ``kalshi`` are ``None`` when no confident match exists,
    and ``consensus_probability`` is ``None`` when neither venue matched.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    query: str
    event_title: str
    generated_at: str
    consensus_probability: Optional[float] = None
    polymarket: Optional[PolymarketMatch] = None
    kalshi: Optional[KalshiMatch] = None
    polymarket_candidates: list[PolymarketMatch] = Field(default_factory=list)
    kalshi_candidates: list[KalshiMatch] = Field(default_factory=list)
    grok_analysis: str = ""

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(by_alias=True)
