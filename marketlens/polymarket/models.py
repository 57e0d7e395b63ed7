"""
Pydantic models for Polymarket data.

Raw models mirror the Gamma payload closely enough to validate it at the
adapter boundary; match models are the normalized, scored candidates that
flow through selection, consensus and the Insight.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .utils import safe_json


class PolymarketRawMarket(BaseModel):
    """A single Gamma market as returned nested under an event."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    slug: Optional[str] = None
    question: Optional[str] = None
    description: Optional[str] = None
    outcomes: Union[str, list, None] = None
    outcome_prices: Union[str, list, None] = Field(default=None, alias="outcomePrices")
    clob_token_ids: Union[str, list, None] = Field(default=None, alias="clobTokenIds")
    volume: Union[float, str, None] = None
    liquidity: Union[float, str, None] = None
    end_date: Optional[str] = Field(default=None, alias="endDate")
    # Set by the search flattener for markets of multi-market events
    event_title: Optional[str] = Field(default=None, alias="eventTitle")
    active: Optional[bool] = None
    closed: Optional[bool] = None

    @property
    def is_open(self) -> bool:
        """Only markets explicitly active and explicitly not closed are tradable."""
        return self.active is True and self.closed is False

    @property
    def outcome_labels(self) -> list[str]:
        return [str(v) for v in safe_json(self.outcomes)]

    @property
    def outcome_price_strings(self) -> list[str]:
        return [str(v) for v in safe_json(self.outcome_prices)]

    @property
    def first_token_id(self) -> Optional[str]:
        tokens = safe_json(self.clob_token_ids)
        return str(tokens[0]) if tokens else None


class PolymarketMatch(BaseModel):
    """A scored Polymarket candidate for a query."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    slug: str
    clob_token_id: Optional[str] = None
    probability: float
    probability_label: str
    volume: float = 0.0
    liquidity: float = 0.0
    end_date: Optional[str] = None
    url: str
    score: float

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
