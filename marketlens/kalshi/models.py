"""
Pydantic models for Kalshi data.

Kalshi serves dollar prices as strings (``"0.5300"``) and counts as ints.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OPEN_STATUSES = frozenset({"active", "open"})


class KalshiRawMarket(BaseModel):
    """A market nested under a Kalshi event."""
    model_config = ConfigDict(extra="ignore")

    ticker: str
    event_ticker: str = ""
    title: Optional[str] = None
    subtitle: Optional[str] = None
    yes_sub_title: Optional[str] = None
    no_sub_title: Optional[str] = None
    status: str = ""
    close_time: Optional[str] = None
    expected_expiration_time: Optional[str] = None
    yes_bid_dollars: Union[str, float, None] = None
    yes_ask_dollars: Union[str, float, None] = None
    last_price_dollars: Union[str, float, None] = None
    volume: Union[float, str, None] = None
    volume_24h: Union[float, str, None] = None
    open_interest: Union[float, str, None] = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


class KalshiRawEvent(BaseModel):
    """A Kalshi event with nested markets (``with_nested_markets=true``)."""
    model_config = ConfigDict(extra="ignore")

    event_ticker: str
    title: Optional[str] = None
    sub_title: Optional[str] = None
    category: Optional[str] = None
    markets: list[Any] = Field(default_factory=list)


class KalshiMatch(BaseModel):
    """A scored Kalshi candidate for a query."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    ticker: str
    event_ticker: str
    probability: float
    probability_label: str
    volume: float = 0.0
    volume_24h: float = Field(default=0.0, alias="volume24h")
    open_interest: float = 0.0
    close_time: Optional[str] = None
    yes_bid: str = "0"
    yes_ask: str = "0"
    url: str
    score: float

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
