"""
Grok-powered real-time briefing for an insight.

Builds a compact market snapshot prompt from the selected candidates and
asks the xAI Responses API (with X + web search tools) for fresh real-world
signal. Every failure is turned into a "Grok unavailable" string; nothing
here raises for external causes.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence, Union

import httpx

from ..kalshi.models import KalshiMatch
from ..polymarket.models import PolymarketMatch

logger = logging.getLogger(__name__)

XAI_BASE = "https://api.x.ai/v1"
TIMEOUT = 45.0

SYSTEM_PROMPT = (
    "You are a real-time news and social intelligence assistant. "
    "Your job is to surface fresh signal from X and the web — NOT to analyze market odds or probabilities. "
    "Use at most 2 search tool calls. Be concise and specific: include real post excerpts, dates, and named sources where possible."
)

NO_TEXT = "Grok returned no analysis text."
MISSING_KEY = "Grok unavailable: XAI_API_KEY is not configured."

Match = Union[PolymarketMatch, KalshiMatch]


# ── Prompt ───────────────────────────────────────────────────────────

def _describe(match: Match) -> str:
    return f"{match.title} ({match.probability * 100:.1f}% {match.probability_label})"


def _primary_line(venue: str, match: Optional[Match]) -> str:
    if match is None:
        return f"- {venue} primary: no confident match"
    return (
        f"- {venue} primary: {match.title} | {match.probability * 100:.1f}% "
        f"{match.probability_label} | volume {match.volume:.0f} | score {match.score:.2f}"
    )


def build_analysis_prompt(
    query: str,
    polymarket: Optional[PolymarketMatch],
    kalshi: Optional[KalshiMatch],
    polymarket_candidates: Sequence[PolymarketMatch] = (),
    kalshi_candidates: Sequence[KalshiMatch] = (),
) -> str:
    """Summarize the query and market snapshot for the briefing model."""
    lines = [
        f"User query: {query}",
        "",
        "Prediction market snapshot:",
        _primary_line("Polymarket", polymarket),
        _primary_line("Kalshi", kalshi),
    ]

    if len(polymarket_candidates) > 1:
        others = "; ".join(_describe(c) for c in polymarket_candidates[1:])
        lines.append(f"- Other Polymarket candidates: {others}")
    if len(kalshi_candidates) > 1:
        others = "; ".join(_describe(c) for c in kalshi_candidates[1:])
        lines.append(f"- Other Kalshi candidates: {others}")

    lines += [
        "",
        "Task: Use X search to surface the freshest real-world signal on this question. "
        "Do NOT interpret or explain the market odds — the user can see those already. "
        "Focus entirely on what is happening in the real world RIGHT NOW.",
        "Return exactly three short sections:",
        "1) X pulse: most relevant posts/sentiment on X in the last 48 hours, with approximate dates",
        "2) Latest news: key headlines or developments driving this question today",
        "3) Catalysts: specific upcoming events, dates, or triggers that could move this market",
    ]
    return "\n".join(lines)


# ── Response parsing ─────────────────────────────────────────────────

def _assistant_chunks(payload: dict) -> list[dict]:
    chunks = []
    for item in payload.get("output") or []:
        if not isinstance(item, dict):
            continue
        if item.get("type") != "message" or item.get("role") != "assistant":
            continue
        chunks.extend(c for c in item.get("content") or [] if isinstance(c, dict))
    return chunks


def parse_response_text(payload: Any) -> str:
    """Pull the answer text out of a Responses (or chat-completions) payload."""
    if not isinstance(payload, dict):
        return NO_TEXT

    output_text = payload.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text

    for chunk in _assistant_chunks(payload):
        text = chunk.get("text")
        if chunk.get("type") == "output_text" and isinstance(text, str) and text.strip():
            return text

    try:
        fallback = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        fallback = None
    if isinstance(fallback, str) and fallback.strip():
        return fallback

    return NO_TEXT


def count_inline_citations(payload: dict) -> int:
    count = 0
    for chunk in _assistant_chunks(payload):
        for annotation in chunk.get("annotations") or []:
            if isinstance(annotation, dict) and annotation.get("type") == "url_citation":
                count += 1
    return count


def summarize_tool_calls(payload: dict) -> str:
    """One-line count of completed search tool calls, for logging."""
    x_search = web_search = other = 0
    for item in payload.get("output") or []:
        if not isinstance(item, dict) or item.get("status") != "completed":
            continue
        kind = item.get("type")
        if kind == "x_search_call":
            x_search += 1
        elif kind == "web_search_call":
            web_search += 1
        elif kind == "custom_tool_call":
            tool = (item.get("name") or "").lower()
            if tool.startswith("x_"):
                x_search += 1
            elif "web" in tool or "browse" in tool:
                web_search += 1
            else:
                other += 1
    return f"x_search={x_search} web_search={web_search} other_custom={other}"


# ── Analyst ──────────────────────────────────────────────────────────

class GrokAnalyst:
    """External analysis collaborator backed by the xAI Responses API."""

    def __init__(self, config: dict, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            config: The ``analysis`` config section; ``api_key`` may be None.
            client: Optional HTTP client (tests, custom transports).
        """
        self.api_key = config.get("api_key")
        self.model = config.get("model", "grok-4-1-fast-non-reasoning")
        self.max_output_tokens = config.get("max_output_tokens", 500)
        self.max_tool_calls = config.get("max_tool_calls", 4)
        self.lookback_days = config.get("lookback_days", 14)
        self._client = client

    @property
    def name(self) -> str:
        return f"Grok ({self.model})"

    async def analyze(
        self,
        query: str,
        polymarket: Optional[PolymarketMatch],
        kalshi: Optional[KalshiMatch],
        polymarket_candidates: Sequence[PolymarketMatch] = (),
        kalshi_candidates: Sequence[KalshiMatch] = (),
    ) -> str:
        """Return a short briefing, or a "Grok unavailable" placeholder."""
        if not self.api_key:
            return MISSING_KEY

        prompt = build_analysis_prompt(
            query, polymarket, kalshi, polymarket_candidates, kalshi_candidates
        )
        logger.info("[grok] model=%s tools=x_search,web_search query=%r", self.model, query)

        start = time.monotonic()
        try:
            response = await self._post(self._build_payload(prompt))
        except httpx.HTTPError as e:
            logger.warning("Grok request failed: %s", e)
            return f"Grok unavailable: {str(e) or type(e).__name__}"

        if not response.is_success:
            return f"Grok unavailable ({response.status_code}): {response.text[:220]}"

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("Grok returned invalid JSON: %s", e)
            return f"Grok unavailable: {e}"

        if isinstance(payload, dict):
            logger.info(
                "[grok] status=%s %s citations=%d elapsed_ms=%d",
                payload.get("status", "unknown"),
                summarize_tool_calls(payload),
                count_inline_citations(payload),
                (time.monotonic() - start) * 1000,
            )
        return parse_response_text(payload)

    def _build_payload(self, prompt: str) -> dict:
        from_date = (datetime.now(timezone.utc) - timedelta(days=self.lookback_days)).date().isoformat()
        return {
            "model": self.model,
            "max_output_tokens": self.max_output_tokens,
            "max_tool_calls": self.max_tool_calls,
            "tools": [{"type": "x_search", "from_date": from_date}, {"type": "web_search"}],
            "input": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }

    async def _post(self, payload: dict) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        url = f"{XAI_BASE}/responses"
        if self._client is not None:
            return await self._client.post(url, json=payload, headers=headers)
        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            return await client.post(url, json=payload, headers=headers)
