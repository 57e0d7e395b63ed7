"""
Lexical relevance scoring between a user query and a market title.

Score components:
  coverage   — share of query tokens found in the title (dominant)
  jaccard    — penalizes titles padded with unrelated tokens
  phrase     — bonus when one normalized string contains the other
  volume     — small saturating nudge toward heavily traded markets

~0.34 is the "confident match" floor; 1.0+ is an excellent match.
"""

from __future__ import annotations

import math

from .text import normalize, tokenize

COVERAGE_WEIGHT = 0.58
JACCARD_WEIGHT = 0.24
PHRASE_BONUS = 0.18
VOLUME_BOOST_CAP = 0.1
VOLUME_BOOST_DIVISOR = 30

# Queries with this many tokens need two hits to count as a match
LONG_QUERY_TOKENS = 4
MIN_PHRASE_CHARS = 6


def overlap_count(a: set[str], b: set[str]) -> int:
    return len(a & b)


def jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    union = len(a | b)
    return overlap_count(a, b) / union if union else 0.0


def volume_boost(volume: float) -> float:
    return min(VOLUME_BOOST_CAP, math.log10(1 + max(0.0, volume)) / VOLUME_BOOST_DIVISOR)


def phrase_hit(query: str, title: str) -> bool:
    """True when the normalized query (>= 6 chars) and title contain one another."""
    normalized_query = normalize(query)
    normalized_title = normalize(title)
    return len(normalized_query) >= MIN_PHRASE_CHARS and (
        normalized_query in normalized_title or normalized_title in normalized_query
    )


def match_score(query: str, title: str, volume: float) -> float:
    """
    Relevance of ``title`` to ``query``.

    Returns 0 when either side has no tokens, or when the token overlap is
    below the minimum for the query length and there is no phrase hit.
    """
    query_tokens = tokenize(query)
    title_tokens = tokenize(title)
    if not query_tokens or not title_tokens:
        return 0.0

    overlap = overlap_count(query_tokens, title_tokens)
    min_overlap = 2 if len(query_tokens) >= LONG_QUERY_TOKENS else 1
    hit = phrase_hit(query, title)

    if overlap < min_overlap and not hit:
        return 0.0

    coverage = overlap / len(query_tokens)
    return (
        coverage * COVERAGE_WEIGHT
        + jaccard(query_tokens, title_tokens) * JACCARD_WEIGHT
        + (PHRASE_BONUS if hit else 0.0)
        + volume_boost(volume)
    )


def is_open_ended_query(query: str) -> bool:
    """'Who will…' / 'which…' questions ask for the leading outcome, not a yes/no."""
    normalized = normalize(query)
    return (
        normalized.startswith("who ")
        or "who will" in normalized
        or normalized.startswith("which ")
        or "which candidate" in normalized
    )
