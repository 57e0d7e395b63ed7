"""Text normalization and tokenizing for query/title matching."""

from __future__ import annotations

import re

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "at", "be", "by", "for", "from", "has",
    "have", "how", "in", "is", "it", "its", "of", "on", "or", "that",
    "the", "their", "to", "was", "what", "when", "where", "who", "will",
    "with",
})

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Lowercase, replace anything outside [a-z0-9\\s] with a space, collapse whitespace."""
    lowered = _NON_ALNUM.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", lowered).strip()


def tokenize(text: str) -> set[str]:
    """Set of content tokens: normalized, longer than one char, not a stop word."""
    normalized = normalize(text)
    if not normalized:
        return set()
    return {
        token for token in normalized.split(" ")
        if len(token) > 1 and token not in STOP_WORDS
    }
