"""Shared utilities for loosely-typed upstream payloads."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

logger = logging.getLogger(__name__)


def safe_json(val: Any) -> list:
    """Parse a JSON-encoded array string, or return as-is if already a list."""
    if isinstance(val, list):
        return val
    if isinstance(val, str):
        try:
            parsed = json.loads(val)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Unparsable JSON array field: %r", val[:80])
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def to_number(raw: Any) -> float:
    """Coerce a numeric or numeric-string field to float; anything else is 0."""
    if isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else 0.0
    if isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return 0.0
        return value if math.isfinite(value) else 0.0
    return 0.0
