from __future__ import annotations

import copy

import pytest

from marketlens.insight.config import DEFAULTS


@pytest.fixture
def config() -> dict:
    cfg = copy.deepcopy(DEFAULTS)
    cfg["timeouts"] = {"source": 1.0, "analysis": 1.0}
    cfg["analysis"]["api_key"] = None
    return cfg
