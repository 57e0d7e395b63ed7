"""
Configuration loader for the insight service.

Reads an optional YAML config, layers it over built-in defaults and injects
secrets from environment variables.
"""

import copy
import os

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULTS: dict = {
    "cache": {
        "ttl_short": 30,      # seconds, per-query searches
        "ttl_long": 300,      # seconds, bulk venue listings
        "max_entries": 512,
    },
    "matching": {
        "confidence_floor": 0.34,
        "max_candidates": 3,
    },
    "timeouts": {
        "source": 15.0,
        "analysis": 45.0,
    },
    "polymarket": {
        "search_limit": 8,
    },
    "kalshi": {
        "events_limit": 200,
    },
    "analysis": {
        "model": "grok-4-1-fast-non-reasoning",
        "max_output_tokens": 500,
        "max_tool_calls": 4,
        "lookback_days": 14,
    },
}


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: str = "config.yaml") -> dict:
    """
    Load configuration from YAML file, falling back to defaults.

    Injects XAI_API_KEY into analysis.api_key and lets XAI_MODEL override
    analysis.model. A missing key is allowed: analysis degrades to a
    placeholder instead of failing the insight.
    """
    config = copy.deepcopy(DEFAULTS)
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            _merge(config, yaml.safe_load(f) or {})

    # Inject API key from environment
    config["analysis"]["api_key"] = os.getenv("XAI_API_KEY") or config["analysis"].get("api_key")
    model = os.getenv("XAI_MODEL")
    if model:
        config["analysis"]["model"] = model

    return config
