"""
MarketLens — cross-venue prediction market insight + MCP server.

Layers:
  polymarket/   — Pure API clients (Gamma, CLOB) and Polymarket models
  kalshi/       — Pure API client (trade-api v2) and Kalshi models
  matching/     — Query tokenizing, relevance scoring, candidate ranking, consensus
  insight/      — Orchestrator, TTL cache, Grok analysis, config
  mcp/          — MCP server exposing the insight and market tools
"""
