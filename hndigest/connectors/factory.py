"""Connector factory: build the right connector from a source config entry."""

from __future__ import annotations

from typing import Any, Dict

from hndigest.connectors.base import DEFAULT_TIMEOUT, BaseConnector
from hndigest.connectors.hackernews import HackerNewsConnector
from hndigest.connectors.rss import RSSConnector


def build_connector(config: Dict[str, Any]) -> BaseConnector:
    """Return a connector for the given source config.

    config must have 'type' (hackernews | rss) and type-specific fields
    (url, story_list, max_items, user_agent, timeout).
    """
    timeout = float(config.get("timeout") or DEFAULT_TIMEOUT)
    source_type = (config.get("type") or "rss").lower().strip()
    if source_type == "hackernews":
        return HackerNewsConnector(config, timeout=timeout)
    if source_type == "rss":
        return RSSConnector(config, timeout=timeout)
    raise ValueError(f"Unknown source type {source_type!r}")
