"""Source connectors.

Supported types: hackernews (ranked ids + item bodies), rss (whole feed).
"""

from hndigest.connectors.base import BaseConnector, FeedConnector, RankedConnector
from hndigest.connectors.factory import build_connector
from hndigest.connectors.hackernews import HackerNewsConnector
from hndigest.connectors.rss import RSSConnector

__all__ = [
    "BaseConnector",
    "FeedConnector",
    "RankedConnector",
    "build_connector",
    "HackerNewsConnector",
    "RSSConnector",
]
