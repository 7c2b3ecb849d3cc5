"""RSS/Atom connector using feedparser."""

from __future__ import annotations

import asyncio
import calendar
import hashlib
import logging
import time
from typing import Any, Dict, List, Optional

import feedparser
from dateutil.parser import parse as parse_date

from hndigest.connectors.base import DEFAULT_TIMEOUT, FeedConnector
from hndigest.errors import RemoteFetchError
from hndigest.storage.models import DigestItem

logger = logging.getLogger(__name__)

_ID_MASK = (1 << 63) - 1


def item_id_from_guid(guid: str) -> int:
    """Numeric id for a feed entry.

    Feeds such as Habr end their guids with the article number
    (``https://habr.com/ru/articles/871234/``); that number is used as is.
    Anything else is hashed to a stable positive 63-bit integer.
    """
    tail = guid.strip().rstrip("/").rsplit("/", 1)[-1]
    if tail.isdigit():
        return int(tail) & _ID_MASK
    digest = hashlib.sha256(guid.strip().encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") & _ID_MASK


def _entry_timestamp(entry: Any) -> Optional[int]:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return calendar.timegm(parsed)
    raw = entry.get("published") or entry.get("updated")
    if raw:
        try:
            return int(parse_date(raw).timestamp())
        except (ValueError, TypeError, OverflowError):
            return None
    return None


def parse_entry(entry: Any, now: Optional[int] = None) -> Optional[DigestItem]:
    """Convert a feedparser entry to a DigestItem; None if it has no identity."""
    guid = entry.get("id") or entry.get("guid") or ""
    link = entry.get("link") or ""
    if not link and guid.startswith(("http://", "https://")):
        link = guid
    key = guid or link
    if not key:
        return None
    title = entry.get("title") or ""
    if isinstance(title, bytes):
        title = title.decode("utf-8", errors="replace")
    created_at = _entry_timestamp(entry)
    if created_at is None:
        created_at = now if now is not None else int(time.time())
    return DigestItem(
        id=item_id_from_guid(key),
        title=title.strip(),
        url=link.strip(),
        created_at=created_at,
    )


class RSSConnector(FeedConnector):
    """Fetch all current items of one RSS/Atom channel."""

    def __init__(self, config: Dict[str, Any], timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(config, timeout=timeout)
        self.url = str(config.get("url", ""))
        self.source_id = str(config.get("id") or config.get("name") or self.url)
        self.label = self.source_id

    async def list_candidate_items(self) -> List[DigestItem]:
        """Download and parse the feed. Parsing runs in an executor."""
        if not self.url:
            raise RemoteFetchError(self.source_id, "RSS source has no url")
        content = await self.get_bytes(self.url)

        def _parse() -> List[DigestItem]:
            feed = feedparser.parse(content)
            entries = getattr(feed, "entries", [])
            # Only fail on a parse error if we got no entries; minor bozo with entries is OK
            if getattr(feed, "bozo", False) and not entries:
                raise RemoteFetchError(
                    self.source_id, f"Cannot parse feed {self.url}: {feed.get('bozo_exception')!r}"
                )
            now = int(time.time())
            items: List[DigestItem] = []
            for entry in entries:
                item = parse_entry(entry, now)
                if item is None:
                    logger.debug("RSS %s: skipping entry without guid or link", self.source_id)
                    continue
                items.append(item)
            return items

        loop = asyncio.get_running_loop()
        items = await loop.run_in_executor(None, _parse)
        logger.debug("RSS %s: %d entries", self.source_id, len(items))
        return items
