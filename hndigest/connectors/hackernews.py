"""HackerNews Firebase API connector: ranked story ids plus one request per item."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from hndigest.connectors.base import DEFAULT_TIMEOUT, RankedConnector
from hndigest.errors import RemoteFetchError
from hndigest.storage.models import DigestItem

logger = logging.getLogger(__name__)

API_BASE_URL = "https://hacker-news.firebaseio.com/v0"
SOURCE_ID = "hackernews"


def parse_item(item_id: int, data: Optional[Dict[str, Any]]) -> DigestItem:
    """Map an ``/item/{id}.json`` body to a DigestItem.

    Deleted items come back as ``null``; they and any item without a url
    (Ask HN, polls) get an empty url so the pipeline records and skips them.
    """
    if not data:
        return DigestItem(id=item_id, title="", url="", created_at=int(time.time()))
    created_at = data.get("time")
    return DigestItem(
        id=item_id,
        title=data.get("title") or "",
        url=data.get("url") or "",
        created_at=int(created_at) if created_at is not None else int(time.time()),
    )


class HackerNewsConnector(RankedConnector):
    """Fetch ranked story ids and item bodies from the HackerNews API."""

    source_id = SOURCE_ID
    label = "HackerNews"

    def __init__(self, config: Dict[str, Any], timeout: float = DEFAULT_TIMEOUT) -> None:
        super().__init__(config, timeout=timeout)
        self.url = self.url or API_BASE_URL
        self.story_list = config.get("story_list") or "topstories"
        self.max_items: Optional[int] = config.get("max_items")

    async def list_candidate_ids(self) -> List[int]:
        data = await self.get_json(f"{self.url}/{self.story_list}.json")
        if not isinstance(data, list):
            raise RemoteFetchError(
                self.source_id, f"{self.story_list}.json is not a list: {type(data).__name__}"
            )
        try:
            ids = [int(i) for i in data]
        except (TypeError, ValueError) as e:
            raise RemoteFetchError(self.source_id, f"Bad id in {self.story_list}.json: {e}") from e
        if self.max_items:
            ids = ids[: self.max_items]
        logger.debug("HackerNews %s: %d ids", self.story_list, len(ids))
        return ids

    async def fetch_item(self, item_id: int) -> DigestItem:
        data = await self.get_json(f"{self.url}/item/{item_id}.json")
        if data is not None and not isinstance(data, dict):
            raise RemoteFetchError(self.source_id, f"item {item_id} is not an object")
        try:
            return parse_item(item_id, data)
        except (TypeError, ValueError) as e:
            raise RemoteFetchError(self.source_id, f"item {item_id} is malformed: {e}") from e
