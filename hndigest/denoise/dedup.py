"""Drop repeated stories from a digest batch."""

from __future__ import annotations

import logging
from typing import Iterable, List

from hndigest.storage.models import DigestItem

logger = logging.getLogger(__name__)


def deduplicate(items: Iterable[DigestItem]) -> List[DigestItem]:
    """Keep the first item for each URL, in input order.

    URLs are compared as exact strings; titles play no part.
    """
    seen: set[str] = set()
    unique: List[DigestItem] = []
    dups = 0
    for item in items:
        if item.url in seen:
            dups += 1
            continue
        seen.add(item.url)
        unique.append(item)
    if dups:
        logger.debug("Dedup: dropped %d repeated URL(s)", dups)
    return unique
