"""Hard filters: title patterns, blacklisted domains and missing URLs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List
from urllib.parse import urlparse

from hndigest.storage.models import PLACEHOLDER

logger = logging.getLogger(__name__)


@dataclass
class ItemFilter:
    """A named group of comma-separated, case-insensitive title patterns.

    ``ItemFilter(title="Languages", value=r"\\brust\\b,\\bgo(lang)?\\b")``
    """

    title: str
    value: str

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> ItemFilter:
        return cls(title=str(cfg.get("title", "")), value=str(cfg.get("value", "")))

    def patterns(self) -> List[str]:
        return self.value.split(",")


def compile_filters(filters: Iterable[ItemFilter]) -> List[re.Pattern]:
    """Compile every comma-delimited pattern of every filter.

    Patterns that fail to compile are logged and dropped; the rest are still
    compiled. Empty tokens (``"a,,b"``) are skipped.
    """
    compiled: List[re.Pattern] = []
    for item_filter in filters:
        for pattern in item_filter.patterns():
            if not pattern:
                continue
            try:
                compiled.append(re.compile(pattern, re.IGNORECASE))
            except re.error as e:
                logger.warning(
                    "Dropping invalid pattern %r in filter %r: %s",
                    pattern, item_filter.title, e,
                )
    return compiled


class TitleFilter:
    """Keep/exclude decision for item titles.

    Normal mode keeps a title when any pattern matches it. Reverse mode keeps
    exactly the titles normal mode would drop, so with no patterns at all
    nothing is kept normally and everything is kept in reverse.
    """

    def __init__(self, patterns: Iterable[re.Pattern]) -> None:
        self.patterns = list(patterns)

    @classmethod
    def from_filters(cls, filters: Iterable[ItemFilter]) -> TitleFilter:
        return cls(compile_filters(filters))

    def __len__(self) -> int:
        return len(self.patterns)

    def matches(self, title: str) -> bool:
        return any(p.search(title) for p in self.patterns)

    def keep(self, title: str, reverse: bool = False) -> bool:
        return self.matches(title) != reverse


class DomainBlacklist:
    """Exact host match against a configured set of domains."""

    def __init__(self, domains: Iterable[str]) -> None:
        self.domains = {d.strip().lower() for d in domains if d and d.strip()}

    def is_blacklisted(self, url: str) -> bool:
        """True if *url* parses and its host is blacklisted; never for empty or bad URLs."""
        if not url or not self.domains:
            return False
        try:
            host = urlparse(url.strip()).hostname
        except ValueError:
            return False
        if not host:
            return False
        return host.rstrip(".") in self.domains


def is_missing_url(url: str) -> bool:
    """True for an empty URL or the rejected-item placeholder."""
    stripped = (url or "").strip()
    return not stripped or stripped == PLACEHOLDER
