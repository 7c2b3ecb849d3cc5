"""Connector interfaces for the two kinds of source the pipeline understands."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import aiohttp
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from hndigest.errors import RemoteFetchError
from hndigest.storage.models import DigestItem

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
DEFAULT_TIMEOUT = 30


class BaseConnector(ABC):
    """Common HTTP plumbing: one aiohttp session per ``async with`` block.

    Subclasses identify the ledger source they feed through ``source_id`` and
    the human-readable digest name through ``label``.
    """

    source_id: str = ""
    label: str = ""

    def __init__(self, config: Dict[str, Any], timeout: float = DEFAULT_TIMEOUT) -> None:
        self.url = str(config.get("url", "")).rstrip("/")
        self.user_agent = config.get("user_agent") or DEFAULT_USER_AGENT
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> BaseConnector:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout, headers={"User-Agent": self.user_agent}
            )

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        assert self._session is not None, "Connector not opened"
        return self._session

    @retry(
        retry=retry_if_exception_type((aiohttp.ClientConnectionError, asyncio.TimeoutError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=60),
        reraise=True,
    )
    async def _get(self, url: str, as_json: bool) -> Any:
        async with self.session.get(url) as resp:
            resp.raise_for_status()
            if as_json:
                return await resp.json(content_type=None)
            return await resp.read()

    async def get_json(self, url: str) -> Any:
        """GET *url* and decode JSON; any failure becomes RemoteFetchError."""
        try:
            return await self._get(url, as_json=True)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise RemoteFetchError(self.source_id, f"GET {url} failed: {e!r}") from e

    async def get_bytes(self, url: str) -> bytes:
        try:
            return await self._get(url, as_json=False)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RemoteFetchError(self.source_id, f"GET {url} failed: {e!r}") from e


class RankedConnector(BaseConnector):
    """A source that publishes a ranked list of ids and serves items one by one."""

    @abstractmethod
    async def list_candidate_ids(self) -> List[int]:
        """Return the ids currently listed by the source, in rank order."""
        ...

    @abstractmethod
    async def fetch_item(self, item_id: int) -> DigestItem:
        """Fetch one item body. A missing url must come back as ``""``."""
        ...


class FeedConnector(BaseConnector):
    """A source that returns all of its current items in a single call."""

    @abstractmethod
    async def list_candidate_items(self) -> List[DigestItem]:
        ...
