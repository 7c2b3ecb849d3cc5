"""Shared fixtures: temporary ledgers, fake connectors and a recording sender."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from hndigest.connectors.base import FeedConnector, RankedConnector
from hndigest.errors import RemoteFetchError, SendError
from hndigest.storage.ledger import LedgerStore
from hndigest.storage.models import DigestItem

NOW = 1_700_000_000


def make_item(item_id: int, title: str = "", url: Optional[str] = None) -> DigestItem:
    return DigestItem(
        id=item_id,
        title=title or f"Story {item_id}",
        url=f"https://example.com/{item_id}" if url is None else url,
        created_at=NOW,
    )


class FakeRankedConnector(RankedConnector):
    """Serves canned ids and item bodies without touching the network."""

    def __init__(
        self,
        items: Sequence[DigestItem],
        source_id: str = "hackernews",
        label: str = "HackerNews",
        ids: Optional[List[int]] = None,
        fail_on: Optional[int] = None,
    ):
        super().__init__({})
        self.source_id = source_id
        self.label = label
        self.items: Dict[int, DigestItem] = {i.id: i for i in items}
        self.ids = ids if ids is not None else [i.id for i in items]
        self.fail_on = fail_on
        self.fetched: List[int] = []

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def list_candidate_ids(self) -> List[int]:
        return list(self.ids)

    async def fetch_item(self, item_id: int) -> DigestItem:
        if item_id == self.fail_on:
            raise RemoteFetchError(self.source_id, f"item {item_id} unavailable")
        self.fetched.append(item_id)
        return self.items[item_id]


class FakeFeedConnector(FeedConnector):
    def __init__(self, items: Sequence[DigestItem], source_id: str = "habr"):
        super().__init__({})
        self.source_id = source_id
        self.label = source_id
        self.items = list(items)

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def list_candidate_items(self) -> List[DigestItem]:
        return list(self.items)


class FailingConnector(FakeRankedConnector):
    """Connector whose id listing always fails."""

    def __init__(self, source_id: str = "hackernews"):
        super().__init__([], source_id=source_id)

    async def list_candidate_ids(self) -> List[int]:
        raise RemoteFetchError(self.source_id, "Simulated network failure")


class RecordingSender:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, List[DigestItem]]] = []

    async def send_digest(self, label: str, items: Sequence[DigestItem]) -> None:
        self.sent.append((label, list(items)))


class FailingSender:
    async def send_digest(self, label: str, items: Sequence[DigestItem]) -> None:
        raise SendError("SMTP server unreachable")


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "data" / "ledger.txt"


@pytest.fixture
def store(ledger_path):
    return LedgerStore.open(ledger_path)


@pytest.fixture
def sender():
    return RecordingSender()
