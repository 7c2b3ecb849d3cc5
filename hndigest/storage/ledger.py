"""In-memory ledger of processed ``(id, source)`` pairs with durable commits.

Usage:
    store = LedgerStore.open("db.sqlite3")
    new_ids = resolve_new_ids("hackernews", candidate_ids, store)
    with store.transaction():
        store.insert_batch(records)
"""

from __future__ import annotations

import enum
import logging
import time
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Set, Tuple

from hndigest.errors import DuplicateKeyError
from hndigest.storage.backends import LedgerBackend, get_backend
from hndigest.storage.models import Record

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

Key = Tuple[int, str]


class StoreState(str, enum.Enum):
    LOADED = "loaded"
    DIRTY = "dirty"
    COMMITTED = "committed"


class LedgerStore:
    """Ledger of already-processed items, keyed by ``(id, source)``.

    Records live in memory in insertion order. Mutations (``insert_batch``,
    eviction) mark the store dirty; ``commit`` writes the whole set through the
    backend, and ``rollback`` restores the last loaded or committed set. Not
    safe for concurrent writers.
    """

    def __init__(self, backend: LedgerBackend, records: Iterable[Record] = ()) -> None:
        self.backend = backend
        self._records: Dict[Key, Record] = {}
        for record in records:
            if record.key in self._records:
                logger.warning(
                    "Duplicate ledger entry %s/%s ignored", record.id, record.source
                )
                continue
            self._records[record.key] = record
        self._snapshot: Dict[Key, Record] = dict(self._records)
        self._state = StoreState.LOADED
        self._clean_state = StoreState.LOADED

    @classmethod
    def open(cls, path: str | Path, backend: str = "file") -> LedgerStore:
        """Load the ledger stored at *path* using the named backend."""
        persistence = get_backend(backend, path)
        store = cls(persistence, persistence.load())
        logger.info("Ledger loaded: %s (%d records)", persistence.path, len(store))
        return store

    # --- Queries ---

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def records(self) -> Tuple[Record, ...]:
        return tuple(self._records.values())

    def exists(self, item_id: int, source: str) -> bool:
        return (item_id, source) in self._records

    def query_ids(self, source: str) -> Set[int]:
        """Return every id recorded under *source* (empty for unknown sources)."""
        return {r.id for r in self._records.values() if r.source == source}

    def count_by_source(self) -> Dict[str, int]:
        return dict(Counter(r.source for r in self._records.values()))

    # --- Mutations ---

    def insert_batch(self, records: Iterable[Record]) -> int:
        """Add all *records* or none of them.

        Raises DuplicateKeyError if any key is already present, including a key
        repeated within the batch; records added before the collision are
        removed first.
        """
        added: list = []
        for record in records:
            if record.key in self._records:
                for key in added:
                    del self._records[key]
                logger.debug(
                    "Batch insert reverted after %d record(s): duplicate %s/%s",
                    len(added), record.id, record.source,
                )
                raise DuplicateKeyError(record.id, record.source)
            self._records[record.key] = record
            added.append(record.key)
        if added:
            self._state = StoreState.DIRTY
        return len(added)

    def commit(self) -> None:
        """Write the in-memory set through the backend.

        On PersistenceError nothing is lost: memory keeps the uncommitted set so
        the caller can retry or roll back.
        """
        self.backend.save(self._records.values())
        self._snapshot = dict(self._records)
        self._state = StoreState.COMMITTED
        self._clean_state = StoreState.COMMITTED
        logger.debug("Ledger committed: %d records", len(self._records))

    def rollback(self) -> None:
        """Discard changes made since the last load or commit."""
        if self._state is not StoreState.DIRTY:
            return
        dropped = len(self._records) - len(self._snapshot)
        self._records = dict(self._snapshot)
        self._state = self._clean_state
        logger.info("Ledger rolled back (%+d records discarded)", dropped)

    @contextmanager
    def transaction(self) -> Iterator[LedgerStore]:
        """Commit on success; roll back and re-raise on any exception."""
        try:
            yield self
            self.commit()
        except BaseException:
            self.rollback()
            raise

    def vacuum(self, retain_days: int, now: Optional[int] = None) -> int:
        """Evict records older than *retain_days* and commit. Returns the count removed.

        A record is evicted when ``created_at < now - retain_days * 86400``; one
        exactly at the boundary is kept. If the commit fails the evicted
        records are restored before the error propagates.
        """
        if retain_days < 0:
            raise ValueError(f"retain_days must be >= 0, got {retain_days}")
        if now is None:
            now = int(time.time())
        oldest = now - retain_days * SECONDS_PER_DAY

        with self.transaction():
            kept = {k: r for k, r in self._records.items() if r.created_at >= oldest}
            removed = len(self._records) - len(kept)
            if removed:
                self._records = kept
                self._state = StoreState.DIRTY

        logger.info(
            "Vacuum: removed %d record(s) older than %d day(s), %d kept",
            removed, retain_days, len(self._records),
        )
        return removed
