"""Storage layer - the seen-items ledger, its backends and data models."""

from hndigest.storage.backends import FileBackend, SqliteBackend, get_backend
from hndigest.storage.delta import resolve_new_ids
from hndigest.storage.ledger import LedgerStore, StoreState
from hndigest.storage.models import (
    PLACEHOLDER,
    DigestItem,
    IngestResult,
    IngestSummary,
    Record,
    Rejection,
)

__all__ = [
    "FileBackend",
    "SqliteBackend",
    "get_backend",
    "resolve_new_ids",
    "LedgerStore",
    "StoreState",
    "PLACEHOLDER",
    "DigestItem",
    "IngestResult",
    "IngestSummary",
    "Record",
    "Rejection",
]
