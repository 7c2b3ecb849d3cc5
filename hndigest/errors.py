"""Exception hierarchy shared by the storage, connector and sender layers."""

from __future__ import annotations


class DigestError(Exception):
    """Base class for every error raised by hndigest."""


class ConfigError(DigestError):
    """The configuration file is missing, unparsable or invalid."""


class DuplicateKeyError(DigestError):
    """A batch insert hit an ``(id, source)`` pair that is already recorded."""

    def __init__(self, item_id: int, source: str) -> None:
        super().__init__(f"Record already exists: {item_id}_{source}")
        self.item_id = item_id
        self.source = source


class PersistenceError(DigestError):
    """The ledger could not be read from or written to its backing storage."""


class RemoteFetchError(DigestError):
    """A source could not be fetched or its payload could not be parsed."""

    def __init__(self, source_id: str, message: str) -> None:
        super().__init__(f"{source_id}: {message}")
        self.source_id = source_id


class SendError(DigestError):
    """A digest could not be delivered by the configured sender."""
