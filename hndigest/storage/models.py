"""Data models for the ledger and the ingestion pipeline."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

# Title and URL written in place of rejected content
PLACEHOLDER = "-"


@dataclass(frozen=True)
class Record:
    """One ledger entry. ``(id, source)`` is the composite unique key."""

    id: int
    source: str
    created_at: int

    @property
    def key(self) -> tuple:
        return (self.id, self.source)

    def to_line(self) -> str:
        return f"{self.id},{self.source},{self.created_at}"

    @classmethod
    def from_line(cls, line: str) -> Optional[Record]:
        """Parse an ``id,source,created_at`` line; None if it is malformed."""
        parts = line.rstrip("\r\n").split(",")
        if len(parts) != 3:
            return None
        raw_id, source, raw_ts = parts
        if not source:
            return None
        try:
            return cls(id=int(raw_id), source=source, created_at=int(raw_ts))
        except ValueError:
            return None

    def to_row(self) -> tuple:
        return (self.id, self.source, self.created_at)

    @classmethod
    def from_row(cls, row: Any) -> Record:
        return cls(id=int(row[0]), source=str(row[1]), created_at=int(row[2]))


class Rejection(str, enum.Enum):
    """Why an item was kept out of the digest."""

    BLACKLISTED = "blacklisted"
    MISSING_URL = "missing_url"
    FILTERED = "filtered"


@dataclass
class DigestItem:
    """A fetched news item on its way to the digest."""

    id: int
    title: str
    url: str
    created_at: int
    rejection: Optional[Rejection] = None

    @property
    def rejected(self) -> bool:
        return self.rejection is not None

    def as_rejected(self, reason: Rejection) -> DigestItem:
        """Placeholder copy: only the id and timestamp survive."""
        return replace(self, title=PLACEHOLDER, url=PLACEHOLDER, rejection=reason)

    def to_record(self, source: str, recorded_at: Optional[int] = None) -> Record:
        if recorded_at is None:
            recorded_at = int(time.time())
        return Record(id=self.id, source=source, created_at=recorded_at)


@dataclass
class IngestResult:
    """Result from ingesting a single source."""

    source_id: str
    label: str = ""
    candidates: int = 0
    new: int = 0
    accepted: int = 0
    rejected: Dict[str, int] = field(default_factory=dict)
    digest_size: int = 0
    duration_seconds: float = 0.0
    error_message: Optional[str] = None
    send_error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error_message is None and self.send_error is None

    @property
    def total_rejected(self) -> int:
        return sum(self.rejected.values())

    def count_rejection(self, reason: Rejection) -> None:
        self.rejected[reason.value] = self.rejected.get(reason.value, 0) + 1


@dataclass
class IngestSummary:
    """Aggregate result from a full run."""

    results: List[IngestResult] = field(default_factory=list)
    total_candidates: int = 0
    total_new: int = 0
    total_fetched: int = 0
    total_errors: int = 0
    duration_seconds: float = 0.0

    def add(self, result: IngestResult) -> None:
        self.results.append(result)
        self.total_candidates += result.candidates
        self.total_new += result.new
        self.total_fetched += result.digest_size
        if not result.success:
            self.total_errors += 1

    @property
    def success(self) -> bool:
        return self.total_errors == 0
