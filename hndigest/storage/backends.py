"""Durable backends for the ledger: a flat ``id,source,created_at`` file or SQLite.

Both backends implement the same two calls:

    load() -> list[Record]     # every well-formed record, in stored order
    save(records) -> None      # replace the stored set, all or nothing
"""

from __future__ import annotations

import logging
import os
import sqlite3
import tempfile
from pathlib import Path
from typing import Iterable, List, Protocol

from hndigest.errors import PersistenceError
from hndigest.storage.models import Record

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS ledger (
    id         INTEGER NOT NULL,
    source     TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    PRIMARY KEY (id, source)
);
CREATE INDEX IF NOT EXISTS idx_ledger_created_at ON ledger(created_at);
"""


class LedgerBackend(Protocol):
    """Persistence used by :class:`~hndigest.storage.ledger.LedgerStore`."""

    path: Path

    def load(self) -> List[Record]: ...

    def save(self, records: Iterable[Record]) -> None: ...


class FileBackend:
    """One ``id,source,created_at`` line per record; saves replace the file atomically."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> List[Record]:
        if not self.path.exists():
            logger.info("Ledger file %s does not exist yet; starting empty", self.path)
            return []
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Cannot read ledger {self.path}: {e}") from e

        records: List[Record] = []
        skipped = 0
        # Split on "\n" only: str.splitlines() also breaks on \r, \x1c-\x1e, \x85 and \u2028.
        for lineno, raw in enumerate(data.split(b"\n"), 1):
            if not raw.strip():
                continue
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError:
                record = None
            else:
                record = Record.from_line(line)
            if record is None:
                skipped += 1
                logger.warning("Skipping malformed ledger line %d in %s: %r", lineno, self.path, raw)
                continue
            records.append(record)
        if skipped:
            logger.warning("Discarded %d malformed line(s) from %s", skipped, self.path)
        return records

    def save(self, records: Iterable[Record]) -> None:
        directory = self.path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                for record in records:
                    f.write(record.to_line())
                    f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"Cannot write ledger {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temporary file %s", tmp_name)


class SqliteBackend:
    """Ledger table in an SQLite database; each save is a single transaction."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        conn.executescript(_SCHEMA)
        return conn

    def load(self) -> List[Record]:
        try:
            conn = self._connect()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Cannot open ledger database {self.path}: {e}") from e
        try:
            rows = conn.execute(
                "SELECT id, source, created_at FROM ledger ORDER BY rowid"
            ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot read ledger database {self.path}: {e}") from e
        finally:
            conn.close()
        return [Record.from_row(r) for r in rows]

    def save(self, records: Iterable[Record]) -> None:
        try:
            conn = self._connect()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Cannot open ledger database {self.path}: {e}") from e
        try:
            with conn:
                conn.execute("DELETE FROM ledger")
                conn.executemany(
                    "INSERT INTO ledger (id, source, created_at) VALUES (?, ?, ?)",
                    [r.to_row() for r in records],
                )
        except sqlite3.Error as e:
            logger.exception("Ledger save failed; database rolled back")
            raise PersistenceError(f"Cannot write ledger database {self.path}: {e}") from e
        finally:
            conn.close()


BACKENDS = {
    "file": FileBackend,
    "sqlite": SqliteBackend,
}


def get_backend(name: str, path: str | Path) -> LedgerBackend:
    """Return the backend registered under *name* for *path*."""
    try:
        backend_cls = BACKENDS[name.lower().strip()]
    except KeyError:
        raise ValueError(
            f"Unknown ledger backend {name!r}; expected one of {sorted(BACKENDS)}"
        ) from None
    return backend_cls(path)
