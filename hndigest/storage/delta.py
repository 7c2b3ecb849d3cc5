"""Work out which freshly observed ids the ledger has not seen yet."""

from __future__ import annotations

from typing import Iterable, List

from hndigest.storage.ledger import LedgerStore


def resolve_new_ids(source: str, candidate_ids: Iterable[int], store: LedgerStore) -> List[int]:
    """Return *candidate_ids* minus the ids stored under *source*, in candidate order."""
    known = store.query_ids(source)
    return [item_id for item_id in candidate_ids if item_id not in known]
