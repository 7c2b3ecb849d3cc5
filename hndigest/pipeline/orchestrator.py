"""Sequential ingest orchestrator.

For every configured source: fetch candidates, keep the ids the ledger has
not seen, classify them (blacklist, missing url, title filter), record every
classified id, dedupe the accepted items and hand the digest to the sender.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from rich.console import Console

from hndigest.connectors.base import BaseConnector, FeedConnector, RankedConnector
from hndigest.connectors.factory import build_connector
from hndigest.denoise.dedup import deduplicate
from hndigest.denoise.filters import DomainBlacklist, TitleFilter, is_missing_url
from hndigest.digest.senders import Sender, build_sender
from hndigest.errors import DigestError, SendError
from hndigest.pipeline.config import AppConfig
from hndigest.storage.delta import resolve_new_ids
from hndigest.storage.ledger import LedgerStore
from hndigest.storage.models import DigestItem, IngestResult, IngestSummary, Rejection

logger = logging.getLogger(__name__)

ConnectorFactory = Callable[[Dict[str, Any]], BaseConnector]


class IngestOrchestrator:
    """Runs one ingestion pass over all configured sources.

    Usage:
        orchestrator = IngestOrchestrator.from_config(config)
        summary = await orchestrator.ingest_all()
    """

    def __init__(
        self,
        config: AppConfig,
        store: LedgerStore,
        sender: Sender,
        connector_factory: ConnectorFactory = build_connector,
        reverse: bool = False,
    ) -> None:
        self.config = config
        self.store = store
        self.sender = sender
        self.connector_factory = connector_factory
        self.reverse = reverse
        self.title_filter = TitleFilter.from_filters(config.filters)
        self.blacklist = DomainBlacklist(config.blacklisted_domains)
        self.max_concurrent = config.performance.max_concurrent_requests

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        reverse: bool = False,
        sender: Optional[Sender] = None,
        console: Optional[Console] = None,
        connector_factory: ConnectorFactory = build_connector,
    ) -> IngestOrchestrator:
        """Open the configured ledger and sender and build an orchestrator."""
        store = LedgerStore.open(config.db_file, backend=config.db_backend)
        return cls(
            config,
            store,
            sender or build_sender(config, console),
            connector_factory=connector_factory,
            reverse=reverse,
        )

    def source_configs(self, feeds_only: bool = False) -> List[Dict[str, Any]]:
        """Connector configs in run order: HackerNews first, then RSS feeds."""
        timeout = self.config.performance.request_timeout_seconds
        configs: List[Dict[str, Any]] = []
        if not feeds_only and self.config.hackernews.enabled:
            configs.append(self.config.hackernews.to_connector_config())
        configs.extend(s.to_connector_config() for s in self.config.rss_sources)
        for cfg in configs:
            cfg["timeout"] = timeout
        return configs

    async def ingest_all(self, feeds_only: bool = False) -> IngestSummary:
        """Ingest every source one after another; a failing source does not stop the rest."""
        summary = IngestSummary()
        t0 = time.monotonic()

        configs = self.source_configs(feeds_only)
        if not configs:
            logger.warning("No sources to ingest (HackerNews disabled and no rss_sources)")
            return summary

        for cfg in configs:
            connector = self.connector_factory(cfg)
            summary.add(await self.ingest_source(connector))

        summary.duration_seconds = time.monotonic() - t0
        logger.info(
            "Ingest complete: %d candidates, %d new, %d in digests, %d failed source(s) in %.1fs",
            summary.total_candidates,
            summary.total_new,
            summary.total_fetched,
            summary.total_errors,
            summary.duration_seconds,
        )
        return summary

    async def ingest_source(self, connector: BaseConnector) -> IngestResult:
        """Fetch, classify, record and send for a single source."""
        result = IngestResult(source_id=connector.source_id, label=connector.label)
        t0 = time.monotonic()

        try:
            async with connector:
                new_items = await self._collect(connector, result)

            classified = [self.classify(item) for item in new_items]
            keep: List[DigestItem] = []
            for item in classified:
                if item.rejection is not None:
                    result.count_rejection(item.rejection)
                else:
                    keep.append(item)
            result.accepted = len(keep)

            self._record(connector.source_id, classified)

            digest = deduplicate(keep)
            result.digest_size = len(digest)
        except DigestError as e:
            result.error_message = str(e)
            logger.error("Source %s failed: %s", connector.source_id, e)
            result.duration_seconds = time.monotonic() - t0
            return result

        logger.info(
            "Source %s: candidates=%d, new=%d, accepted=%d, rejected=%d, digest=%d",
            result.source_id, result.candidates, result.new,
            result.accepted, result.total_rejected, result.digest_size,
        )

        if digest:
            try:
                await self.sender.send_digest(connector.label, digest)
            except SendError as e:
                result.send_error = str(e)
                logger.error("Sending %s digest failed (items stay recorded): %s", connector.label, e)

        result.duration_seconds = time.monotonic() - t0
        return result

    async def _collect(self, connector: BaseConnector, result: IngestResult) -> List[DigestItem]:
        """Return the source's items whose ids are not in the ledger yet."""
        if isinstance(connector, RankedConnector):
            candidate_ids = _unique(await connector.list_candidate_ids())
            result.candidates = len(candidate_ids)
            new_ids = resolve_new_ids(connector.source_id, candidate_ids, self.store)
            result.new = len(new_ids)
            return await self._fetch_items(connector, new_ids)

        if isinstance(connector, FeedConnector):
            by_id: Dict[int, DigestItem] = {}
            for item in await connector.list_candidate_items():
                by_id.setdefault(item.id, item)
            result.candidates = len(by_id)
            new_ids = resolve_new_ids(connector.source_id, list(by_id), self.store)
            result.new = len(new_ids)
            return [by_id[i] for i in new_ids]

        raise TypeError(f"Unsupported connector {type(connector).__name__}")

    async def _fetch_items(self, connector: RankedConnector, ids: Sequence[int]) -> List[DigestItem]:
        """Fetch item bodies concurrently, keeping the order of *ids*."""
        sem = asyncio.Semaphore(self.max_concurrent)

        async def _one(item_id: int) -> DigestItem:
            async with sem:
                return await connector.fetch_item(item_id)

        results = await asyncio.gather(*(_one(i) for i in ids), return_exceptions=True)
        for r in results:
            if isinstance(r, BaseException):
                raise r
        return list(results)

    def classify(self, item: DigestItem) -> DigestItem:
        """Return *item* unchanged if accepted, else its rejected placeholder.

        Checks run in a fixed order: blacklisted domain, missing url, title filter.
        """
        if self.blacklist.is_blacklisted(item.url):
            return item.as_rejected(Rejection.BLACKLISTED)
        if is_missing_url(item.url):
            return item.as_rejected(Rejection.MISSING_URL)
        if not self.title_filter.keep(item.title, self.reverse):
            return item.as_rejected(Rejection.FILTERED)
        return item

    def _record(self, source_id: str, items: Sequence[DigestItem]) -> None:
        """Persist every classified item; all or nothing."""
        if not items:
            return
        now = int(time.time())
        records = [item.to_record(source_id, now) for item in items]
        with self.store.transaction():
            self.store.insert_batch(records)
        logger.debug("Recorded %d item(s) for %s", len(records), source_id)

    def vacuum(self) -> int:
        """Evict ledger records older than ``purge_after_days``."""
        return self.store.vacuum(self.config.purge_after_days)


def _unique(ids: Sequence[int]) -> List[int]:
    return list(dict.fromkeys(ids))
