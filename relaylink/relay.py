"""Run orchestration: resolve, deduplicate and hand off newsletter links."""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from relaylink.config import RelayConfig, load_config
from relaylink.dedup import DedupStore, SeenMessageIds, now_ms
from relaylink.history import HistoryCrosscheck
from relaylink.logger import RelayLogger
from relaylink.models import Document, RelayResult
from relaylink.pipeline import UrlResolutionPipeline
from relaylink.storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)

Publisher = Callable[[Document, str], None]


class RelayOrchestrator:
    """Coordinates one batch run over newsletter documents.

    Runs must not overlap: dedup state is loaded at the start of a run and
    overwritten at the end, so the caller serializes runs.
    """

    def __init__(
        self,
        config: RelayConfig,
        store: KeyValueStore | None = None,
        history: HistoryCrosscheck | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize orchestrator with configuration.

        Args:
            config: Relay configuration.
            store: Durable key-value store. Defaults to a JSON file at ``config.state_path``.
            history: History cross-check. Built from ``config.history`` if None.
            clock: Returns the current time in epoch milliseconds.
        """
        self.config = config
        self.store = store if store is not None else JsonFileStore(config.state_path)

        self.pipeline = UrlResolutionPipeline.from_config(config)
        normalizer = self.pipeline.normalizer

        self.dedup = DedupStore(
            self.store,
            normalizer=normalizer,
            retention_window_ms=config.retention_window_ms,
            clock=clock,
        )
        self.seen_ids = SeenMessageIds(self.store, retention_window_ms=config.retention_window_ms, clock=clock)
        self.history = history or HistoryCrosscheck(config.history, normalizer=normalizer)
        self.logger = RelayLogger(config.logs_dir)

    @classmethod
    def from_config_path(cls, config_path: Path, **kwargs: Any) -> "RelayOrchestrator":
        return cls(load_config(config_path), **kwargs)

    def resolve(self, document: Document) -> str | None:
        """Resolve a document to its normalized article URL, or None."""
        return self.pipeline.resolve(document)

    def is_duplicate(self, url: str, history_urls: set[str] | None = None) -> bool:
        """Decide whether a URL was already surfaced.

        Args:
            url: Raw or normalized URL.
            history_urls: Result of a history fetch made earlier in the run.
                Fetched now if None.

        Returns:
            True if the dedup store or the history source knows the URL.
        """
        if self.dedup.has(url):
            return True

        if history_urls is None:
            history_urls = self.history.fetch()
        normalized = self.pipeline.normalizer.try_normalize(url)
        return normalized is not None and normalized in history_urls

    def run(self, documents: Iterable[Document], publish: Publisher) -> dict[str, Any]:
        """Process a batch of documents.

        Args:
            documents: Documents in processing order.
            publish: Posts ``(document, url)``; raising marks the document failed.

        Returns:
            Statistics dictionary with one count per outcome.
        """
        batch = list(documents)
        if len(batch) > self.config.max_documents:
            logger.info(f"Processing {self.config.max_documents} of {len(batch)} documents, rest deferred")
            batch = batch[: self.config.max_documents]

        self.logger.clear_daily_results()

        with self.dedup.session(), self.seen_ids.session():
            history_urls = self.history.fetch()

            for document in batch:
                if self.seen_ids.has(document.message_id):
                    logger.debug(f"Already processed: {document.message_id}")
                    continue

                result = self._process_document(document, publish, history_urls)
                self.logger.log_result(result)

        self.logger.write_daily_summary()
        return self.logger.get_stats()

    def _process_document(self, document: Document, publish: Publisher, history_urls: set[str]) -> RelayResult:
        """Resolve, check novelty and publish a single document."""
        url = self.resolve(document)

        if url is None:
            self.seen_ids.record(document.message_id)
            return RelayResult(document.message_id, document.subject, None, "no_link")

        if self.is_duplicate(url, history_urls):
            logger.info(f"Duplicate link, not posting: {url}")
            self.seen_ids.record(document.message_id)
            return RelayResult(document.message_id, document.subject, url, "duplicate")

        try:
            publish(document, url)
        except Exception as e:
            # Not marked processed; retried on the next run
            logger.warning(f"Error publishing {url}: {type(e).__name__}: {e}")
            return RelayResult(document.message_id, document.subject, url, "failed", error=str(e))

        self.dedup.record(url)
        self.seen_ids.record(document.message_id)
        history_urls.add(url)
        logger.info(f"Posted: {url}")
        return RelayResult(document.message_id, document.subject, url, "posted")
