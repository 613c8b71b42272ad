"""Time-bounded URL deduplication with persistent storage."""

import json
import logging
import math
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from relaylink.config import MS_PER_DAY
from relaylink.exceptions import PersistedStateCorrupt
from relaylink.models import SeenEntry
from relaylink.storage import SEEN_IDS_KEY, SEEN_URLS_KEY, KeyValueStore
from relaylink.urls import UrlNormalizer

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_MS = 180 * MS_PER_DAY


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class RetentionMap:
    """Keys with first-seen times, pruned by a retention window.

    State is loaded fully, pruned, used, then persisted back in full.
    Runs must be serialized by the caller; concurrent runs race on persist.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        retention_window_ms: int = DEFAULT_RETENTION_MS,
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize map.

        Args:
            store: Durable string key-value store.
            key: Store key holding the JSON-encoded mapping.
            retention_window_ms: Entries this old or older are pruned on load.
            clock: Returns the current time in epoch milliseconds.
        """
        self.store = store
        self.key = key
        self.retention_window_ms = retention_window_ms
        self.clock = clock
        self.entries: dict[str, SeenEntry] = {}
        self.loaded = False

    def load(self) -> dict[str, SeenEntry]:
        """Parse persisted state and prune expired entries.

        Returns:
            The working set, keyed by entry key.
        """
        try:
            entries = self._parse(self.store.get(self.key))
        except PersistedStateCorrupt as e:
            logger.warning(f"Discarding corrupt {self.key} state: {e}")
            entries = {}

        now = self.clock()
        self.entries = {
            key: entry for key, entry in entries.items() if now - entry.first_seen_at_ms < self.retention_window_ms
        }
        pruned = len(entries) - len(self.entries)
        if pruned:
            logger.info(f"Pruned {pruned} expired {self.key} entr{'y' if pruned == 1 else 'ies'}")

        self.loaded = True
        return dict(self.entries)

    def _parse(self, raw: str | None) -> dict[str, SeenEntry]:
        if raw is None or not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistedStateCorrupt(f"not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise PersistedStateCorrupt(f"expected an object, got {type(data).__name__}")

        entries: dict[str, SeenEntry] = {}
        for key, value in data.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                logger.warning(f"Skipping {self.key} entry with invalid timestamp: {key}")
                continue
            entries[key] = SeenEntry(normalized_url=key, first_seen_at_ms=int(value))
        return entries

    def _ensure_loaded(self) -> None:
        if not self.loaded:
            self.load()

    def _contains(self, key: str) -> bool:
        self._ensure_loaded()
        return key in self.entries

    def _record(self, key: str, now: int | None = None) -> SeenEntry:
        self._ensure_loaded()
        entry = SeenEntry(normalized_url=key, first_seen_at_ms=self.clock() if now is None else now)
        self.entries[key] = entry
        return entry

    def persist(self, entries: dict[str, SeenEntry] | None = None) -> None:
        """Overwrite durable state with the full mapping.

        Args:
            entries: Mapping to persist. Defaults to the working set.
        """
        entries = self.entries if entries is None else entries
        payload = {key: entry.first_seen_at_ms for key, entry in entries.items()}
        self.store.set(self.key, json.dumps(payload, sort_keys=True))

    @contextmanager
    def session(self) -> Iterator["RetentionMap"]:
        """Load and prune on entry, persist on clean exit."""
        self.load()
        yield self
        self.persist()

    def count(self) -> int:
        """Return the number of live entries."""
        self._ensure_loaded()
        return len(self.entries)

    def clear(self) -> None:
        """Drop all entries and the persisted state."""
        self.entries.clear()
        self.loaded = True
        self.store.delete(self.key)


class DedupStore(RetentionMap):
    """Remembers normalized URLs that were already posted."""

    def __init__(
        self,
        store: KeyValueStore,
        normalizer: UrlNormalizer | None = None,
        retention_window_ms: int = DEFAULT_RETENTION_MS,
        clock: Callable[[], int] = now_ms,
        key: str = SEEN_URLS_KEY,
    ):
        super().__init__(store, key, retention_window_ms=retention_window_ms, clock=clock)
        self.normalizer = normalizer or UrlNormalizer()

    def has(self, url: str) -> bool:
        """Check whether a URL was posted within the retention window.

        Args:
            url: Raw or normalized URL.

        Returns:
            True if its normalized form is recorded. Malformed URLs are never recorded.
        """
        normalized = self.normalizer.try_normalize(url)
        if normalized is None:
            return False
        return self._contains(normalized)

    def record(self, url: str, now: int | None = None) -> SeenEntry | None:
        """Record a URL as posted.

        Args:
            url: Raw or normalized URL.
            now: Epoch milliseconds; defaults to the clock.

        Returns:
            The stored entry, or None if the URL is malformed.
        """
        normalized = self.normalizer.try_normalize(url)
        if normalized is None:
            logger.warning(f"Not recording malformed URL: {url[:120]}")
            return None
        return self._record(normalized, now)


class SeenMessageIds(RetentionMap):
    """Remembers processed message ids so a document is handled once."""

    def __init__(
        self,
        store: KeyValueStore,
        retention_window_ms: int = DEFAULT_RETENTION_MS,
        clock: Callable[[], int] = now_ms,
        key: str = SEEN_IDS_KEY,
    ):
        super().__init__(store, key, retention_window_ms=retention_window_ms, clock=clock)

    def has(self, message_id: str) -> bool:
        return bool(message_id) and self._contains(message_id)

    def record(self, message_id: str, now: int | None = None) -> SeenEntry | None:
        if not message_id:
            return None
        return self._record(message_id, now)
