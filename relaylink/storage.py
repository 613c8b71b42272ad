"""Durable string key-value stores for run state."""

import json
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

SEEN_URLS_KEY = "SEEN_URLS"
SEEN_IDS_KEY = "SEEN_IDS"


class KeyValueStore(Protocol):
    """Opaque durable string map."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, mainly for tests and dry runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """Key-value store persisted as a single JSON object on disk.

    Every write rewrites the whole file through a temporary sibling, so a
    crash mid-write leaves the previous state intact.
    """

    def __init__(self, path: Path):
        """Initialize store.

        Args:
            path: JSON file holding the string map.
        """
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"State file {self.path} is unreadable, starting empty: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"State file {self.path} is not a JSON object, starting empty")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        tmp_path.replace(self.path)

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
