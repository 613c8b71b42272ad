"""Tests for key-value stores."""

import json
from pathlib import Path

from relaylink.storage import JsonFileStore, MemoryStore


class TestMemoryStore:
    """Tests for MemoryStore class."""

    def test_get_set_delete(self) -> None:
        """Test basic map operations."""
        store = MemoryStore({"a": "1"})

        store.set("b", "2")
        store.delete("a")
        store.delete("missing")

        assert store.get("a") is None
        assert store.get("b") == "2"


class TestJsonFileStore:
    """Tests for JsonFileStore class."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        """Test that a missing file reads as an empty store."""
        store = JsonFileStore(tmp_path / "state.json")

        assert store.get("SEEN_URLS") is None

    def test_set_creates_parent_dirs(self, tmp_path: Path) -> None:
        """Test that writing creates the parent directories."""
        path = tmp_path / "nested" / "dirs" / "state.json"
        store = JsonFileStore(path)

        store.set("SEEN_URLS", "{}")

        assert path.exists()
        assert json.loads(path.read_text()) == {"SEEN_URLS": "{}"}

    def test_persistence_across_instances(self, tmp_path: Path) -> None:
        """Test that values survive a new instance."""
        path = tmp_path / "state.json"
        JsonFileStore(path).set("key", "value")

        assert JsonFileStore(path).get("key") == "value"

    def test_delete(self, tmp_path: Path) -> None:
        """Test that delete removes only the given key."""
        store = JsonFileStore(tmp_path / "state.json")
        store.set("a", "1")
        store.set("b", "2")

        store.delete("a")

        assert store.get("a") is None
        assert store.get("b") == "2"

    def test_corrupt_file_reads_empty(self, tmp_path: Path) -> None:
        """Test that an unreadable file is treated as empty and replaced on write."""
        path = tmp_path / "state.json"
        path.write_text("{broken")
        store = JsonFileStore(path)

        assert store.get("a") is None
        store.set("a", "1")
        assert store.get("a") == "1"

    def test_non_string_values_ignored(self, tmp_path: Path) -> None:
        """Test that only string values are exposed."""
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"a": 1, "b": "two"}))

        store = JsonFileStore(path)

        assert store.get("a") is None
        assert store.get("b") == "two"
