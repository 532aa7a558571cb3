"""Tests for durable key-value stores."""
import pytest
from storage import JsonFileStore, MemoryStore
from weather_provider import StorageError


def test_memory_store():
    """Test get/set on the in-memory store."""
    store = MemoryStore()
    assert store.get("missing") is None

    store.set("key", {"a": 1})
    assert store.get("key") == {"a": 1}


def test_json_file_store_persists(tmp_path):
    """Test that values survive a new store instance on the same file."""
    path = tmp_path / "cache.json"
    JsonFileStore(str(path)).set("key", {"a": 1})
    JsonFileStore(str(path)).set("other", [1, 2])

    store = JsonFileStore(str(path))
    assert store.get("key") == {"a": 1}
    assert store.get("other") == [1, 2]
    assert list(tmp_path.iterdir()) == [path]


def test_json_file_store_missing_file(tmp_path):
    """Test that a missing file reads as empty."""
    assert JsonFileStore(str(tmp_path / "nope.json")).get("key") is None


def test_json_file_store_corrupt_file(tmp_path):
    """Test that a corrupt document raises StorageError."""
    path = tmp_path / "cache.json"
    path.write_text("{not json")

    with pytest.raises(StorageError):
        JsonFileStore(str(path)).get("key")


def test_json_file_store_unwritable(tmp_path):
    """Test that a write failure raises StorageError."""
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")

    with pytest.raises(StorageError):
        JsonFileStore(str(blocker / "cache.json")).set("key", 1)
