"""Generic durable key-value storage for the offline cache and history."""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from weather_provider import StorageError


class KeyValueStore(ABC):
    """Abstract JSON-compatible key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None. Raises StorageError on I/O failure."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any prior one. Raises StorageError on I/O failure."""
        pass


class MemoryStore(KeyValueStore):
    """In-process store, used by tests and when no cache file is configured."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value


class JsonFileStore(KeyValueStore):
    """
    All keys kept in one JSON document on disk.

    Writes go to a temporary file that is then renamed over the original, so
    a crash mid-write leaves the previous document intact.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(path)

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected document in {self.path}: {type(data).__name__}")
        return data

    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        directory = os.path.dirname(self.path)
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".weather-sync-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Failed to write {self.path}: {e}") from e
        logging.debug(f"Stored key '{key}' in {self.path}")
