"""Bounded, newest-first history of lightweight readings."""
import logging
import time
from collections import deque
from typing import Callable, Iterator, Optional
from storage import KeyValueStore
from weather_data import HistoryEntry, WeatherSnapshot
from weather_provider import StorageError

MAX_HISTORY_ENTRIES = 100
HISTORY_KEY = "weather:history"


class HistoryView:
    """Read-only live view over a ledger; each iteration sees the current entries."""

    def __init__(self, entries: deque):
        self._entries = entries

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> HistoryEntry:
        return self._entries[index]


class HistoryLedger:
    """
    Capacity-bounded sequence of HistoryEntry, newest first.

    Once full, each insertion evicts the oldest entry. When a store is given
    the sequence is persisted after every append and restored on construction;
    storage failures are logged and never raised.
    """

    def __init__(
        self,
        capacity: int = MAX_HISTORY_ENTRIES,
        store: Optional[KeyValueStore] = None,
        time_func: Callable[[], float] = time.time,
        key: str = HISTORY_KEY,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.store = store
        self.key = key
        self._time_func = time_func
        self._entries: deque = deque(maxlen=capacity)
        self._load()

    def append(self, snapshot: WeatherSnapshot) -> HistoryEntry:
        entry = HistoryEntry.from_snapshot(snapshot, captured_at=self._time_func())
        # appendleft on a bounded deque drops from the right, i.e. the oldest
        self._entries.appendleft(entry)
        self._save()
        return entry

    def snapshot(self) -> HistoryView:
        return HistoryView(self._entries)

    def latest(self) -> Optional[HistoryEntry]:
        return self._entries[0] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()
        self._save()

    def __len__(self) -> int:
        return len(self._entries)

    def _load(self) -> None:
        if self.store is None:
            return
        try:
            raw = self.store.get(self.key) or []
            entries = [HistoryEntry.from_dict(item) for item in raw]
        except StorageError as e:
            logging.error(f"Failed to load history: {e}")
            return
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Discarding corrupt history: {e}")
            return
        self._entries.extend(entries[:self.capacity])
        logging.info(f"Loaded {len(self._entries)} history entries")

    def _save(self) -> None:
        if self.store is None:
            return
        try:
            self.store.set(self.key, [entry.to_dict() for entry in self._entries])
        except StorageError as e:
            logging.error(f"Failed to persist history: {e}")
