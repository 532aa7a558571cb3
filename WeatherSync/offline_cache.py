"""Offline cache holding the last valid snapshot for use when the network is down."""
import logging
import time
from typing import Callable, Optional
from storage import KeyValueStore
from weather_data import CacheRecord, WeatherSnapshot
from weather_provider import StorageError

OFFLINE_RETENTION = 24 * 60 * 60  # seconds
CACHE_KEY = "weather:last_snapshot"


class OfflineCache:
    """
    Single-slot, TTL-gated durable copy of the most recent valid snapshot.

    A record older than the retention window reads as absent but is left in
    the store for diagnostics. The boundary is inclusive: a record exactly
    `retention_seconds` old is still served.
    """

    def __init__(
        self,
        store: KeyValueStore,
        retention_seconds: float = OFFLINE_RETENTION,
        time_func: Callable[[], float] = time.time,
        key: str = CACHE_KEY,
    ):
        self.store = store
        self.retention_seconds = retention_seconds
        self.key = key
        self._time_func = time_func

    def write(self, snapshot: WeatherSnapshot) -> None:
        """Persist the snapshot, overwriting any previous record. Never raises on I/O failure."""
        record = CacheRecord(snapshot=snapshot, stored_at=self._time_func())
        try:
            self.store.set(self.key, record.to_dict())
            logging.debug(f"Cached snapshot for {snapshot.location_name} at {record.stored_at:.0f}")
        except StorageError as e:
            logging.error(f"Failed to write offline cache: {e}")

    def record(self) -> Optional[CacheRecord]:
        """The stored record regardless of age, or None if absent or unreadable."""
        try:
            raw = self.store.get(self.key)
        except StorageError as e:
            logging.error(f"Failed to read offline cache: {e}")
            return None
        if raw is None:
            return None
        try:
            return CacheRecord.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Discarding corrupt offline cache record: {e}")
            return None

    def read(self) -> Optional[WeatherSnapshot]:
        """
        Get the cached snapshot if it is still within the retention window.

        Returns:
            WeatherSnapshot or None when absent, expired or unreadable
        """
        record = self.record()
        if record is None:
            return None
        cache_age = record.age(self._time_func())
        if cache_age > self.retention_seconds:
            logging.info(f"Offline cache expired (age: {cache_age:.1f}s > retention: {self.retention_seconds}s)")
            return None
        logging.debug(f"Using offline cache (age: {cache_age:.1f}s)")
        return record.snapshot
