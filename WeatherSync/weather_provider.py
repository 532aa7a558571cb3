"""Weather provider abstraction and the error taxonomy of the sync engine."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from weather_data import WeatherSnapshot


@dataclass(frozen=True)
class FetchResult:
    """A validated snapshot plus what it cost to fetch it."""
    snapshot: WeatherSnapshot
    payload_bytes: int
    status_code: int


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def fetch(self, latitude: float, longitude: float, request_id: str) -> FetchResult:
        """
        Fetch the current weather for a position. Blocking.

        Args:
            latitude: Latitude (-90 to 90)
            longitude: Longitude (-180 to 180)
            request_id: Correlation id sent along with the request

        Returns:
            FetchResult: Parsed snapshot and response size

        Raises:
            TransportError: If the request fails or returns a non-2xx status
            ValidationError: If the response is not a usable weather payload
        """
        pass


class WeatherSyncError(Exception):
    """Base class for all sync engine errors."""
    pass


class TransportError(WeatherSyncError):
    """Non-2xx status, network failure or timeout. Retried with backoff."""

    def __init__(self, reason: str, http_status: Optional[int] = None):
        self.reason = reason
        self.http_status = http_status
        if http_status is not None:
            super().__init__(f"HTTP {http_status}: {reason}")
        else:
            super().__init__(reason)


class ValidationError(WeatherSyncError):
    """Malformed weather payload. Dropped, never cached."""
    pass


class LocationError(WeatherSyncError):
    """Geolocation failed. Surfaced immediately, never retried."""

    def __init__(self, code, message: str):
        self.code = code
        super().__init__(message)


class StorageError(WeatherSyncError):
    """Durable store I/O failure. Treated as a cache miss."""
    pass


class ExhaustionError(WeatherSyncError):
    """All retries failed and no live offline copy exists."""

    def __init__(self, attempts: int, last_error: Optional[Exception] = None):
        self.attempts = attempts
        self.last_error = last_error
        message = f"Weather service unavailable after {attempts} attempts"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)
