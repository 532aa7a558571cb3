"""Timeout-guarded transport: one provider call raced against a deadline."""
import asyncio
import logging
import uuid
from typing import Optional
from weather_provider import FetchResult, TransportError, WeatherSyncError, WeatherProviderBase

DEFAULT_TIMEOUT_MS = 8000
MANUAL_TIMEOUT_MS = 10000


class TimeoutGuardedTransport:
    """
    Runs a blocking provider call off the event loop with a hard deadline.

    Whichever settles first wins. When the deadline elapses the provider call
    keeps running in its worker thread, but its result is discarded.
    """

    def __init__(self, provider: WeatherProviderBase, timeout_ms: int = DEFAULT_TIMEOUT_MS):
        self.provider = provider
        self.timeout_ms = timeout_ms

    async def fetch(
        self,
        latitude: float,
        longitude: float,
        timeout_ms: Optional[int] = None,
    ) -> FetchResult:
        """
        Fetch one reading.

        Args:
            latitude: Latitude of the device
            longitude: Longitude of the device
            timeout_ms: Deadline for this call, defaults to the transport's

        Returns:
            FetchResult: Snapshot from the provider

        Raises:
            TransportError: On timeout, network failure or non-2xx status
            ValidationError: If the provider got a malformed payload
        """
        deadline_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        request_id = uuid.uuid4().hex
        call = asyncio.to_thread(self.provider.fetch, latitude, longitude, request_id)

        try:
            return await asyncio.wait_for(call, timeout=deadline_ms / 1000.0)
        except asyncio.TimeoutError:
            logging.warning(f"Request {request_id} timed out after {deadline_ms}ms")
            raise TransportError(f"Request timed out after {deadline_ms}ms")
        except WeatherSyncError:
            raise
        except Exception as e:
            logging.error(f"Provider raised unexpected error for request {request_id}: {e}", exc_info=True)
            raise TransportError(f"Transport failure: {e}") from e
