"""Tests for the timeout-guarded transport."""
import time
import pytest
from transport import DEFAULT_TIMEOUT_MS, TimeoutGuardedTransport
from weather_provider import FetchResult, TransportError, ValidationError, WeatherProviderBase


class MockProvider(WeatherProviderBase):
    """Mock weather provider for testing."""

    def __init__(self, return_data=None, raise_error=None, delay=0.0):
        self.return_data = return_data
        self.raise_error = raise_error
        self.delay = delay
        self.calls = []

    def fetch(self, latitude, longitude, request_id):
        self.calls.append((latitude, longitude, request_id))
        if self.delay:
            time.sleep(self.delay)
        if self.raise_error:
            raise self.raise_error
        return self.return_data


@pytest.fixture
def fetch_result(sample_snapshot):
    return FetchResult(snapshot=sample_snapshot, payload_bytes=512, status_code=200)


@pytest.mark.asyncio
async def test_transport_returns_provider_result(fetch_result):
    """Test that a fast provider call wins the race."""
    provider = MockProvider(return_data=fetch_result)
    transport = TimeoutGuardedTransport(provider)

    result = await transport.fetch(33.44, -94.04)

    assert result is fetch_result
    latitude, longitude, request_id = provider.calls[0]
    assert (latitude, longitude) == (33.44, -94.04)
    assert request_id


@pytest.mark.asyncio
async def test_transport_unique_request_ids(fetch_result):
    """Test that every call carries its own request id."""
    provider = MockProvider(return_data=fetch_result)
    transport = TimeoutGuardedTransport(provider)

    await transport.fetch(1.0, 2.0)
    await transport.fetch(1.0, 2.0)

    assert provider.calls[0][2] != provider.calls[1][2]


@pytest.mark.asyncio
async def test_transport_timeout(fetch_result):
    """Test that a slow provider loses to the deadline."""
    provider = MockProvider(return_data=fetch_result, delay=0.5)
    transport = TimeoutGuardedTransport(provider)

    started = time.monotonic()
    with pytest.raises(TransportError) as exc_info:
        await transport.fetch(33.44, -94.04, timeout_ms=50)

    assert "timed out" in str(exc_info.value)
    assert time.monotonic() - started < 0.4


@pytest.mark.asyncio
async def test_transport_propagates_sync_errors():
    """Test that transport and validation errors pass through unchanged."""
    transport = TimeoutGuardedTransport(MockProvider(raise_error=TransportError("down", http_status=503)))
    with pytest.raises(TransportError) as exc_info:
        await transport.fetch(0.0, 0.0)
    assert exc_info.value.http_status == 503

    transport = TimeoutGuardedTransport(MockProvider(raise_error=ValidationError("bad payload")))
    with pytest.raises(ValidationError):
        await transport.fetch(0.0, 0.0)


@pytest.mark.asyncio
async def test_transport_wraps_unexpected_errors():
    """Test that unexpected provider exceptions surface as TransportError."""
    transport = TimeoutGuardedTransport(MockProvider(raise_error=RuntimeError("boom")))

    with pytest.raises(TransportError) as exc_info:
        await transport.fetch(0.0, 0.0)

    assert "boom" in str(exc_info.value)


def test_transport_default_timeout():
    """Test the generic default deadline."""
    assert TimeoutGuardedTransport(MockProvider()).timeout_ms == DEFAULT_TIMEOUT_MS == 8000
