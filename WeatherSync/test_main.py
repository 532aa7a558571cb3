"""Tests for CLI configuration and wiring."""
import pytest
from unittest.mock import patch
from main import build_controller, build_thresholds, load_config, parse_args, run
from storage import MemoryStore
from sync_controller import SYNC_INTERVAL_SECONDS
from weather_provider import FetchResult, TransportError


class StubTransport:
    def __init__(self, outcome):
        self.outcome = outcome

    async def fetch(self, latitude, longitude, timeout_ms=None):
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def test_parse_args_defaults():
    """Test default CLI values."""
    args = parse_args([])

    assert args.interval == SYNC_INTERVAL_SECONDS
    assert args.timeout == 8000
    assert args.manual_timeout == 10000
    assert args.max_retries == 3
    assert args.history_size == 100
    assert args.once is False


def test_load_config(monkeypatch):
    """Test reading endpoint and coordinates from the environment."""
    monkeypatch.setenv("WEATHER_WEBHOOK_URL", "https://hooks.example.com/weather")
    monkeypatch.setenv("WEATHER_LAT", "33.44")
    monkeypatch.setenv("WEATHER_LON", "-94.04")

    with patch("main.load_dotenv"):
        assert load_config() == ("https://hooks.example.com/weather", 33.44, -94.04)


@pytest.mark.parametrize("env", [
    {"WEATHER_LAT": "1", "WEATHER_LON": "2"},
    {"WEATHER_WEBHOOK_URL": "https://x"},
    {"WEATHER_WEBHOOK_URL": "https://x", "WEATHER_LAT": "north", "WEATHER_LON": "2"},
])
def test_load_config_errors(monkeypatch, env):
    """Test missing or invalid configuration exits."""
    for name in ("WEATHER_WEBHOOK_URL", "WEATHER_LAT", "WEATHER_LON"):
        monkeypatch.delenv(name, raising=False)
    for name, value in env.items():
        monkeypatch.setenv(name, value)

    with patch("main.load_dotenv"):
        with pytest.raises(SystemExit):
            load_config()


def test_build_thresholds_rejects_inverted_range():
    """Test threshold flags are validated."""
    with pytest.raises(SystemExit):
        build_thresholds(parse_args(["--temp-min", "30", "--temp-max", "10"]))


def test_build_controller_wiring():
    """Test the controller is wired from CLI arguments."""
    args = parse_args(["--cache-file", "", "--interval", "60", "--max-retries", "5", "--history-size", "7"])

    controller = build_controller("https://hooks.example.com/weather", 1.0, 2.0, args)

    assert controller.sync_interval_seconds == 60
    assert controller.max_retries == 5
    assert controller.history.capacity == 7
    assert isinstance(controller.cache.store, MemoryStore)
    assert controller.transport.provider.endpoint == "https://hooks.example.com/weather"
    assert controller.endpoint == "https://hooks.example.com/weather"


@pytest.mark.asyncio
async def test_run_once_success(sample_snapshot):
    """Test a single-shot run returns 0 on success."""
    controller = build_controller("https://x", 1.0, 2.0, parse_args(["--cache-file", ""]))
    controller.transport = StubTransport(FetchResult(sample_snapshot, 100, 200))

    assert await run(controller, once=True) == 0
    assert controller.status.snapshot == sample_snapshot


@pytest.mark.asyncio
async def test_run_once_failure(sample_snapshot):
    """Test a single-shot run returns 1 when the service is unavailable."""
    args = parse_args(["--cache-file", "", "--max-retries", "0"])
    controller = build_controller("https://x", 1.0, 2.0, args)
    controller.transport = StubTransport(TransportError("down"))

    assert await run(controller, once=True) == 1


class RecordingTransport(StubTransport):
    def __init__(self, outcome):
        super().__init__(outcome)
        self.deadlines = []

    async def fetch(self, latitude, longitude, timeout_ms=None):
        self.deadlines.append(timeout_ms)
        return await super().fetch(latitude, longitude, timeout_ms)


@pytest.mark.asyncio
async def test_timeout_flags_reach_fetch_deadline(sample_snapshot):
    """Test --timeout and --manual-timeout drive the race deadlines and the socket timeout."""
    args = parse_args(["--cache-file", "", "--timeout", "3000", "--manual-timeout", "12000"])
    controller = build_controller("https://x", 1.0, 2.0, args)

    assert controller.periodic_timeout_ms == 3000
    assert controller.manual_timeout_ms == 12000
    assert controller.transport.provider.timeout == 12.0

    transport = RecordingTransport(FetchResult(sample_snapshot, 100, 200))
    controller.transport = transport

    assert await run(controller, once=True) == 0
    assert transport.deadlines == [12000]
