"""Shared fixtures for weather sync tests."""
import pytest
from weather_data import WeatherSnapshot


def build_snapshot(**overrides) -> WeatherSnapshot:
    fields = dict(
        location_name="Testville",
        country_code="US",
        latitude=33.44,
        longitude=-94.04,
        temp=20.0,
        feels_like=19.0,
        humidity=60.0,
        pressure=1013.0,
        condition_main="Clear",
        condition_description="clear sky",
        sunrise=1684922400,
        sunset=1684972800,
        timestamp=1684929490,
        visibility=10000,
        wind_speed=5.0,
        wind_deg=90.0,
        precip_1h=None,
    )
    fields.update(overrides)
    return WeatherSnapshot(**fields)


@pytest.fixture
def snapshot_factory():
    """Build snapshots with selected fields overridden."""
    return build_snapshot


@pytest.fixture
def sample_snapshot():
    """Sample weather snapshot."""
    return build_snapshot()


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
