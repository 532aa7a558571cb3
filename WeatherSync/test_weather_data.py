"""Tests for weather_data module."""
import pytest
from dataclasses import FrozenInstanceError
from weather_data import CacheRecord, DEFAULT_ICON, HistoryEntry, WeatherSnapshot, condition_icon


def test_snapshot_creation(sample_snapshot):
    """Test creating a snapshot with required and optional fields."""
    assert sample_snapshot.location_name == "Testville"
    assert sample_snapshot.temp == 20.0
    assert sample_snapshot.condition_main == "Clear"
    assert sample_snapshot.precip_1h is None
    assert sample_snapshot.is_valid() is True


def test_snapshot_is_immutable(sample_snapshot):
    """Test that snapshots cannot be modified."""
    with pytest.raises(FrozenInstanceError):
        sample_snapshot.temp = 30.0


@pytest.mark.parametrize("overrides", [
    {"temp": None},
    {"temp": "20"},
    {"temp": True},
    {"condition_main": ""},
    {"condition_main": None},
    {"location_name": ""},
])
def test_snapshot_invalid(snapshot_factory, overrides):
    """Test that missing or mistyped core fields make a snapshot invalid."""
    assert snapshot_factory(**overrides).is_valid() is False


def test_snapshot_dict_round_trip(sample_snapshot):
    """Test serialization used by the durable store."""
    assert WeatherSnapshot.from_dict(sample_snapshot.to_dict()) == sample_snapshot


def test_history_entry_from_snapshot(sample_snapshot):
    """Test deriving a lightweight history entry."""
    entry = HistoryEntry.from_snapshot(sample_snapshot, captured_at=123.0)

    assert entry.captured_at == 123.0
    assert entry.temp == 20.0
    assert entry.condition == "Clear"
    assert entry.location == "Testville"


def test_cache_record_age_and_dict(sample_snapshot):
    """Test cache record age and serialization."""
    record = CacheRecord(snapshot=sample_snapshot, stored_at=1000.0)

    assert record.age(1600.0) == 600.0
    assert CacheRecord.from_dict(record.to_dict()) == record


def test_condition_icon():
    """Test notification icon lookup."""
    assert condition_icon("Rain") == "🌧️"
    assert condition_icon("Fog") == condition_icon("Mist")
    assert condition_icon("Tornado") == DEFAULT_ICON
    assert condition_icon(None) == DEFAULT_ICON
