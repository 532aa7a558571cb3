"""Weather domain model - pure data structures independent of any API."""
from dataclasses import asdict, dataclass
from typing import Optional


DEFAULT_ICON = "🌤️"

CONDITION_ICONS = {
    "Clear": "☀️",
    "Clouds": "☁️",
    "Rain": "🌧️",
    "Drizzle": "🌦️",
    "Thunderstorm": "⛈️",
    "Snow": "❄️",
    "Mist": "🌫️",
    "Fog": "🌫️",
    "Haze": "🌫️",
}


def condition_icon(condition_main: Optional[str]) -> str:
    """Glyph for a condition code, used as the notification icon."""
    return CONDITION_ICONS.get(condition_main or "", DEFAULT_ICON)


@dataclass(frozen=True)
class WeatherSnapshot:
    """Domain model for one geolocated weather reading."""
    location_name: str
    country_code: str
    latitude: float
    longitude: float
    temp: float
    feels_like: Optional[float]
    humidity: Optional[float]  # percent
    pressure: Optional[float]
    condition_main: str  # e.g., "Clouds", "Rain", "Clear"
    condition_description: str  # e.g., "broken clouds", "light rain"
    sunrise: int  # UNIX timestamp (UTC)
    sunset: int
    timestamp: int  # observation time, UNIX timestamp (UTC)

    visibility: Optional[int] = None  # meters
    wind_speed: Optional[float] = None  # m/s
    wind_deg: Optional[float] = None
    precip_1h: Optional[float] = None  # mm in last hour

    def is_valid(self) -> bool:
        """True when temperature, condition and location name are well-typed."""
        temp_ok = isinstance(self.temp, (int, float)) and not isinstance(self.temp, bool)
        condition_ok = isinstance(self.condition_main, str) and bool(self.condition_main)
        name_ok = isinstance(self.location_name, str) and bool(self.location_name)
        return temp_ok and condition_ok and name_ok

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "WeatherSnapshot":
        return cls(**data)


@dataclass(frozen=True)
class HistoryEntry:
    """Lightweight reading kept in the history ledger."""
    captured_at: float
    temp: float
    condition: str
    location: str

    @classmethod
    def from_snapshot(cls, snapshot: WeatherSnapshot, captured_at: float) -> "HistoryEntry":
        return cls(
            captured_at=captured_at,
            temp=snapshot.temp,
            condition=snapshot.condition_main,
            location=snapshot.location_name,
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        return cls(**data)


@dataclass(frozen=True)
class CacheRecord:
    """The single offline copy of the last valid snapshot."""
    snapshot: WeatherSnapshot
    stored_at: float  # epoch seconds

    def age(self, now: float) -> float:
        return now - self.stored_at

    def to_dict(self) -> dict:
        return {"snapshot": self.snapshot.to_dict(), "stored_at": self.stored_at}

    @classmethod
    def from_dict(cls, data: dict) -> "CacheRecord":
        return cls(
            snapshot=WeatherSnapshot.from_dict(data["snapshot"]),
            stored_at=float(data["stored_at"]),
        )
