"""Threshold alerts - pure functions mapping a snapshot to alert events."""
from dataclasses import dataclass
from enum import Enum
from typing import List
from weather_data import WeatherSnapshot


class AlertKind(str, Enum):
    COLD = "cold"
    HEAT = "heat"
    WIND = "wind"
    HUMIDITY = "humidity"
    PRESSURE = "pressure"


@dataclass(frozen=True)
class AlertEvent:
    kind: AlertKind
    message: str


@dataclass
class AlertThresholds:
    """User-adjustable alert limits. Units: °C, m/s, %, hPa."""
    temp_min: float = 0.0
    temp_max: float = 35.0
    wind_speed_max: float = 15.0
    humidity_max: float = 90.0
    pressure_min: float = 980.0
    pressure_max: float = 1040.0

    def validate(self) -> None:
        if self.temp_min > self.temp_max:
            raise ValueError(f"temp_min {self.temp_min} is above temp_max {self.temp_max}")
        if self.pressure_min > self.pressure_max:
            raise ValueError(f"pressure_min {self.pressure_min} is above pressure_max {self.pressure_max}")


def _fmt(value: float) -> str:
    return f"{value:g}"


def evaluate_alerts(snapshot: WeatherSnapshot, thresholds: AlertThresholds) -> List[AlertEvent]:
    """
    Evaluate every threshold against a snapshot.

    Checks run independently in a fixed order: cold, heat, wind, humidity,
    pressure. Missing wind speed counts as calm (0); other missing optional
    fields skip their check.

    Args:
        snapshot: Reading to evaluate
        thresholds: Limits to compare against

    Returns:
        List of AlertEvent, possibly empty
    """
    events: List[AlertEvent] = []
    temp = snapshot.temp

    if temp < thresholds.temp_min:
        events.append(AlertEvent(
            AlertKind.COLD,
            f"Cold alert: {_fmt(temp)}°C is below {_fmt(thresholds.temp_min)}°C",
        ))
    if temp > thresholds.temp_max:
        events.append(AlertEvent(
            AlertKind.HEAT,
            f"Heat alert: {_fmt(temp)}°C is above {_fmt(thresholds.temp_max)}°C",
        ))

    wind_speed = snapshot.wind_speed if snapshot.wind_speed is not None else 0.0
    if wind_speed > thresholds.wind_speed_max:
        events.append(AlertEvent(
            AlertKind.WIND,
            f"Wind alert: {_fmt(wind_speed)} m/s exceeds {_fmt(thresholds.wind_speed_max)} m/s",
        ))

    if snapshot.humidity is not None and snapshot.humidity > thresholds.humidity_max:
        events.append(AlertEvent(
            AlertKind.HUMIDITY,
            f"Humidity alert: {_fmt(snapshot.humidity)}% exceeds {_fmt(thresholds.humidity_max)}%",
        ))

    pressure = snapshot.pressure
    if pressure is not None and not (thresholds.pressure_min <= pressure <= thresholds.pressure_max):
        events.append(AlertEvent(
            AlertKind.PRESSURE,
            f"Pressure alert: {_fmt(pressure)} hPa is outside "
            f"{_fmt(thresholds.pressure_min)}-{_fmt(thresholds.pressure_max)} hPa",
        ))

    return events
