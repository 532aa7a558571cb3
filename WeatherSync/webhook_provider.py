"""Weather webhook provider - POSTs coordinates and parses the returned weather object."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from weather_data import WeatherSnapshot
from weather_provider import FetchResult, TransportError, ValidationError, WeatherProviderBase


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_number(value: Any) -> Optional[float]:
    return value if _is_number(value) else None


def _optional_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _epoch(value: Any) -> int:
    return int(value) if _is_number(value) else 0


def _block(value: Any) -> dict:
    """A nested object of the payload, or {} when absent or not an object."""
    return value if isinstance(value, dict) else {}


def parse_snapshot(payload: Any, latitude: float, longitude: float) -> WeatherSnapshot:
    """
    Map a webhook response body to a WeatherSnapshot.

    The body is either a single weather object or an array whose first element
    is used. It must carry main.temp (number), weather[0].main (string) and
    name (string); everything else is optional.

    Args:
        payload: Decoded JSON body
        latitude: Requested latitude, used when the body has no coordinates
        longitude: Requested longitude, used when the body has no coordinates

    Returns:
        WeatherSnapshot: Parsed and validated snapshot

    Raises:
        ValidationError: If required fields are missing or mistyped
    """
    if isinstance(payload, list):
        if not payload:
            raise ValidationError("Response is an empty array")
        payload = payload[0]
    if not isinstance(payload, dict):
        raise ValidationError(f"Response is not a weather object: {type(payload).__name__}")

    main_data = payload.get("main")
    if not isinstance(main_data, dict):
        raise ValidationError("Response missing 'main' block")
    temp = main_data.get("temp")
    if not _is_number(temp):
        raise ValidationError("Response missing numeric 'main.temp'")

    weather_array = payload.get("weather")
    if not isinstance(weather_array, list) or not weather_array or not isinstance(weather_array[0], dict):
        raise ValidationError("Response missing 'weather' array")
    weather = weather_array[0]
    condition = weather.get("main")
    if not isinstance(condition, str) or not condition:
        raise ValidationError("Response missing 'weather[0].main'")

    name = payload.get("name")
    if not isinstance(name, str) or not name:
        raise ValidationError("Response missing location 'name'")

    sys_data = _block(payload.get("sys"))
    coord = _block(payload.get("coord"))
    wind_data = _block(payload.get("wind"))

    # Rain takes precedence over snow, as both report a 1h total
    precip_1h = None
    for block_name in ("rain", "snow"):
        block = _block(payload.get(block_name))
        if _is_number(block.get("1h")):
            precip_1h = block["1h"]
            break

    latitude_value = coord.get("lat")
    longitude_value = coord.get("lon")
    snapshot = WeatherSnapshot(
        location_name=name,
        country_code=_optional_str(sys_data.get("country")),
        latitude=latitude_value if _is_number(latitude_value) else latitude,
        longitude=longitude_value if _is_number(longitude_value) else longitude,
        temp=temp,
        feels_like=_optional_number(main_data.get("feels_like")),
        humidity=_optional_number(main_data.get("humidity")),
        pressure=_optional_number(main_data.get("pressure")),
        condition_main=condition,
        condition_description=_optional_str(weather.get("description")),
        sunrise=_epoch(sys_data.get("sunrise")),
        sunset=_epoch(sys_data.get("sunset")),
        timestamp=_epoch(payload.get("dt")),
        visibility=_optional_number(payload.get("visibility")),
        wind_speed=_optional_number(wind_data.get("speed")),
        wind_deg=_optional_number(wind_data.get("deg")),
        precip_1h=precip_1h,
    )
    if not snapshot.is_valid():
        raise ValidationError("Snapshot failed validation")
    return snapshot


class WebhookWeatherProvider(WeatherProviderBase):
    """
    Weather provider backed by a webhook endpoint.

    The endpoint receives a JSON body with the device coordinates and answers
    with an OpenWeather-shaped current weather object.
    """

    def __init__(self, endpoint: str, timeout: float = 10.0):
        """
        Initialize webhook provider.

        Args:
            endpoint: Webhook URL receiving the POST
            timeout: HTTP request timeout in seconds
        """
        self.endpoint = endpoint
        self.timeout = timeout

    def build_request_body(self, latitude: float, longitude: float, request_id: str) -> dict:
        return {
            "latitude": latitude,
            "longitude": longitude,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "requestId": request_id,
        }

    def fetch(self, latitude: float, longitude: float, request_id: str) -> FetchResult:
        """
        POST coordinates to the webhook and parse the answer.

        Raises:
            TransportError: On network failure or non-2xx status
            ValidationError: If the body is not valid JSON or misses required fields
        """
        body = self.build_request_body(latitude, longitude, request_id)

        try:
            logging.info(f"Making weather webhook request: {self.endpoint} (request {request_id})")
            logging.debug(f"Request body: {body}")
            response = requests.post(self.endpoint, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during webhook request: {e}")
            raise TransportError(f"Network error: {e}") from e

        logging.info(f"Webhook response status: {response.status_code}")

        if not response.ok:
            logging.error(f"Webhook request failed with status {response.status_code}")
            raise TransportError(
                f"Weather service unavailable ({response.status_code})",
                http_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logging.error(f"Non-JSON webhook response: {response.text[:500]}")
            raise ValidationError(f"Failed to decode response: {e}") from e

        logging.debug(f"Webhook response (truncated): {str(data)[:500]}...")
        snapshot = parse_snapshot(data, latitude, longitude)

        content = response.content
        payload_bytes = len(content) if isinstance(content, (bytes, bytearray)) else len(json.dumps(data))
        logging.info(f"Successfully parsed weather data: {snapshot.location_name} {snapshot.temp}°C, {snapshot.condition_main}")
        return FetchResult(snapshot=snapshot, payload_bytes=payload_bytes, status_code=response.status_code)
