"""Geolocation provider abstraction."""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from weather_provider import LocationError


class LocationErrorCode(IntEnum):
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


LOCATION_ERROR_MESSAGES = {
    LocationErrorCode.PERMISSION_DENIED: "Location access denied. Please allow location access and try again.",
    LocationErrorCode.POSITION_UNAVAILABLE: "Location unavailable. Please check your connection.",
    LocationErrorCode.TIMEOUT: "Location request timed out. Please try again.",
}


def location_error(code: LocationErrorCode) -> LocationError:
    """Build the LocationError carrying the user-facing message for a code."""
    return LocationError(code, LOCATION_ERROR_MESSAGES[code])


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy: float  # meters
    timestamp: float  # epoch seconds


class LocationProvider(ABC):
    """Abstract source of the device position."""

    @abstractmethod
    async def get_position(self) -> Position:
        """
        Resolve the current position.

        Raises:
            LocationError: With one of the LocationErrorCode values
        """
        pass


class StaticLocationProvider(LocationProvider):
    """Fixed coordinates, e.g. from configuration."""

    def __init__(self, latitude: float, longitude: float, accuracy: float = 0.0):
        if not (-90.0 <= latitude <= 90.0):
            raise ValueError("Invalid latitude. Must be between -90 and 90.")
        if not (-180.0 <= longitude <= 180.0):
            raise ValueError("Invalid longitude. Must be between -180 and 180.")
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy = accuracy

    async def get_position(self) -> Position:
        return Position(self.latitude, self.longitude, self.accuracy, time.time())
