"""Permission-gated notification delivery."""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple
from weather_data import DEFAULT_ICON

NOTIFICATION_TAG = "weather-update"


class NotificationPlatform(ABC):
    """Abstract notification backend (desktop, browser push, ...)."""

    @property
    def supported(self) -> bool:
        return True

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask the user for permission. Returns True when granted."""
        pass

    @abstractmethod
    def show(self, title: str, body: str, icon: str, tag: str) -> None:
        """Raise one notification; a newer one with the same tag replaces the older."""
        pass


class LoggingNotificationPlatform(NotificationPlatform):
    """Writes notifications to the log. Keeps the latest notification per tag."""

    def __init__(self):
        self.latest: Dict[str, Tuple[str, str, str]] = {}

    async def request_permission(self) -> bool:
        return True

    def show(self, title: str, body: str, icon: str, tag: str) -> None:
        self.latest[tag] = (title, body, icon)
        logging.info("Notification [%s] %s %s - %s", tag, icon, title, body)


class NotificationDispatcher:
    """
    Delivers notifications only after permission was explicitly granted.

    Failures inside the platform are logged and never propagate to the caller.
    """

    def __init__(self, platform: Optional[NotificationPlatform] = None):
        self.platform = platform
        self.enabled = False

    @property
    def available(self) -> bool:
        return self.platform is not None and self.platform.supported

    async def request_permission(self) -> bool:
        """
        Request notification permission from the platform.

        Returns:
            bool: True if granted; the dispatcher is enabled only in that case
        """
        if not self.available:
            logging.info("Notifications not supported on this platform")
            self.enabled = False
            return False
        try:
            granted = bool(await self.platform.request_permission())
        except Exception as e:
            logging.warning(f"Notification permission request failed: {e}")
            granted = False
        self.enabled = granted
        logging.info(f"Notification permission {'granted' if granted else 'denied'}")
        return granted

    def disable(self) -> None:
        self.enabled = False

    def notify(self, title: str, body: str, icon: str = DEFAULT_ICON) -> bool:
        """Raise a notification. Returns True if one was shown."""
        if not self.enabled or not self.available:
            logging.debug(f"Notification suppressed (enabled={self.enabled}): {title}")
            return False
        try:
            self.platform.show(title, body, icon, NOTIFICATION_TAG)
        except Exception as e:
            logging.warning(f"Failed to show notification '{title}': {e}")
            return False
        return True
