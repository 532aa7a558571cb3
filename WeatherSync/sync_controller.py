"""Synchronization controller: fetch, retry with backoff, offline fallback, alerts and notifications."""
import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from alerts import AlertEvent, AlertThresholds, evaluate_alerts
from history import HistoryLedger
from location import LocationProvider
from notifier import NotificationDispatcher
from offline_cache import OfflineCache
from security import DEFAULT_CHECKS, SecurityAssessment, SecurityCheck, SecurityContext, assess
from transport import DEFAULT_TIMEOUT_MS, MANUAL_TIMEOUT_MS
from weather_data import WeatherSnapshot, condition_icon
from weather_provider import (
    ExhaustionError,
    FetchResult,
    LocationError,
    TransportError,
    ValidationError,
)

MAX_RETRIES = 3
BACKOFF_BASE_SECONDS = 1.0
SYNC_INTERVAL_SECONDS = 10 * 60
ALERT_ICON = "⚠️"


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RETRYING = "retrying"


class TriggerKind(str, Enum):
    INITIAL = "initial"
    MANUAL = "manual"
    PERIODIC = "periodic"
    RECONNECT = "reconnect"


@dataclass
class SyncMetrics:
    """Monotonic usage counters. Collaborators only ever get copies."""
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    bytes_received: int = 0


@dataclass
class SyncOutcome:
    """Terminal result of one synchronization cycle."""
    snapshot: Optional[WeatherSnapshot] = None
    degraded: bool = False
    error: Optional[Exception] = None
    alerts: List[AlertEvent] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.snapshot is not None


@dataclass(frozen=True)
class SyncStatus:
    """What the presentation layer sees after every change."""
    snapshot: Optional[WeatherSnapshot]
    degraded: bool
    last_updated: Optional[float]
    state: SyncState
    retry_count: int
    metrics: SyncMetrics
    last_error: Optional[str]
    location: Optional[Tuple[float, float]]
    online: bool

    @property
    def in_flight(self) -> bool:
        return self.state is not SyncState.IDLE

    @property
    def retrying(self) -> bool:
        return self.state is SyncState.RETRYING


class CycleHandle:
    """
    Identity of one synchronization cycle.

    Once cancelled, `active` is False and the cycle never applies its results,
    even if its network call or backoff timer settles afterwards.
    """

    def __init__(self, cycle_id: int, latitude: float, longitude: float, trigger: TriggerKind):
        self.cycle_id = cycle_id
        self.latitude = latitude
        self.longitude = longitude
        self.trigger = trigger
        self.active = True
        self.task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        self.active = False
        if self.task is not None and not self.task.done():
            self.task.cancel()

    async def wait(self) -> Optional[SyncOutcome]:
        """Wait for the cycle to finish. Returns None if it was cancelled."""
        if self.task is None:
            return None
        await asyncio.wait([self.task])
        if self.task.cancelled():
            return None
        return self.task.result()

    def __repr__(self) -> str:
        return f"CycleHandle(id={self.cycle_id}, trigger={self.trigger.value}, active={self.active})"


class SyncController:
    """
    Orchestrates fetch -> validate -> cache/history -> alerts -> notifications.

    At most one cycle is in flight at a time. A failed fetch is retried after
    2s, 4s and 8s; once retries are exhausted the offline cache is used if it
    is still live, otherwise the cycle ends with an ExhaustionError.
    Everything runs on the caller's event loop; outcomes are observed through
    `subscribe` callbacks or by awaiting the returned CycleHandle.
    """

    def __init__(
        self,
        transport,
        cache: OfflineCache,
        history: HistoryLedger,
        notifier: NotificationDispatcher,
        thresholds: Optional[AlertThresholds] = None,
        location_provider: Optional[LocationProvider] = None,
        endpoint: Optional[str] = None,
        max_retries: int = MAX_RETRIES,
        backoff_base_seconds: float = BACKOFF_BASE_SECONDS,
        sync_interval_seconds: float = SYNC_INTERVAL_SECONDS,
        battery_optimization: bool = False,
        manual_timeout_ms: int = MANUAL_TIMEOUT_MS,
        periodic_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        time_func: Callable[[], float] = time.time,
    ):
        """
        Initialize the controller.

        Args:
            transport: Object with `async fetch(latitude, longitude, timeout_ms)`
            cache: Offline cache for the last valid snapshot
            history: Bounded history ledger
            notifier: Permission-gated notification dispatcher
            thresholds: Alert limits, defaults to AlertThresholds()
            location_provider: Geolocation source used by acquire_location()
            endpoint: Remote endpoint, only used for the security assessment
            max_retries: Re-attempts after the first failed fetch
            backoff_base_seconds: Backoff unit; delay is 2**retry * base
            sync_interval_seconds: Periodic re-synchronization interval
            battery_optimization: Skip periodic ticks while backgrounded
            manual_timeout_ms: Fetch deadline for initial, manual and reconnect cycles
            periodic_timeout_ms: Fetch deadline for periodic cycles
            sleep: Coroutine used for backoff waits
            time_func: Clock for last-update instants
        """
        self.transport = transport
        self.cache = cache
        self.history = history
        self.notifier = notifier
        self.thresholds = thresholds or AlertThresholds()
        self.location_provider = location_provider
        self.endpoint = endpoint if endpoint is not None else getattr(
            getattr(transport, "provider", None), "endpoint", ""
        )
        self.max_retries = max_retries
        self.backoff_base_seconds = backoff_base_seconds
        self.sync_interval_seconds = sync_interval_seconds
        self.battery_optimization = battery_optimization
        self.manual_timeout_ms = manual_timeout_ms
        self.periodic_timeout_ms = periodic_timeout_ms
        self._sleep = sleep
        self._time_func = time_func

        self.online = True
        self.backgrounded = False
        self.retry_count = 0

        self._state = SyncState.IDLE
        self._metrics = SyncMetrics()
        self._current: Optional[WeatherSnapshot] = None
        self._degraded = False
        self._last_updated: Optional[float] = None
        self._last_error: Optional[str] = None
        self._location: Optional[Tuple[float, float]] = None

        self._cycle: Optional[CycleHandle] = None
        self._cycle_counter = 0
        self._periodic_task: Optional[asyncio.Task] = None
        self._subscribers: List[Callable[[SyncStatus], None]] = []

    # Observables ---------------------------------------------------------
    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def metrics(self) -> SyncMetrics:
        return replace(self._metrics)

    @property
    def location(self) -> Optional[Tuple[float, float]]:
        return self._location

    @property
    def busy(self) -> bool:
        return self._state is not SyncState.IDLE

    @property
    def status(self) -> SyncStatus:
        return SyncStatus(
            snapshot=self._current,
            degraded=self._degraded,
            last_updated=self._last_updated,
            state=self._state,
            retry_count=self.retry_count,
            metrics=self.metrics,
            last_error=self._last_error,
            location=self._location,
            online=self.online,
        )

    def subscribe(self, callback: Callable[[SyncStatus], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[SyncStatus], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _publish(self) -> None:
        status = self.status
        for callback in list(self._subscribers):
            try:
                callback(status)
            except Exception:
                logging.exception("Status subscriber failed")

    def backoff_delay(self, retry_count: int) -> float:
        """Seconds to wait before re-attempt number `retry_count` (1-based)."""
        return (2 ** retry_count) * self.backoff_base_seconds

    # Triggers ------------------------------------------------------------
    async def acquire_location(self) -> Optional[CycleHandle]:
        """
        Resolve the device position and start the initial cycle.

        Location failures are surfaced immediately as the last error and are
        not retried.

        Returns:
            CycleHandle of the initial cycle, or None
        """
        if self.location_provider is None:
            raise RuntimeError("No location provider configured")
        try:
            position = await self.location_provider.get_position()
        except LocationError as e:
            logging.warning(f"Location lookup failed ({e.code}): {e}")
            self._last_error = str(e)
            self._publish()
            return None

        logging.info(f"Location acquired: {position.latitude:.4f}, {position.longitude:.4f} (±{position.accuracy}m)")
        self.set_location(position.latitude, position.longitude)
        self.start_periodic()
        if not self.online:
            logging.info("Offline, initial sync deferred until the network is back")
            return None
        return self._start_cycle(TriggerKind.INITIAL)

    def refresh(self) -> Optional[CycleHandle]:
        """Manual refresh. A no-op while a cycle is in flight, while offline or without a location."""
        if self.busy:
            logging.info("Refresh ignored, a sync cycle is already in flight")
            return None
        if not self.online:
            logging.info("Refresh ignored, device is offline")
            return None
        return self._start_cycle(TriggerKind.MANUAL)

    def periodic_tick(self) -> Optional[CycleHandle]:
        """One firing of the periodic timer."""
        if not self.online:
            logging.debug("Periodic sync skipped, device is offline")
            return None
        if self.battery_optimization and self.backgrounded:
            logging.info("Periodic sync skipped, battery optimization while in background")
            return None
        if self.busy:
            logging.debug("Periodic sync skipped, a cycle is already in flight")
            return None
        return self._start_cycle(TriggerKind.PERIODIC)

    def set_online(self, online: bool) -> Optional[CycleHandle]:
        """
        Record a connectivity change.

        Going offline clears the pending cycle and the periodic timer. Coming
        back online with a known location starts a reconnect cycle.
        """
        if online == self.online:
            return None
        self.online = online
        if not online:
            logging.warning("Network lost, cancelling pending sync")
            self.cancel()
            self.stop_periodic()
            return None

        logging.info("Network restored")
        if self._location is None:
            self._publish()
            return None
        self.start_periodic()
        return self._start_cycle(TriggerKind.RECONNECT)

    def set_backgrounded(self, backgrounded: bool) -> None:
        self.backgrounded = backgrounded

    def set_location(self, latitude: float, longitude: float) -> None:
        """Move to new coordinates, dropping timers bound to the old ones."""
        new_location = (latitude, longitude)
        if new_location == self._location:
            return
        self.cancel()
        restart_periodic = self._periodic_task is not None
        self.stop_periodic()
        self._location = new_location
        if restart_periodic:
            self.start_periodic()
        self._publish()

    def start_periodic(self) -> None:
        self.stop_periodic()
        if self._location is None:
            return
        self._periodic_task = asyncio.get_running_loop().create_task(self._periodic_loop(self._location))

    def stop_periodic(self) -> None:
        if self._periodic_task is not None:
            self._periodic_task.cancel()
            self._periodic_task = None

    def cancel(self) -> None:
        """Abandon the in-flight cycle; its late results are discarded."""
        if self._cycle is None:
            return
        logging.info(f"Cancelling sync cycle {self._cycle.cycle_id}")
        self._cycle.cancel()
        self._cycle = None
        self.retry_count = 0
        self._state = SyncState.IDLE
        self._publish()

    async def close(self) -> None:
        tasks = [t for t in (self._periodic_task, self._cycle.task if self._cycle else None) if t is not None]
        self.cancel()
        self.stop_periodic()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def security_assessment(self, checks: Optional[Sequence[SecurityCheck]] = None) -> SecurityAssessment:
        context = SecurityContext(endpoint=self.endpoint, metrics=self.metrics)
        return assess(context, checks if checks is not None else DEFAULT_CHECKS)

    # Cycle ---------------------------------------------------------------
    def _start_cycle(self, trigger: TriggerKind) -> Optional[CycleHandle]:
        if self._location is None:
            logging.info(f"No location yet, {trigger.value} sync skipped")
            return None
        if self.busy:
            return None
        self._cycle_counter += 1
        handle = CycleHandle(self._cycle_counter, self._location[0], self._location[1], trigger)
        self._cycle = handle
        self.retry_count = 0
        self._state = SyncState.FETCHING
        handle.task = asyncio.get_running_loop().create_task(self._run_cycle(handle))
        logging.info(f"Starting {trigger.value} sync cycle {handle.cycle_id}")
        self._publish()
        return handle

    async def _periodic_loop(self, location: Tuple[float, float]) -> None:
        while True:
            await asyncio.sleep(self.sync_interval_seconds)
            if self._location != location:
                return
            self.periodic_tick()

    async def _run_cycle(self, handle: CycleHandle) -> Optional[SyncOutcome]:
        timeout_ms = self.periodic_timeout_ms if handle.trigger is TriggerKind.PERIODIC else self.manual_timeout_ms
        try:
            while True:
                self._metrics.attempts += 1
                logging.debug(f"Cycle {handle.cycle_id} attempt {self.retry_count + 1}/{self.max_retries + 1}")
                try:
                    result = await self.transport.fetch(handle.latitude, handle.longitude, timeout_ms=timeout_ms)
                    if not result.snapshot.is_valid():
                        raise ValidationError("Snapshot failed validation")
                except (TransportError, ValidationError) as e:
                    if not handle.active:
                        return None
                    self._metrics.failures += 1
                    if isinstance(e, ValidationError):
                        logging.warning(f"Dropped malformed weather payload: {e}")
                    else:
                        logging.warning(f"Weather fetch attempt {self.retry_count + 1} failed: {e}")
                    if self.retry_count >= self.max_retries:
                        return self._exhaust(handle, e)
                    self.retry_count += 1
                    delay = self.backoff_delay(self.retry_count)
                    logging.info(f"Retrying in {delay:g}s (retry {self.retry_count}/{self.max_retries})")
                    self._state = SyncState.RETRYING
                    self._publish()
                    await self._sleep(delay)
                    if not handle.active:
                        return None
                    self._state = SyncState.FETCHING
                    self._publish()
                    continue

                if not handle.active:
                    return None
                return self._apply_success(handle, result)
        finally:
            if self._cycle is handle:
                self._cycle = None
                self._state = SyncState.IDLE
                self._publish()

    def _apply_success(self, handle: CycleHandle, result: FetchResult) -> SyncOutcome:
        snapshot = result.snapshot
        self._metrics.successes += 1
        self._metrics.bytes_received += result.payload_bytes
        self.retry_count = 0

        self.cache.write(snapshot)
        self.history.append(snapshot)
        self._current = snapshot
        self._degraded = False
        self._last_updated = self._time_func()
        self._last_error = None
        logging.info(f"Weather sync successful: {snapshot.location_name} {snapshot.temp}°C, {snapshot.condition_main}")

        alerts = evaluate_alerts(snapshot, self.thresholds)
        for alert in alerts:
            logging.warning(alert.message)
            self.notifier.notify(f"Weather alert: {alert.kind.value}", alert.message, ALERT_ICON)

        if handle.trigger is not TriggerKind.PERIODIC:
            description = snapshot.condition_description or ""
            self.notifier.notify(
                f"{snapshot.location_name} • {round(snapshot.temp)}°C",
                description[:1].upper() + description[1:],
                condition_icon(snapshot.condition_main),
            )
        return SyncOutcome(snapshot=snapshot, alerts=alerts)

    def _exhaust(self, handle: CycleHandle, last_error: Exception) -> SyncOutcome:
        attempts = self.retry_count + 1
        self.retry_count = 0
        cached = self.cache.read()
        if cached is not None:
            logging.warning(f"All {attempts} attempts failed, using offline cache for {cached.location_name}")
            self._current = cached
            self._degraded = True
            self._last_error = None
            self.notifier.notify(
                "Offline mode",
                f"Showing last saved weather for {cached.location_name}",
                condition_icon(cached.condition_main),
            )
            return SyncOutcome(snapshot=cached, degraded=True)

        error = ExhaustionError(attempts, last_error)
        logging.error(f"Cycle {handle.cycle_id}: {error}")
        self._last_error = str(error)
        return SyncOutcome(error=error)
