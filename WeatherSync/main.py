"""Command-line runner for the weather sync engine."""
import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional, Tuple

from dotenv import load_dotenv

from alerts import AlertThresholds
from history import HistoryLedger, MAX_HISTORY_ENTRIES
from location import StaticLocationProvider
from notifier import LoggingNotificationPlatform, NotificationDispatcher
from offline_cache import OFFLINE_RETENTION, OfflineCache
from storage import JsonFileStore, KeyValueStore, MemoryStore
from sync_controller import (
    BACKOFF_BASE_SECONDS,
    MAX_RETRIES,
    SYNC_INTERVAL_SECONDS,
    SyncController,
    SyncStatus,
)
from transport import DEFAULT_TIMEOUT_MS, MANUAL_TIMEOUT_MS, TimeoutGuardedTransport
from webhook_provider import WebhookWeatherProvider

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "weather-sync.log")
DEFAULT_CACHE_FILE = os.path.join(BASE_DIR, "weather-sync-cache.json")


def parse_args(argv=None) -> argparse.Namespace:
    defaults = AlertThresholds()
    parser = argparse.ArgumentParser("Resilient weather sync")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--cache-file", default=DEFAULT_CACHE_FILE, help="Use '' to keep the cache in memory")
    parser.add_argument("--interval", type=float, default=SYNC_INTERVAL_SECONDS, help="Seconds between syncs")
    parser.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT_MS, help="Periodic request deadline in milliseconds")
    parser.add_argument("--manual-timeout", type=int, default=MANUAL_TIMEOUT_MS, help="Initial/manual request deadline in milliseconds")
    parser.add_argument("--max-retries", type=int, default=MAX_RETRIES)
    parser.add_argument("--backoff-base", type=float, default=BACKOFF_BASE_SECONDS)
    parser.add_argument("--retention", type=float, default=OFFLINE_RETENTION, help="Offline cache retention in seconds")
    parser.add_argument("--history-size", type=int, default=MAX_HISTORY_ENTRIES)
    parser.add_argument("--temp-min", type=float, default=defaults.temp_min)
    parser.add_argument("--temp-max", type=float, default=defaults.temp_max)
    parser.add_argument("--wind-max", type=float, default=defaults.wind_speed_max)
    parser.add_argument("--humidity-max", type=float, default=defaults.humidity_max)
    parser.add_argument("--pressure-min", type=float, default=defaults.pressure_min)
    parser.add_argument("--pressure-max", type=float, default=defaults.pressure_max)
    parser.add_argument("--battery-optimization", action="store_true")
    parser.add_argument("--once", action="store_true", help="Run a single sync cycle and exit")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def load_config() -> Tuple[str, float, float]:
    load_dotenv()
    endpoint = os.getenv("WEATHER_WEBHOOK_URL")
    lat = os.getenv("WEATHER_LAT")
    lon = os.getenv("WEATHER_LON")

    if not endpoint:
        raise SystemExit("Missing WEATHER_WEBHOOK_URL in environment")
    if not lat or not lon:
        raise SystemExit("Missing WEATHER_LAT/WEATHER_LON in environment")

    try:
        lat_val = float(lat)
        lon_val = float(lon)
    except ValueError as exc:
        raise SystemExit(f"Invalid coordinates: {exc}") from exc

    logging.info("Configuration loaded: endpoint=%s lat=%s lon=%s", endpoint, lat_val, lon_val)
    return endpoint, lat_val, lon_val


def build_thresholds(args: argparse.Namespace) -> AlertThresholds:
    thresholds = AlertThresholds(
        temp_min=args.temp_min,
        temp_max=args.temp_max,
        wind_speed_max=args.wind_max,
        humidity_max=args.humidity_max,
        pressure_min=args.pressure_min,
        pressure_max=args.pressure_max,
    )
    try:
        thresholds.validate()
    except ValueError as exc:
        raise SystemExit(f"Invalid alert thresholds: {exc}") from exc
    return thresholds


def build_controller(endpoint: str, lat: float, lon: float, args: argparse.Namespace) -> SyncController:
    # Socket timeout must not cut off the longest race deadline
    socket_timeout = max(args.timeout, args.manual_timeout) / 1000.0
    provider = WebhookWeatherProvider(endpoint=endpoint, timeout=socket_timeout)
    transport = TimeoutGuardedTransport(provider, timeout_ms=args.timeout)
    store: KeyValueStore = JsonFileStore(args.cache_file) if args.cache_file else MemoryStore()
    controller = SyncController(
        transport=transport,
        cache=OfflineCache(store, retention_seconds=args.retention),
        history=HistoryLedger(capacity=args.history_size, store=store),
        notifier=NotificationDispatcher(LoggingNotificationPlatform()),
        thresholds=build_thresholds(args),
        location_provider=StaticLocationProvider(lat, lon),
        endpoint=endpoint,
        max_retries=args.max_retries,
        backoff_base_seconds=args.backoff_base,
        sync_interval_seconds=args.interval,
        battery_optimization=args.battery_optimization,
        manual_timeout_ms=args.manual_timeout,
        periodic_timeout_ms=args.timeout,
    )
    logging.info("Sync controller ready (interval=%ss, retries=%s)", args.interval, args.max_retries)
    return controller


def log_status(status: SyncStatus) -> None:
    if status.last_error:
        logging.error("Status: %s", status.last_error)
    elif status.snapshot is not None and not status.in_flight:
        logging.info(
            "Status: %s %.1f°C %s%s (requests=%s bytes=%s)",
            status.snapshot.location_name,
            status.snapshot.temp,
            status.snapshot.condition_main,
            " [offline]" if status.degraded else "",
            status.metrics.attempts,
            status.metrics.bytes_received,
        )


async def run(controller: SyncController, once: bool = False) -> int:
    controller.subscribe(log_status)
    await controller.notifier.request_permission()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows
            pass

    try:
        handle = await controller.acquire_location()
        if once:
            outcome = await handle.wait() if handle else None
            return 0 if outcome is not None and outcome.ok else 1
        await stop_event.wait()
        logging.info("Received stop signal, shutting down")
        return 0
    finally:
        await controller.close()
        assessment = controller.security_assessment()
        logging.info("Security score %s%% (failed checks: %s)", assessment.score, assessment.failed or "none")


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    endpoint, lat, lon = load_config()
    controller = build_controller(endpoint, lat, lon, args)
    sys.exit(asyncio.run(run(controller, once=args.once)))


if __name__ == "__main__":
    main()
