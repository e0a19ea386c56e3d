"""
Monitoring daemon entry point for the inverter/BMS telemetry pipeline.

Runs concurrently:
1. **Poll loop**: reads the inverter's characteristics over Bluetooth, merges
   them into the shared :class:`~powerwatch.src.state.TelemetryStore` and
   spools the resulting InfluxDB points.  The wait between polls follows the
   day/night schedule.
2. **Upload loop**: drains the spool into InfluxDB.
3. **Serial battery reader**: a worker thread decoding BMS frames from the
   USB-CAN adapter into the store.
4. **JSON API**: uvicorn serving :mod:`powerwatch.src.api` from a worker
   thread.

An exception in one loop iteration is logged and never stops the loop.
SIGTERM/SIGINT set a shared asyncio.Event; the loops finish their current
iteration, the reader thread and API server are stopped and one final spool
flush is attempted before exiting.

CHANGELOG:
- 2026-10-14: Serve the JSON API and run the serial reader alongside the loops
- 2026-10-13: Day/night poll interval
- 2026-10-11: Initial creation (STORY-014)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from powerwatch.src.fields import DecodeError
from powerwatch.src.health import HealthWriter
from powerwatch.src.influx import build_points
from powerwatch.src.state import TelemetryStore

if TYPE_CHECKING:
    import uvicorn

    from powerwatch.src.battery import BatteryStatus
    from powerwatch.src.config import WatchSettings
    from powerwatch.src.poller import Poller
    from powerwatch.src.spool import Spool
    from powerwatch.src.writer import InfluxWriter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter: one object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Send all log records to stderr as JSON lines at *level*."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: WatchSettings) -> None:
    """Log a config summary at startup, with the API token fingerprinted."""
    logger.info(
        "Daemon starting with config: "
        "inverter_bt_address=%s, poll_interval_s=%s, night_poll_interval_s=%s, "
        "day_window=%s-%s, canbus_enabled=%s, canbus_tty_device=%s, "
        "canbus_tty_baud_rate=%s, influxdb2_host=%s, influxdb2_org=%s, "
        "influxdb2_bucket=%s, upload_interval_s=%s, batch_size=%s, "
        "spool_path=%s, health_path=%s, web_server=%s:%s, token=%s",
        settings.inverter_bt_address,
        settings.poll_interval_s,
        settings.night_poll_interval_s,
        settings.day_start,
        settings.day_end,
        settings.canbus_enabled,
        settings.canbus_tty_device,
        settings.canbus_tty_baud_rate,
        settings.influxdb2_host,
        settings.influxdb2_org,
        settings.influxdb2_bucket,
        settings.upload_interval_s,
        settings.batch_size,
        settings.spool_path,
        settings.health_path,
        settings.web_server_host,
        settings.web_server_port,
        settings.token_fingerprint(),
    )


# ---------------------------------------------------------------------------
# Single-iteration functions (easily testable)
# ---------------------------------------------------------------------------


def apply_poll_result(store: TelemetryStore, raw: Mapping[int, bytes]) -> int:
    """Merge every polled characteristic into *store*.

    A characteristic that fails to decode is logged and skipped; the others
    are still applied.

    Returns:
        Number of characteristics merged.
    """
    applied = 0
    for short_id, data in raw.items():
        try:
            if store.apply_characteristic(short_id, data):
                applied += 1
        except DecodeError as exc:
            logger.warning("Skipping characteristic 0x%04X: %s", short_id, exc)
    return applied


async def _poll_once(
    *,
    poller: Poller,
    store: TelemetryStore,
    spool: Spool,
    host_tag: str,
    health: HealthWriter | None,
) -> bool:
    """Execute a single poll-decode-enqueue cycle.

    Catches all exceptions so that the caller's loop is never broken.  The
    health file is refreshed after every attempt.

    Returns:
        True if the inverter was read and its points spooled.
    """
    ok = False
    try:
        raw = await poller.poll()
        if raw is not None:
            applied = apply_poll_result(store, raw)
            points = build_points(
                store.snapshot(),
                store.battery_status(),
                host_tag=host_tag,
                at=datetime.now(tz=UTC),
            )
            await spool.enqueue(points)
            logger.info("Poll success: merged %d of %d characteristics", applied, len(raw))
            ok = True
        else:
            logger.warning("Poller returned None, skipping decode and enqueue")
    except Exception:
        logger.error("Poll cycle error", exc_info=True)

    if health is not None:
        try:
            health.set_spool_count(await spool.count())
            if ok:
                health.record_poll()
        except Exception:
            logger.warning("Failed to write health file", exc_info=True)
    return ok


async def _upload_once(
    *,
    writer: InfluxWriter,
    spool: Spool,
    health: HealthWriter | None = None,
) -> bool:
    """Execute a single upload cycle; never raises.

    Returns:
        True if a batch was written, False otherwise.
    """
    try:
        result = await writer.write_batch(spool)
        if result and health is not None:
            health.record_upload()
            health.set_spool_count(await spool.count())
        return result
    except Exception:
        logger.error("Upload cycle error", exc_info=True)
        return False


# ---------------------------------------------------------------------------
# Loop runners
# ---------------------------------------------------------------------------


async def _wait_or_shutdown(shutdown_event: asyncio.Event, timeout: float) -> None:
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(shutdown_event.wait(), timeout=timeout)


async def _poll_loop(
    *,
    poller: Poller,
    store: TelemetryStore,
    spool: Spool,
    host_tag: str,
    next_interval: Callable[[], float],
    shutdown_event: asyncio.Event,
    health: HealthWriter | None,
) -> None:
    """Poll until shutdown, sleeping ``next_interval()`` seconds in between."""
    logger.info("Poll loop started")
    while not shutdown_event.is_set():
        await _poll_once(
            poller=poller, store=store, spool=spool, host_tag=host_tag, health=health
        )
        await _wait_or_shutdown(shutdown_event, next_interval())
    logger.info("Poll loop stopped")


async def _upload_loop(
    *,
    writer: InfluxWriter,
    spool: Spool,
    upload_interval_s: float,
    shutdown_event: asyncio.Event,
    health: HealthWriter | None = None,
) -> None:
    """Flush the spool every *upload_interval_s* seconds until shutdown.

    While InfluxDB is failing the wait grows with the writer's backoff.
    """
    logger.info("Upload loop started (interval=%ss)", upload_interval_s)
    while not shutdown_event.is_set():
        ok = await _upload_once(writer=writer, spool=spool, health=health)
        delay = upload_interval_s if ok else max(upload_interval_s, writer.current_backoff)
        await _wait_or_shutdown(shutdown_event, delay)
    logger.info("Upload loop stopped")


def _run_api_server(server: uvicorn.Server) -> None:
    try:
        server.run()
    except SystemExit:
        # uvicorn exits the process when it cannot bind
        logger.error("API server failed to start")


async def _serve_api(*, server: uvicorn.Server, shutdown_event: asyncio.Event) -> None:
    """Run *server* in a worker thread until shutdown is requested."""
    api_task = asyncio.create_task(asyncio.to_thread(_run_api_server, server))
    stop_task = asyncio.create_task(shutdown_event.wait())
    done, _ = await asyncio.wait({api_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    if api_task in done:
        stop_task.cancel()
        logger.warning("API server stopped before shutdown")
        return
    server.should_exit = True
    await api_task
    logger.info("API server stopped")


# ---------------------------------------------------------------------------
# Concurrent runner with graceful shutdown
# ---------------------------------------------------------------------------


async def run_loops(
    *,
    poller: Poller,
    store: TelemetryStore,
    spool: Spool,
    writer: InfluxWriter,
    host_tag: str,
    next_interval: Callable[[], float],
    upload_interval_s: float,
    shutdown_event: asyncio.Event,
    health: HealthWriter | None = None,
    api_server: uvicorn.Server | None = None,
) -> None:
    """Run the poll and upload loops (and the API server) until shutdown.

    When *shutdown_event* is set every task finishes its current iteration,
    then a final upload flush is attempted before returning.
    """
    logger.info("Starting concurrent loops")

    tasks = [
        _poll_loop(
            poller=poller,
            store=store,
            spool=spool,
            host_tag=host_tag,
            next_interval=next_interval,
            shutdown_event=shutdown_event,
            health=health,
        ),
        _upload_loop(
            writer=writer,
            spool=spool,
            upload_interval_s=upload_interval_s,
            shutdown_event=shutdown_event,
            health=health,
        ),
    ]
    if api_server is not None:
        tasks.append(_serve_api(server=api_server, shutdown_event=shutdown_event))
    await asyncio.gather(*tasks)

    logger.info("Attempting final upload flush before exit")
    await _upload_once(writer=writer, spool=spool, health=health)
    logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def make_battery_listener(
    store: TelemetryStore, health: HealthWriter | None
) -> Callable[[BatteryStatus], None]:
    """Return the serial reader callback storing each battery status."""

    def _on_battery(status: BatteryStatus) -> None:
        store.set_battery_status(status)
        if health is not None:
            try:
                health.record_battery()
            except OSError:
                logger.warning("Failed to write health file", exc_info=True)

    return _on_battery


async def async_main() -> None:
    """Async entrypoint: load config, build components, run loops.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    import uvicorn

    from powerwatch.src.api import create_app
    from powerwatch.src.config import WatchSettings
    from powerwatch.src.poller import Poller
    from powerwatch.src.schedule import poll_interval
    from powerwatch.src.serial_reader import SerialBatteryReader
    from powerwatch.src.spool import Spool
    from powerwatch.src.writer import InfluxWriter

    settings = WatchSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: _handle_signal(shutdown_event))

    store = TelemetryStore()
    health = HealthWriter(settings.health_path)
    poller = Poller(address=settings.inverter_bt_address, timeout_s=settings.bt_connect_timeout_s)
    writer = InfluxWriter(
        host=settings.influxdb2_host,
        org=settings.influxdb2_org,
        bucket=settings.influxdb2_bucket,
        token=settings.influxdb2_api_token,
        batch_size=settings.batch_size,
    )

    def next_interval() -> float:
        return poll_interval(
            datetime.now(),
            day_interval_s=settings.poll_interval_s,
            night_interval_s=settings.night_poll_interval_s,
            day_start=settings.day_start,
            day_end=settings.day_end,
        )

    api_server = uvicorn.Server(
        uvicorn.Config(
            create_app(store, health),
            host=settings.web_server_host,
            port=settings.web_server_port,
            log_config=None,
        )
    )

    reader: SerialBatteryReader | None = None
    if settings.canbus_enabled:
        reader = SerialBatteryReader(
            settings.canbus_tty_device,
            settings.canbus_tty_baud_rate,
            make_battery_listener(store, health),
        )
        reader.start()

    try:
        async with Spool(settings.spool_path) as spool:
            await run_loops(
                poller=poller,
                store=store,
                spool=spool,
                writer=writer,
                host_tag=settings.influx_host_tag,
                next_interval=next_interval,
                upload_interval_s=settings.upload_interval_s,
                shutdown_event=shutdown_event,
                health=health,
                api_server=api_server,
            )
    finally:
        if reader is not None:
            await asyncio.to_thread(reader.stop)


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event."""
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
