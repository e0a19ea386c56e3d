"""
Serial battery reader for the USB-CAN adapter.

Reads the adapter's byte stream with pyserial, feeds each byte to a private
:class:`~powerwatch.src.framing.FrameSynchronizer` and hands every decoded
battery status (frame id 787) to a listener.  Frames with other identifiers
are logged at DEBUG and dropped.

The blocking read loop runs in its own thread and is stopped through a
``threading.Event``.  Open and read failures are logged and the port is
reopened with exponential backoff (1 s doubling to 60 s).

CHANGELOG:
- 2026-10-13: Reopen the port with backoff instead of exiting
- 2026-10-11: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

import serial

from powerwatch.src.battery import BATTERY_STATUS_FRAME_ID, BatteryStatus, decode_battery_status
from powerwatch.src.fields import DecodeError
from powerwatch.src.framing import Frame, FrameKind, FrameSynchronizer

logger = logging.getLogger(__name__)

READ_TIMEOUT_S: float = 0.01
"""Per-read timeout; a timeout just means no bytes arrived yet."""

READ_CHUNK: int = 256

BASE_BACKOFF_S: float = 1.0
MAX_BACKOFF_S: float = 60.0

BatteryListener = Callable[[BatteryStatus], None]


class SerialBatteryReader:
    """Turns the USB-CAN byte stream into :class:`BatteryStatus` callbacks.

    Args:
        device: Serial device path (e.g. ``/dev/ttyUSB2``).
        baud_rate: Serial baud rate.
        listener: Called with each decoded battery status, from the reader
            thread.
    """

    def __init__(self, device: str, baud_rate: int, listener: BatteryListener) -> None:
        self._device = device
        self._baud_rate = baud_rate
        self._listener = listener
        self._synchronizer = FrameSynchronizer()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Frame handling
    # ------------------------------------------------------------------

    def handle_bytes(self, chunk: bytes) -> int:
        """Feed raw bytes and dispatch every completed frame.

        Returns:
            Number of battery statuses delivered to the listener.
        """
        delivered = 0
        for frame in self._synchronizer.feed(chunk):
            if self.handle_frame(frame):
                delivered += 1
        return delivered

    def handle_frame(self, frame: Frame) -> bool:
        """Decode a battery frame and notify the listener.

        Returns:
            True if a battery status was delivered.
        """
        if frame.frame_id != BATTERY_STATUS_FRAME_ID:
            if frame.header.kind is FrameKind.STANDARD:
                logger.debug("Ignoring frame %s", frame)
            return False

        try:
            status = decode_battery_status(frame)
        except DecodeError as exc:
            logger.warning("Dropping battery frame: %s", exc)
            return False

        logger.debug("Battery status: %s", status)
        self._listener(status)
        return True

    # ------------------------------------------------------------------
    # Thread lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the reader thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="serial-battery-reader", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the reader thread to stop and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run(self) -> None:
        """Read until stopped, reopening the port with backoff after failures."""
        failures = 0
        while not self._stop.is_set():
            try:
                with serial.Serial(
                    self._device,
                    baudrate=self._baud_rate,
                    timeout=READ_TIMEOUT_S,
                ) as port:
                    logger.info("Opened %s at %d baud", self._device, self._baud_rate)
                    failures = 0
                    self._synchronizer.reset()
                    self._read_until_stopped(port)
            except (serial.SerialException, OSError) as exc:
                failures += 1
                delay = min(BASE_BACKOFF_S * (2 ** (failures - 1)), MAX_BACKOFF_S)
                logger.warning(
                    "Serial port %s failed: %s; reopening in %.1fs", self._device, exc, delay
                )
                self._stop.wait(delay)
            except Exception:
                logger.exception("Unexpected error in serial reader")
                self._stop.wait(MAX_BACKOFF_S)

    def _read_until_stopped(self, port: serial.Serial) -> None:
        while not self._stop.is_set():
            chunk = port.read(READ_CHUNK)
            if chunk:
                self.handle_bytes(chunk)
