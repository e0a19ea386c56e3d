"""
Lock-guarded owner of the latest inverter telemetry and battery status.

The poll loop writes inverter characteristics, the serial reader thread
writes battery records and the web API reads both.  All of them go through a
single :class:`TelemetryStore`: writes merge under a lock and reads hand out
deep copies, so no caller ever sees a half-merged record.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime

from powerwatch.src.battery import BatteryStatus
from powerwatch.src.decoder import decode_characteristic, merge
from powerwatch.src.telemetry import InverterTelemetry

logger = logging.getLogger(__name__)


class TelemetryStore:
    """Thread-safe store for the aggregate telemetry and battery records."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._telemetry = InverterTelemetry()
        self._battery: BatteryStatus | None = None
        self._telemetry_updated_at: datetime | None = None
        self._battery_updated_at: datetime | None = None

    def apply_characteristic(self, short_id: int, data: bytes) -> bool:
        """Decode one characteristic and merge its fields.

        Decoding happens outside the lock; only the merge is serialised.

        Returns:
            True if merged, False if the characteristic is unknown.

        Raises:
            FieldRangeError: If *data* is too short.  Nothing is merged.
        """
        updates = decode_characteristic(short_id, data)
        if updates is None:
            logger.debug("Ignoring unknown characteristic 0x%04X", short_id)
            return False
        with self._lock:
            merge(self._telemetry, updates)
            self._telemetry_updated_at = datetime.now(tz=UTC)
        return True

    def set_battery_status(self, status: BatteryStatus) -> None:
        """Replace the latest battery record."""
        with self._lock:
            self._battery = status.model_copy()
            self._battery_updated_at = datetime.now(tz=UTC)

    def snapshot(self) -> InverterTelemetry:
        """Return a deep copy of the current telemetry record."""
        with self._lock:
            return self._telemetry.model_copy(deep=True)

    def battery_status(self) -> BatteryStatus | None:
        """Return a copy of the latest battery record, or None if none arrived yet."""
        with self._lock:
            return self._battery.model_copy() if self._battery is not None else None

    @property
    def telemetry_updated_at(self) -> datetime | None:
        with self._lock:
            return self._telemetry_updated_at

    @property
    def battery_updated_at(self) -> datetime | None:
        with self._lock:
            return self._battery_updated_at
