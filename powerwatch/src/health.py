"""
Health file writer for the monitoring daemon.

Writes a small JSON document at a configurable path:
- last_poll_ts: ISO timestamp of the most recent successful inverter poll.
- last_upload_ts: ISO timestamp of the most recent successful InfluxDB write.
- last_battery_ts: ISO timestamp of the most recent decoded BMS frame.
- spool_count: number of batches waiting in the local spool.

The file is replaced atomically (write to a temp file, then rename) on every
change, so a container HEALTHCHECK never reads a half-written document.

CHANGELOG:
- 2026-10-14: Track the last decoded battery frame; atomic replace
- 2026-10-11: Initial creation (STORY-012)

TODO:
- None
"""

from __future__ import annotations

import json
import os
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class HealthWriter:
    """Writes daemon liveness status to a JSON file.

    Battery frames are recorded from the serial reader thread, so state
    changes and writes are serialised with a lock.

    Args:
        path: Filesystem path for the health JSON file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._last_poll_ts: str | None = None
        self._last_upload_ts: str | None = None
        self._last_battery_ts: str | None = None
        self._spool_count: int = 0

    @staticmethod
    def _now() -> str:
        return datetime.now(tz=UTC).isoformat()

    def record_poll(self) -> None:
        """Record a successful inverter poll."""
        with self._lock:
            self._last_poll_ts = self._now()
            self._write()

    def record_upload(self) -> None:
        """Record a successful InfluxDB write."""
        with self._lock:
            self._last_upload_ts = self._now()
            self._write()

    def record_battery(self) -> None:
        """Record a decoded battery status frame."""
        with self._lock:
            self._last_battery_ts = self._now()
            self._write()

    def set_spool_count(self, count: int) -> None:
        """Update the number of pending spool batches."""
        with self._lock:
            self._spool_count = count
            self._write()

    def snapshot(self) -> dict[str, Any]:
        """Return the current health state as a dict."""
        with self._lock:
            return self._state()

    def _state(self) -> dict[str, Any]:
        return {
            "last_poll_ts": self._last_poll_ts,
            "last_upload_ts": self._last_upload_ts,
            "last_battery_ts": self._last_battery_ts,
            "spool_count": self._spool_count,
        }

    def _write(self) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(self._state()))
        os.replace(tmp, self.path)
