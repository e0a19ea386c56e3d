"""
Unit tests for the health writer.

Tests verify:
- record_poll / record_upload / record_battery set their timestamps.
- set_spool_count updates the count and keeps the timestamps.
- The file always contains all four fields.
- The file is replaced atomically (no temp file left behind).
- snapshot() mirrors the file contents.

CHANGELOG:
- 2026-10-14: Cover last_battery_ts and atomic replace
- 2026-10-11: Initial creation (STORY-012)

TODO:
- None
"""

from __future__ import annotations

import json
from pathlib import Path

from powerwatch.src.health import HealthWriter

_FIELDS = {"last_poll_ts", "last_upload_ts", "last_battery_ts", "spool_count"}


def _read(path: Path) -> dict:
    return json.loads(path.read_text())


class TestRecordEvents:
    def test_record_poll_writes_health_file(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_poll()

        data = _read(health_path)
        assert isinstance(data["last_poll_ts"], str)
        assert "T" in data["last_poll_ts"]
        assert data["last_upload_ts"] is None

    def test_record_upload_does_not_overwrite_poll_ts(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_poll()
        poll_ts = _read(health_path)["last_poll_ts"]
        writer.record_upload()

        data = _read(health_path)
        assert data["last_poll_ts"] == poll_ts
        assert data["last_upload_ts"] is not None

    def test_record_battery(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_battery()

        data = _read(health_path)
        assert data["last_battery_ts"] is not None
        assert data["last_poll_ts"] is None


class TestSpoolCount:
    def test_set_spool_count_preserves_timestamps(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.record_poll()
        writer.record_upload()
        before = _read(health_path)
        writer.set_spool_count(12)

        after = _read(health_path)
        assert after["spool_count"] == 12
        assert after["last_poll_ts"] == before["last_poll_ts"]
        assert after["last_upload_ts"] == before["last_upload_ts"]


class TestFileFormat:
    def test_all_fields_present_with_defaults(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)

        writer.set_spool_count(0)

        data = _read(health_path)
        assert set(data) == _FIELDS
        assert data["last_poll_ts"] is None
        assert data["last_battery_ts"] is None
        assert data["spool_count"] == 0

    def test_no_temp_file_left_behind(self, tmp_path: Path) -> None:
        writer = HealthWriter(tmp_path / "health.json")
        writer.record_poll()
        writer.record_upload()
        assert sorted(p.name for p in tmp_path.iterdir()) == ["health.json"]

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        health_path = str(tmp_path / "health.json")
        writer = HealthWriter(health_path)

        writer.record_poll()

        assert _read(Path(health_path))["last_poll_ts"] is not None

    def test_snapshot_matches_file(self, tmp_path: Path) -> None:
        health_path = tmp_path / "health.json"
        writer = HealthWriter(health_path)
        writer.record_battery()
        writer.set_spool_count(3)

        assert writer.snapshot() == _read(health_path)
