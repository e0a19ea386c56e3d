"""
Shared test fixtures for the monitoring daemon tests.

All configuration env vars are cleared before each test and the working
directory is moved to a temporary directory so no ``.env`` file is loaded.

CHANGELOG:
- 2026-10-11: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import pytest

from powerwatch.src.framing import END_SENTINEL, START_SENTINEL

# All WatchSettings environment variable names, used for cleanup.
_ALL_ENV_VARS = (
    "INVERTER_BT_ADDRESS",
    "POLL_INTERVAL_S",
    "NIGHT_POLL_INTERVAL_S",
    "DAY_START",
    "DAY_END",
    "BT_CONNECT_TIMEOUT_S",
    "CANBUS_TTY_DEVICE",
    "CANBUS_TTY_BAUD_RATE",
    "CANBUS_ENABLED",
    "INFLUXDB2_HOST",
    "INFLUXDB2_ORG",
    "INFLUXDB2_BUCKET",
    "INFLUXDB2_API_TOKEN",
    "INFLUX_HOST_TAG",
    "UPLOAD_INTERVAL_S",
    "BATCH_SIZE",
    "SPOOL_PATH",
    "HEALTH_PATH",
    "WEB_SERVER_HOST",
    "WEB_SERVER_PORT",
    "LOG_LEVEL",
)

BATTERY_PAYLOAD = bytes([0x13, 0xB1, 0x00, 0x61, 0x00, 0xA0, 0x50, 0x64])
"""50.41 V, 9.7 A, 16.0 degC, 80 % SoC, 100 % SoH."""


def build_frame(frame_id: int, payload: bytes, header: int = 0x00) -> bytes:
    """Build a raw standard frame: sentinel, header, LE id, payload, terminator."""
    return (
        bytes([START_SENTINEL, header])
        + frame_id.to_bytes(2, "little")
        + payload
        + bytes([END_SENTINEL])
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all daemon env vars and isolate from .env files before each test."""
    for var in _ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set every environment variable WatchSettings reads."""
    env = {
        "INVERTER_BT_ADDRESS": "aa:bb:cc:dd:ee:ff",
        "POLL_INTERVAL_S": "15",
        "NIGHT_POLL_INTERVAL_S": "600",
        "DAY_START": "06:30",
        "DAY_END": "22:00",
        "BT_CONNECT_TIMEOUT_S": "12.5",
        "CANBUS_TTY_DEVICE": "/dev/ttyUSB0",
        "CANBUS_TTY_BAUD_RATE": "115200",
        "CANBUS_ENABLED": "false",
        "INFLUXDB2_HOST": "http://influx.local:8086/",
        "INFLUXDB2_ORG": "home",
        "INFLUXDB2_BUCKET": "solar",
        "INFLUXDB2_API_TOKEN": "influx-token-123",
        "INFLUX_HOST_TAG": "garage",
        "UPLOAD_INTERVAL_S": "20",
        "BATCH_SIZE": "100",
        "SPOOL_PATH": "/tmp/test-spool.db",
        "HEALTH_PATH": "/tmp/test-health.json",
        "WEB_SERVER_HOST": "127.0.0.1",
        "WEB_SERVER_PORT": "8080",
        "LOG_LEVEL": "debug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables."""
    env = {
        "INVERTER_BT_ADDRESS": "00:11:22:33:44:55",
        "INFLUXDB2_HOST": "https://influx.example.com",
        "INFLUXDB2_ORG": "org",
        "INFLUXDB2_BUCKET": "bucket",
        "INFLUXDB2_API_TOKEN": "token-xyz",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env
