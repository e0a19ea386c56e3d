"""
Daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for env var loading and validation.  Every value
comes from the environment or a ``.env`` file in the working directory; there
are no hardcoded addresses or credentials.

CHANGELOG:
- 2026-10-14: Add day/night poll window and web server bind address
- 2026-10-11: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import hashlib
import re
from datetime import time

from pydantic import field_validator
from pydantic_settings import BaseSettings

_BT_ADDRESS_RE = re.compile(r"^[0-9A-F]{2}(:[0-9A-F]{2}){5}$")


class WatchSettings(BaseSettings):
    """Configuration for the inverter/BMS monitoring daemon.

    Attributes:
        inverter_bt_address: Bluetooth address of the inverter.
        poll_interval_s: Seconds between polls inside the day window.
        night_poll_interval_s: Seconds between polls outside the day window.
        day_start: Start of the day window (local time, exclusive).
        day_end: End of the day window (local time, exclusive).
        bt_connect_timeout_s: BLE connect and service discovery timeout.
        canbus_tty_device: USB-CAN adapter serial device.
        canbus_tty_baud_rate: Serial baud rate of the adapter.
        canbus_enabled: Whether to run the serial battery reader at all.
        influxdb2_host: InfluxDB 2 base URL.
        influxdb2_org: InfluxDB organisation.
        influxdb2_bucket: InfluxDB bucket.
        influxdb2_api_token: InfluxDB API token with write access.
        influx_host_tag: Value of the ``host`` tag on written points.
        upload_interval_s: Seconds between spool flushes.
        batch_size: Maximum spool rows per write.
        spool_path: SQLite spool file path.
        health_path: Health JSON file path.
        web_server_host: Bind address of the JSON API.
        web_server_port: Port of the JSON API.
        log_level: Root log level name.
    """

    inverter_bt_address: str
    poll_interval_s: int = 30
    night_poll_interval_s: int = 300
    day_start: time = time(7, 15)
    day_end: time = time(23, 15)
    bt_connect_timeout_s: float = 20.0
    canbus_tty_device: str = "/dev/ttyUSB2"
    canbus_tty_baud_rate: int = 200000
    canbus_enabled: bool = True
    influxdb2_host: str
    influxdb2_org: str
    influxdb2_bucket: str
    influxdb2_api_token: str
    influx_host_tag: str = "inverter"
    upload_interval_s: int = 10
    batch_size: int = 50
    spool_path: str = "/data/spool.db"
    health_path: str = "/data/health.json"
    web_server_host: str = "0.0.0.0"  # noqa: S104
    web_server_port: int = 9999
    log_level: str = "INFO"

    @field_validator("inverter_bt_address")
    @classmethod
    def bt_address_must_be_valid(cls, v: str) -> str:
        """Validate and upper-case a colon-separated Bluetooth address."""
        v = v.strip().upper()
        if not _BT_ADDRESS_RE.match(v):
            raise ValueError(
                f"INVERTER_BT_ADDRESS must look like AA:BB:CC:DD:EE:FF (got: '{v}')"
            )
        return v

    @field_validator("influxdb2_host")
    @classmethod
    def influx_host_must_be_http_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("INFLUXDB2_HOST must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("influxdb2_org", "influxdb2_bucket", "influxdb2_api_token")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("poll_interval_s", "night_poll_interval_s")
    @classmethod
    def poll_interval_must_be_non_negative(cls, v: int) -> int:
        """0 means poll back to back."""
        if v < 0:
            raise ValueError("poll intervals must be >= 0")
        return v

    @field_validator("upload_interval_s")
    @classmethod
    def upload_interval_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("UPLOAD_INTERVAL_S must be >= 1")
        return v

    @field_validator("batch_size")
    @classmethod
    def batch_size_must_be_valid(cls, v: int) -> int:
        """Validate batch size is between 1 and 5000."""
        if v < 1 or v > 5000:
            raise ValueError("BATCH_SIZE must be >= 1 and <= 5000")
        return v

    @field_validator("canbus_tty_baud_rate")
    @classmethod
    def baud_rate_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("CANBUS_TTY_BAUD_RATE must be > 0")
        return v

    @field_validator("bt_connect_timeout_s")
    @classmethod
    def connect_timeout_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("BT_CONNECT_TIMEOUT_S must be > 0")
        return v

    @field_validator("web_server_port")
    @classmethod
    def web_server_port_must_be_valid(cls, v: int) -> int:
        """Validate TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("WEB_SERVER_PORT must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"LOG_LEVEL must be a standard level name (got: '{v}')")
        return v

    def token_fingerprint(self) -> str:
        """Return a log-safe description of the API token."""
        digest = hashlib.sha256(self.influxdb2_api_token.encode()).hexdigest()[:12]
        return f"len={len(self.influxdb2_api_token)} sha256={digest}"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
