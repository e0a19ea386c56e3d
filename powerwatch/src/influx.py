"""
InfluxDB points for inverter and battery readings.

Three measurements are produced per poll cycle, all tagged ``host=<tag>``:

- ``battery``: capacity, voltage, charge, discharge (as reported by the
  inverter).
- ``inverter``: pv1_power, pv1_voltage, output_voltage, output_power, load.
- ``bms``: soc, soh, current, temperature, voltage (from the CAN bus), only
  when a battery status has been received.

Every field is written as a float so the measurements keep one field type
per key across writers.  Points are built with ``influxdb_client.Point`` and
spooled as line protocol; timestamps are whole seconds (``precision=s``).

CHANGELOG:
- 2026-10-18: Build points with influxdb-client, float field values
- 2026-10-14: Add the bms measurement
- 2026-10-12: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

from influxdb_client import Point, WritePrecision

from powerwatch.src.battery import BatteryStatus
from powerwatch.src.telemetry import InverterTelemetry


def make_point(
    measurement: str,
    host_tag: str,
    fields: Mapping[str, float],
    timestamp: int,
) -> Point:
    """Build one ``host``-tagged point with float fields at *timestamp* seconds."""
    point = Point(measurement).tag("host", host_tag)
    for key, value in fields.items():
        point = point.field(key, float(value))
    return point.time(timestamp, WritePrecision.S)


def make_points(
    telemetry: InverterTelemetry,
    battery: BatteryStatus | None,
    *,
    host_tag: str,
    at: datetime,
) -> list[Point]:
    """Return the points for one poll cycle."""
    ts = int(at.timestamp())
    points = [
        make_point(
            "battery",
            host_tag,
            {
                "capacity": telemetry.battery_capacity,
                "voltage": telemetry.battery_voltage,
                "charge": telemetry.battery_charge_current,
                "discharge": telemetry.battery_current_discharge,
            },
            ts,
        ),
        make_point(
            "inverter",
            host_tag,
            {
                "pv1_power": telemetry.pv_input_power_stage1,
                "pv1_voltage": telemetry.pv_input_voltage_stage1,
                "output_voltage": telemetry.output_voltage,
                "output_power": telemetry.output_active_power,
                "load": telemetry.load_percentage,
            },
            ts,
        ),
    ]
    if battery is not None:
        points.append(
            make_point(
                "bms",
                host_tag,
                {
                    "soc": battery.soc,
                    "soh": battery.soh,
                    "current": battery.amps,
                    "temperature": battery.temp,
                    "voltage": battery.voltage,
                },
                ts,
            )
        )
    return points


def build_points(
    telemetry: InverterTelemetry,
    battery: BatteryStatus | None,
    *,
    host_tag: str,
    at: datetime,
) -> str:
    """Build the newline-separated line protocol for one poll cycle.

    Points whose fields are all non-finite serialise to an empty string and
    are left out.
    """
    lines = (
        point.to_line_protocol()
        for point in make_points(telemetry, battery, host_tag=host_tag, at=at)
    )
    return "\n".join(line for line in lines if line)
