"""
Human-readable labels for the inverter's enumerated settings.

The decoder stores raw codes; these helpers turn them into the wording shown
on the inverter's own display.  Unknown codes fall through to the last label
of each table.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-013)

TODO:
- None
"""

from __future__ import annotations

from powerwatch.src.telemetry import InverterTelemetry


def model_type(code: int) -> str:
    return {0: "Grid tie", 1: "Off grid"}.get(code, "Hybrid")


def ac_input_range(code: int) -> str:
    return "Appliance" if code == 0 else "UPS"


def charger_source_priority(code: int) -> str:
    return {
        0: "Utility first",
        1: "Solar first",
        2: "Utility and Solar",
    }.get(code, "Only Solar Charging")


def output_source_priority(code: int) -> str:
    return {0: "USB Priority", 1: "SUB Priority"}.get(code, "SBU Priority")


def battery_type(code: int) -> str:
    return {
        0: "AGM",
        1: "Flooded",
        2: "User define",
        3: "Pylon",
        4: "WECO",
    }.get(code, "Other Li battery")


def output_mode(code: int) -> str:
    return {
        0: "Single machine output",
        1: "Parallel output",
        2: "Phase 1 of 3 Phase output",
        3: "Phase 2 of 3 Phase output",
    }.get(code, "Phase 3 of 3 Phase output")


def charge_mode(code: int) -> str:
    return {0: "Auto", 1: "2-stage"}.get(code, "3-stage")


def bulk_charge(value: int) -> str:
    """-1 means the inverter chooses the bulk charge level."""
    return "Auto" if value == -1 else str(value)


def describe(telemetry: InverterTelemetry) -> dict[str, str]:
    """Return the labels of every enumerated field of *telemetry*."""
    return {
        "model_type": model_type(telemetry.model_type),
        "ac_input_range": ac_input_range(telemetry.p_ac_input_range),
        "charger_source_priority": charger_source_priority(telemetry.p_charger_source_priority),
        "output_source_priority": output_source_priority(telemetry.p_output_source_priority),
        "battery_type": battery_type(telemetry.p_battery_type),
        "output_mode": output_mode(telemetry.output_mode),
        "charge_mode": charge_mode(telemetry.charge_mode),
        "bulk_charge": bulk_charge(telemetry.bulk_charge),
        "operation_logic": telemetry.operation_logic,
    }
