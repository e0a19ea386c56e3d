"""
Characteristic field decoder: raw characteristic bytes -> telemetry updates.

Each known characteristic has one extractor.  An extractor is a pure function
``(data: bytes) -> dict[str, Any]`` that reads fixed offsets (little-endian)
and returns the :class:`~powerwatch.src.telemetry.InverterTelemetry` fields it
owns.  Because all reads happen before anything is merged, a characteristic
that is too short raises :class:`~powerwatch.src.fields.FieldRangeError` and
leaves the record untouched.

:data:`EXTRACTORS` maps short id -> extractor; the set of supported blocks is
data, not control flow.  Unknown ids are ignored.

CHANGELOG:
- 2026-10-18: Drop apply_characteristic; TelemetryStore merges under its lock
- 2026-10-13: Decode 0x2A06-0x2A09 as opaque 32-byte blocks
- 2026-10-12: Replace positional bit indexing with named flag masks
- 2026-10-10: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from powerwatch.src.characteristics import ALL_CHARACTERISTICS
from powerwatch.src.events import resolve_event
from powerwatch.src.fields import (
    FieldRangeError,
    expand_bits,
    flag,
    i16_le,
    require,
    scaled_u16_le,
    text,
    u8,
    u16_le,
)
from powerwatch.src.telemetry import InverterTelemetry

Extractor = Callable[[bytes], dict[str, Any]]

# ---------------------------------------------------------------------------
# Parameter flag masks (characteristic 0x2A0D, bytes 0 and 1)
# ---------------------------------------------------------------------------

FLAGS_BYTE_0: int = 0
FLAGS_BYTE_1: int = 1

OVERLOAD_BYPASS = 0x80                   # byte 0
FEED_INTO_THE_GRID = 0x40                # byte 0
LCD_TO_DEFAULT_AFTER_ONE_MIN = 0x20      # byte 0
OVERLOAD_AUTO_RESTART = 0x10             # byte 0
OVERTEMP_AUTO_RESTART = 0x08             # byte 0
BACKLIGHT = 0x04                         # byte 0
BEEPS_WHILE_PRIMARY_SOURCE_INTERRUPT = 0x02  # byte 0
FAULT_CODE_RECORD = 0x01                 # byte 0

BATTERY_EQUALIZATION_ENABLE = 0x02       # byte 1
BUZZER_ALARM = 0x01                      # byte 1

_PARAMETER_FLAGS: dict[str, tuple[int, int]] = {
    "p_overload_bypass": (FLAGS_BYTE_0, OVERLOAD_BYPASS),
    "p_feed_into_the_grid": (FLAGS_BYTE_0, FEED_INTO_THE_GRID),
    "p_lcd_to_default_after_one_min": (FLAGS_BYTE_0, LCD_TO_DEFAULT_AFTER_ONE_MIN),
    "p_overload_auto_restart": (FLAGS_BYTE_0, OVERLOAD_AUTO_RESTART),
    "p_overtemp_auto_restart": (FLAGS_BYTE_0, OVERTEMP_AUTO_RESTART),
    "p_backlight": (FLAGS_BYTE_0, BACKLIGHT),
    "p_beeps_while_primary_source_interrupt": (
        FLAGS_BYTE_0,
        BEEPS_WHILE_PRIMARY_SOURCE_INTERRUPT,
    ),
    "p_fault_code_record": (FLAGS_BYTE_0, FAULT_CODE_RECORD),
    "p_battery_equalization_enable": (FLAGS_BYTE_1, BATTERY_EQUALIZATION_ENABLE),
    "p_buzzer_alarm": (FLAGS_BYTE_1, BUZZER_ALARM),
}
"""Telemetry field -> (flag byte offset, bit mask)."""

# ---------------------------------------------------------------------------
# Other layout constants
# ---------------------------------------------------------------------------

EVENT_FLAGS_OFFSET: int = 8
EVENT_FLAGS_LENGTH: int = 4

OPAQUE_BLOCK_LENGTH: int = 32

_OPERATION_LOGIC: dict[int, str] = {0: "AUTO", 1: "ONLINE", 2: "ECO"}


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


def _identity(data: bytes) -> dict[str, Any]:
    return {
        "cpu_version": text(data, 3, 11),
        "blt_version": text(data, 12),
    }


def _model_identification(data: bytes) -> dict[str, Any]:
    return {"model_identification": u8(data, 19)}


def _ac_output(data: bytes) -> dict[str, Any]:
    return {
        "ac_voltage": scaled_u16_le(data, 0),
        "ac_frequency": scaled_u16_le(data, 2),
        "output_voltage": scaled_u16_le(data, 4),
        "output_frequency": scaled_u16_le(data, 6),
        "output_apparent_power": u16_le(data, 8),
        "output_active_power": u16_le(data, 10),
        "load_percentage": u16_le(data, 12),
        "unknown_02": scaled_u16_le(data, 14),
        "battery_voltage": scaled_u16_le(data, 16, 0.01),
        "battery_charge_current": u16_le(data, 18),
    }


def _battery_fault(data: bytes) -> dict[str, Any]:
    """Battery counters, work mode and the 32 fault/warning flags.

    Bytes 14-15 only carry a reading when byte 13 is not 1.
    """
    require(data, EVENT_FLAGS_OFFSET, EVENT_FLAGS_LENGTH)
    flags = expand_bits(data[EVENT_FLAGS_OFFSET : EVENT_FLAGS_OFFSET + EVENT_FLAGS_LENGTH])
    event = resolve_event(flags)

    updates: dict[str, Any] = {
        "battery_capacity": u16_le(data, 0),
        "unknown_03": u16_le(data, 2),
        "battery_current_discharge": u16_le(data, 4),
        "workmode": text(data, 12, 13),
        "raw_event_flags": flags,
        "last_event_message": str(event) if event is not None else "",
    }
    if u8(data, 13) != 1:
        updates["unknown_watts_01"] = u16_le(data, 14)
    return updates


def _rated_values(data: bytes) -> dict[str, Any]:
    return {
        "nominal_ac_voltage": scaled_u16_le(data, 0),
        "nominal_output_voltage": scaled_u16_le(data, 4),
        "nominal_output_frequency": scaled_u16_le(data, 6),
        "nominal_ac_current": scaled_u16_le(data, 8),
        "nominal_output_apparent_power": u16_le(data, 10),
        "nominal_output_active_power": u16_le(data, 12),
        "rated_battery_voltage": scaled_u16_le(data, 14),
        "model_type": u8(data, 16),
    }


def _opaque_block(field_name: str) -> Extractor:
    """Build an extractor keeping the first 32 bytes of a block as raw values."""

    def _extract(data: bytes) -> dict[str, Any]:
        # shorter is a range error; a longer block keeps only its first 32 bytes
        require(data, 0, OPAQUE_BLOCK_LENGTH)
        return {field_name: list(data[:OPAQUE_BLOCK_LENGTH])}

    return _extract


def _bulk_limits(data: bytes) -> dict[str, Any]:
    # Byte 5: 0 means the bulk charge time is automatic.
    return {
        "p_bulk_charge_time_range": u8(data, 5),
        "p_min_bulk_voltage": scaled_u16_le(data, 6),
        "p_max_bulk_voltage": scaled_u16_le(data, 8),
        "p_min_undervoltage": scaled_u16_le(data, 10),
        "p_max_undervoltage": scaled_u16_le(data, 12),
    }


def _parameters_1(data: bytes) -> dict[str, Any]:
    return {
        "p_output_voltage": u16_le(data, 0),
        "p_output_frequency": scaled_u16_le(data, 2),
        "p_max_charging_current": u8(data, 4),
        "p_max_ac_charging_current": u8(data, 5),
        "p_float_charging_voltage": scaled_u16_le(data, 6),
        "p_bulk_charging_voltage": scaled_u16_le(data, 8),
        "p_battery_cutoff_voltage": scaled_u16_le(data, 10),
        "p_back_to_grid_voltage": scaled_u16_le(data, 12),
        # 0.0 means "battery full"
        "p_back_to_discharge_voltage": scaled_u16_le(data, 14),
        "p_ac_input_range": u8(data, 16),
        "p_output_source_priority": u8(data, 17),
        "p_charger_source_priority": u8(data, 18),
        "p_battery_type": u8(data, 19),
    }


def _parameters_2(data: bytes) -> dict[str, Any]:
    updates: dict[str, Any] = {
        name: flag(data, offset, mask) for name, (offset, mask) in _PARAMETER_FLAGS.items()
    }
    updates.update(
        {
            "output_mode": u8(data, 2),
            "p_must_be_connected_to_pv": u8(data, 3),
            "p_solar_power_balance": u8(data, 4),
            "p_equalization_time": u16_le(data, 6),
            "p_equalization_period": u16_le(data, 8),
            "p_equalization_voltage": scaled_u16_le(data, 10, 0.01),
            "p_equalization_timeout": u16_le(data, 12),
            "charge_mode": u8(data, 15),
            "bulk_charge": i16_le(data, 16),
        }
    )
    return updates


def _operation_mode(data: bytes) -> dict[str, Any]:
    code = u8(data, 0)
    return {
        "operation_logic": _OPERATION_LOGIC.get(code, f"UNKNOWN ({code})"),
        "discharge_current": u8(data, 1),
    }


def _pv_stage(stage: int) -> Extractor:
    """Build the extractor for PV input stage *stage* (1-4)."""

    def _extract(data: bytes) -> dict[str, Any]:
        return {
            f"scc_cpu{stage}": text(data, 0, 8),
            f"pv_input_voltage_stage{stage}": scaled_u16_le(data, 12),
            f"pv_input_power_stage{stage}": u16_le(data, 14),
        }

    return _extract


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

EXTRACTORS: dict[int, Extractor] = {
    0x2A01: _identity,
    0x2A02: _model_identification,
    0x2A03: _ac_output,
    0x2A04: _battery_fault,
    0x2A05: _rated_values,
    0x2A06: _opaque_block("charging_data1"),
    0x2A07: _opaque_block("charging_data2"),
    0x2A08: _opaque_block("ac_charging_data1"),
    0x2A09: _opaque_block("ac_charging_data2"),
    0x2A0B: _bulk_limits,
    0x2A0C: _parameters_1,
    0x2A0D: _parameters_2,
    0x2A0E: _operation_mode,
    0x2A11: _pv_stage(1),
    0x2A12: _pv_stage(2),
    0x2A13: _pv_stage(3),
    0x2A14: _pv_stage(4),
}
"""Short id -> extractor for every characteristic in the characteristic map."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_characteristic(short_id: int, data: bytes) -> dict[str, Any] | None:
    """Decode one characteristic into the telemetry fields it owns.

    Args:
        short_id: 16-bit short UUID of the characteristic.
        data: Raw bytes read from it.

    Returns:
        Mapping of telemetry field name to decoded value, or ``None`` for an
        unrecognised characteristic.

    Raises:
        FieldRangeError: If *data* is shorter than the layout requires.
    """
    extractor = EXTRACTORS.get(short_id)
    if extractor is None:
        return None

    try:
        return extractor(bytes(data))
    except FieldRangeError as exc:
        char = ALL_CHARACTERISTICS.get(short_id)
        label = char.label if char is not None else f"0x{short_id:04X}"
        raise FieldRangeError(exc.offset, exc.width, exc.length, source=label) from None


def merge(record: InverterTelemetry, updates: dict[str, Any]) -> None:
    """Write decoded field values into *record* in place."""
    for name, value in updates.items():
        setattr(record, name, value)
