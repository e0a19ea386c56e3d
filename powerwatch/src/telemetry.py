"""
Pydantic model for the aggregate inverter telemetry record.

One :class:`InverterTelemetry` holds the last-known state of the inverter.
Each characteristic decode merges only the fields that characteristic owns;
fields that were never decoded keep their zero/empty defaults.  The record
is never "complete": between poll cycles some fields are always stale.

Values are in engineering units (V, Hz, A, W, VA, %) after scaling.

CHANGELOG:
- 2026-10-13: Add opaque charging-data blocks and raw event flags
- 2026-10-10: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from pydantic import BaseModel, Field


def _zeros() -> list[int]:
    return [0] * 32


class InverterTelemetry(BaseModel):
    """Last-known inverter state decoded from its Bluetooth characteristics."""

    # Product info
    model_type: int = 0
    model_identification: int = 0
    cpu_version: str = ""
    blt_version: str = ""
    operation_logic: str = ""

    # Basic info
    ac_voltage: float = 0.0
    ac_frequency: float = 0.0
    pv_input_voltage_stage1: float = 0.0
    pv_input_power_stage1: int = 0
    pv_input_voltage_stage2: float = 0.0
    pv_input_power_stage2: int = 0
    pv_input_voltage_stage3: float = 0.0
    pv_input_power_stage3: int = 0
    pv_input_voltage_stage4: float = 0.0
    pv_input_power_stage4: int = 0
    output_voltage: float = 0.0
    output_frequency: float = 0.0
    output_apparent_power: int = 0
    output_active_power: int = 0
    load_percentage: int = 0

    # Modes
    output_mode: int = 0
    charge_mode: int = 0
    bulk_charge: int = 0

    # Blocks whose meaning is not yet known
    scc_cpu1: str = ""
    scc_cpu2: str = ""
    scc_cpu3: str = ""
    scc_cpu4: str = ""
    charging_data1: list[int] = Field(default_factory=_zeros)
    charging_data2: list[int] = Field(default_factory=_zeros)
    ac_charging_data1: list[int] = Field(default_factory=_zeros)
    ac_charging_data2: list[int] = Field(default_factory=_zeros)
    unknown_watts_01: int = 0
    unknown_02: float = 0.0
    unknown_03: int = 0
    discharge_current: int = 0

    # Rated information
    nominal_ac_voltage: float = 0.0
    nominal_ac_current: float = 0.0
    rated_battery_voltage: float = 0.0
    nominal_output_voltage: float = 0.0
    nominal_output_frequency: float = 0.0
    nominal_output_apparent_power: int = 0
    nominal_output_active_power: int = 0

    # Battery info
    workmode: str = ""
    battery_voltage: float = 0.0
    battery_capacity: int = 0
    battery_charge_current: int = 0
    battery_current_discharge: int = 0

    # Battery parameters
    p_bulk_charging_voltage: float = 0.0
    p_float_charging_voltage: float = 0.0
    p_battery_cutoff_voltage: float = 0.0

    # Battery equalization
    p_battery_equalization_enable: bool = False
    p_equalization_time: int = 0
    p_equalization_period: int = 0
    p_equalization_timeout: int = 0
    p_equalization_voltage: float = 0.0

    # Parameters
    p_buzzer_alarm: bool = False
    p_feed_into_the_grid: bool = False
    p_backlight: bool = False
    p_overload_auto_restart: bool = False
    p_overtemp_auto_restart: bool = False
    p_beeps_while_primary_source_interrupt: bool = False
    p_must_be_connected_to_pv: int = 0
    p_solar_power_balance: int = 0
    p_overload_bypass: bool = False
    p_lcd_to_default_after_one_min: bool = False
    p_fault_code_record: bool = False
    p_charger_source_priority: int = 0
    p_output_source_priority: int = 0
    p_ac_input_range: int = 0
    p_battery_type: int = 0
    p_output_frequency: float = 0.0
    p_output_voltage: int = 0
    p_back_to_grid_voltage: float = 0.0
    p_max_charging_current: int = 0
    p_max_ac_charging_current: int = 0
    p_back_to_discharge_voltage: float = 0.0
    p_min_bulk_voltage: float = 0.0
    p_max_bulk_voltage: float = 0.0
    p_min_undervoltage: float = 0.0
    p_max_undervoltage: float = 0.0
    p_bulk_charge_time_range: int = 0

    # Event log (faults and warnings)
    last_event_message: str = ""
    raw_event_flags: list[int] = Field(default_factory=_zeros)
