"""
Unit tests for the characteristic field decoder.

Tests verify:
- Every characteristic's offsets and scale factors.
- Named flag masks of the parameter block, one mask at a time.
- Short input raises FieldRangeError naming the characteristic.
- Unknown characteristics are ignored.
- Decoding two characteristics in either order gives the same record.

CHANGELOG:
- 2026-10-18: Cover every parameter flag mask on its own
- 2026-10-12: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import pytest

from powerwatch.src.decoder import decode_characteristic, merge
from powerwatch.src.fields import FieldRangeError
from powerwatch.src.telemetry import InverterTelemetry


def _u16s(*values: int) -> bytes:
    return b"".join(v.to_bytes(2, "little", signed=v < 0) for v in values)


AC_OUTPUT = _u16s(2301, 500, 2299, 499, 1200, 1100, 25, 0, 5321, 12)
OPERATION_MODE = b"\x01\x05"


def _battery_fault(byte13: int = 0, tail: bytes = _u16s(450)) -> bytes:
    return (
        _u16s(85, 3, 7, 0)
        + bytes([0x80, 0x00, 0x00, 0x00])
        + b"B"
        + bytes([byte13])
        + tail
    )


class TestIdentityAndModel:
    def test_identity(self) -> None:
        data = b"\x00\x00\x00" + b"CPU-0102" + b"\x00" + b"BT-7"
        assert decode_characteristic(0x2A01, data) == {
            "cpu_version": "CPU-0102",
            "blt_version": "BT-7",
        }

    def test_model_identification(self) -> None:
        assert decode_characteristic(0x2A02, bytes(19) + b"\x05") == {
            "model_identification": 5
        }


class TestAcOutput:
    def test_scaled_values(self) -> None:
        updates = decode_characteristic(0x2A03, AC_OUTPUT)
        assert updates is not None
        assert updates["ac_voltage"] == pytest.approx(230.1)
        assert updates["ac_frequency"] == pytest.approx(50.0)
        assert updates["output_voltage"] == pytest.approx(229.9)
        assert updates["output_frequency"] == pytest.approx(49.9)
        assert updates["output_apparent_power"] == 1200
        assert updates["output_active_power"] == 1100
        assert updates["load_percentage"] == 25
        assert updates["battery_voltage"] == pytest.approx(53.21)
        assert updates["battery_charge_current"] == 12


class TestBatteryFault:
    def test_fields_and_event(self) -> None:
        updates = decode_characteristic(0x2A04, _battery_fault())
        assert updates is not None
        assert updates["battery_capacity"] == 85
        assert updates["unknown_03"] == 3
        assert updates["battery_current_discharge"] == 7
        assert updates["workmode"] == "B"
        assert updates["unknown_watts_01"] == 450
        assert updates["raw_event_flags"][0] == 1
        assert sum(updates["raw_event_flags"]) == 1
        assert updates["last_event_message"] == "ID:1000;LEVEL:Warning;MESSAGE:PV loss;"

    def test_byte13_equal_one_skips_watts(self) -> None:
        updates = decode_characteristic(0x2A04, _battery_fault(byte13=1, tail=b""))
        assert updates is not None
        assert "unknown_watts_01" not in updates

    def test_byte13_not_one_needs_sixteen_bytes(self) -> None:
        with pytest.raises(FieldRangeError):
            decode_characteristic(0x2A04, _battery_fault(byte13=0, tail=b""))

    def test_no_event_clears_message(self) -> None:
        data = bytearray(_battery_fault())
        data[8] = 0
        updates = decode_characteristic(0x2A04, bytes(data))
        assert updates is not None
        assert updates["last_event_message"] == ""


class TestRatedValues:
    def test_rated_values(self) -> None:
        data = _u16s(2300, 0, 2300, 500, 217, 5000, 4000, 480) + b"\x02"
        updates = decode_characteristic(0x2A05, data)
        assert updates is not None
        assert updates["nominal_ac_voltage"] == pytest.approx(230.0)
        assert updates["nominal_output_voltage"] == pytest.approx(230.0)
        assert updates["nominal_output_frequency"] == pytest.approx(50.0)
        assert updates["nominal_ac_current"] == pytest.approx(21.7)
        assert updates["nominal_output_apparent_power"] == 5000
        assert updates["nominal_output_active_power"] == 4000
        assert updates["rated_battery_voltage"] == pytest.approx(48.0)
        assert updates["model_type"] == 2


class TestOpaqueBlocks:
    def test_exact_length(self) -> None:
        assert decode_characteristic(0x2A06, bytes(range(32))) == {
            "charging_data1": list(range(32))
        }

    def test_longer_block_keeps_first_32(self) -> None:
        updates = decode_characteristic(0x2A09, bytes(range(40)))
        assert updates == {"ac_charging_data2": list(range(32))}

    def test_shorter_block_fails(self) -> None:
        with pytest.raises(FieldRangeError, match="0x2A07"):
            decode_characteristic(0x2A07, bytes(31))


class TestParameters:
    def test_bulk_limits(self) -> None:
        data = bytes(5) + b"\x03" + _u16s(480, 640, 400, 480)
        updates = decode_characteristic(0x2A0B, data)
        assert updates is not None
        assert updates["p_bulk_charge_time_range"] == 3
        assert updates["p_min_bulk_voltage"] == pytest.approx(48.0)
        assert updates["p_max_bulk_voltage"] == pytest.approx(64.0)
        assert updates["p_min_undervoltage"] == pytest.approx(40.0)
        assert updates["p_max_undervoltage"] == pytest.approx(48.0)

    def test_parameters_1(self) -> None:
        data = (
            _u16s(230, 500)
            + bytes([60, 30])
            + _u16s(540, 564, 420, 460, 0)
            + bytes([1, 2, 1, 3])
        )
        updates = decode_characteristic(0x2A0C, data)
        assert updates is not None
        assert updates["p_output_voltage"] == 230
        assert updates["p_output_frequency"] == pytest.approx(50.0)
        assert updates["p_max_charging_current"] == 60
        assert updates["p_max_ac_charging_current"] == 30
        assert updates["p_float_charging_voltage"] == pytest.approx(54.0)
        assert updates["p_bulk_charging_voltage"] == pytest.approx(56.4)
        assert updates["p_battery_cutoff_voltage"] == pytest.approx(42.0)
        assert updates["p_back_to_grid_voltage"] == pytest.approx(46.0)
        assert updates["p_back_to_discharge_voltage"] == 0.0
        assert updates["p_ac_input_range"] == 1
        assert updates["p_output_source_priority"] == 2
        assert updates["p_charger_source_priority"] == 1
        assert updates["p_battery_type"] == 3

    def test_parameters_2_flags_and_values(self) -> None:
        data = (
            bytes([0x84, 0x03, 0x01, 0x01, 0x00, 0x00])
            + _u16s(60, 30, 5840, 120)
            + bytes([0x00, 0x02])
            + _u16s(-1)
        )
        updates = decode_characteristic(0x2A0D, data)
        assert updates is not None
        assert updates["p_overload_bypass"] is True
        assert updates["p_backlight"] is True
        assert updates["p_feed_into_the_grid"] is False
        assert updates["p_fault_code_record"] is False
        assert updates["p_battery_equalization_enable"] is True
        assert updates["p_buzzer_alarm"] is True
        assert updates["output_mode"] == 1
        assert updates["p_must_be_connected_to_pv"] == 1
        assert updates["p_solar_power_balance"] == 0
        assert updates["p_equalization_time"] == 60
        assert updates["p_equalization_period"] == 30
        assert updates["p_equalization_voltage"] == pytest.approx(58.4)
        assert updates["p_equalization_timeout"] == 120
        assert updates["charge_mode"] == 2
        assert updates["bulk_charge"] == -1

    @pytest.mark.parametrize(
        "byte_index,mask,field",
        [
            (0, 0x80, "p_overload_bypass"),
            (0, 0x40, "p_feed_into_the_grid"),
            (0, 0x20, "p_lcd_to_default_after_one_min"),
            (0, 0x10, "p_overload_auto_restart"),
            (0, 0x08, "p_overtemp_auto_restart"),
            (0, 0x04, "p_backlight"),
            (0, 0x02, "p_beeps_while_primary_source_interrupt"),
            (0, 0x01, "p_fault_code_record"),
            (1, 0x02, "p_battery_equalization_enable"),
            (1, 0x01, "p_buzzer_alarm"),
        ],
    )
    def test_parameters_2_single_flag(self, byte_index: int, mask: int, field: str) -> None:
        data = bytearray(18)
        data[byte_index] = mask

        updates = decode_characteristic(0x2A0D, bytes(data))

        assert updates is not None
        flags = {k: v for k, v in updates.items() if isinstance(v, bool)}
        assert len(flags) == 10
        assert [k for k, v in flags.items() if v] == [field]

    def test_parameters_2_all_flags_clear(self) -> None:
        updates = decode_characteristic(0x2A0D, bytes(18))
        assert updates is not None
        assert not any(v for k, v in updates.items() if isinstance(v, bool))


class TestOperationMode:
    def test_known_logic(self) -> None:
        assert decode_characteristic(0x2A0E, OPERATION_MODE) == {
            "operation_logic": "ONLINE",
            "discharge_current": 5,
        }

    def test_unknown_logic(self) -> None:
        updates = decode_characteristic(0x2A0E, b"\x07\x00")
        assert updates is not None
        assert updates["operation_logic"] == "UNKNOWN (7)"


class TestPvStages:
    @pytest.mark.parametrize("short_id,stage", [(0x2A11, 1), (0x2A12, 2), (0x2A13, 3), (0x2A14, 4)])
    def test_stage(self, short_id: int, stage: int) -> None:
        data = b"SCC-1.23" + bytes(4) + _u16s(3650, 1500)
        updates = decode_characteristic(short_id, data)
        assert updates is not None
        assert updates[f"scc_cpu{stage}"] == "SCC-1.23"
        assert updates[f"pv_input_voltage_stage{stage}"] == pytest.approx(365.0)
        assert updates[f"pv_input_power_stage{stage}"] == 1500
        assert len(updates) == 3


class TestMerge:
    def test_unknown_id_is_ignored(self) -> None:
        assert decode_characteristic(0x2A0A, b"\x00" * 20) is None

    def test_range_error_names_characteristic(self) -> None:
        with pytest.raises(FieldRangeError, match="0x2A04") as exc_info:
            decode_characteristic(0x2A04, _battery_fault()[:10])

        assert exc_info.value.source == "0x2A04"

    def test_order_does_not_clobber(self) -> None:
        first = InverterTelemetry()
        merge(first, decode_characteristic(0x2A03, AC_OUTPUT))
        merge(first, decode_characteristic(0x2A0E, OPERATION_MODE))

        second = InverterTelemetry()
        merge(second, decode_characteristic(0x2A0E, OPERATION_MODE))
        merge(second, decode_characteristic(0x2A03, AC_OUTPUT))

        assert first == second
        assert first.operation_logic == "ONLINE"
        assert first.output_active_power == 1100

    def test_merge_keeps_untouched_fields(self) -> None:
        record = InverterTelemetry(cpu_version="keep-me")
        merge(record, decode_characteristic(0x2A0E, OPERATION_MODE))
        assert record.cpu_version == "keep-me"
        assert record.discharge_current == 5
