"""
Battery-status interpreter for the BMS frames seen on the CAN bus.

The battery management unit periodically broadcasts a status frame with
identifier 787 (0x313).  Its first eight payload bytes, big-endian, are::

    offset  0-1   voltage        u16  x 0.01 V
    offset  2-3   current        i16  x 0.1  A
    offset  4-5   temperature    i16  x 0.1  degC
    offset  6     state of charge     u8   %
    offset  7     state of health     u8   %

Example payload ``13 B1 00 61 00 A0 50 64`` is 50.41 V, 9.7 A, 16.0 degC,
80 % charged, 100 % health.

CHANGELOG:
- 2026-10-10: Read current and temperature as signed values
- 2026-10-09: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

from pydantic import BaseModel

from powerwatch.src.fields import PayloadError, i16_be, u8, u16_be
from powerwatch.src.framing import Frame

BATTERY_STATUS_FRAME_ID: int = 787
"""CAN identifier of the BMS status broadcast."""

MIN_PAYLOAD_LENGTH: int = 8
"""Minimum number of payload bytes in a battery status frame."""


class BatteryStatus(BaseModel):
    """Scaled battery status decoded from one BMS frame.

    Attributes:
        soc: State of charge in percent.
        soh: State of health in percent.
        amps: Battery current in amperes.
        temp: Battery temperature in degrees Celsius.
        voltage: Battery voltage in volts.
    """

    soc: int
    soh: int
    amps: float
    temp: float
    voltage: float

    def __str__(self) -> str:
        return (
            f"soc: {self.soc}% soh: {self.soh}%, {self.amps:.1f}A "
            f"{self.voltage:.2f}V {self.temp:.1f}ºC"
        )


def decode_battery_status(frame: Frame) -> BatteryStatus:
    """Decode a battery status frame.

    Args:
        frame: A frame recovered by the synchronizer.

    Returns:
        The decoded :class:`BatteryStatus`.

    Raises:
        PayloadError: If the frame identifier is not
            :data:`BATTERY_STATUS_FRAME_ID` or the payload holds fewer than
            :data:`MIN_PAYLOAD_LENGTH` bytes.
    """
    if frame.frame_id != BATTERY_STATUS_FRAME_ID:
        raise PayloadError(
            f"frame id {frame.frame_id} is not a battery status frame "
            f"({BATTERY_STATUS_FRAME_ID})"
        )

    data = frame.data
    if len(data) < MIN_PAYLOAD_LENGTH:
        raise PayloadError(
            f"battery status payload has {len(data)} bytes, "
            f"need at least {MIN_PAYLOAD_LENGTH}"
        )

    return BatteryStatus(
        voltage=u16_be(data, 0) * 0.01,
        amps=i16_be(data, 2) * 0.1,
        temp=i16_be(data, 4) * 0.1,
        soc=u8(data, 6),
        soh=u8(data, 7),
    )
