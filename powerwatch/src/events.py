"""
Fault and warning code resolution for the inverter event flag vector.

The battery/fault characteristic carries 32 event flags (4 bytes, each byte
most significant bit first).  Flag *n* corresponds to row *n* of the tables
below.  Only the lowest-indexed active flag with a non-empty level is
reported; simultaneous faults are not modelled.

Level ``"T"`` marks threshold events that the inverter reports either as a
fault or as a warning.  Which identifier table applies is decided by the flag
value itself.

CHANGELOG:
- 2026-10-10: Initial creation (STORY-006)

TODO:
- Confirm against a threshold event in the field whether the warning-table
  branch for level "T" can ever be taken; it is kept as observed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Static tables (index = flag position)
# ---------------------------------------------------------------------------

EVENT_MESSAGES: tuple[str, ...] = (
    "PV loss",
    "Inverter fault",
    "Bus Over",
    "Bus Under",
    "Bus Soft Fail",
    "Line Fail",
    "Output Short",
    "Inverter voltage too low",
    "Inverter voltage too high",
    "Over temperature",
    "Fan locked",
    "Battery voltage high",
    "Battery low alarm",
    "Over charge",
    "Battery under shutdown",
    "Battery derating",
    "Over load",
    "EEPROM Fault",
    "Inverter Over Current",
    "Inverter Soft Fail",
    "Self Test Fail",
    "OP DC Voltage Over",
    "Bat Open",
    "Current Sensor Fail",
    "Battery Short",
    "Power limit",
    "PV voltage high",
    "MPPT overload fault",
    "MPPT overload warning",
    "Battery too low to charge",
    "Reserved",
    "Reserved",
)

EVENT_IDS_FAULT: tuple[str, ...] = (
    "1000", "1001", "1002", "1003", "1004", "2001", "2002", "1005",
    "1006", "1007", "1008", "1009", "2006", "2007", "2008", "2009",
    "1010", "2011", "1011", "1012", "1013", "1014", "1015", "1016",
    "1017", "2012", "2013", "2014", "2015", "2016", "", "",
)

EVENT_IDS_WARNING: tuple[str, ...] = (
    "1000", "1001", "1002", "1003", "1004", "2001", "2002", "1005",
    "1006", "2003", "2004", "2005", "2006", "2007", "2008", "2009",
    "2010", "2011", "1011", "1012", "1013", "1014", "1015", "1016",
    "1017", "2012", "2013", "2014", "2015", "2016", "", "",
)

EVENT_LEVELS: tuple[str, ...] = (
    "Warning", "Fault", "Fault", "Fault", "Fault", "Warning", "Fault", "Fault",
    "Fault", "T", "T", "T", "Warning", "Warning", "Warning", "Warning",
    "T", "Warning", "Fault", "Fault", "Fault", "Fault", "Warning", "Fault",
    "Fault", "Warning", "Warning", "Warning", "Warning", "Warning", "", "",
)

EVENT_FLAG_COUNT: int = 32

THRESHOLD_LEVEL: str = "T"


@dataclass(frozen=True, slots=True)
class EventLine:
    """One resolved fault or warning."""

    event_id: str
    level: str
    message: str

    def __str__(self) -> str:
        return f"ID:{self.event_id};LEVEL:{self.level};MESSAGE:{self.message};"


def resolve_event(flags: Sequence[int]) -> EventLine | None:
    """Resolve the first active event in a 32-entry flag vector.

    Args:
        flags: 0/1 values, index 0 first, as produced by
            :func:`powerwatch.src.fields.expand_bits`.

    Returns:
        The :class:`EventLine` of the lowest active index with a non-empty
        level, or ``None`` when no flag qualifies.

    Raises:
        ValueError: If *flags* does not hold exactly 32 entries.
    """
    if len(flags) != EVENT_FLAG_COUNT:
        raise ValueError(f"expected {EVENT_FLAG_COUNT} event flags, got {len(flags)}")

    for index, value in enumerate(flags):
        level = EVENT_LEVELS[index]
        if value != 1 or not level:
            continue

        if level != THRESHOLD_LEVEL:
            return EventLine(EVENT_IDS_FAULT[index], level, EVENT_MESSAGES[index])
        if value == 1:
            return EventLine(EVENT_IDS_FAULT[index], "Fault", EVENT_MESSAGES[index])
        return EventLine(EVENT_IDS_WARNING[index], "Warning", EVENT_MESSAGES[index])

    return None
