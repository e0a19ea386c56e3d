"""
Inverter Bluetooth LE characteristic map -- single source of truth.

The inverter exposes its state as a set of readable GATT characteristics, each
a fixed-layout block of bytes.  They are addressed by 16-bit short UUIDs in the
Bluetooth base UUID range (``0000XXXX-0000-1000-8000-00805f9b34fb``).  This
module lists every block the decoder understands, with the minimum number of
bytes its extractor reads.

The field layouts themselves live next to their extractors in
:mod:`powerwatch.src.decoder`.

CHANGELOG:
- 2026-10-18: Drop the UUID index and descriptions; the poller matches by short id
- 2026-10-13: Add the opaque charging-data blocks 0x2A06-0x2A09
- 2026-10-09: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------

_BASE_UUID_SUFFIX = "-0000-1000-8000-00805f9b34fb"


@dataclass(frozen=True, slots=True)
class CharacteristicDef:
    """Definition of one readable inverter characteristic.

    Attributes:
        short_id: 16-bit short UUID (e.g. ``0x2A03``).
        name: Unique human-readable identifier.
        min_length: Smallest payload the extractor can decode.  Some blocks
            need more bytes depending on their content (see the decoder).
    """

    short_id: int
    name: str
    min_length: int

    @property
    def label(self) -> str:
        """Hex label as used in logs (``0x2A03``)."""
        return f"0x{self.short_id:04X}"


def short_id_from_uuid(value: str | uuid.UUID) -> int | None:
    """Return the 16-bit short id of a Bluetooth base UUID, else ``None``."""
    text = str(value).lower()
    if not text.endswith(_BASE_UUID_SUFFIX) or not text.startswith("0000"):
        return None
    return int(text[4:8], 16)


# ---------------------------------------------------------------------------
# Characteristic table
# ---------------------------------------------------------------------------

_CHARACTERISTICS: list[CharacteristicDef] = [
    CharacteristicDef(0x2A01, "identity", 12),
    CharacteristicDef(0x2A02, "model_identification", 20),
    CharacteristicDef(0x2A03, "ac_output", 20),
    CharacteristicDef(0x2A04, "battery_fault", 14),
    CharacteristicDef(0x2A05, "rated_values", 17),
    CharacteristicDef(0x2A06, "charging_data_1", 32),
    CharacteristicDef(0x2A07, "charging_data_2", 32),
    CharacteristicDef(0x2A08, "ac_charging_data_1", 32),
    CharacteristicDef(0x2A09, "ac_charging_data_2", 32),
    CharacteristicDef(0x2A0B, "bulk_limits", 14),
    CharacteristicDef(0x2A0C, "parameters_1", 20),
    CharacteristicDef(0x2A0D, "parameters_2", 18),
    CharacteristicDef(0x2A0E, "operation_mode", 2),
    CharacteristicDef(0x2A11, "pv_stage_1", 16),
    CharacteristicDef(0x2A12, "pv_stage_2", 16),
    CharacteristicDef(0x2A13, "pv_stage_3", 16),
    CharacteristicDef(0x2A14, "pv_stage_4", 16),
]

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

ALL_CHARACTERISTICS: dict[int, CharacteristicDef] = {
    c.short_id: c for c in _CHARACTERISTICS
}
"""Every known characteristic keyed by short id, in read order."""
