"""
Unit tests for the characteristic map.

CHANGELOG:
- 2026-10-09: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import uuid

import pytest

from powerwatch.src.characteristics import ALL_CHARACTERISTICS, short_id_from_uuid
from powerwatch.src.decoder import EXTRACTORS


class TestCharacteristicTable:
    def test_seventeen_characteristics(self) -> None:
        assert len(ALL_CHARACTERISTICS) == 17

    def test_names_are_unique(self) -> None:
        names = [c.name for c in ALL_CHARACTERISTICS.values()]
        assert len(names) == len(set(names))

    def test_every_characteristic_has_an_extractor(self) -> None:
        assert set(ALL_CHARACTERISTICS) == set(EXTRACTORS)

    def test_0x2a0a_is_not_mapped(self) -> None:
        assert 0x2A0A not in ALL_CHARACTERISTICS

    def test_label(self) -> None:
        char = ALL_CHARACTERISTICS[0x2A03]
        assert char.label == "0x2A03"

    @pytest.mark.parametrize("short_id", sorted(ALL_CHARACTERISTICS))
    def test_min_length_is_enough_to_decode_zeros(self, short_id: int) -> None:
        char = ALL_CHARACTERISTICS[short_id]
        data = bytes(char.min_length)
        if short_id == 0x2A04:
            # byte 13 == 0 asks for two more bytes; 1 means "not present"
            data = bytes(13) + b"\x01"
        assert EXTRACTORS[short_id](data) is not None


class TestShortIdFromUuid:
    def test_string(self) -> None:
        assert short_id_from_uuid("00002A11-0000-1000-8000-00805F9B34FB") == 0x2A11

    def test_uuid_object(self) -> None:
        value = uuid.UUID("00002a0e-0000-1000-8000-00805f9b34fb")
        assert short_id_from_uuid(value) == 0x2A0E

    def test_non_base_uuid(self) -> None:
        assert short_id_from_uuid("6e400001-b5a3-f393-e0a9-e50e24dcca9e") is None
