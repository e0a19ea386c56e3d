"""
Fixed-offset byte field readers shared by the frame and characteristic codecs.

Every reader is range checked: asking for bytes beyond the end of the input
raises :class:`FieldRangeError` instead of silently truncating.  Both codec
paths (serial CAN frames and Bluetooth characteristics) build on these helpers,
the only difference between them being byte order.

Text fields are not a byte-for-byte copy of the wire: the inverter pads
version strings with NUL bytes and :func:`text` strips that trailing padding,
so ``"CPU-0102\\x00\\x00"`` on the wire reads back as ``"CPU-0102"``.  NULs
inside a string are kept.

CHANGELOG:
- 2026-10-18: Document the NUL stripping of text fields
- 2026-10-12: Strip trailing NUL padding from text fields
- 2026-10-09: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class DecodeError(ValueError):
    """Raw bytes could not be decoded into a record."""


class PayloadError(DecodeError):
    """A frame payload cannot be interpreted (wrong identifier or too short)."""


class FieldRangeError(DecodeError):
    """A fixed-offset field lies (partly) beyond the end of the input.

    Attributes:
        offset: First byte offset of the requested field.
        width: Width of the requested field in bytes.
        length: Number of bytes actually available.
        source: Optional label of the block being decoded (e.g. ``0x2A03``).
    """

    def __init__(self, offset: int, width: int, length: int, source: str = "") -> None:
        self.offset = offset
        self.width = width
        self.length = length
        self.source = source
        prefix = f"{source}: " if source else ""
        super().__init__(
            f"{prefix}field at offset {offset} (width {width}) "
            f"exceeds input length {length}"
        )


# ---------------------------------------------------------------------------
# Range checking
# ---------------------------------------------------------------------------


def require(data: bytes, offset: int, width: int) -> None:
    """Raise :class:`FieldRangeError` unless ``data[offset:offset + width]`` exists."""
    if offset < 0 or offset + width > len(data):
        raise FieldRangeError(offset, width, len(data))


# ---------------------------------------------------------------------------
# Integer readers
# ---------------------------------------------------------------------------


def u8(data: bytes, offset: int) -> int:
    """Read one unsigned byte."""
    require(data, offset, 1)
    return data[offset]


def u16_le(data: bytes, offset: int) -> int:
    """Read an unsigned 16-bit little-endian integer."""
    require(data, offset, 2)
    return int.from_bytes(data[offset : offset + 2], "little")


def i16_le(data: bytes, offset: int) -> int:
    """Read a signed (two's complement) 16-bit little-endian integer."""
    require(data, offset, 2)
    return int.from_bytes(data[offset : offset + 2], "little", signed=True)


def u16_be(data: bytes, offset: int) -> int:
    """Read an unsigned 16-bit big-endian integer."""
    require(data, offset, 2)
    return int.from_bytes(data[offset : offset + 2], "big")


def i16_be(data: bytes, offset: int) -> int:
    """Read a signed (two's complement) 16-bit big-endian integer."""
    require(data, offset, 2)
    return int.from_bytes(data[offset : offset + 2], "big", signed=True)


def scaled_u16_le(data: bytes, offset: int, scale: float = 0.1) -> float:
    """Read an unsigned 16-bit little-endian integer multiplied by *scale*.

    The default scale of 0.1 is the one used by almost every measurement the
    inverter exposes (volts, hertz, amps in tenths).
    """
    return u16_le(data, offset) * scale


# ---------------------------------------------------------------------------
# Text and bit readers
# ---------------------------------------------------------------------------


def text(data: bytes, start: int, end: int | None = None) -> str:
    """Decode ``data[start:end]`` as text.

    Invalid UTF-8 sequences are replaced rather than rejected and trailing NUL
    padding is removed.  When *end* is ``None`` the slice runs to the end of
    the input, which must then hold at least *start* bytes.
    """
    if end is None:
        require(data, start, 0)
        end = len(data)
    else:
        require(data, start, end - start)
    return data[start:end].decode("utf-8", errors="replace").rstrip("\x00")


def expand_bits(data: bytes) -> list[int]:
    """Expand bytes into a flat list of 0/1 values, most significant bit first.

    ``expand_bits(b"\\x80\\x01")`` returns ``[1, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 1]``.
    """
    return [(byte >> shift) & 1 for byte in data for shift in range(7, -1, -1)]


def flag(data: bytes, offset: int, mask: int) -> bool:
    """Return True when any bit of *mask* is set in the byte at *offset*."""
    return bool(u8(data, offset) & mask)
