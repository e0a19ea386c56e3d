"""
Frame synchronizer for the USB-CAN adapter serial byte stream.

The adapter wraps every CAN frame it forwards in a small envelope::

    0xAA | header | identifier (2 or 4 bytes, little-endian) | payload | 0x55

There is no length byte on the wire that can be trusted and no checksum, so
frames are recovered from the sentinel bytes alone.  The header byte carries a
3-bit minimum payload length; an end sentinel only terminates a frame once
more bytes than that minimum have been consumed.  This reduces (but does not
eliminate) false terminations on payloads containing 0x55.

The :class:`FrameSynchronizer` is fed one byte at a time, never blocks and
keeps a single private accumulation buffer.  It must only ever be driven by
one byte source, in arrival order.

CHANGELOG:
- 2026-10-11: Treat truncated header/identifier as "no frame" instead of raising
- 2026-10-09: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Wire constants
# ---------------------------------------------------------------------------

START_SENTINEL: int = 0xAA
"""First byte of every frame envelope."""

END_SENTINEL: int = 0x55
"""Last byte of every frame envelope."""

_EXTENDED_BIT = 1 << 5
_REMOTE_BIT = 1 << 4
_LENGTH_MASK = 0b1110_0000
_LENGTH_SHIFT = 5

_STANDARD_ID_BYTES = 2
_EXTENDED_ID_BYTES = 4


# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


class FrameKind(enum.Enum):
    """CAN identifier kind."""

    STANDARD = "standard"
    EXTENDED = "extended"


class FrameFormat(enum.Enum):
    """CAN frame format."""

    DATA = "data"
    REMOTE = "remote"


@dataclass(frozen=True, slots=True)
class FrameHeader:
    """Decoded envelope header byte.

    Attributes:
        kind: Standard (2-byte identifier) or extended (4-byte identifier).
        frame_format: Data or remote frame.
        min_length: Declared minimum payload length (top 3 bits of the byte).
    """

    kind: FrameKind = FrameKind.STANDARD
    frame_format: FrameFormat = FrameFormat.DATA
    min_length: int = 0

    @classmethod
    def from_byte(cls, byte: int) -> FrameHeader:
        """Decode a header byte.

        Bit 5 selects the extended kind, bit 4 the remote format and bits 5-7
        form the minimum length.  Bit 5 is shared between the kind and the
        length field; that is how the adapter encodes it.
        """
        return cls(
            kind=FrameKind.EXTENDED if byte & _EXTENDED_BIT else FrameKind.STANDARD,
            frame_format=FrameFormat.REMOTE if byte & _REMOTE_BIT else FrameFormat.DATA,
            min_length=(byte & _LENGTH_MASK) >> _LENGTH_SHIFT,
        )

    @property
    def id_length(self) -> int:
        """Number of identifier bytes that follow the header on the wire."""
        return _EXTENDED_ID_BYTES if self.kind is FrameKind.EXTENDED else _STANDARD_ID_BYTES

    def __str__(self) -> str:
        return (
            f"Type: {self.kind.name.title()} Format: {self.frame_format.name.title()} "
            f"Length: {self.min_length}"
        )


@dataclass(frozen=True, slots=True)
class Frame:
    """One frame recovered from the serial stream.

    Attributes:
        header: The decoded envelope header.
        frame_id: 16-bit identifier.  Extended frames carry 4 identifier
            bytes but only the first two (little-endian) are used here.
        data: Payload bytes, without the end sentinel.
    """

    header: FrameHeader
    frame_id: int
    data: bytes

    def __str__(self) -> str:
        payload = " ".join(f"{b:02X}" for b in self.data)
        return f"ID: {self.frame_id} Data: [{payload}] Len: {len(self.data)} - {self.header}"


# ---------------------------------------------------------------------------
# Synchronizer
# ---------------------------------------------------------------------------


class FrameSynchronizer:
    """Recovers :class:`Frame` objects from a byte-at-a-time serial feed.

    Usage::

        sync = FrameSynchronizer()
        for byte in port_bytes:
            frame = sync.append(byte)
            if frame is not None:
                handle(frame)
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of bytes accumulated for the frame in progress."""
        return len(self._buffer)

    def reset(self) -> None:
        """Drop any partially accumulated frame."""
        self._buffer.clear()

    def append(self, byte: int) -> Frame | None:
        """Feed one byte; return a completed frame or ``None``.

        Bytes received outside of a frame (before a start sentinel) are
        discarded.  The buffer is cleared on every end sentinel, whether or
        not a frame could be decoded from it.
        """
        if not self._buffer:
            if byte == START_SENTINEL:
                self._buffer.append(byte)
            return None

        self._buffer.append(byte)
        if byte != END_SENTINEL:
            return None

        frame = decode_frame(bytes(self._buffer))
        self._buffer.clear()
        return frame

    def feed(self, data: Iterable[int]) -> Iterator[Frame]:
        """Feed a chunk of bytes, yielding every frame completed along the way."""
        for byte in data:
            frame = self.append(byte)
            if frame is not None:
                yield frame


def decode_frame(raw: bytes) -> Frame | None:
    """Decode one accumulated envelope into a :class:`Frame`.

    Returns ``None`` when the envelope ends before the header, identifier or
    a qualifying end sentinel could be read.  Nothing is retried or carried
    over to the next envelope.
    """
    try:
        start = raw.index(START_SENTINEL)
    except ValueError:
        return None

    it = iter(raw[start + 1 :])

    header_byte = next(it, None)
    if header_byte is None:
        logger.debug("Envelope ended before header byte: %s", raw.hex(" "))
        return None
    header = FrameHeader.from_byte(header_byte)

    id_bytes = bytes(b for _, b in zip(range(header.id_length), it))
    if len(id_bytes) < header.id_length:
        logger.debug("Envelope ended inside identifier: %s", raw.hex(" "))
        return None
    frame_id = int.from_bytes(id_bytes[:_STANDARD_ID_BYTES], "little")

    payload = bytearray()
    for consumed, byte in enumerate(it, start=1):
        if byte == END_SENTINEL and consumed > header.min_length:
            return Frame(header=header, frame_id=frame_id, data=bytes(payload))
        payload.append(byte)

    logger.debug("Envelope without qualifying end sentinel dropped: %s", raw.hex(" "))
    return None
