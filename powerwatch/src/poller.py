"""
Async Bluetooth LE poller for the inverter's GATT characteristics.

Connects to the inverter, reads every readable characteristic whose short UUID
is listed in :mod:`powerwatch.src.characteristics` and returns the raw bytes
keyed by short id.  Designed to be robust:

- Exponential backoff on failures (capped at MAX_BACKOFF_S).
- Never crashes the poll loop on any error.
- Logs warnings on errors but never propagates exceptions to the caller.

Pairing is left to the operating system's Bluetooth agent.

CHANGELOG:
- 2026-10-18: Warn about reads shorter than the characteristic's minimum length
- 2026-10-13: Skip characteristics without the read property
- 2026-10-11: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging

from bleak import BleakClient

from powerwatch.src.characteristics import ALL_CHARACTERISTICS, short_id_from_uuid

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BASE_BACKOFF_S: float = 1.0
"""Initial backoff delay in seconds after the first failure."""

MAX_BACKOFF_S: float = 60.0
"""Maximum backoff delay in seconds (cap for exponential growth)."""

DEFAULT_CONNECT_TIMEOUT_S: float = 20.0
"""Connect and service discovery timeout in seconds."""


# ---------------------------------------------------------------------------
# Stateless single-poll function
# ---------------------------------------------------------------------------


async def poll_characteristics(
    *,
    address: str,
    timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
) -> dict[int, bytes] | None:
    """Execute a single poll and return raw characteristic values.

    Args:
        address: Bluetooth address of the inverter.
        timeout_s: Connect timeout in seconds.

    Returns:
        ``{short_id: raw_bytes}`` in characteristic-table order on success,
        or ``None`` on any error.
    """
    try:
        async with BleakClient(address, timeout=timeout_s) as client:
            return await _read_all(client)
    except Exception:
        logger.warning("Bluetooth poll of %s failed", address, exc_info=True)
        return None


# ---------------------------------------------------------------------------
# Stateful poller with exponential backoff
# ---------------------------------------------------------------------------


class Poller:
    """Stateful BLE poller with exponential backoff.

    Consecutive failures cause an exponentially growing sleep before the
    next attempt.  The backoff resets after any successful poll.

    Args:
        address: Bluetooth address of the inverter.
        timeout_s: Connect timeout in seconds.
    """

    def __init__(self, *, address: str, timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S) -> None:
        self._address = address
        self._timeout_s = timeout_s
        self._consecutive_failures: int = 0

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    async def poll(self) -> dict[int, bytes] | None:
        """Execute a single poll with backoff on failure.

        Returns:
            ``{short_id: raw_bytes}`` on success, or ``None`` on any error.
        """
        if self._consecutive_failures > 0:
            delay = min(
                BASE_BACKOFF_S * (2 ** (self._consecutive_failures - 1)),
                MAX_BACKOFF_S,
            )
            logger.warning(
                "Backoff: sleeping %.1fs before retry (consecutive failures: %d)",
                delay,
                self._consecutive_failures,
            )
            await asyncio.sleep(delay)

        result = await poll_characteristics(address=self._address, timeout_s=self._timeout_s)

        if result is not None:
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1
        return result


# ---------------------------------------------------------------------------
# Internal read logic
# ---------------------------------------------------------------------------


async def _read_all(client: BleakClient) -> dict[int, bytes] | None:
    """Read every known readable characteristic on a connected client."""
    found = {}
    for service in client.services:
        for char in service.characteristics:
            short_id = short_id_from_uuid(char.uuid)
            if short_id not in ALL_CHARACTERISTICS:
                continue
            if "read" not in char.properties:
                logger.debug("Characteristic 0x%04X is not readable", short_id)
                continue
            found[short_id] = char

    if not found:
        logger.warning("No known characteristics exposed by the device")
        return None

    result: dict[int, bytes] = {}
    for short_id, definition in ALL_CHARACTERISTICS.items():
        char = found.get(short_id)
        if char is None:
            continue
        data = bytes(await client.read_gatt_char(char))
        if len(data) < definition.min_length:
            logger.warning(
                "Characteristic %s (%s) returned %d bytes, expected at least %d",
                definition.label,
                definition.name,
                len(data),
                definition.min_length,
            )
        result[short_id] = data
    return result
