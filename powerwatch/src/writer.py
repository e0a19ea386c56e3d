"""
InfluxDB 2 batch writer draining the local spool.

Peeks a batch of line-protocol payloads from the SQLite spool, POSTs them to
the InfluxDB v2 write API with token authentication and acknowledges the rows
only once InfluxDB accepted them.  Failures back off exponentially
(1s -> 2s -> 4s -> ... -> max_backoff_s).

Operations:
- write_batch(spool): Peek rows, POST to InfluxDB, ack on success.
- current_backoff: Current backoff delay in seconds (read-only property).

CHANGELOG:
- 2026-10-18: Drop rows InfluxDB rejects with 400/422
- 2026-10-13: Initial creation (STORY-011)

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

_INITIAL_BACKOFF_S = 1.0
_DEFAULT_MAX_BACKOFF_S = 60.0
_REQUEST_TIMEOUT_S = 10.0

_ACCEPTED_STATUS = frozenset({200, 204})
_REJECTED_STATUS = frozenset({400, 422})
"""InfluxDB refused the points themselves (bad syntax, field type conflict)."""


class SpoolLike(Protocol):
    async def peek(self, n: int) -> list[tuple[int, str]]: ...

    async def ack(self, rowids: list[int]) -> None: ...


class InfluxWriter:
    """Writes spooled line-protocol batches to InfluxDB 2.

    On a 204 (or 200) response the rows are acked.  A 400 or 422 means
    InfluxDB refused the points themselves, so the rows are acked and
    dropped with an error log instead of blocking the spool.  On any other
    status, a timeout or a connection error nothing is acked and the backoff
    doubles, capped at ``max_backoff_s``.  A success resets it to 1 second.

    Args:
        host: InfluxDB base URL (``http://`` or ``https://``).
        org: Organisation name.
        bucket: Bucket name.
        token: API token with write permission.
        batch_size: Maximum spool rows per request.
        max_backoff_s: Backoff cap in seconds.

    Raises:
        ValueError: If *host* is not an http(s) URL.

    Usage::

        writer = InfluxWriter(
            host="http://influx:8086", org="home", bucket="solar",
            token="tok", batch_size=50,
        )
        async with Spool(path="/data/spool.db") as spool:
            ok = await writer.write_batch(spool)
    """

    def __init__(
        self,
        host: str,
        org: str,
        bucket: str,
        token: str,
        batch_size: int,
        max_backoff_s: float = _DEFAULT_MAX_BACKOFF_S,
    ) -> None:
        if not host.lower().startswith(("http://", "https://")):
            raise ValueError(f"InfluxDB host must be an http(s) URL (got: '{host}')")
        self._url = f"{host.rstrip('/')}/api/v2/write"
        self._params = {"org": org, "bucket": bucket, "precision": "s"}
        self._token = token
        self._batch_size = batch_size
        self._max_backoff_s = max_backoff_s
        self._current_backoff = _INITIAL_BACKOFF_S

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def current_backoff(self) -> float:
        """Current backoff delay in seconds.

        Starts at 1s, doubles on each consecutive failure, capped at
        ``max_backoff_s``.  Resets to 1s after a successful write.
        """
        return self._current_backoff

    async def write_batch(self, spool: SpoolLike) -> bool:
        """Peek a batch from the spool, write it to InfluxDB and ack on success.

        Returns:
            ``True`` if the batch was written and acked.  ``False`` if the
            spool was empty or the write failed.
        """
        rows = await spool.peek(self._batch_size)
        if not rows:
            logger.debug("Spool empty, skipping write.")
            return False

        rowids = [rowid for rowid, _ in rows]
        body = "\n".join(payload for _, payload in rows)

        try:
            async with httpx.AsyncClient(timeout=_REQUEST_TIMEOUT_S) as client:
                response = await client.post(
                    self._url,
                    params=self._params,
                    content=body.encode("utf-8"),
                    headers={
                        "Authorization": f"Token {self._token}",
                        "Content-Type": "text/plain; charset=utf-8",
                    },
                )
        except httpx.HTTPError as exc:
            logger.warning("InfluxDB write failed (network error): %s", exc)
            self._increase_backoff()
            return False

        if response.status_code in _ACCEPTED_STATUS:
            await spool.ack(rowids)
            logger.info("Wrote %d spool rows to InfluxDB.", len(rowids))
            self._reset_backoff()
            return True

        if response.status_code in _REJECTED_STATUS:
            # retrying the same rows can never succeed
            await spool.ack(rowids)
            logger.error(
                "InfluxDB rejected %d spool rows (HTTP %d: %s), dropping them.",
                len(rowids),
                response.status_code,
                response.text[:200],
            )
            return False

        logger.warning(
            "InfluxDB write failed (HTTP %d: %s), will retry after %.1fs backoff.",
            response.status_code,
            response.text[:200],
            self._current_backoff,
        )
        self._increase_backoff()
        return False

    # ------------------------------------------------------------------
    # Backoff
    # ------------------------------------------------------------------

    def _increase_backoff(self) -> None:
        self._current_backoff = min(self._current_backoff * 2, self._max_backoff_s)

    def _reset_backoff(self) -> None:
        self._current_backoff = _INITIAL_BACKOFF_S
