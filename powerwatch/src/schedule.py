"""
Day/night poll interval selection.

The inverter is polled often while the sun is up and rarely at night, when
the PV values do not change.  The window is expressed in local wall-clock
time; both bounds are exclusive.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime, time


def is_daytime(now: datetime, day_start: time, day_end: time) -> bool:
    """Return True when the time of day of *now* lies strictly inside the window.

    A window whose start is after its end wraps around midnight.
    """
    current = now.time().replace(tzinfo=None)
    if day_start <= day_end:
        return day_start < current < day_end
    return current > day_start or current < day_end


def poll_interval(
    now: datetime,
    *,
    day_interval_s: float,
    night_interval_s: float,
    day_start: time,
    day_end: time,
) -> float:
    """Return the number of seconds to wait before the next poll."""
    if is_daytime(now, day_start, day_end):
        return day_interval_s
    return night_interval_s
