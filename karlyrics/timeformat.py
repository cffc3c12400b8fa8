"""Formatting of player positions."""

from __future__ import annotations

__all__ = ["tick_to_string"]


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


def tick_to_string(tick: int) -> str:
    """Format a position in milliseconds as ``mm:ss``.

    Returns an empty string when the time does not fit within an hour
    or is negative.
    """
    tick = int(tick)
    minute = _trunc_div(tick, 60000)
    second = _trunc_div(tick - minute * 60000, 1000)
    tenths = _trunc_div(tick - minute * 60000 - second * 1000, 100)

    if not (0 <= minute < 60 and 0 <= second < 60 and 0 <= tenths < 1000):
        return ""

    return f"{minute:02d}:{second:02d}"