"""Formatting helpers for elapsed times and compact numeric display."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Union


_UNITS = (
    (1_000_000_000_000.0, "T"),
    (1_000_000_000.0, "B"),
    (1_000_000.0, "M"),
    (1_000.0, "K"),
)


def format_elapsed_time(elapsed: Union[timedelta, float, int, None]) -> str:
    """Return ``HH:MM:SS`` for a duration given as timedelta or seconds.

    Fractional seconds are truncated and negative durations clamp to zero.
    Hours are not wrapped at 24.
    """

    if elapsed is None:
        return "00:00:00"
    if isinstance(elapsed, timedelta):
        seconds = elapsed.total_seconds()
    else:
        seconds = float(elapsed)
    total_seconds = max(0, int(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_compact_number(value: Optional[float], *, default: str = "--") -> str:
    """Return a compact human-readable number (e.g., 4.3M)."""

    if value is None:
        return default
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default

    sign = "-" if numeric < 0 else ""
    magnitude = abs(numeric)
    for threshold, suffix in _UNITS:
        if magnitude >= threshold:
            scaled = magnitude / threshold
            if scaled >= 100:
                formatted = f"{scaled:.0f}"
            else:
                formatted = f"{scaled:.1f}".rstrip("0").rstrip(".")
            return f"{sign}{formatted}{suffix}"
    return f"{sign}{int(round(magnitude)):,}"


__all__ = ["format_compact_number", "format_elapsed_time"]
