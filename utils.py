"""Utility functions for clock times and durations."""

from __future__ import annotations

from datetime import datetime, time, timedelta


def same_work_day(first: datetime, second: datetime) -> bool:
    """True when both instants fall on the same calendar day."""
    return first.date() == second.date()


def parse_clock_time(val: str | None) -> time | None:
    """Parse HH:MM (or HH:MM:SS) to a time object. Blank input gives None."""
    if val is None:
        return None
    val = val.strip()
    if not val:
        return None

    parts = val.split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Expected HH:MM, got {val!r}")
    seconds = int(parts[2]) if len(parts) == 3 else 0
    return time(int(parts[0]), int(parts[1]), seconds)


def resolve_clock_time(clock_time: time | None, now: datetime) -> datetime:
    """Combine an explicit time of day with today's date, or fall back to now."""
    if clock_time is None:
        return now.replace(microsecond=0)
    return datetime.combine(now.date(), clock_time)


def format_duration(delta: timedelta) -> str:
    """Format a duration as e.g. '7h 30m'."""
    total_minutes = int(delta.total_seconds() // 60)
    sign = "-" if total_minutes < 0 else ""
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours}h {minutes:02d}m"


def hours_decimal(delta: timedelta) -> float:
    """Duration as decimal hours, rounded to two places."""
    return round(delta.total_seconds() / 3600, 2)
