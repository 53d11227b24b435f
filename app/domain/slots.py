"""Slot helpers: canonical time strings and naive slot arithmetic."""

import re
from datetime import date, datetime, timedelta

_TIME_PATTERN = re.compile(
    r"^\s*(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<meridiem>[AaPp][Mm])?\s*$"
)


def normalize_time(value: str) -> str:
    """
    Convert a 24h (``9:05``, ``09:05``) or 12h (``9:05 PM``) time to ``HH:MM``.

    Raises:
        ValueError: If the value is not a recognizable clock time
    """
    match = _TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time format: {value!r}")

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    meridiem = match.group("meridiem")

    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"Invalid 12-hour time: {value!r}")
        hour = hour % 12
        if meridiem.lower() == "pm":
            hour += 12
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid time: {value!r}")

    return f"{hour:02d}:{minute:02d}"


def slot_start(appointment_date: date, time: str) -> datetime:
    hours, minutes = (int(part) for part in normalize_time(time).split(":"))
    return datetime(appointment_date.year, appointment_date.month, appointment_date.day, hours, minutes)


def no_show_cutoff(now: datetime, grace_minutes: int) -> tuple[date, str]:
    """Latest (date, time) whose slot plus the grace window has fully elapsed."""
    cutoff = now - timedelta(minutes=grace_minutes)
    return cutoff.date(), f"{cutoff.hour:02d}:{cutoff.minute:02d}"


def minutes_late(scheduled: datetime, arrived: datetime) -> int | None:
    """Whole minutes between the slot start and arrival, ``None`` when on time."""
    if arrived <= scheduled:
        return None
    return int((arrived - scheduled).total_seconds() // 60)
