"""
Common date/time utility functions for consistent date/time handling across the application

Storage: All dates are stored in UTC in the backend
Display: Times of day are rendered as HH:MM in UTC

- Clients send ISO 8601 strings (naive values are treated as UTC)
- Backend stores dates in UTC
- Backend returns UTC ISO strings
"""

from datetime import date, datetime, time, timezone


def as_utc(dt: datetime) -> datetime:
    """
    Convert dt to tz-aware UTC.
    If dt is naive, we treat it as UTC (consistent with existing behavior).

    Args:
        dt: datetime object (naive or timezone-aware)

    Returns:
        datetime object in UTC timezone
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime in UTC timezone
    """
    return datetime.now(timezone.utc)


def parse_calendar_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD calendar date.
    Raises ValueError for anything else.
    """
    return date.fromisoformat(value.strip())


def parse_hhmm(value: str) -> time:
    """Parse an HH:MM time of day."""
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def at_time_utc(day: date, hhmm: str) -> datetime:
    """
    Combine a calendar date with an HH:MM time of day, in UTC.
    """
    return datetime.combine(day, parse_hhmm(hhmm), tzinfo=timezone.utc)


def format_hhmm(dt: datetime) -> str:
    """
    Format a datetime as HH:MM in UTC.
    """
    return as_utc(dt).strftime("%H:%M")
