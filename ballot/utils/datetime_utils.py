"""
Centralized datetime utilities for the ballot server.

Ensures consistent timezone handling across the application.
All timestamps are stored and transmitted as UTC, and a vote "day" is always
the UTC calendar date of the vote.
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Use this instead of datetime.utcnow() to ensure timezone awareness.

    Returns:
        datetime: Current time in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure datetime is UTC timezone-aware.

    Converts naive datetime (assumed to be UTC) to timezone-aware UTC.
    If datetime is already timezone-aware, converts to UTC.

    Args:
        dt: Datetime object (naive or aware) or None

    Returns:
        datetime | None: UTC timezone-aware datetime or None

    Example:
        >>> naive_dt = datetime(2025, 12, 16, 11, 30)  # Naive
        >>> aware_dt = ensure_utc(naive_dt)
        >>> aware_dt.tzinfo  # timezone.utc
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def utc_today(now: datetime | None = None) -> date:
    """
    Canonical vote day: the UTC calendar date of ``now``.

    The vote_records uniqueness constraint, every "voted today" query and the
    cache marker key all derive their day from this function.

    Args:
        now: Reference instant (defaults to the current time)

    Returns:
        date: UTC calendar date

    Example:
        >>> utc_today(datetime(2025, 12, 16, 23, 30, tzinfo=timezone(timedelta(hours=-5))))
        datetime.date(2025, 12, 17)
    """
    return ensure_utc(now or utc_now()).date()

