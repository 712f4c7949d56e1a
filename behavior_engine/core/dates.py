"""
Date/time helpers shared by the models and services.

All arithmetic is done on timezone-aware UTC datetimes. Naive inputs are
interpreted as UTC so that records coming from storage without an offset
compare correctly against an aware reference time.
"""

from datetime import datetime, timezone


SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


def ensure_utc(value: datetime) -> datetime:
    """
    Return ``value`` as an aware UTC datetime.

    Naive datetimes are assumed to already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_between(earlier: datetime, later: datetime) -> float:
    """Signed number of hours from ``earlier`` to ``later``."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / SECONDS_PER_HOUR


def days_between(earlier: datetime, later: datetime) -> float:
    """Signed (fractional) number of days from ``earlier`` to ``later``."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / SECONDS_PER_DAY
