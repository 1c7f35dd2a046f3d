"""Datetime helpers.

Datetimes are stored as naive UTC. Naive input from clients is read in the
configured booking timezone.
"""

from datetime import date, datetime, time, timezone

from backend.core import config


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=config.get_booking_timezone())
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Storage-time bounds of ``[00:00:00.000, 23:59:59.999]`` on ``day`` in the booking timezone."""
    tz = config.get_booking_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=tz)
    return to_storage(start), to_storage(end)
