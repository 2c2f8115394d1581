"""
Time buckets for the clicks-over-time series.

Every interval is a closed enum member bound to a truncation function.
Unknown values are rejected before any query runs.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict

from shortlink_app.errors import InvalidInputError


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes (SQLite drops the offset) are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _floor_minutes(step: int) -> Callable[[datetime], datetime]:
    def truncate(moment: datetime) -> datetime:
        return moment.replace(minute=moment.minute - moment.minute % step, second=0, microsecond=0)
    return truncate


def _floor_hours(step: int) -> Callable[[datetime], datetime]:
    def truncate(moment: datetime) -> datetime:
        return moment.replace(hour=moment.hour - moment.hour % step, minute=0, second=0, microsecond=0)
    return truncate


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _start_of_week(moment: datetime) -> datetime:
    # ISO week, Monday 00:00
    return _start_of_day(moment) - timedelta(days=moment.weekday())


def _start_of_month(moment: datetime) -> datetime:
    return _start_of_day(moment).replace(day=1)


class Interval(str, Enum):
    """Granularities the stats endpoint accepts"""
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    ONE_HOUR = "1h"
    SIX_HOURS = "6h"
    TWELVE_HOURS = "12h"
    ONE_DAY = "1d"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"

    @classmethod
    def parse(cls, value: str) -> "Interval":
        """
        Raises:
            InvalidInputError: if ``value`` is not one of the enumerated intervals
        """
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise InvalidInputError(f"Invalid interval '{value}'. Allowed: {allowed}")

    def truncate(self, moment: datetime) -> datetime:
        """Start of the bucket containing ``moment``, in UTC."""
        return _TRUNCATORS[self](as_utc(moment))


_TRUNCATORS: Dict[Interval, Callable[[datetime], datetime]] = {
    Interval.FIFTEEN_MINUTES: _floor_minutes(15),
    Interval.THIRTY_MINUTES: _floor_minutes(30),
    Interval.ONE_HOUR: _floor_hours(1),
    Interval.SIX_HOURS: _floor_hours(6),
    Interval.TWELVE_HOURS: _floor_hours(12),
    Interval.ONE_DAY: _start_of_day,
    Interval.SEVEN_DAYS: _start_of_week,  # calendar week, not a rolling 7 days
    Interval.THIRTY_DAYS: _start_of_month,  # calendar month
}
