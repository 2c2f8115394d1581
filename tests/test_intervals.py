from datetime import datetime, timedelta, timezone

import pytest

from shortlink_app.errors import InvalidInputError
from shortlink_app.services.intervals import Interval


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestIntervalParsing:

    @pytest.mark.parametrize("value", ["15m", "30m", "1h", "6h", "12h", "1d", "7d", "30d"])
    def test_accepts_enumerated_values(self, value):
        assert Interval.parse(value).value == value

    @pytest.mark.parametrize("value", ["", "1m", "2h", "1w", "1D", "day", "1d; DROP TABLE clicks"])
    def test_rejects_everything_else(self, value):
        with pytest.raises(InvalidInputError):
            Interval.parse(value)


class TestBucketTruncation:

    def test_six_hour_boundary(self):
        before = Interval.SIX_HOURS.truncate(utc(2024, 1, 1, 5, 59, 59))
        after = Interval.SIX_HOURS.truncate(utc(2024, 1, 1, 6, 0, 0))

        assert before == utc(2024, 1, 1, 0, 0)
        assert after == utc(2024, 1, 1, 6, 0)

    @pytest.mark.parametrize("interval, moment, expected", [
        (Interval.FIFTEEN_MINUTES, utc(2024, 3, 5, 10, 44, 59, 999999), utc(2024, 3, 5, 10, 30)),
        (Interval.FIFTEEN_MINUTES, utc(2024, 3, 5, 10, 45), utc(2024, 3, 5, 10, 45)),
        (Interval.THIRTY_MINUTES, utc(2024, 3, 5, 10, 29, 59), utc(2024, 3, 5, 10, 0)),
        (Interval.THIRTY_MINUTES, utc(2024, 3, 5, 10, 31), utc(2024, 3, 5, 10, 30)),
        (Interval.ONE_HOUR, utc(2024, 3, 5, 23, 59, 59), utc(2024, 3, 5, 23, 0)),
        (Interval.TWELVE_HOURS, utc(2024, 3, 5, 11, 59), utc(2024, 3, 5, 0, 0)),
        (Interval.TWELVE_HOURS, utc(2024, 3, 5, 12, 0), utc(2024, 3, 5, 12, 0)),
        (Interval.ONE_DAY, utc(2024, 3, 5, 23, 59, 59), utc(2024, 3, 5)),
    ])
    def test_fixed_width_buckets(self, interval, moment, expected):
        assert interval.truncate(moment) == expected

    def test_week_starts_on_monday(self):
        # 2024-01-07 is a Sunday, 2024-01-08 a Monday
        assert Interval.SEVEN_DAYS.truncate(utc(2024, 1, 7, 23, 59)) == utc(2024, 1, 1)
        assert Interval.SEVEN_DAYS.truncate(utc(2024, 1, 8, 0, 0)) == utc(2024, 1, 8)

    def test_week_crosses_year_boundary(self):
        # 2025-01-01 is a Wednesday
        assert Interval.SEVEN_DAYS.truncate(utc(2025, 1, 1, 12)) == utc(2024, 12, 30)

    def test_month_is_calendar_month(self):
        assert Interval.THIRTY_DAYS.truncate(utc(2024, 2, 29, 18)) == utc(2024, 2, 1)
        assert Interval.THIRTY_DAYS.truncate(utc(2024, 3, 1, 0)) == utc(2024, 3, 1)

    def test_naive_timestamps_are_utc(self):
        assert Interval.ONE_HOUR.truncate(datetime(2024, 1, 1, 6, 30)) == utc(2024, 1, 1, 6)

    def test_other_offsets_are_converted(self):
        plus_two = timezone(timedelta(hours=2))
        moment = datetime(2024, 1, 1, 1, 30, tzinfo=plus_two)  # 2023-12-31 23:30 UTC

        assert Interval.ONE_DAY.truncate(moment) == utc(2023, 12, 31)
