"""Unit tests for date range parsing."""

from datetime import date

import pytest

from icaresync.domain.dates import DateRange, parse_daterange
from icaresync.domain.errors import InvalidDateFormat


class TestParseDaterange:
    """Test padding of partial dates."""

    def test_year_pads_to_whole_year(self):
        assert parse_daterange(2002) == DateRange(date(2002, 1, 1), date(2002, 12, 31))

    def test_month_stop_pads_to_last_day(self):
        """Stop months end on their last day, including leap Februaries."""
        assert parse_daterange(2002, 200206) == DateRange(date(2002, 1, 1), date(2002, 6, 30))
        assert parse_daterange(202002, 202002).stop == date(2020, 2, 29)
        assert parse_daterange(202102, 202102).stop == date(2021, 2, 28)

    def test_full_dates(self):
        assert parse_daterange(20200612, 20200701) == DateRange(
            date(2020, 6, 12), date(2020, 7, 1)
        )

    def test_stop_defaults_to_start(self):
        assert parse_daterange(200601) == DateRange(date(2006, 1, 1), date(2006, 1, 31))

    def test_unbounded_range(self):
        """0 and 9999 select the whole history."""
        assert parse_daterange(0, 9999) == DateRange(date.min, date.max)

    @pytest.mark.parametrize("value", [20201301, 20200230, 202013, 123, 12345, -2020])
    def test_invalid_dates(self, value):
        with pytest.raises(InvalidDateFormat):
            parse_daterange(value)

    def test_invalid_date_is_value_error(self):
        with pytest.raises(ValueError):
            parse_daterange(2020, 20200631)

    def test_reversed_range_is_returned_as_is(self):
        """A reversed range is not an error but iterates no dates."""
        daterange = parse_daterange(2021, 2020)

        assert daterange.start > daterange.stop
        assert list(daterange.days()) == []


class TestDateRange:
    """Test range iteration and membership."""

    def test_days(self):
        days = list(DateRange(date(2020, 2, 27), date(2020, 3, 1)).days())

        assert days == [date(2020, 2, 27), date(2020, 2, 28), date(2020, 2, 29), date(2020, 3, 1)]

    def test_days_at_upper_bound(self):
        assert list(DateRange(date(9999, 12, 30), date.max).days()) == [
            date(9999, 12, 30),
            date.max,
        ]

    def test_contains(self):
        daterange = DateRange(date(2020, 1, 1), date(2020, 1, 31))

        assert date(2020, 1, 15) in daterange
        assert date(2020, 2, 1) not in daterange
        assert "2020-01-15" not in daterange
