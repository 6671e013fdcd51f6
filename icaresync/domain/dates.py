"""Parsing of partial-precision date ranges."""

import calendar
from datetime import date, timedelta
from typing import Iterator, NamedTuple

from icaresync.domain.errors import InvalidDateFormat

# 0 selects the unbounded past; 9999 as stop resolves to date.max
UNBOUNDED = 0


class DateRange(NamedTuple):
    """Closed date interval [start, stop]."""

    start: date
    stop: date

    def days(self) -> Iterator[date]:
        """Iterate all dates of the range; empty for a reversed range."""
        day = self.start
        while day <= self.stop:
            yield day
            if day == date.max:
                break
            day += timedelta(days=1)

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.stop

    def __str__(self) -> str:
        return f"{self.start} to {self.stop}"


def _parse_date(value: int, last: bool) -> date:
    """Convert `value` to a date, padding missing parts to the first or `last` valid day."""
    if value == UNBOUNDED:
        return date.min
    digits = str(value)
    try:
        if value < 0:
            raise ValueError("negative date")
        if len(digits) == 4:
            year = int(digits)
            return date(year, 12, 31) if last else date(year, 1, 1)
        if len(digits) == 6:
            year, month = int(digits[:4]), int(digits[4:])
            day = calendar.monthrange(year, month)[1] if last else 1
            return date(year, month, day)
        if len(digits) == 8:
            return date(int(digits[:4]), int(digits[4:6]), int(digits[6:]))
    except (ValueError, calendar.IllegalMonthError) as exc:
        raise InvalidDateFormat(f"invalid date {value}: {exc}") from exc
    raise InvalidDateFormat(f"invalid date {value}: use yyyy, yyyymm or yyyymmdd")


def parse_daterange(start: int, stop: int | None = None) -> DateRange:
    """Parse integer date values into a concrete date range.

    Args:
        start: First date as yyyy, yyyymm or yyyymmdd (missing parts become the earliest date)
        stop: Last date in the same formats (missing parts become the latest date);
            defaults to `start`

    Returns:
        DateRange with concrete start and stop dates

    Raises:
        InvalidDateFormat: If either value is not a valid calendar date

    Example:
        >>> parse_daterange(2002, 200206)
        DateRange(start=datetime.date(2002, 1, 1), stop=datetime.date(2002, 6, 30))
    """
    stop = start if stop is None else stop
    return DateRange(_parse_date(start, last=False), _parse_date(stop, last=True))
