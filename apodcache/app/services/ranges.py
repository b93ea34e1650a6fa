"""Date ranges and cache gap computation.

A cached range is described by the records already stored for it. The gap
calculator walks those records in date order and reports every contiguous
run of dates that has no record, so only those runs are fetched upstream.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from apodcache.app.exceptions import ParseError

DATE_FORMAT = "%Y-%m-%d"
ONE_DAY = timedelta(days=1)


def parse_date(value: str, field: Optional[str] = None) -> date:
    """Parse a strict YYYY-MM-DD date.

    Zero padding is required: ``strptime`` alone accepts "2020-1-1", which
    would not sort or compare correctly as a stored date string.

    Raises:
        ParseError: If the value is not a valid, zero-padded calendar date
    """
    try:
        parsed = datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ParseError(value, field) from None
    if format_date(parsed) != value:
        raise ParseError(value, field)
    return parsed


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


@dataclass(frozen=True, order=True)
class Record:
    """One picture of the day.

    Ordering compares date first, then url, which gives a total order
    for sorting merged cached and fetched records.
    """

    date: str
    url: str


@dataclass(frozen=True)
class DateRange:
    """Closed interval of calendar dates, inclusive on both ends."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"range start {self.start} is after range end {self.end}"
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def as_query(self) -> dict:
        """Start and end as YYYY-MM-DD strings, keyed as upstream expects."""
        return {
            "start_date": format_date(self.start),
            "end_date": format_date(self.end),
        }

    def __str__(self) -> str:
        return f"{format_date(self.start)}..{format_date(self.end)}"


def compute_missing_ranges(
    records: Sequence[Record],
    start: date,
    end: date,
) -> List[DateRange]:
    """Return the date ranges in [start, end] not covered by ``records``.

    ``records`` must be sorted ascending by date and restricted to
    [start, end]; the function neither filters nor sorts them. The
    precondition is asserted, so it is only checked when assertions
    are enabled.

    Args:
        records: Cached records, ascending, within the window
        start: First requested date
        end: Last requested date

    Returns:
        Disjoint, ascending gaps, each with start <= end

    Raises:
        ParseError: If a cached record carries an invalid date
    """
    if not records:
        return [DateRange(start, end)]

    gaps: List[DateRange] = []
    next_expected = start
    previous: Optional[date] = None

    for record in records:
        record_date = parse_date(record.date, "cached record")
        assert start <= record_date <= end, f"{record.date} outside {start}..{end}"
        assert previous is None or previous <= record_date, "records not sorted"
        previous = record_date

        if record_date > next_expected:
            gaps.append(DateRange(next_expected, record_date - ONE_DAY))
        next_expected = record_date + ONE_DAY

    # Trailing gap after the last cached date
    if previous < end:
        gaps.append(DateRange(previous + ONE_DAY, end))

    return gaps
