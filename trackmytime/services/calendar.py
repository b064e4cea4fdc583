"""
Calendar indexing: expand each request's inclusive date range into
per-day buckets, plus the month grid the calendar renders.
"""
from calendar import monthrange
from collections import OrderedDict
from datetime import date, timedelta
from operator import attrgetter
from typing import Callable, Dict, Iterable, List, Optional, TypeVar, Union

from trackmytime.core.formatting import parse_iso_date

T = TypeVar("T")
DateLike = Union[date, str]

STATUS_ORDER = ("Pending", "Approved", "Denied")


def enumerate_date_range(start: DateLike, end: DateLike) -> List[str]:
    """ISO dates from start to end, both included. Empty when end < start or unparsable."""
    start_date = parse_iso_date(start)
    end_date = parse_iso_date(end)
    if start_date is None or end_date is None:
        return []
    days = []
    cursor = start_date
    while cursor <= end_date:
        days.append(cursor.isoformat())
        cursor += timedelta(days=1)
    return days


def build_day_index(
    requests: Iterable[T],
    start: Callable[[T], DateLike] = attrgetter("start_date"),
    end: Callable[[T], DateLike] = attrgetter("end_date"),
) -> Dict[str, List[T]]:
    """
    Map each ISO date to the requests covering it.

    A multi-day request lands in every day's bucket. Overlapping requests
    from the same employee are kept apart, each is its own request.
    """
    index: Dict[str, List[T]] = OrderedDict()
    for request in requests:
        for day in enumerate_date_range(start(request), end(request)):
            index.setdefault(day, []).append(request)
    return index


def filter_index_to_month(index: Dict[str, List[T]], year: int, month: Optional[int] = None) -> Dict[str, List[T]]:
    prefix = f"{year:04d}-" if month is None else f"{year:04d}-{month:02d}-"
    return OrderedDict((day, items) for day, items in index.items() if day.startswith(prefix))


def build_month_matrix(year: int, month: int) -> List[List[Optional[date]]]:
    """Weeks of seven cells, Sunday first, padded with None outside the month."""
    first_weekday, days_in_month = monthrange(year, month)
    # calendar.monthrange counts Monday as 0
    leading = (first_weekday + 1) % 7
    cells: List[Optional[date]] = [None] * leading
    cells.extend(date(year, month, day) for day in range(1, days_in_month + 1))
    while len(cells) % 7:
        cells.append(None)
    return [cells[i:i + 7] for i in range(0, len(cells), 7)]


def summarize_by_status(requests: Iterable[T], status: Callable[[T], str] = attrgetter("status")) -> Dict[str, int]:
    summary = {label: 0 for label in STATUS_ORDER}
    for request in requests:
        label = status(request)
        summary[label] = summary.get(label, 0) + 1
    return summary
