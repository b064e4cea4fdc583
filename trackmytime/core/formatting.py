"""Date labels used by the dashboard views (en-US)."""
from datetime import date
from typing import Optional, Union

DateLike = Union[date, str, None]

DATES_PENDING = "Dates pending"


def parse_iso_date(value: DateLike) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def format_short_date(value: date) -> str:
    # "Nov 11"
    return f"{value.strftime('%b')} {value.day}"


def format_short_date_with_year(value: date) -> str:
    return f"{format_short_date(value)}, {value.year}"


def format_date_range(start: DateLike, end: DateLike = None) -> str:
    """
    List-view label: "Nov 11 – Nov 12".

    A missing, unparsable or inverted end date collapses to the start day.
    """
    start_date = parse_iso_date(start)
    if start_date is None:
        return DATES_PENDING
    end_date = parse_iso_date(end)
    if end_date is None or end_date < start_date:
        return format_short_date(start_date)
    return f"{format_short_date(start_date)} – {format_short_date(end_date)}"


def format_iso_date_range_label(start: DateLike, end: DateLike) -> str:
    """Calendar label carrying the year: "Nov 5 – Nov 7, 2025"."""
    start_date = parse_iso_date(start)
    if start_date is None:
        return DATES_PENDING
    end_date = parse_iso_date(end)
    if end_date is None or end_date == start_date:
        return format_short_date_with_year(start_date)
    if start_date.year == end_date.year:
        start_label = format_short_date(start_date)
    else:
        start_label = format_short_date_with_year(start_date)
    return f"{start_label} – {format_short_date_with_year(end_date)}"


def format_full_day(value: DateLike) -> str:
    parsed = parse_iso_date(value)
    if parsed is None:
        return "Unknown date"
    return f"{parsed.strftime('%A, %B')} {parsed.day}, {parsed.year}"
