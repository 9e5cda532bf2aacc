"""Numbering periods (calendar months, YYYYMM) and export window checks."""

from datetime import datetime, timedelta

from fareledger.domain.errors import ValidationError, invalid_date_range, window_spans_months
from fareledger.utils.date_parser import ensure_utc, parse_month


def yyyymm(instant: datetime) -> str:
    """Return the UTC calendar month of an instant as 'YYYYMM'."""
    instant = ensure_utc(instant)
    return f"{instant.year:04d}{instant.month:02d}"


def validate_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Check an export window [start, end) and return it in UTC.

    Raises:
        ValidationError: If either bound is missing or start is not before end
    """
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        raise ValidationError(invalid_date_range())
    start, end = ensure_utc(start), ensure_utc(end)
    if start >= end:
        raise ValidationError(f"{invalid_date_range()}: from must be earlier than to")
    return start, end


def single_month_period(start: datetime, end: datetime) -> str:
    """Return the period covered by [start, end).

    The end is exclusive, so a window ending exactly at the next month's
    first instant still belongs to one period.

    Raises:
        ValidationError: If the window is invalid or spans two periods
    """
    start, end = validate_window(start, end)
    period_from = yyyymm(start)
    period_to = yyyymm(end - timedelta(microseconds=1))
    if period_from != period_to:
        raise ValidationError(window_spans_months(period_from, period_to))
    return period_from


def month_window(period: str) -> tuple[datetime, datetime]:
    """Return the full [start, end) window of a 'YYYYMM' period."""
    try:
        return parse_month(period)
    except ValueError as e:
        raise ValidationError(str(e)) from e
