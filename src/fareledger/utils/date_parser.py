"""Date and instant parsing utilities.

All instants handled by fareledger are timezone-aware UTC datetimes. Naive
input is interpreted as UTC.
"""

from datetime import datetime, UTC
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_naive_utc(value: datetime) -> datetime:
    """Return value as a naive UTC datetime for storage."""
    return ensure_utc(value).replace(tzinfo=None)


def parse_instant(instant_str: str) -> datetime:
    """Parse an ISO 8601 instant (or a plain date) into an aware UTC datetime.

    Examples:
    - "2025-01-15T08:30:00Z"
    - "2025-01-15T10:30:00+02:00"
    - "2025-01-15" (midnight UTC)

    Raises:
        ValueError: If the string cannot be parsed
    """
    if not instant_str or not instant_str.strip():
        raise ValueError("Empty date string")
    try:
        parsed = date_parser.isoparse(instant_str.strip())
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{instant_str}': {e}")
    return ensure_utc(parsed)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Format an instant as ISO 8601 UTC with millisecond precision and a Z suffix.

    Matches the archive format, e.g. "2025-01-15T08:30:00.000Z".
    """
    if value is None:
        return None
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def month_start(year: int, month: int) -> datetime:
    """Return the first instant of a calendar month in UTC."""
    return datetime(year, month, 1, tzinfo=UTC)


def parse_month(month_str: str) -> tuple[datetime, datetime]:
    """Parse "YYYY-MM" or "YYYYMM" into a [start, end) UTC window.

    Raises:
        ValueError: If the string is not a valid month
    """
    text = month_str.strip().replace("-", "")
    if len(text) != 6 or not text.isdigit():
        raise ValueError(f"Could not parse month '{month_str}': expected YYYY-MM")
    year, month = int(text[:4]), int(text[4:])
    if not 1 <= month <= 12:
        raise ValueError(f"Could not parse month '{month_str}': month must be 01-12")
    start = month_start(year, month)
    return start, start + relativedelta(months=1)


def get_month_window(period: str, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Get the [start, end) window for a named month.

    Args:
        period: "this-month" or "last-month"
        now: Reference instant (defaults to the current time)

    Returns:
        Tuple of (start, end) aware UTC datetimes

    Raises:
        ValueError: If period is not recognized
    """
    now = ensure_utc(now or datetime.now(UTC))
    this_month = month_start(now.year, now.month)

    if period == "this-month":
        return this_month, this_month + relativedelta(months=1)
    elif period == "last-month":
        return this_month - relativedelta(months=1), this_month
    else:
        raise ValueError(f"Unknown period: {period}")
