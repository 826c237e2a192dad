from datetime import date, datetime, timedelta, timezone

DATE_FORMAT = "%Y-%m-%d"


def parse_date(value):
    """
    Normalize a calendar date.

    Args:
        value: None, "" (unset), an ISO "YYYY-MM-DD" string, a date or a datetime

    Returns:
        date or None

    Raises:
        ValueError: If a string is not a valid ISO calendar date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    raise ValueError(f"Cannot interpret {value!r} as a calendar date")


def format_date(value):
    """Format a date as ISO "YYYY-MM-DD", or "" when unset."""
    if value is None:
        return ""
    return value.strftime(DATE_FORMAT)


def latest(*dates):
    """Return the latest of the given dates, ignoring unset ones."""
    present = [d for d in dates if d is not None]
    return max(present) if present else None


def earliest(*dates):
    """Return the earliest of the given dates, ignoring unset ones."""
    present = [d for d in dates if d is not None]
    return min(present) if present else None


def days_between(start, end):
    """Whole days from start to end (negative when end is earlier)."""
    return (end - start).days


def today(timezone_offset=0):
    """
    Current calendar date in a fixed-offset timezone.

    Args:
        timezone_offset: Minutes east of UTC

    Returns:
        date
    """
    tz = timezone(timedelta(minutes=timezone_offset))
    return datetime.now(tz).date()


def epoch_millis():
    """Current time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)
