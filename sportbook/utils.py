# Standard library imports
import calendar
from datetime import datetime, timezone

# Third-party imports
import bleach


def add_months(value, months):
    """
    Advance a date or datetime by whole calendar months.

    The day is clamped to the last day of the target month, so
    31 January + 1 month is 28/29 February.

    Args:
        value: date or datetime to advance
        months: Number of months to add (may be negative)

    Returns:
        Value of the same type as ``value``
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def parse_datetime(value):
    """
    Parse an ISO 8601 timestamp into a naive UTC datetime.

    Accepts a trailing 'Z' and explicit offsets; values without an offset
    are taken to be UTC already.

    Args:
        value: ISO string or datetime

    Returns:
        datetime, or None when the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except (ValueError, TypeError, AttributeError):
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def clean_text(text):
    """
    Strip all markup from user supplied text.

    Args:
        text: Raw text from a request

    Returns:
        Plain text with tags removed and surrounding whitespace trimmed
    """
    if text is None:
        return None
    return bleach.clean(str(text), tags=[], attributes={}, strip=True).strip()
