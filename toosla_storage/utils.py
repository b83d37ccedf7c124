"""Argument checks and timestamp helpers shared by the vault and the storage."""
from typing import Any, Optional
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from .exceptions import ValidationError


def check_object(name: str, value: Any) -> None:
    """Raise ValidationError if ``value`` is None."""
    if value is None:
        raise ValidationError(f"{name} can not be null or empty")


def check_value(name: str, value: Optional[str]) -> None:
    """Raise ValidationError if ``value`` is None, empty or only blanks."""
    check_object(name, value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} can not be null or empty")


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with milliseconds.

    >>> format_timestamp(datetime(2025, 6, 1, 10, 0, 0, 123000, tzinfo=timezone.utc))
    '2025-06-01T10:00:00.123Z'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a ``Last-Modified`` value.

    Both the HTTP date format (``Sun, 01 Jun 2025 10:00:00 GMT``) and
    ISO-8601 (``2025-06-01T10:00:00.123Z``) are accepted. Returns None for
    missing or unparsable values; naive results are taken as UTC.
    """
    if not value or not value.strip():
        return None
    value = value.strip()
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        iso = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(iso)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
