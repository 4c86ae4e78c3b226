"""
Timestamp Utilities.

HubSpot returns ISO-8601 strings on records and expects epoch milliseconds
in search filters. Everything inside the sync engine is an aware UTC datetime.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parses a HubSpot timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (with "Z" or an offset), epoch milliseconds
    (int or numeric string) and datetimes. Naive values are taken as UTC.

    Args:
        value: Raw timestamp

    Returns:
        Aware datetime, or None if the value is empty or unparseable

    Examples:
        >>> parse_timestamp("2023-06-01T00:00:00Z")
        datetime.datetime(2023, 6, 1, 0, 0, tzinfo=datetime.timezone.utc)
        >>> parse_timestamp(None) is None
        True
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = EPOCH + timedelta(milliseconds=value)
    elif isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return EPOCH + timedelta(milliseconds=int(text))
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Converts an aware datetime to epoch milliseconds."""
    return (value - EPOCH) // timedelta(milliseconds=1)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serializes a datetime for storage (None stays None)."""
    return value.isoformat() if value is not None else None
