"""
Date and time helpers
"""

from datetime import date, datetime
from typing import Optional, Union


def format_es_date(value: Union[date, datetime]) -> str:
    """
    Format a date or datetime the way Elasticsearch's default date format accepts it

    Args:
        value: date or datetime

    Returns:
        ISO 8601 string
    """
    return value.isoformat()


def parse_iso_datetime(dt_str: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 datetime string

    Args:
        dt_str: ISO formatted string, a trailing "Z" is accepted

    Returns:
        datetime, or None if the string cannot be parsed
    """
    try:
        return datetime.fromisoformat(dt_str.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


def parse_iso_date(d_str: str) -> Optional[date]:
    """
    Parse an ISO 8601 date string

    A full datetime string is accepted and truncated to its date.
    """
    try:
        return date.fromisoformat(d_str)
    except (ValueError, TypeError):
        parsed = parse_iso_datetime(d_str)
        return parsed.date() if parsed else None
