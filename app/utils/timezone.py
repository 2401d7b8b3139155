"""
Date and Time utilities

This module handles the guide's timestamp format and query date validation.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import date, datetime, tzinfo
import logging
import re

from app.exceptions import InvalidDateFormat, MalformedTimestamp

logger = logging.getLogger(__name__)

EPG_TIME_LENGTH = 14
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

_QUERY_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

# (start, end) slices of YYYYMMDDHHMMSS
_FIELDS = ((0, 4), (4, 6), (6, 8), (8, 10), (10, 12), (12, 14))


def parse_epg_time(time_str: str, tz: tzinfo | None = None) -> datetime:
    """
    Parse a guide timestamp into a local datetime

    The optional offset after the numeric part (e.g. '+0800') is ignored:
    the wall-clock value is always interpreted in `tz`.

    Args:
        time_str: Guide time like '20240101120000 +0800'
        tz: Local timezone to attach (naive datetime if None)

    Returns:
        Datetime with second precision in the local timezone

    Raises:
        MalformedTimestamp: If the numeric part is not 14 digits or not a real date
    """
    parts = time_str.split() if time_str else []
    if not parts:
        raise MalformedTimestamp(f"Empty timestamp: {time_str!r}")

    base = parts[0]
    if len(base) != EPG_TIME_LENGTH:
        raise MalformedTimestamp(f"Timestamp must have {EPG_TIME_LENGTH} digits: {time_str!r}")

    values = []
    for start, end in _FIELDS:
        chunk = base[start:end]
        if not chunk.isascii() or not chunk.isdigit():
            raise MalformedTimestamp(f"Non-numeric field {chunk!r} in timestamp {time_str!r}")
        values.append(int(chunk))

    # Out-of-range fields (month 13, Feb 30) are rejected, never rolled over
    try:
        return datetime(*values, tzinfo=tz)
    except ValueError as e:
        raise MalformedTimestamp(f"Invalid calendar value in timestamp {time_str!r}: {e}") from e


def format_date(value: datetime) -> str:
    """Format a datetime as the YYYY-MM-DD bucket key"""
    return value.strftime(DATE_FORMAT)


def format_clock(value: datetime) -> str:
    """Format a datetime as zero-padded HH:MM"""
    return value.strftime(TIME_FORMAT)


def parse_query_date(date_str: str) -> date:
    """
    Validate a YYYY-MM-DD query date

    strptime alone accepts '2024-1-1', so the shape is checked first.

    Raises:
        InvalidDateFormat: If the string is not a zero-padded calendar date
    """
    if not _QUERY_DATE_RE.fullmatch(date_str):
        raise InvalidDateFormat(date_str)
    try:
        return datetime.strptime(date_str, DATE_FORMAT).date()
    except ValueError as e:
        raise InvalidDateFormat(date_str) from e
