"""Time helpers: UTC timestamps for metadata, local calendar dates for validation."""

import re
from datetime import date, datetime
from typing import Optional, Union

import pytz
from dateutil import parser as date_parser

UTC = pytz.utc

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ISO_TEMPORAL_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}:\d{2}(\.\d{1,6})?Z?)?$"
)


def now_utc() -> datetime:
    """Return the current UTC time, truncated to whole seconds."""
    return datetime.now(UTC).replace(microsecond=0)


def today_local(tz_name: Optional[str] = None) -> date:
    """Return today's calendar date in the configured timezone."""
    if tz_name is None:
        from cashflow.config.settings import get_settings

        tz_name = get_settings().timezone
    return datetime.now(pytz.timezone(tz_name)).date()


def parse_iso_temporal(value: str) -> Union[date, datetime]:
    """
    Parse an ISO-8601 calendar date or date-time string.

    Date-only strings give a ``date`` (no timezone shift); date-times give an
    aware ``datetime``, assumed UTC when the string carries no offset.
    Raises ValueError for impossible dates.
    """
    if DATE_PATTERN.match(value):
        return date.fromisoformat(value)
    dt = date_parser.isoparse(value)
    if dt.tzinfo is None:
        dt = UTC.localize(dt)
    return dt


def coerce_date(value: Union[str, date, None]) -> Optional[date]:
    """Return a calendar date from a date, datetime or YYYY-MM-DD string, else None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and DATE_PATTERN.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None
