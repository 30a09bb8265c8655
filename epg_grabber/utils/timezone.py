"""
Date and Time utilities

This module handles all day arithmetic in the provider zone and the timestamp
formats used by the provider API, the cache file and XMLTV output.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
import logging


logger = logging.getLogger(__name__)

XMLTV_TIME_FORMAT = "%Y%m%d%H%M%S %z"
PROVIDER_TIME_FORMAT = "%Y-%m-%d %H:%M"


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def today_in(zone: tzinfo, now: datetime | None = None) -> date:
    """Return the current calendar day in the given zone."""
    current = now or now_utc()
    return current.astimezone(zone).date()


def day_start(day: date, zone: tzinfo) -> datetime:
    """Return the aware datetime of midnight starting ``day`` in ``zone``."""
    return datetime.combine(day, time.min, tzinfo=zone)


def add_days(day: date, count: int) -> date:
    return day + timedelta(days=count)


def day_to_epoch(day: date, zone: tzinfo) -> int:
    """Convert a day to epoch seconds of its midnight in ``zone``."""
    return int(day_start(day, zone).timestamp())


def epoch_to_day(seconds: int | float, zone: tzinfo) -> date:
    """Convert epoch seconds to the calendar day they fall on in ``zone``."""
    return datetime.fromtimestamp(seconds, tz=zone).date()


def parse_provider_time(value: str, zone: tzinfo) -> datetime:
    """
    Parse a provider timestamp like '2025-10-09 05:50' in the provider zone

    Args:
        value: Provider local time string
        zone: Provider timezone

    Returns:
        Timezone-aware datetime in the provider zone

    Raises:
        DateFormatError: If the string format is invalid
    """
    try:
        naive = datetime.strptime(value.strip(), PROVIDER_TIME_FORMAT)
    except (ValueError, AttributeError) as e:
        raise DateFormatError(f"Invalid provider datetime format: '{value}'") from e
    return naive.replace(tzinfo=zone)


def format_provider_day(day: date) -> str:
    """Format the query start time for a whole provider day."""
    return datetime.combine(day, time.min).strftime(PROVIDER_TIME_FORMAT)


def format_xmltv_time(value: datetime) -> str:
    """Format an aware datetime as XMLTV time, e.g. '20251009055000 +0200'."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.strftime(XMLTV_TIME_FORMAT)


def parse_xmltv_time(value: str) -> datetime:
    """
    Parse XMLTV time format like '20080715003000 -0600'

    Returns:
        Timezone-aware datetime with the offset from the string

    Raises:
        DateFormatError: If the string format is invalid
    """
    try:
        return datetime.strptime(value.strip(), XMLTV_TIME_FORMAT)
    except (ValueError, AttributeError) as e:
        raise DateFormatError(f"Invalid XMLTV datetime format: '{value}'") from e
