"""
Calendar-day helpers for request payloads.
"""

from datetime import date, datetime
from typing import Callable, Union
from zoneinfo import ZoneInfo

from dateutil.parser import ParserError, parse as parse_datetime

from farmhub.errors import ValidationError

Clock = Callable[[], date]


def parse_day(value: Union[str, date, datetime, None], field_name: str) -> date:
    """
    Parse a calendar day from an ISO string, date or datetime.

    Raises:
        ValidationError: If the value is missing or unparseable
    """
    if value is None or value == "":
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_datetime(str(value)).date()
    except (ParserError, ValueError, OverflowError):
        raise ValidationError(f"Invalid {field_name}: {value!r}")


def today_in(timezone_name: str) -> Clock:
    """Clock returning today's date in the given IANA zone."""
    zone = ZoneInfo(timezone_name)

    def today() -> date:
        return datetime.now(zone).date()

    return today
