"""Parsing of the screening timestamps used in BFI search results."""

import re
from datetime import datetime

from bfi_calendar.exceptions import DateFormatError
from bfi_calendar.exceptions import UnknownMonthError

MONTHS = {
    name: index
    for index, name in enumerate(
        [
            "January", "February", "March", "April", "May", "June",
            "July", "August", "September", "October", "November", "December",
        ],
        start=1,
    )
}

MONTH_NAMES = {index: name for name, index in MONTHS.items()}

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

TIME_RE = re.compile(r"^([0-9]{1,2}):([0-9]{2})$")
NUMBER_RE = re.compile(r"^[0-9]+$")


def parse_date(text: str) -> datetime:
    """
    Parse a timestamp such as ``"Saturday 5 October 2024 18:10"``.

    The weekday is ignored. The result is a naive datetime in the venue's
    local time, with seconds set to zero.

    Raises:
        UnknownMonthError: the month name is not in ``MONTHS``.
        DateFormatError: any other malformed part, or an impossible date.
    """
    parts = text.split()
    if len(parts) != 5:
        raise DateFormatError(text, f"expected 5 fields, got {len(parts)}")
    _weekday, day_str, month_name, year_str, clock = parts

    match = TIME_RE.match(clock)
    if not match:
        raise DateFormatError(text, f"bad time '{clock}'")

    month = MONTHS.get(month_name)
    if month is None:
        raise UnknownMonthError(month_name)

    if not (NUMBER_RE.match(day_str) and NUMBER_RE.match(year_str)):
        raise DateFormatError(text, "day and year must be integers")
    day = int(day_str)
    year = int(year_str)

    try:
        return datetime(year, month, day, int(match.group(1)), int(match.group(2)))
    except ValueError as e:
        raise DateFormatError(text, str(e)) from e


def format_date(value: datetime) -> str:
    """Render ``value`` in the same shape ``parse_date`` accepts."""
    return (
        f"{WEEKDAYS[value.weekday()]} {value.day} {MONTH_NAMES[value.month]} "
        f"{value.year} {value.hour}:{value.minute:02d}"
    )
