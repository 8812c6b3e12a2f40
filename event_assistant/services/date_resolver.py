"""Date and time resolution service.

Handles:
- Relative dates (today, tomorrow, day after tomorrow, next week, next month)
- Weekday references ("next Saturday"), always strictly in the future
- Numeric dates (MM/DD/YYYY, MM-DD-YY) and month names ("Oct 24th")
- 12-hour and 24-hour clock times, end times and durations

All resolved times are 24-hour "HH:MM" strings; dates are ISO-8601 strings.
Nothing in this module raises on unrecognised input.
"""

import re
from datetime import date, datetime, timedelta
from typing import Final

import pytz
from dateutil import parser as dateutil_parser

from event_assistant.domain.extraction_constants import (
    DEFAULT_DURATION_HOURS,
    DEFAULT_START_TIME,
    LATEST_END_TIME,
)

RELATIVE_KEYWORDS: Final[tuple[tuple[str, int], ...]] = (
    ("day after tomorrow", 2),
    ("next month", 30),
    ("next week", 7),
    ("tomorrow", 1),
    ("today", 0),
)
"""Relative date phrases and day offsets, longest phrase first."""

WEEKDAYS: Final[dict[str, int]] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

MONTHS: Final[dict[str, int]] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}
"""Three-letter month prefixes; full names are matched by prefix."""

NEXT_WEEKDAY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\bnext\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    flags=re.IGNORECASE,
)

NUMERIC_DATE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(\d{1,2})([/-])(\d{1,2})\2(\d{4}|\d{2})\b"
)
"""MM/DD/YYYY or MM-DD-YYYY; two-digit years are read as 20YY."""

MONTH_DAY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
    r"\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b",
    flags=re.IGNORECASE,
)

_CLOCK = r"(\d{1,2})(?::(\d{2}))?"
_MERIDIEM = r"\s*([ap])\.?m\.?(?![a-z])"

TIME_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"\bat\s+" + _CLOCK + _MERIDIEM, flags=re.IGNORECASE),
    re.compile(r"\bfrom\s+" + _CLOCK + _MERIDIEM, flags=re.IGNORECASE),
    re.compile(r"\b" + _CLOCK + _MERIDIEM, flags=re.IGNORECASE),
    re.compile(r"\bat\s+" + _CLOCK + r"\b(?![/.\-]\d)(?!\s*(?:[ap]\.?m))", flags=re.IGNORECASE),
)
"""Start time rules in priority order; the last one reads a 24-hour clock."""

END_TIME_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:to|until|till)\s+" + _CLOCK + _MERIDIEM, flags=re.IGNORECASE
)

DURATION_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\bfor\s+(\d{1,2})\s+hours?\b", flags=re.IGNORECASE
)

CLOCK_24H_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
CLOCK_12H_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^\s*" + _CLOCK + _MERIDIEM + r"\s*$", flags=re.IGNORECASE
)

MINUTES_PER_DAY: Final[int] = 24 * 60


def today_in_timezone(tz_name: str) -> date:
    """Return the current calendar date in the given timezone.

    Unknown timezone names fall back to UTC.
    """
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC
    return datetime.now(tz).date()


def _next_weekday(reference_date: date, weekday: int) -> date:
    days_ahead = (weekday + 7 - reference_date.weekday()) % 7 or 7
    return reference_date + timedelta(days=days_ahead)


def _numeric_date(text: str) -> date | None:
    for match in NUMERIC_DATE_PATTERN.finditer(text):
        month, day, year_text = int(match.group(1)), int(match.group(3)), match.group(4)
        year = int(year_text) + 2000 if len(year_text) == 2 else int(year_text)
        try:
            return date(year, month, day)
        except ValueError:
            continue
    return None


def _month_day_date(text: str, reference_date: date) -> date | None:
    for match in MONTH_DAY_PATTERN.finditer(text):
        month = MONTHS[match.group(1)[:3].lower()]
        day = int(match.group(2))
        try:
            candidate = date(reference_date.year, month, day)
        except ValueError:
            continue
        if candidate < reference_date:
            try:
                candidate = date(reference_date.year + 1, month, day)
            except ValueError:
                # Feb 29 without a leap year ahead
                continue
        return candidate
    return None


def find_date(text: str, reference_date: date) -> date | None:
    """Find an explicit date expression in text.

    Priority: relative keywords > "next <weekday>" > numeric date >
    "<Month> <Day>".

    Args:
        text: Free-form text
        reference_date: Date that "today" refers to

    Returns:
        Resolved date, or None if the text states no date

    Example:
        >>> find_date("party next Saturday", date(2026, 10, 18))
        datetime.date(2026, 10, 24)
    """
    lowered = text.lower()
    for phrase, offset in RELATIVE_KEYWORDS:
        if re.search(rf"\b{phrase}\b", lowered):
            return reference_date + timedelta(days=offset)

    weekday_match = NEXT_WEEKDAY_PATTERN.search(text)
    if weekday_match:
        return _next_weekday(reference_date, WEEKDAYS[weekday_match.group(1).lower()])

    numeric = _numeric_date(text)
    if numeric is not None:
        return numeric

    return _month_day_date(text, reference_date)


def resolve_date(text: str, reference_date: date) -> str:
    """Resolve the event date, defaulting to the reference date.

    Returns:
        ISO-8601 date string
    """
    resolved = find_date(text, reference_date)
    return (resolved or reference_date).isoformat()


def _to_clock(hour: int, minute: int, meridiem: str | None) -> str | None:
    if minute > 59:
        return None
    if meridiem is None:
        if hour > 23:
            return None
    else:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if meridiem.lower() == "p" else 0)
    return f"{hour:02d}:{minute:02d}"


def _clock_from_match(match: re.Match[str]) -> str | None:
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = match.group(3) if (match.lastindex or 0) >= 3 else None
    return _to_clock(hour, minute, meridiem)


def find_time(text: str) -> str | None:
    """Find an explicit start time in text, or None."""
    for pattern in TIME_PATTERNS:
        for match in pattern.finditer(text):
            clock = _clock_from_match(match)
            if clock is not None:
                return clock
    return None


def resolve_time(text: str, default: str = DEFAULT_START_TIME) -> str:
    """Resolve the start time as 24-hour "HH:MM".

    Example:
        >>> resolve_time("dinner at 7:30pm")
        '19:30'
    """
    return find_time(text) or default


def to_minutes(clock: str) -> int:
    hours, minutes = clock.split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    """Convert minutes since midnight to "HH:MM", clamped to the same day."""
    if total >= MINUTES_PER_DAY:
        return LATEST_END_TIME
    total = max(total, 0)
    return f"{total // 60:02d}:{total % 60:02d}"


def add_minutes(clock: str, minutes: int) -> str:
    """Shift a clock value; results past midnight clamp to 23:59."""
    return from_minutes(to_minutes(clock) + minutes)


def find_duration_hours(text: str) -> int | None:
    match = DURATION_PATTERN.search(text)
    return int(match.group(1)) if match else None


def find_end_time(text: str) -> str | None:
    """Find an explicit "to/until/till <time>" end time, or None."""
    for match in END_TIME_PATTERN.finditer(text):
        clock = _clock_from_match(match)
        if clock is not None:
            return clock
    return None


def resolve_end_time(
    text: str, start: str, default_duration_hours: int = DEFAULT_DURATION_HOURS
) -> str:
    """Resolve the end time for a start time.

    Priority: "for N hours" > "to/until/till <time>" > start + default
    duration. An explicit end earlier than the start is ignored; ends that
    would cross midnight are clamped to 23:59.

    Args:
        text: Free-form text
        start: Resolved start time ("HH:MM")
        default_duration_hours: Duration used when none is stated

    Returns:
        End time as 24-hour "HH:MM"
    """
    duration = find_duration_hours(text)
    if duration is not None:
        return add_minutes(start, duration * 60)

    explicit_end = find_end_time(text)
    if explicit_end is not None and explicit_end >= start:
        return explicit_end

    return add_minutes(start, default_duration_hours * 60)


def parse_clock(value: str) -> str | None:
    """Leniently normalize a clock value ("7pm", "19:00", "7:30 PM") to "HH:MM".

    Used for model output, which does not always follow the 24-hour format.

    Returns:
        "HH:MM" or None if the value is not a recognisable time
    """
    if not value or not value.strip():
        return None

    match = CLOCK_24H_PATTERN.match(value)
    if match:
        return _to_clock(int(match.group(1)), int(match.group(2)), None)

    match = CLOCK_12H_PATTERN.match(value)
    if match:
        return _clock_from_match(match)

    try:
        parsed = dateutil_parser.parse(value, default=datetime(2000, 1, 1))
    except (ValueError, OverflowError):
        return None
    return f"{parsed.hour:02d}:{parsed.minute:02d}"


def format_12h(clock: str) -> str:
    """Render "19:00" as "7:00 PM".

    Example:
        >>> format_12h("00:30")
        '12:30 AM'
    """
    hour, minute = divmod(to_minutes(clock), 60)
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def format_long_date(iso_date: str) -> str:
    """Render "2026-10-24" as "Saturday, October 24, 2026"."""
    value = date.fromisoformat(iso_date)
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"


def parse_12h(display: str) -> int | None:
    """Minutes since midnight for a display time ("7:00 PM"), or None."""
    clock = parse_clock(display)
    return to_minutes(clock) if clock else None
