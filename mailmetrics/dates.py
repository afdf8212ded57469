"""Date normalization for timestamps coming out of CSV exports.

Export tools mix ISO timestamps (with or without offsets), US slash dates
with 12/24-hour times, and trailing zone abbreviations. Every value is
normalized to a UTC-aware datetime; values with no zone information are read
as UTC wall-clock time.
"""

import re
from datetime import datetime, timezone
from typing import Any

from dateutil import parser as date_parser
from dateutil.tz import tzoffset

# Fixed offsets for the abbreviations US exports emit.
US_TZINFOS = {
    "UTC": timezone.utc,
    "GMT": timezone.utc,
    "EST": tzoffset("EST", -5 * 3600),
    "EDT": tzoffset("EDT", -4 * 3600),
    "CST": tzoffset("CST", -6 * 3600),
    "CDT": tzoffset("CDT", -5 * 3600),
    "PST": tzoffset("PST", -8 * 3600),
    "PDT": tzoffset("PDT", -7 * 3600),
}

# Two fill-in defaults. A text that parses differently under each is
# missing its year, month or day and is rejected.
_PARSE_DEFAULT = datetime(1970, 1, 1)
_PARSE_DEFAULT_ALT = datetime(1971, 2, 2)

# A native parse is trusted only when the text carries zone/format hints.
_FORMAT_HINT = re.compile(r"[a-z]{3}|T|Z|[+-]\d", re.IGNORECASE)
_ZONE_ABBREVIATION = re.compile(r"\b(UTC|GMT|EST|EDT|CST|CDT|PST|PDT)\b", re.IGNORECASE)
_US_SLASH_DATE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{2,4})"
    r"(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AaPp][Mm])?)?$"
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _native_parse(text: str) -> datetime | None:
    try:
        parsed = date_parser.parse(text, default=_PARSE_DEFAULT, tzinfos=US_TZINFOS)
        check = date_parser.parse(text, default=_PARSE_DEFAULT_ALT, tzinfos=US_TZINFOS)
    except (ValueError, OverflowError):
        return None
    if parsed.date() != check.date():
        return None
    return _as_utc(parsed)


def _expand_year(year_text: str) -> int:
    year = int(year_text)
    if len(year_text) == 2:
        return 1900 + year if year > 70 else 2000 + year
    return year


def _parse_us_slash(text: str) -> datetime | None:
    """Parse M/D/YYYY[ h:mm[:ss][ AM/PM]] as UTC wall-clock time."""
    match = _US_SLASH_DATE.match(text)
    if not match:
        return None
    month, day, year_text, hours, minutes, seconds, meridiem = match.groups()
    hour = int(hours or 0)
    if meridiem:
        if hour > 12:
            return None
        hour = hour % 12 + (12 if meridiem.upper() == "PM" else 0)
    try:
        return datetime(
            _expand_year(year_text),
            int(month),
            int(day),
            hour,
            int(minutes or 0),
            int(seconds or 0),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def normalize_date(raw: Any) -> datetime | None:
    """Normalize a raw date value to a UTC-aware datetime.

    Attempts, first success wins:
        1. Native parse, accepted only if the text carries zone/format hints
        2. Strip US zone abbreviations
        3. US slash format, parsed as UTC wall-clock
        4. Native parse with " UTC" appended
        5. Native parse of the original text

    Args:
        raw: String, datetime, or None

    Returns:
        UTC-aware datetime, or None if every attempt fails.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return _as_utc(raw)

    original = str(raw).strip()
    if not original:
        return None

    if _FORMAT_HINT.search(original):
        parsed = _native_parse(original)
        if parsed is not None:
            return parsed

    stripped = _ZONE_ABBREVIATION.sub("", original).strip()

    parsed = _parse_us_slash(stripped)
    if parsed is not None:
        return parsed

    if stripped:
        parsed = _native_parse(f"{stripped} UTC")
        if parsed is not None:
            return parsed

    return _native_parse(original)


def as_naive_utc(value: datetime) -> datetime:
    """Convert an aware instant to the naive-UTC form stored in frames."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
