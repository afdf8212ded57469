"""Calendar helpers: UTC day bounds and inclusive date windows."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

ONE_DAY = timedelta(days=1)


def start_of_day(value: datetime | date) -> datetime:
    """Midnight UTC of the value's calendar day."""
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(value: datetime | date) -> datetime:
    """Last microsecond (UTC) of the value's calendar day."""
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def days_between(later: datetime, earlier: datetime) -> int:
    """Whole days from earlier to later, floored."""
    return (later - earlier) // ONE_DAY


def parse_iso_day(value: str | date) -> date:
    """Accept a date or a YYYY-MM-DD string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


@dataclass(frozen=True)
class DateWindow:
    """Inclusive [start, end] window with full-day bounds."""

    start: datetime
    end: datetime

    @classmethod
    def from_days(cls, first: datetime | date, last: datetime | date) -> "DateWindow":
        return cls(start=start_of_day(first), end=end_of_day(last))

    @property
    def day_count(self) -> int:
        return (self.end.date() - self.start.date()).days + 1

    def to_dict(self) -> dict[str, str]:
        return {
            "start": self.start.date().isoformat(),
            "end": self.end.date().isoformat(),
        }


def shift_year_back(day: date) -> date:
    """Same calendar day one year earlier; Feb 29 maps to Feb 28."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


def previous_window(current: DateWindow) -> DateWindow:
    """Equal-length window ending the day before current starts."""
    previous_end = end_of_day(current.start - ONE_DAY)
    days = current.day_count
    if days == 1:
        return DateWindow(start=start_of_day(previous_end), end=previous_end)
    return DateWindow(
        start=start_of_day(previous_end - timedelta(days=days - 1)),
        end=previous_end,
    )


def previous_year_window(current: DateWindow) -> DateWindow:
    """The current window shifted back one calendar year."""
    return DateWindow.from_days(
        shift_year_back(current.start.date()),
        shift_year_back(current.end.date()),
    )
