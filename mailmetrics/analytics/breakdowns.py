"""Day-of-week and hour-of-day performance breakdowns."""

from collections.abc import Iterable
from functools import cmp_to_key

import polars as pl

from ..models.records import SendRecord
from ..session import as_frame
from .expressions import (
    dated_expr,
    hour_expr,
    totals_expr,
    weekday_expr,
    zero_fill_expr,
)
from .metrics import MetricKey, metric_value
from .models import AggregateTotals, DayOfWeekStats, HourOfDayStats

DAY_NAMES: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

# Hour values closer than this are treated as tied
VALUE_TIE_TOLERANCE = 0.01


def hour_label(hour: int) -> str:
    """12-hour clock label: 0 -> "12 AM", 13 -> "1 PM"."""
    if hour == 0:
        return "12 AM"
    if hour < 12:
        return f"{hour} AM"
    if hour == 12:
        return "12 PM"
    return f"{hour - 12} PM"


def by_day_of_week(
    records: pl.DataFrame | Iterable[SendRecord], metric: MetricKey | str
) -> list[DayOfWeekStats]:
    """Seven entries, Sunday first; days without sends report 0."""
    frame = as_frame(records).filter(dated_expr())
    days = pl.DataFrame({"day_index": list(range(7))}, schema={"day_index": pl.Int64})
    per_day = frame.with_columns(weekday_expr()).group_by("day_index").agg(totals_expr())
    rows = (
        days.join(per_day, on="day_index", how="left")
        .with_columns(zero_fill_expr())
        .sort("day_index")
        .to_dicts()
    )

    stats = []
    for row in rows:
        totals = AggregateTotals.from_row(row)
        stats.append(
            DayOfWeekStats(
                day=DAY_NAMES[row["day_index"]],
                day_index=row["day_index"],
                value=metric_value(metric, totals) if totals.email_count else 0.0,
                campaign_count=totals.email_count,
            )
        )
    return stats


def _compare_hours(a: HourOfDayStats, b: HourOfDayStats) -> int:
    """Value descending; near-equal values fall back to hour ascending."""
    if abs(a.value - b.value) >= VALUE_TIE_TOLERANCE:
        return -1 if a.value > b.value else 1
    return a.hour - b.hour


def by_hour_of_day(
    records: pl.DataFrame | Iterable[SendRecord], metric: MetricKey | str
) -> list[HourOfDayStats]:
    """Hours that have at least one send, best value first."""
    frame = as_frame(records).filter(dated_expr())
    per_hour = frame.with_columns(hour_expr()).group_by("hour").agg(totals_expr())
    total_count = int(per_hour["email_count"].sum()) if per_hour.height else 0

    stats = []
    for row in per_hour.to_dicts():
        totals = AggregateTotals.from_row(row)
        stats.append(
            HourOfDayStats(
                hour=row["hour"],
                hour_label=hour_label(row["hour"]),
                value=metric_value(metric, totals),
                campaign_count=totals.email_count,
                percentage_of_total=(
                    totals.email_count / total_count * 100 if total_count else 0.0
                ),
            )
        )
    return sorted(stats, key=cmp_to_key(_compare_hours))
