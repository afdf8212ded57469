"""Date-range resolution and time-bucketed series."""

import logging
import re
from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

import polars as pl

from ..models.records import SendRecord
from ..session import as_frame, frame_bounds
from ..settings import GranularityThresholds
from .calendar import (
    ONE_DAY,
    DateWindow,
    end_of_day,
    parse_iso_day,
    previous_window,
    previous_year_window,
    start_of_day,
)
from .expressions import dated_expr, totals_expr, window_expr, zero_fill_expr
from .metrics import MetricKey, metric_value
from .models import (
    AggregateTotals,
    CompareMode,
    Granularity,
    SeriesWithCompare,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_LOOKBACK_DAYS = 730

_PRESET_PATTERN = re.compile(r"^(\d+)d$")


# =============================================================================
# DATE RANGES
# =============================================================================


@dataclass(frozen=True)
class DateRangeSpec:
    """A named preset ("30d"), the whole dataset ("all"), or a custom pair."""

    kind: str  # "preset" | "all" | "custom"
    days: int | None = None
    start: date | None = None
    end: date | None = None

    @classmethod
    def preset(cls, days: int) -> "DateRangeSpec":
        if days < 1:
            raise ValueError(f"Preset range must cover at least one day, got {days}")
        return cls(kind="preset", days=days)

    @classmethod
    def all_time(cls) -> "DateRangeSpec":
        return cls(kind="all")

    @classmethod
    def custom(cls, start: str | date, end: str | date) -> "DateRangeSpec":
        first, last = parse_iso_day(start), parse_iso_day(end)
        if first > last:
            raise ValueError(f"Custom range start {first} is after end {last}")
        return cls(kind="custom", start=first, end=last)

    @classmethod
    def parse(cls, value: "DateRangeSpec | str | dict[str, Any]") -> "DateRangeSpec":
        """Accept "30d", "all", {"from": ..., "to": ...} or a spec."""
        if isinstance(value, DateRangeSpec):
            return value
        if isinstance(value, dict):
            return cls.custom(value["from"], value["to"])
        text = value.strip().lower()
        if text == "all":
            return cls.all_time()
        match = _PRESET_PATTERN.match(text)
        if not match:
            raise ValueError(f"Unrecognized date range: {value!r}")
        return cls.preset(int(match.group(1)))

    @property
    def is_all(self) -> bool:
        return self.kind == "all"

    def label(self) -> str:
        if self.kind == "preset":
            return f"{self.days}d"
        if self.kind == "custom":
            return f"{self.start.isoformat()}..{self.end.isoformat()}"
        return "all"


def resolve_date_range(
    spec: DateRangeSpec | str | dict[str, Any],
    records: pl.DataFrame | Iterable[SendRecord],
    max_lookback_days: int = DEFAULT_MAX_LOOKBACK_DAYS,
) -> DateWindow | None:
    """Turn a range spec into a concrete window over the given records.

    Presets end on the day of the latest send; "all" spans earliest to
    latest send. Both are capped at max_lookback_days. Custom ranges are
    taken literally. Returns None for presets/"all" when nothing is dated.
    """
    spec = DateRangeSpec.parse(spec)
    if spec.kind == "custom":
        return DateWindow.from_days(spec.start, spec.end)

    bounds = frame_bounds(as_frame(records))
    if bounds is None:
        return None
    earliest, latest = bounds
    end = end_of_day(latest)
    earliest_allowed = start_of_day(end - timedelta(days=max_lookback_days - 1))

    if spec.is_all:
        return DateWindow(start=max(start_of_day(earliest), earliest_allowed), end=end)

    days = min(spec.days, max_lookback_days)
    return DateWindow(start=start_of_day(end - timedelta(days=days - 1)), end=end)


# =============================================================================
# GRANULARITY & BUCKETS
# =============================================================================


def pick_granularity(
    span_days: int, thresholds: GranularityThresholds | None = None
) -> Granularity:
    """Daily for short spans, weekly for medium, monthly beyond."""
    thresholds = thresholds or GranularityThresholds()
    if span_days <= thresholds.daily_max_days:
        return Granularity.DAILY
    if span_days <= thresholds.weekly_max_days:
        return Granularity.WEEKLY
    return Granularity.MONTHLY


def bucket_windows(window: DateWindow, granularity: Granularity) -> list[DateWindow]:
    """Contiguous, non-overlapping buckets covering the window.

    Weekly buckets are anchored at the window start; monthly buckets follow
    calendar months. The first and last bucket are clipped to the window.
    """
    first_day = window.start.date()
    last_day = window.end.date()
    buckets: list[DateWindow] = []
    cursor = first_day

    while cursor <= last_day:
        if granularity == Granularity.DAILY:
            bucket_last = cursor
        elif granularity == Granularity.WEEKLY:
            bucket_last = cursor + timedelta(days=6)
        else:
            bucket_last = cursor.replace(day=monthrange(cursor.year, cursor.month)[1])
        bucket_last = min(bucket_last, last_day)
        buckets.append(DateWindow.from_days(cursor, bucket_last))
        cursor = bucket_last + ONE_DAY

    return buckets


def build_series(
    records: pl.DataFrame | Iterable[SendRecord],
    metric: MetricKey | str,
    range_start: datetime | date,
    range_end: datetime | date,
    granularity: Granularity | str | None = None,
    thresholds: GranularityThresholds | None = None,
) -> list[TimeSeriesPoint]:
    """Aggregate records into one point per bucket, empty buckets included.

    Args:
        records: Send records or a prepared send frame
        metric: Metric reported as each point's value
        range_start: First day of the range (inclusive)
        range_end: Last day of the range (inclusive)
        granularity: Bucket width; chosen from the span when omitted
        thresholds: Granularity thresholds for automatic selection

    Returns:
        Points in ascending bucket order.
    """
    window = DateWindow.from_days(range_start, range_end)
    if granularity is None:
        granularity = pick_granularity(window.day_count, thresholds)
    buckets = bucket_windows(window, Granularity(granularity))

    frame = (
        as_frame(records)
        .filter(dated_expr() & window_expr(window.start, window.end))
        .sort("sent_at")
    )
    bucket_frame = pl.DataFrame(
        {"bucket_start": [b.start.replace(tzinfo=None) for b in buckets]},
        schema={"bucket_start": pl.Datetime("us")},
    ).sort("bucket_start")

    per_bucket = (
        frame.join_asof(
            bucket_frame, left_on="sent_at", right_on="bucket_start", strategy="backward"
        )
        .group_by("bucket_start")
        .agg(totals_expr())
    )
    rows = (
        bucket_frame.join(per_bucket, on="bucket_start", how="left")
        .with_columns(zero_fill_expr())
        .sort("bucket_start")
        .to_dicts()
    )

    points = []
    for bucket, row in zip(buckets, rows):
        totals = AggregateTotals.from_row(row)
        points.append(
            TimeSeriesPoint(
                bucket_start=bucket.start,
                bucket_end=bucket.end,
                totals=totals,
                value=metric_value(metric, totals),
            )
        )
    return points


# =============================================================================
# SERIES WITH COMPARISON
# =============================================================================


def _align_to(
    primary: list[TimeSeriesPoint],
    compare: list[TimeSeriesPoint],
    fallback: DateWindow,
) -> list[TimeSeriesPoint]:
    """Zero-pad or left-trim compare so it lines up with primary by index."""
    if len(compare) > len(primary):
        return compare[len(compare) - len(primary):]
    if len(compare) < len(primary):
        last = compare[-1] if compare else None
        filler = TimeSeriesPoint(
            bucket_start=last.bucket_start if last else fallback.start,
            bucket_end=last.bucket_end if last else fallback.end,
            totals=AggregateTotals(),
            value=0.0,
        )
        return compare + [filler] * (len(primary) - len(compare))
    return compare


def series_with_compare(
    records: pl.DataFrame | Iterable[SendRecord],
    metric: MetricKey | str,
    range_spec: DateRangeSpec | str | dict[str, Any],
    compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    granularity: Granularity | str | None = None,
    thresholds: GranularityThresholds | None = None,
    max_lookback_days: int = DEFAULT_MAX_LOOKBACK_DAYS,
) -> SeriesWithCompare:
    """Primary series plus the previous window's series at the same granularity.

    The compare series is None for "all" and when nothing is dated.
    """
    frame = as_frame(records)
    spec = DateRangeSpec.parse(range_spec)
    window = resolve_date_range(spec, frame, max_lookback_days)
    if window is None:
        logger.debug("No dated records for range %s", spec.label())
        return SeriesWithCompare(primary=[], compare=None)

    if granularity is None:
        granularity = pick_granularity(window.day_count, thresholds)
    primary = build_series(frame, metric, window.start, window.end, granularity)
    if spec.is_all:
        return SeriesWithCompare(primary=primary, compare=None)

    if CompareMode(compare_mode) == CompareMode.PREV_YEAR:
        earlier = previous_year_window(window)
    else:
        earlier = previous_window(window)
    compare = build_series(frame, metric, earlier.start, earlier.end, granularity)
    return SeriesWithCompare(primary=primary, compare=_align_to(primary, compare, earlier))
