"""Analytics module for email campaign and flow performance."""

from .calculator import AnalyticalEngine
from .bucketing import DateRangeSpec, build_series, pick_granularity, resolve_date_range
from .comparison import PeriodComparator, change_percent
from .metrics import METRIC_TABLE, MetricKey, aggregate, derive
from .models import (
    AggregateTotals,
    AudienceInsights,
    CompareMode,
    DayOfWeekStats,
    DeadWeightSummary,
    DerivedMetrics,
    Granularity,
    HighValueSegment,
    HourOfDayStats,
    LastActiveSegment,
    PeriodComparison,
    SeriesWithCompare,
    TimeSeriesPoint,
    ZTestResult,
)

__all__ = [
    "METRIC_TABLE",
    "AggregateTotals",
    "AnalyticalEngine",
    "AudienceInsights",
    "CompareMode",
    "DateRangeSpec",
    "DayOfWeekStats",
    "DeadWeightSummary",
    "DerivedMetrics",
    "Granularity",
    "HighValueSegment",
    "HourOfDayStats",
    "LastActiveSegment",
    "MetricKey",
    "PeriodComparator",
    "PeriodComparison",
    "SeriesWithCompare",
    "TimeSeriesPoint",
    "ZTestResult",
    "aggregate",
    "build_series",
    "change_percent",
    "derive",
    "pick_granularity",
    "resolve_date_range",
]
