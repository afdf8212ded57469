"""Output models for analytics calculations."""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any

from .calendar import DateWindow


class Granularity(str, Enum):
    """Time-series bucket width."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CompareMode(str, Enum):
    """Which earlier window a period is compared against."""

    PREV_PERIOD = "prev_period"
    PREV_YEAR = "prev_year"


@dataclass(frozen=True)
class AggregateTotals:
    """Raw counters summed over a record set."""

    revenue: float = 0.0
    emails_sent: int = 0
    total_orders: int = 0
    unique_opens: int = 0
    unique_clicks: int = 0
    unsubscribes: int = 0
    spam_complaints: int = 0
    bounces: int = 0
    email_count: int = 0  # number of send records summed

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AggregateTotals":
        """Build from an aggregated frame row (missing/null counters are 0)."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = row.get(f.name)
            if f.name == "revenue":
                values[f.name] = float(raw or 0.0)
            else:
                values[f.name] = int(raw or 0)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DerivedMetrics:
    """Rates (percent, 0-100) and currency ratios derived from totals."""

    avg_order_value: float
    revenue_per_email: float
    open_rate: float
    click_rate: float
    click_to_open_rate: float
    conversion_rate: float
    unsubscribe_rate: float
    spam_rate: float
    bounce_rate: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One bucket of a time series."""

    bucket_start: datetime
    bucket_end: datetime
    totals: AggregateTotals
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucket_start": self.bucket_start.isoformat(),
            "bucket_end": self.bucket_end.isoformat(),
            "value": self.value,
            "totals": self.totals.to_dict(),
        }


@dataclass(frozen=True)
class SeriesWithCompare:
    """Primary series plus the previous window's series aligned by index."""

    primary: list[TimeSeriesPoint]
    compare: list[TimeSeriesPoint] | None  # None when comparison is disabled


@dataclass(frozen=True)
class PeriodComparison:
    """Period-over-period delta for a single metric."""

    metric_name: str
    current_value: float
    previous_value: float | None
    change_percent: float
    is_positive: bool
    current_period: DateWindow | None
    previous_period: DateWindow | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric_name,
            "current_value": self.current_value,
            "previous_value": self.previous_value,
            "change_percent": self.change_percent,
            "is_positive": self.is_positive,
            "current_period": self.current_period.to_dict() if self.current_period else None,
            "previous_period": (
                self.previous_period.to_dict() if self.previous_period else None
            ),
        }


@dataclass(frozen=True)
class DayOfWeekStats:
    """Metric value for a single weekday."""

    day: str  # "Sun" ... "Sat"
    day_index: int  # 0 = Sunday
    value: float
    campaign_count: int


@dataclass(frozen=True)
class HourOfDayStats:
    """Metric value for a single hour (only hours with sends are reported)."""

    hour: int
    hour_label: str
    value: float
    campaign_count: int
    percentage_of_total: float  # share of records sent in this hour


@dataclass(frozen=True)
class DeadWeightSummary:
    """Dead-weight subscriber count and projected plan savings.

    Savings are None (not zero) when either price falls outside the tier
    table; check savings_calculable before rendering them.
    """

    current_subscribers: int
    never_active_count: int
    dormant_count: int
    dead_weight_count: int
    projected_subscribers: int
    current_monthly_price: float | None
    projected_monthly_price: float | None
    monthly_savings: float | None
    annual_savings: float | None

    @property
    def savings_calculable(self) -> bool:
        return self.monthly_savings is not None

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["savings_calculable"] = self.savings_calculable
        return out


@dataclass(frozen=True)
class HighValueSegment:
    """Buyers whose CLV meets a multiple of the buyer average."""

    multiplier: float
    threshold: float
    customers: int
    revenue: float
    revenue_percentage: float  # of total buyer revenue


@dataclass(frozen=True)
class LastActiveSegment:
    """Subscribers never active, or inactive for at least min_days."""

    label: str
    min_days: int | None  # None for the never-active bucket
    count: int
    percent: float


@dataclass(frozen=True)
class AudienceInsights:
    """Buyer mix, CLV averages, order-count and profile-age distributions."""

    total_subscribers: int
    buyer_count: int
    non_buyer_count: int
    buyer_percentage: float
    avg_clv_all: float
    avg_clv_buyers: float
    purchase_frequency: dict[str, int]
    lifetime_distribution: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ZTestResult:
    """Two-proportion z-test output."""

    z: float
    p: float
    valid: bool  # every expected cell count >= 5

    def is_significant(self, alpha: float = 0.05) -> bool:
        return self.p < alpha


@dataclass(frozen=True)
class ProportionSample:
    """Successes out of a total (e.g. opens out of emails sent)."""

    success: int
    total: int


@dataclass(frozen=True)
class ConfidenceInterval:
    """Bootstrap interval for a difference in means."""

    lo: float
    hi: float
    passed: bool  # interval excludes zero
