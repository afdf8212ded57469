"""Metric aggregation and derivation.

Every derived metric is a ratio of two summed counters. The metric key to
counter mapping lives in METRIC_TABLE; a zero denominator always yields 0.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

import polars as pl

from ..models.records import SendRecord
from ..session import as_frame
from .expressions import totals_expr
from .models import AggregateTotals, DerivedMetrics


class MetricKey(str, Enum):
    """Closed set of metrics the engine can report."""

    REVENUE = "revenue"
    AVG_ORDER_VALUE = "avg_order_value"
    REVENUE_PER_EMAIL = "revenue_per_email"
    EMAILS_SENT = "emails_sent"
    TOTAL_ORDERS = "total_orders"
    OPEN_RATE = "open_rate"
    CLICK_RATE = "click_rate"
    CLICK_TO_OPEN_RATE = "click_to_open_rate"
    CONVERSION_RATE = "conversion_rate"
    UNSUBSCRIBE_RATE = "unsubscribe_rate"
    SPAM_RATE = "spam_rate"
    BOUNCE_RATE = "bounce_rate"


@dataclass(frozen=True)
class MetricDefinition:
    """How a metric is computed from AggregateTotals.

    Attributes:
        numerator: Totals field summed on top
        denominator: Totals field divided by, or None for raw sums
        scale: 100 for percentages, 1 otherwise
        lower_is_better: A decrease counts as an improvement
        description: Human-readable label
    """

    numerator: str
    denominator: str | None
    scale: float
    lower_is_better: bool
    description: str

    @property
    def is_rate(self) -> bool:
        return self.scale == 100


METRIC_TABLE: dict[MetricKey, MetricDefinition] = {
    MetricKey.REVENUE: MetricDefinition("revenue", None, 1, False, "Revenue"),
    MetricKey.AVG_ORDER_VALUE: MetricDefinition(
        "revenue", "total_orders", 1, False, "Average order value"
    ),
    MetricKey.REVENUE_PER_EMAIL: MetricDefinition(
        "revenue", "emails_sent", 1, False, "Revenue per email"
    ),
    MetricKey.EMAILS_SENT: MetricDefinition(
        "emails_sent", None, 1, False, "Emails sent"
    ),
    MetricKey.TOTAL_ORDERS: MetricDefinition(
        "total_orders", None, 1, False, "Total orders"
    ),
    MetricKey.OPEN_RATE: MetricDefinition(
        "unique_opens", "emails_sent", 100, False, "Open rate"
    ),
    MetricKey.CLICK_RATE: MetricDefinition(
        "unique_clicks", "emails_sent", 100, False, "Click rate"
    ),
    MetricKey.CLICK_TO_OPEN_RATE: MetricDefinition(
        "unique_clicks", "unique_opens", 100, False, "Click-to-open rate"
    ),
    MetricKey.CONVERSION_RATE: MetricDefinition(
        "total_orders", "unique_clicks", 100, False, "Conversion rate"
    ),
    MetricKey.UNSUBSCRIBE_RATE: MetricDefinition(
        "unsubscribes", "emails_sent", 100, True, "Unsubscribe rate"
    ),
    MetricKey.SPAM_RATE: MetricDefinition(
        "spam_complaints", "emails_sent", 100, True, "Spam rate"
    ),
    MetricKey.BOUNCE_RATE: MetricDefinition(
        "bounces", "emails_sent", 100, True, "Bounce rate"
    ),
}


def safe_div(numerator: float, denominator: float) -> float:
    """Division that returns 0 for a zero denominator."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def aggregate(records: pl.DataFrame | Iterable[SendRecord]) -> AggregateTotals:
    """Sum every counter over a record set (empty input gives zeros)."""
    frame = as_frame(records)
    row = frame.select(totals_expr()).to_dicts()[0]
    return AggregateTotals.from_row(row)


def metric_value(key: MetricKey | str, totals: AggregateTotals) -> float:
    """Resolve one metric against a set of totals."""
    definition = METRIC_TABLE[MetricKey(key)]
    numerator = float(getattr(totals, definition.numerator))
    if definition.denominator is None:
        return numerator
    denominator = float(getattr(totals, definition.denominator))
    return safe_div(numerator, denominator) * definition.scale


def derive(totals: AggregateTotals) -> DerivedMetrics:
    """Compute every ratio metric from totals."""
    return DerivedMetrics(
        avg_order_value=metric_value(MetricKey.AVG_ORDER_VALUE, totals),
        revenue_per_email=metric_value(MetricKey.REVENUE_PER_EMAIL, totals),
        open_rate=metric_value(MetricKey.OPEN_RATE, totals),
        click_rate=metric_value(MetricKey.CLICK_RATE, totals),
        click_to_open_rate=metric_value(MetricKey.CLICK_TO_OPEN_RATE, totals),
        conversion_rate=metric_value(MetricKey.CONVERSION_RATE, totals),
        unsubscribe_rate=metric_value(MetricKey.UNSUBSCRIBE_RATE, totals),
        spam_rate=metric_value(MetricKey.SPAM_RATE, totals),
        bounce_rate=metric_value(MetricKey.BOUNCE_RATE, totals),
    )


def is_lower_better(key: MetricKey | str) -> bool:
    return METRIC_TABLE[MetricKey(key)].lower_is_better
