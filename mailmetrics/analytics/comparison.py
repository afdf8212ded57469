"""Period-over-period comparison."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import polars as pl

from ..session import AnalysisSession, RecordSelector, frame_bounds
from .bucketing import DEFAULT_MAX_LOOKBACK_DAYS, DateRangeSpec, resolve_date_range
from .calendar import (
    DateWindow,
    end_of_day,
    previous_window,
    previous_year_window,
    start_of_day,
)
from .expressions import dated_expr, window_expr
from .metrics import MetricKey, aggregate, is_lower_better, metric_value
from .models import CompareMode, PeriodComparison

logger = logging.getLogger(__name__)


def change_percent(current: float, previous: float) -> float:
    """Relative change in percent with the zero-baseline convention.

    A zero baseline reports 100 when the current value is positive and 0
    when both are zero.
    """
    if previous != 0:
        return (current - previous) / previous * 100
    if current > 0:
        return 100.0
    return 0.0


def is_improvement(metric: MetricKey | str, change: float) -> bool:
    """Increases are good, except for the negative-sense rates."""
    if is_lower_better(metric):
        return change < 0
    return change > 0


def earlier_window(current: DateWindow, mode: CompareMode | str) -> DateWindow:
    if CompareMode(mode) == CompareMode.PREV_YEAR:
        return previous_year_window(current)
    return previous_window(current)


def window_value(
    frame: pl.DataFrame, metric: MetricKey | str, window: DateWindow
) -> float:
    """Metric value over the records sent inside a window."""
    in_window = frame.filter(dated_expr() & window_expr(window.start, window.end))
    return metric_value(metric, aggregate(in_window))


@dataclass
class PeriodComparator:
    """Compares a current window against the one before it.

    Windows anchor on the latest send of the selected subset, not of the
    whole session.

    Attributes:
        session: Records to compare over
        max_lookback_days: Cap applied to preset lengths
    """

    session: AnalysisSession
    max_lookback_days: int = DEFAULT_MAX_LOOKBACK_DAYS

    def current_window(
        self,
        range_spec: DateRangeSpec | str | dict[str, Any],
        selector: RecordSelector | None = None,
    ) -> DateWindow | None:
        """Resolve the current window; None for "all"."""
        spec = DateRangeSpec.parse(range_spec)
        if spec.is_all:
            return None
        if spec.kind == "custom":
            return DateWindow.from_days(spec.start, spec.end)
        current_end = end_of_day(self.session.reference_date(selector))
        days = min(spec.days, self.max_lookback_days)
        return DateWindow(
            start=start_of_day(current_end - timedelta(days=days - 1)),
            end=current_end,
        )

    def compare(
        self,
        metric: MetricKey | str,
        range_spec: DateRangeSpec | str | dict[str, Any],
        selector: RecordSelector | None = None,
        compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    ) -> PeriodComparison:
        """Metric change between the current window and the previous one.

        Both windows aggregate the selector's full record set, so the
        previous window is not limited to data already shown.
        """
        metric = MetricKey(metric)
        frame = self.session.select(selector)
        spec = DateRangeSpec.parse(range_spec)

        if spec.is_all:
            window = resolve_date_range(spec, frame, self.max_lookback_days)
            current = window_value(frame, metric, window) if window else 0.0
            return PeriodComparison(
                metric_name=metric.value,
                current_value=current,
                previous_value=None,
                change_percent=0.0,
                is_positive=True,
                current_period=window,
                previous_period=None,
            )

        current_period = self.current_window(spec, selector)
        previous_period = earlier_window(current_period, compare_mode)
        current = window_value(frame, metric, current_period)
        previous = window_value(frame, metric, previous_period)
        change = change_percent(current, previous)
        logger.debug(
            "%s %s: %.4f vs %.4f (%+.2f%%)",
            metric.value,
            spec.label(),
            current,
            previous,
            change,
        )

        return PeriodComparison(
            metric_name=metric.value,
            current_value=current,
            previous_value=previous,
            change_percent=change,
            is_positive=is_improvement(metric, change),
            current_period=current_period,
            previous_period=previous_period,
        )

    def is_compare_window_available(
        self,
        range_spec: DateRangeSpec | str | dict[str, Any],
        compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    ) -> bool:
        """Whether the dataset fully covers the previous window."""
        spec = DateRangeSpec.parse(range_spec)
        if spec.is_all:
            return False
        bounds = frame_bounds(self.session.frame)
        if bounds is None:
            return False
        earlier = earlier_window(self.current_window(spec), compare_mode)
        earliest, latest = bounds
        return (
            start_of_day(earliest) <= earlier.start and end_of_day(latest) >= earlier.end
        )
