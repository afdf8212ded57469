"""Analytical Engine - main calculator class for email marketing analysis."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import polars as pl

from ..models.stat_pack import StatPack
from ..session import AnalysisSession, RecordSelector, Scope
from ..settings import EngineSettings, load_settings
from .audience import (
    audience_insights,
    dead_weight_summary,
    high_value_segments,
    last_active_segments,
)
from .breakdowns import by_day_of_week, by_hour_of_day
from .bucketing import (
    DateRangeSpec,
    build_series,
    pick_granularity,
    resolve_date_range,
    series_with_compare,
)
from .calendar import DateWindow
from .comparison import PeriodComparator
from .expressions import dated_expr, window_expr
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
    ProportionSample,
    SeriesWithCompare,
    TimeSeriesPoint,
    ZTestResult,
)
from .stats import two_proportion_z_test

RangeInput = DateRangeSpec | str | dict[str, Any]

CAMPAIGNS_ONLY = RecordSelector(scope=Scope.CAMPAIGNS)


@dataclass
class AnalyticalEngine:
    """Main analytics calculator over one analysis session.

    All methods are pure functions - they never mutate the session records.

    Attributes:
        session: Immutable record snapshot to analyze
        settings: Engine policy; the bundled engine.yaml when omitted
    """

    session: AnalysisSession
    settings: EngineSettings | None = None
    comparator: PeriodComparator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = load_settings()
        self.comparator = PeriodComparator(
            self.session, max_lookback_days=self.settings.max_lookback_days
        )

    # =========================================================================
    # RANGE RESOLUTION
    # =========================================================================

    def resolve_range(
        self, range_spec: RangeInput, selector: RecordSelector | None = None
    ) -> DateWindow | None:
        """Concrete window for a range spec over the selected records."""
        return resolve_date_range(
            range_spec, self.session.select(selector), self.settings.max_lookback_days
        )

    def _window_frame(
        self, range_spec: RangeInput | None, selector: RecordSelector | None
    ) -> pl.DataFrame:
        frame = self.session.select(selector)
        if range_spec is None:
            return frame
        window = self.resolve_range(range_spec, selector)
        if window is None:
            return frame.clear()
        return frame.filter(dated_expr() & window_expr(window.start, window.end))

    # =========================================================================
    # TOTALS & DERIVED METRICS
    # =========================================================================

    def get_totals(
        self,
        range_spec: RangeInput | None = None,
        selector: RecordSelector | None = None,
    ) -> AggregateTotals:
        """Summed counters; every record (dated or not) when no range is given."""
        return aggregate(self._window_frame(range_spec, selector))

    def get_derived(
        self,
        range_spec: RangeInput | None = None,
        selector: RecordSelector | None = None,
    ) -> DerivedMetrics:
        return derive(self.get_totals(range_spec, selector))

    # =========================================================================
    # TEMPORAL ANALYSIS
    # =========================================================================

    def get_granularity(
        self, range_spec: RangeInput, selector: RecordSelector | None = None
    ) -> Granularity | None:
        window = self.resolve_range(range_spec, selector)
        if window is None:
            return None
        return pick_granularity(window.day_count, self.settings.granularity)

    def get_series(
        self,
        metric: MetricKey | str,
        range_spec: RangeInput,
        selector: RecordSelector | None = None,
        granularity: Granularity | str | None = None,
    ) -> list[TimeSeriesPoint]:
        """Bucketed series for one metric; empty when nothing is dated."""
        window = self.resolve_range(range_spec, selector)
        if window is None:
            return []
        return build_series(
            self.session.select(selector),
            metric,
            window.start,
            window.end,
            granularity,
            self.settings.granularity,
        )

    def get_series_with_compare(
        self,
        metric: MetricKey | str,
        range_spec: RangeInput,
        selector: RecordSelector | None = None,
        granularity: Granularity | str | None = None,
        compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    ) -> SeriesWithCompare:
        return series_with_compare(
            self.session.select(selector),
            metric,
            range_spec,
            compare_mode=compare_mode,
            granularity=granularity,
            thresholds=self.settings.granularity,
            max_lookback_days=self.settings.max_lookback_days,
        )

    def compare_periods(
        self,
        metric: MetricKey | str,
        range_spec: RangeInput,
        selector: RecordSelector | None = None,
        compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    ) -> PeriodComparison:
        return self.comparator.compare(metric, range_spec, selector, compare_mode)

    def is_compare_window_available(
        self,
        range_spec: RangeInput,
        compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    ) -> bool:
        return self.comparator.is_compare_window_available(range_spec, compare_mode)

    def rate_change_significance(
        self,
        metric: MetricKey | str,
        range_spec: RangeInput,
        selector: RecordSelector | None = None,
        compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    ) -> ZTestResult | None:
        """Z-test of a rate metric, current window against the previous one.

        Returns None for metrics that are not percentages or for "all".
        """
        metric = MetricKey(metric)
        definition = METRIC_TABLE[metric]
        comparison = self.compare_periods(metric, range_spec, selector, compare_mode)
        if not definition.is_rate or comparison.previous_period is None:
            return None

        frame = self.session.select(selector)
        samples = []
        for window in (comparison.current_period, comparison.previous_period):
            totals = aggregate(
                frame.filter(dated_expr() & window_expr(window.start, window.end))
            )
            samples.append(
                ProportionSample(
                    success=getattr(totals, definition.numerator),
                    total=getattr(totals, definition.denominator),
                )
            )
        if any(s.success > s.total for s in samples):
            # orders can outnumber clicks; not a proportion
            return None
        return two_proportion_z_test(samples[0], samples[1])

    # =========================================================================
    # DAY OF WEEK / HOUR OF DAY
    # =========================================================================

    def get_dow_performance(
        self,
        metric: MetricKey | str,
        range_spec: RangeInput | None = None,
        selector: RecordSelector = CAMPAIGNS_ONLY,
    ) -> list[DayOfWeekStats]:
        """Metric by weekday, Sunday first (campaign sends by default)."""
        return by_day_of_week(self._window_frame(range_spec, selector), metric)

    def get_hour_performance(
        self,
        metric: MetricKey | str,
        range_spec: RangeInput | None = None,
        selector: RecordSelector = CAMPAIGNS_ONLY,
    ) -> list[HourOfDayStats]:
        """Metric by send hour, best first (campaign sends by default)."""
        return by_hour_of_day(self._window_frame(range_spec, selector), metric)

    # =========================================================================
    # AUDIENCE
    # =========================================================================

    @property
    def anchor_date(self) -> datetime:
        """Latest send in the session, or now when there are no sends."""
        return self.session.last_send_date or datetime.now(timezone.utc)

    def get_dead_weight(self) -> DeadWeightSummary | None:
        return dead_weight_summary(
            self.session.subscribers,
            self.anchor_date,
            self.settings.pricing_tiers,
            self.settings.dead_weight,
        )

    def get_high_value_segments(self) -> list[HighValueSegment]:
        return high_value_segments(
            self.session.subscribers, self.settings.high_value_multipliers
        )

    def get_last_active_segments(self) -> list[LastActiveSegment]:
        if not self.session.subscribers:
            return []
        return last_active_segments(
            self.session.subscribers,
            self.anchor_date,
            self.settings.last_active_thresholds_days,
        )

    def get_audience_insights(self) -> AudienceInsights:
        return audience_insights(self.session.subscribers, self.anchor_date)

    # =========================================================================
    # STAT PACK (CONSOLIDATED OUTPUT)
    # =========================================================================

    def get_stat_pack(
        self,
        range_spec: RangeInput = "30d",
        metric: MetricKey | str = MetricKey.REVENUE,
        selector: RecordSelector | None = None,
        compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    ) -> StatPack:
        """Run every analysis for one range and package the results.

        Returns:
            StatPack with totals, series, comparisons, breakdowns and audience.
        """
        spec = DateRangeSpec.parse(range_spec)
        metric = MetricKey(metric)
        window = self.resolve_range(spec, selector)

        totals = self.get_totals(spec, selector)
        series = self.get_series_with_compare(
            metric, spec, selector, compare_mode=compare_mode
        )
        comparisons = []
        for key in MetricKey:
            entry = self.compare_periods(key, spec, selector, compare_mode).to_dict()
            test = self.rate_change_significance(key, spec, selector, compare_mode)
            entry["significant"] = (
                test.is_significant(self.settings.significance_alpha) if test else None
            )
            comparisons.append(entry)
        dead_weight = self.get_dead_weight()
        granularity = self.get_granularity(spec, selector)

        return StatPack(
            generated_at=datetime.now(timezone.utc),
            range_label=spec.label(),
            date_range=(window.start.date(), window.end.date()) if window else None,
            metric=metric.value,
            granularity=granularity.value if granularity else None,
            campaign_count=len(self.session.campaigns),
            flow_count=len(self.session.flows),
            subscriber_count=len(self.session.subscribers),
            totals=totals.to_dict(),
            derived=derive(totals).to_dict(),
            series=[p.to_dict() for p in series.primary],
            compare_series=(
                [p.to_dict() for p in series.compare]
                if series.compare is not None
                else None
            ),
            comparisons=comparisons,
            compare_available=self.is_compare_window_available(spec, compare_mode),
            day_of_week=[
                {"day": d.day, "value": d.value, "campaign_count": d.campaign_count}
                for d in self.get_dow_performance(metric, spec)
            ],
            hour_of_day=[
                {
                    "hour": h.hour,
                    "hour_label": h.hour_label,
                    "value": h.value,
                    "campaign_count": h.campaign_count,
                    "percentage_of_total": round(h.percentage_of_total, 2),
                }
                for h in self.get_hour_performance(metric, spec)
            ],
            dead_weight=dead_weight.to_dict() if dead_weight else None,
            high_value_segments=[
                {
                    "multiplier": s.multiplier,
                    "threshold": round(s.threshold, 2),
                    "customers": s.customers,
                    "revenue": round(s.revenue, 2),
                    "revenue_percentage": round(s.revenue_percentage, 2),
                }
                for s in self.get_high_value_segments()
            ],
            last_active_segments=[
                {"label": s.label, "count": s.count, "percent": round(s.percent, 2)}
                for s in self.get_last_active_segments()
            ],
            audience_insights=(
                self.get_audience_insights().to_dict()
                if self.session.subscribers
                else None
            ),
        )
