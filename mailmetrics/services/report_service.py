"""Report service - orchestrates data ingestion and analytics."""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import polars as pl

from ..analytics import AnalyticalEngine, CompareMode, DateRangeSpec, MetricKey
from ..ingestion import DataIngestionPipeline
from ..models.stat_pack import StatPack
from ..session import AnalysisSession, RecordSelector
from ..settings import EngineSettings, load_settings

logger = logging.getLogger(__name__)

RowsInput = pl.DataFrame | Sequence[dict[str, Any]]


class ReportService:
    """Service for building dashboard snapshots from export rows.

    Orchestrates:
    1. Ingestion of campaign, flow and subscriber rows
    2. Building one AnalysisSession
    3. Running all analytics for a date range
    4. Returning a consolidated StatPack

    Usage:
        service = ReportService()
        pack = service.generate_report(
            campaign_rows=pl.read_csv("campaigns.csv"),
            flow_rows=pl.read_csv("flows.csv"),
            range_spec="90d",
        )
    """

    def __init__(
        self,
        schema_path: Path | None = None,
        settings: EngineSettings | None = None,
        drop_undated: bool = False,
    ):
        """Initialize service with schema and engine configuration.

        Args:
            schema_path: Path to schema_registry.yaml. Defaults to bundled config.
            settings: Engine policy. Defaults to the bundled engine.yaml.
            drop_undated: Drop send rows whose date cannot be parsed.
        """
        self.pipeline = DataIngestionPipeline(schema_path, drop_undated=drop_undated)
        self.settings = settings or load_settings()

    def build_session(
        self,
        campaign_rows: RowsInput | None = None,
        flow_rows: RowsInput | None = None,
        subscriber_rows: RowsInput | None = None,
    ) -> AnalysisSession:
        """Ingest whichever sources are supplied into one session."""
        campaigns = (
            self.pipeline.ingest_campaigns(campaign_rows)
            if campaign_rows is not None
            else ()
        )
        flows = self.pipeline.ingest_flows(flow_rows) if flow_rows is not None else ()
        subscribers = (
            self.pipeline.ingest_subscribers(subscriber_rows)
            if subscriber_rows is not None
            else ()
        )
        return AnalysisSession(campaigns=campaigns, flows=flows, subscribers=subscribers)

    def generate_report(
        self,
        campaign_rows: RowsInput | None = None,
        flow_rows: RowsInput | None = None,
        subscriber_rows: RowsInput | None = None,
        range_spec: DateRangeSpec | str | dict[str, Any] = "30d",
        metric: MetricKey | str = MetricKey.REVENUE,
        selector: RecordSelector | None = None,
        compare_mode: CompareMode | str = CompareMode.PREV_PERIOD,
    ) -> StatPack:
        """Generate a full dashboard snapshot.

        Args:
            campaign_rows: Campaign export rows (optional)
            flow_rows: Flow export rows (optional)
            subscriber_rows: Subscriber export rows (optional)
            range_spec: "30d"-style preset, "all", or {"from", "to"} dates
            metric: Metric used for the series and breakdowns
            selector: Channel / flow filter for send-based analyses
            compare_mode: Previous period or previous year

        Returns:
            StatPack with all aggregations and analytics

        Raises:
            ColumnMappingError: If a required export column is missing
            DataValidationError: If rows fail record validation
        """
        session = self.build_session(campaign_rows, flow_rows, subscriber_rows)
        engine = AnalyticalEngine(session, self.settings)
        pack = engine.get_stat_pack(range_spec, metric, selector, compare_mode)
        logger.info(
            "Report for %s: %d campaigns, %d flow emails, %d subscribers",
            pack.range_label,
            pack.campaign_count,
            pack.flow_count,
            pack.subscriber_count,
        )
        return pack

    def get_available_flows(self, flow_rows: RowsInput) -> list[str]:
        """Names of email flows present in the flow export."""
        session = AnalysisSession(flows=self.pipeline.ingest_flows(flow_rows))
        return session.flow_names

    def generate_summary_dict(self, pack: StatPack) -> dict[str, Any]:
        """Convert a StatPack to a JSON-serializable dictionary with a summary.

        Args:
            pack: StatPack from generate_report()

        Returns:
            Dictionary suitable for JSON serialization
        """
        return {
            "summary": pack.get_executive_summary(),
            **pack.to_dict(),
        }
