"""StatPack - consolidated dashboard snapshot for one date range."""

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any


@dataclass
class StatPack:
    """Every analytics result for one range, already flattened to plain data.

    All data is pre-computed and JSON-serializable.
    """

    # Metadata
    generated_at: datetime
    range_label: str
    date_range: tuple[date, date] | None
    metric: str
    granularity: str | None
    campaign_count: int
    flow_count: int
    subscriber_count: int

    # Top-line aggregates
    totals: dict[str, Any]
    derived: dict[str, float]

    # Temporal analysis
    series: list[dict[str, Any]]
    compare_series: list[dict[str, Any]] | None
    comparisons: list[dict[str, Any]]
    compare_available: bool

    # Breakdowns
    day_of_week: list[dict[str, Any]]
    hour_of_day: list[dict[str, Any]]

    # Audience
    dead_weight: dict[str, Any] | None
    high_value_segments: list[dict[str, Any]]
    last_active_segments: list[dict[str, Any]]
    audience_insights: dict[str, Any] | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "meta": {
                "generated_at": self.generated_at.isoformat(),
                "range": self.range_label,
                "date_range": (
                    {
                        "start": self.date_range[0].isoformat(),
                        "end": self.date_range[1].isoformat(),
                    }
                    if self.date_range
                    else None
                ),
                "metric": self.metric,
                "granularity": self.granularity,
                "campaigns": self.campaign_count,
                "flow_emails": self.flow_count,
                "subscribers": self.subscriber_count,
            },
            "aggregates": {
                **self.totals,
                "revenue": round(self.totals.get("revenue", 0.0), 2),
            },
            "derived": {k: round(v, 4) for k, v in self.derived.items()},
            "temporal": {
                "series": self.series,
                "compare": self.compare_series,
                "compare_available": self.compare_available,
                "period_over_period": self.comparisons,
            },
            "breakdowns": {
                "day_of_week": self.day_of_week,
                "hour_of_day": self.hour_of_day,
            },
            "audience": {
                "dead_weight": self.dead_weight,
                "high_value": self.high_value_segments,
                "last_active": self.last_active_segments,
                "insights": self.audience_insights,
            },
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def get_executive_summary(self) -> dict[str, Any]:
        """Get condensed summary for a dashboard header.

        Returns key metrics only.
        """
        changes = {c["metric"]: c["change_percent"] for c in self.comparisons}
        savings = self.dead_weight.get("annual_savings") if self.dead_weight else None
        best_day = max(self.day_of_week, key=lambda d: d["value"], default=None)
        return {
            "range": self.range_label,
            "revenue": round(self.totals.get("revenue", 0.0), 2),
            "emails_sent": self.totals.get("emails_sent", 0),
            "open_rate_pct": round(self.derived.get("open_rate", 0.0), 2),
            "click_rate_pct": round(self.derived.get("click_rate", 0.0), 2),
            "revenue_change_pct": (
                round(changes["revenue"], 2) if "revenue" in changes else None
            ),
            "best_day": best_day["day"] if best_day and best_day["value"] > 0 else None,
            "top_hour": self.hour_of_day[0]["hour_label"] if self.hour_of_day else None,
            "dead_weight_annual_savings": savings,
        }
