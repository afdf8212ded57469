"""Analysis session: the immutable record set every engine call reads from."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

import polars as pl

from .dates import as_naive_utc
from .models.records import Channel, SendRecord, Subscriber

logger = logging.getLogger(__name__)

# sent_at is kept as naive UTC inside frames
SEND_FRAME_SCHEMA: dict[str, pl.DataType] = {
    "id": pl.Utf8,
    "name": pl.Utf8,
    "sent_at": pl.Datetime("us"),
    "channel": pl.Utf8,
    "flow_name": pl.Utf8,
    "status": pl.Utf8,
    "emails_sent": pl.Int64,
    "unique_opens": pl.Int64,
    "unique_clicks": pl.Int64,
    "total_orders": pl.Int64,
    "revenue": pl.Float64,
    "unsubscribes": pl.Int64,
    "spam_complaints": pl.Int64,
    "bounces": pl.Int64,
}


def send_frame(records: Iterable[SendRecord]) -> pl.DataFrame:
    """Build the typed Polars frame for a collection of send records."""
    rows = [
        {
            "id": r.id,
            "name": r.name,
            "sent_at": as_naive_utc(r.sent_at) if r.sent_at else None,
            "channel": r.channel.value,
            "flow_name": r.flow_name,
            "status": r.status,
            "emails_sent": r.emails_sent,
            "unique_opens": r.unique_opens,
            "unique_clicks": r.unique_clicks,
            "total_orders": r.total_orders,
            "revenue": r.revenue,
            "unsubscribes": r.unsubscribes,
            "spam_complaints": r.spam_complaints,
            "bounces": r.bounces,
        }
        for r in records
    ]
    return pl.DataFrame(rows, schema=SEND_FRAME_SCHEMA)


def as_frame(records: pl.DataFrame | Iterable[SendRecord]) -> pl.DataFrame:
    """Accept either a prepared send frame or raw SendRecords."""
    if isinstance(records, pl.DataFrame):
        return records
    return send_frame(records)


def frame_bounds(frame: pl.DataFrame) -> tuple[datetime, datetime] | None:
    """Earliest and latest send instants (UTC-aware), or None if undated."""
    dated = frame.filter(pl.col("sent_at").is_not_null())
    if dated.is_empty():
        return None
    earliest = dated["sent_at"].min()
    latest = dated["sent_at"].max()
    return (
        earliest.replace(tzinfo=timezone.utc),
        latest.replace(tzinfo=timezone.utc),
    )


class Scope(str, Enum):
    """Which send channels a selection covers."""

    ALL = "all"
    CAMPAIGNS = "campaigns"
    FLOWS = "flows"


@dataclass(frozen=True)
class RecordSelector:
    """Visible subset of sends: a channel scope, optionally one flow."""

    scope: Scope = Scope.ALL
    flow_name: str | None = None

    def apply(self, frame: pl.DataFrame) -> pl.DataFrame:
        if self.scope == Scope.CAMPAIGNS:
            frame = frame.filter(pl.col("channel") == Channel.CAMPAIGN.value)
        elif self.scope == Scope.FLOWS:
            frame = frame.filter(pl.col("channel") == Channel.FLOW.value)
        if self.flow_name:
            frame = frame.filter(pl.col("flow_name") == self.flow_name)
        return frame


@dataclass(frozen=True)
class AnalysisSession:
    """Immutable snapshot of one analysis session's data.

    Built once from already-ingested records and passed explicitly to the
    engine. The send frame is derived once at construction.

    Attributes:
        campaigns: Campaign send records
        flows: Flow send records (email channel only)
        subscribers: Audience profiles
    """

    campaigns: tuple[SendRecord, ...] = ()
    flows: tuple[SendRecord, ...] = ()
    subscribers: tuple[Subscriber, ...] = ()
    frame: pl.DataFrame = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "campaigns", tuple(self.campaigns))
        object.__setattr__(self, "flows", tuple(self.flows))
        object.__setattr__(self, "subscribers", tuple(self.subscribers))
        object.__setattr__(self, "frame", send_frame(self.campaigns + self.flows))
        logger.debug(
            "Session built: %d campaigns, %d flows, %d subscribers",
            len(self.campaigns),
            len(self.flows),
            len(self.subscribers),
        )

    @classmethod
    def from_records(
        cls,
        sends: Sequence[SendRecord] = (),
        subscribers: Sequence[Subscriber] = (),
    ) -> "AnalysisSession":
        """Split a mixed send collection by channel."""
        return cls(
            campaigns=tuple(s for s in sends if s.channel == Channel.CAMPAIGN),
            flows=tuple(s for s in sends if s.channel == Channel.FLOW),
            subscribers=tuple(subscribers),
        )

    def select(self, selector: RecordSelector | None = None) -> pl.DataFrame:
        return (selector or RecordSelector()).apply(self.frame)

    def bounds(
        self, selector: RecordSelector | None = None
    ) -> tuple[datetime, datetime] | None:
        return frame_bounds(self.select(selector))

    def reference_date(self, selector: RecordSelector | None = None) -> datetime:
        """Latest send in the visible subset, or now when there is none."""
        bounds = self.bounds(selector)
        return bounds[1] if bounds else datetime.now(timezone.utc)

    @property
    def last_send_date(self) -> datetime | None:
        """Latest send across all channels (the audience anchor)."""
        bounds = self.bounds()
        return bounds[1] if bounds else None

    @property
    def flow_names(self) -> list[str]:
        return sorted({f.flow_name for f in self.flows if f.flow_name})
