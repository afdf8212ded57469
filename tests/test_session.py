"""Tests for the analysis session and record selection."""

from datetime import datetime, timezone

import pytest

from mailmetrics.models.records import Channel
from mailmetrics.session import AnalysisSession, RecordSelector, Scope, send_frame

from .conftest import send

UTC = timezone.utc


class TestAnalysisSession:
    def test_frame_covers_both_channels(self, session: AnalysisSession) -> None:
        assert session.frame.height == 5
        assert set(session.frame["channel"].to_list()) == {"campaign", "flow"}

    def test_from_records_splits_by_channel(self, march_campaigns, march_flows) -> None:
        session = AnalysisSession.from_records(march_flows + march_campaigns)
        assert len(session.campaigns) == 3
        assert len(session.flows) == 2

    def test_flow_names(self, session: AnalysisSession) -> None:
        assert session.flow_names == ["Abandoned Cart", "Welcome Series"]

    def test_reference_date_per_selection(self, session: AnalysisSession) -> None:
        flows = RecordSelector(scope=Scope.FLOWS)
        assert session.reference_date(flows) == datetime(2024, 3, 9, tzinfo=UTC)
        assert session.last_send_date == datetime(2024, 3, 10, 15, 0, tzinfo=UTC)

    def test_empty_session(self) -> None:
        session = AnalysisSession()
        assert session.frame.is_empty()
        assert session.bounds() is None
        assert session.last_send_date is None

    def test_immutable(self, session: AnalysisSession) -> None:
        with pytest.raises(AttributeError):
            session.campaigns = ()


class TestRecordSelector:
    def test_scopes(self, session: AnalysisSession) -> None:
        assert session.select(RecordSelector(scope=Scope.CAMPAIGNS)).height == 3
        assert session.select(RecordSelector(scope=Scope.FLOWS)).height == 2
        assert session.select().height == 5

    def test_single_flow(self, session: AnalysisSession) -> None:
        selected = session.select(RecordSelector(flow_name="Abandoned Cart"))
        assert selected["id"].to_list() == ["f2"]


class TestSendFrame:
    def test_naive_utc_timestamps(self) -> None:
        record = send("2024-03-10T10:00:00-05:00")
        frame = send_frame([record])
        assert frame["sent_at"][0] == datetime(2024, 3, 10, 15, 0)

    def test_undated_rows_kept(self) -> None:
        frame = send_frame([send(None, channel=Channel.FLOW)])
        assert frame["sent_at"][0] is None
        assert frame["channel"][0] == "flow"
