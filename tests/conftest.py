"""Shared fixtures and record builders."""

from datetime import datetime, timedelta, timezone

import pytest

from mailmetrics.models.records import Channel, SendRecord, Subscriber
from mailmetrics.session import AnalysisSession

UTC = timezone.utc


def send(
    sent_at: datetime | str | None,
    channel: Channel = Channel.CAMPAIGN,
    **counters,
) -> SendRecord:
    """Build a send record with zero counters unless overridden."""
    values = {
        "id": counters.pop("id", f"{channel.value}-{sent_at}"),
        "name": counters.pop("name", "Test send"),
        "sent_at": sent_at,
        "channel": channel,
        **counters,
    }
    return SendRecord.model_validate(values)


def profile(email: str, anchor: datetime, **ages) -> Subscriber:
    """Build a subscriber whose date fields are given as days before anchor.

    Keyword arguments ending in "_days" become the matching date field, e.g.
    profile_created_days=31 sets profile_created to anchor - 31 days.
    """
    values: dict = {"email": email}
    for key, value in ages.items():
        if key.endswith("_days"):
            values[key[: -len("_days")]] = anchor - timedelta(days=value)
        else:
            values[key] = value
    return Subscriber.model_validate(values)


@pytest.fixture
def anchor() -> datetime:
    return datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def march_campaigns() -> list[SendRecord]:
    """Campaign sends from 2024-02-20 to 2024-03-10."""
    return [
        send(
            datetime(2024, 2, 20, 9, 0, tzinfo=UTC),
            id="c1",
            emails_sent=1000,
            unique_opens=300,
            unique_clicks=30,
            total_orders=3,
            revenue=90.0,
            unsubscribes=2,
        ),
        send(
            datetime(2024, 3, 2, 14, 0, tzinfo=UTC),
            id="c2",
            emails_sent=1000,
            unique_opens=400,
            unique_clicks=40,
            total_orders=4,
            revenue=100.0,
            unsubscribes=2,
        ),
        send(
            datetime(2024, 3, 10, 15, 0, tzinfo=UTC),
            id="c3",
            emails_sent=1000,
            unique_opens=500,
            unique_clicks=50,
            total_orders=5,
            revenue=200.0,
            unsubscribes=1,
        ),
    ]


@pytest.fixture
def march_flows() -> list[SendRecord]:
    return [
        send(
            datetime(2024, 3, 8, 0, 0, tzinfo=UTC),
            channel=Channel.FLOW,
            id="f1",
            flow_name="Welcome Series",
            emails_sent=200,
            unique_opens=120,
            unique_clicks=24,
            total_orders=6,
            revenue=300.0,
        ),
        send(
            datetime(2024, 3, 9, 0, 0, tzinfo=UTC),
            channel=Channel.FLOW,
            id="f2",
            flow_name="Abandoned Cart",
            emails_sent=100,
            unique_opens=50,
            unique_clicks=10,
            total_orders=2,
            revenue=80.0,
        ),
    ]


@pytest.fixture
def session(march_campaigns, march_flows) -> AnalysisSession:
    return AnalysisSession(campaigns=march_campaigns, flows=march_flows)
