"""Tests for day-of-week and hour-of-day breakdowns."""

from datetime import datetime, timezone

import pytest

from mailmetrics.analytics.breakdowns import by_day_of_week, by_hour_of_day, hour_label

from .conftest import send

UTC = timezone.utc


class TestDayOfWeek:
    """Tests for by_day_of_week()."""

    @pytest.fixture
    def records(self):
        return [
            # 2024-03-10 is a Sunday
            send(datetime(2024, 3, 10, 9, 0, tzinfo=UTC), revenue=100.0, emails_sent=10),
            send(datetime(2024, 3, 17, 9, 0, tzinfo=UTC), revenue=50.0, emails_sent=10),
            send(datetime(2024, 3, 11, 9, 0, tzinfo=UTC), revenue=30.0, emails_sent=10),
            send(None, revenue=1000.0),
        ]

    def test_always_seven_days_sunday_first(self, records) -> None:
        stats = by_day_of_week(records, "revenue")
        assert [s.day for s in stats] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        assert [s.day_index for s in stats] == list(range(7))

    def test_values_and_counts(self, records) -> None:
        stats = by_day_of_week(records, "revenue")
        assert stats[0].value == pytest.approx(150.0)
        assert stats[0].campaign_count == 2
        assert stats[1].value == pytest.approx(30.0)

    def test_days_without_sends_are_zero(self, records) -> None:
        tuesday = by_day_of_week(records, "open_rate")[2]
        assert tuesday.value == 0
        assert tuesday.campaign_count == 0

    def test_empty_input(self) -> None:
        stats = by_day_of_week([], "revenue")
        assert len(stats) == 7
        assert all(s.value == 0 for s in stats)


class TestHourOfDay:
    """Tests for by_hour_of_day()."""

    def test_only_hours_with_sends(self) -> None:
        records = [
            send(datetime(2024, 3, 10, 9, 0, tzinfo=UTC), revenue=100.0),
            send(datetime(2024, 3, 11, 14, 0, tzinfo=UTC), revenue=300.0),
            send(datetime(2024, 3, 12, 14, 45, tzinfo=UTC), revenue=50.0),
        ]
        stats = by_hour_of_day(records, "revenue")
        assert [s.hour for s in stats] == [14, 9]
        assert stats[0].value == pytest.approx(350.0)
        assert stats[0].hour_label == "2 PM"
        assert stats[0].campaign_count == 2
        assert stats[0].percentage_of_total == pytest.approx(200 / 3)

    def test_near_ties_sort_by_hour(self) -> None:
        records = [
            send(datetime(2024, 3, 10, 20, 0, tzinfo=UTC), revenue=100.004),
            send(datetime(2024, 3, 10, 9, 0, tzinfo=UTC), revenue=100.0),
            send(datetime(2024, 3, 10, 3, 0, tzinfo=UTC), revenue=100.5),
        ]
        stats = by_hour_of_day(records, "revenue")
        assert [s.hour for s in stats] == [3, 9, 20]

    def test_undated_skipped(self) -> None:
        assert by_hour_of_day([send(None, revenue=5.0)], "revenue") == []


class TestHourLabel:
    @pytest.mark.parametrize(
        "hour,label",
        [(0, "12 AM"), (1, "1 AM"), (11, "11 AM"), (12, "12 PM"), (13, "1 PM"), (23, "11 PM")],
    )
    def test_labels(self, hour, label) -> None:
        assert hour_label(hour) == label
