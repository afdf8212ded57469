"""Tests for date normalization."""

from datetime import datetime, timezone

import pytest

from mailmetrics.dates import as_naive_utc, normalize_date

UTC = timezone.utc


class TestNormalizeDate:
    """Tests for normalize_date()."""

    def test_iso_zulu(self) -> None:
        """ISO timestamps with Z are read as UTC instants."""
        assert normalize_date("2023-11-14T15:30:00Z") == datetime(
            2023, 11, 14, 15, 30, tzinfo=UTC
        )

    def test_iso_with_offset(self) -> None:
        """Numeric offsets are converted to UTC."""
        assert normalize_date("2023-11-14T10:30:00-05:00") == datetime(
            2023, 11, 14, 15, 30, tzinfo=UTC
        )

    def test_us_slash_without_zone_is_utc_wall_clock(self) -> None:
        """US slash dates with no zone keep their wall-clock time as UTC."""
        assert normalize_date("10/27/2023 5:00 PM") == datetime(
            2023, 10, 27, 17, 0, tzinfo=UTC
        )

    def test_us_slash_date_only(self) -> None:
        assert normalize_date("3/9/2024") == datetime(2024, 3, 9, tzinfo=UTC)

    def test_two_digit_year_pivot(self) -> None:
        """Years above 70 land in the 1900s, the rest in the 2000s."""
        assert normalize_date("1/2/71").year == 1971
        assert normalize_date("1/2/24").year == 2024

    def test_zone_abbreviation_is_honored(self) -> None:
        """A trailing EST is a format hint, so the offset applies."""
        assert normalize_date("11/14/2023 9:00 AM EST") == datetime(
            2023, 11, 14, 14, 0, tzinfo=UTC
        )

    def test_result_is_utc_aware(self) -> None:
        parsed = normalize_date("2024-03-10 08:15")
        assert parsed.tzinfo is not None
        assert parsed.utcoffset().total_seconds() == 0

    @pytest.mark.parametrize(
        "raw", [None, "", "   ", "garbage", "Tue", "5", "Nov 14", "10:30"]
    )
    def test_unparseable_is_none(self, raw) -> None:
        """Blank, nonsense or date-less input yields None rather than raising."""
        assert normalize_date(raw) is None

    def test_month_name_with_full_date(self) -> None:
        """Month names parse when year and day are both present."""
        assert normalize_date("Nov 14, 2023 3:30 PM") == datetime(
            2023, 11, 14, 15, 30, tzinfo=UTC
        )

    def test_datetime_passthrough(self) -> None:
        naive = datetime(2024, 1, 1, 8, 0)
        assert normalize_date(naive) == datetime(2024, 1, 1, 8, 0, tzinfo=UTC)

    def test_deterministic(self) -> None:
        assert normalize_date("10/27/2023 5:00 PM") == normalize_date(
            "10/27/2023 5:00 PM"
        )


class TestAsNaiveUtc:
    def test_strips_zone_after_conversion(self) -> None:
        aware = normalize_date("2023-11-14T10:30:00-05:00")
        assert as_naive_utc(aware) == datetime(2023, 11, 14, 15, 30)

    def test_naive_unchanged(self) -> None:
        naive = datetime(2024, 1, 1)
        assert as_naive_utc(naive) is naive
