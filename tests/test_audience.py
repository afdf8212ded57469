"""Tests for audience segmentation and pricing."""

import pytest

from mailmetrics.analytics.audience import (
    audience_insights,
    average_buyer_clv,
    dead_weight_summary,
    high_value_segments,
    is_dormant,
    is_never_active,
    last_active_segments,
    price_for,
)
from mailmetrics.settings import DeadWeightPolicy, PricingTier, load_settings

from .conftest import profile


@pytest.fixture(scope="module")
def tiers():
    return load_settings().pricing_tiers


# =============================================================================
# PRICING
# =============================================================================


class TestPriceFor:
    def test_free_tier_upper_bound(self, tiers) -> None:
        assert price_for(250, tiers) == 0

    def test_next_tier(self, tiers) -> None:
        assert price_for(251, tiers) == 20

    def test_beyond_top_tier(self, tiers) -> None:
        assert price_for(250001, tiers) is None

    def test_zero_profiles(self, tiers) -> None:
        assert price_for(0, tiers) == 0


# =============================================================================
# DEAD WEIGHT
# =============================================================================


class TestSegmentRules:
    def test_never_active_old_enough(self, anchor) -> None:
        sub = profile("a@example.com", anchor, profile_created_days=31)
        assert is_never_active(sub, anchor, DeadWeightPolicy())

    def test_never_active_too_new(self, anchor) -> None:
        sub = profile("a@example.com", anchor, profile_created_days=29)
        assert not is_never_active(sub, anchor, DeadWeightPolicy())

    def test_first_active_present_but_unparseable(self, anchor) -> None:
        """A raw first-active value, even unreadable, means not never-active."""
        sub = profile(
            "a@example.com", anchor, profile_created_days=60, first_active="garbage"
        )
        assert sub.first_active.is_unparseable
        assert not is_never_active(sub, anchor, DeadWeightPolicy())

    def test_created_without_year_counts_as_new(self, anchor) -> None:
        """A weekday-only creation date is unreadable, so the profile is 0 days old."""
        sub = profile("a@example.com", anchor, profile_created="Tue")
        assert sub.profile_created.is_unparseable
        assert sub.lifetime_days(anchor) == 0
        assert not is_never_active(sub, anchor, DeadWeightPolicy())

    def test_dormant(self, anchor) -> None:
        sub = profile(
            "a@example.com",
            anchor,
            profile_created_days=200,
            last_active_days=120,
            last_open_days=120,
            last_click_days=150,
        )
        assert is_dormant(sub, anchor, DeadWeightPolicy())

    def test_recent_click_not_dormant(self, anchor) -> None:
        sub = profile(
            "a@example.com",
            anchor,
            profile_created_days=200,
            last_open_days=120,
            last_click_days=10,
        )
        assert not is_dormant(sub, anchor, DeadWeightPolicy())

    def test_young_profile_not_dormant(self, anchor) -> None:
        sub = profile("a@example.com", anchor, profile_created_days=60)
        assert not is_dormant(sub, anchor, DeadWeightPolicy())


class TestDeadWeightSummary:
    """Tests for dead_weight_summary()."""

    def _active(self, i: int, anchor):
        return profile(
            f"active{i}@example.com",
            anchor,
            profile_created_days=200,
            first_active_days=190,
            last_active_days=5,
            last_open_days=5,
        )

    def _dead(self, i: int, anchor):
        return profile(f"dead{i}@example.com", anchor, profile_created_days=200)

    def test_no_subscribers(self, anchor, tiers) -> None:
        assert dead_weight_summary([], anchor, tiers) is None

    def test_segments_unioned_by_email(self, anchor, tiers) -> None:
        """A profile in both segments, listed twice with different case, counts once."""
        subs = [
            profile("Dup@Example.com", anchor, profile_created_days=200),
            profile("dup@example.com ", anchor, profile_created_days=200),
        ]
        summary = dead_weight_summary(subs, anchor, tiers)
        assert summary.never_active_count == 1
        assert summary.dormant_count == 1
        assert summary.dead_weight_count == 1

    def test_savings(self, anchor, tiers) -> None:
        subs = [self._active(i, anchor) for i in range(240)]
        subs += [self._dead(i, anchor) for i in range(60)]
        summary = dead_weight_summary(subs, anchor, tiers)
        assert summary.current_subscribers == 300
        assert summary.dead_weight_count == 60
        assert summary.projected_subscribers == 240
        assert summary.current_monthly_price == 20
        assert summary.projected_monthly_price == 0
        assert summary.monthly_savings == 20
        assert summary.annual_savings == 240
        assert summary.savings_calculable

    def test_not_calculable_beyond_tiers(self, anchor) -> None:
        small_tiers = (PricingTier(min_count=0, max_count=1, monthly_price=0),)
        subs = [self._active(i, anchor) for i in range(3)]
        summary = dead_weight_summary(subs, anchor, small_tiers)
        assert summary.current_monthly_price is None
        assert summary.monthly_savings is None
        assert summary.annual_savings is None
        assert not summary.savings_calculable
        assert summary.to_dict()["savings_calculable"] is False


# =============================================================================
# VALUE & ACTIVITY SEGMENTS
# =============================================================================


class TestHighValueSegments:
    @pytest.fixture
    def buyers(self, anchor):
        subs = [
            profile(f"b{i}@example.com", anchor, total_clv=clv, is_buyer=True)
            for i, clv in enumerate([100.0, 100.0, 100.0, 700.0])
        ]
        subs.append(profile("window@example.com", anchor, total_clv=0.0))
        return subs

    def test_average_buyer_clv(self, buyers) -> None:
        assert average_buyer_clv(buyers) == pytest.approx(250.0)

    def test_historic_clv_preferred_for_average(self, anchor) -> None:
        subs = [
            profile("a@example.com", anchor, total_clv=500.0, historic_clv=100.0, is_buyer=True)
        ]
        assert average_buyer_clv(subs) == pytest.approx(100.0)

    def test_cumulative_segments(self, buyers) -> None:
        segments = high_value_segments(buyers, (2, 3, 6))
        assert [s.threshold for s in segments] == [500.0, 750.0, 1500.0]
        assert segments[0].customers == 1
        assert segments[0].revenue == pytest.approx(700.0)
        assert segments[0].revenue_percentage == pytest.approx(70.0)
        assert segments[1].customers == 0

    def test_no_buyers(self, anchor) -> None:
        segments = high_value_segments([profile("x@example.com", anchor)])
        assert all(s.customers == 0 and s.revenue_percentage == 0 for s in segments)


class TestLastActiveSegments:
    def test_buckets(self, anchor) -> None:
        subs = [
            profile("a@example.com", anchor, last_active_days=100),
            profile("b@example.com", anchor, last_active_days=200),
            profile("c@example.com", anchor, last_active_days=400),
            profile("d@example.com", anchor),
        ]
        segments = last_active_segments(subs, anchor, (90, 120, 180, 365))
        assert [s.label for s in segments] == [
            "Never Active",
            "Inactive for 90+ days",
            "Inactive for 120+ days",
            "Inactive for 180+ days",
            "Inactive for 365+ days",
        ]
        assert [s.count for s in segments] == [1, 3, 2, 2, 1]
        assert segments[0].percent == pytest.approx(25.0)


# =============================================================================
# AUDIENCE INSIGHTS
# =============================================================================


class TestAudienceInsights:
    """Tests for audience_insights()."""

    @pytest.fixture
    def audience(self, anchor):
        return [
            profile("a@example.com", anchor, profile_created_days=30),
            profile(
                "b@example.com",
                anchor,
                profile_created_days=100,
                total_clv=100.0,
                historic_orders=1,
                is_buyer=True,
            ),
            profile(
                "c@example.com",
                anchor,
                profile_created_days=200,
                total_clv=300.0,
                historic_clv=250.0,
                historic_orders=4,
                is_buyer=True,
            ),
            profile(
                "d@example.com",
                anchor,
                profile_created_days=800,
                total_clv=650.0,
                historic_orders=7,
                is_buyer=True,
            ),
            # buyer through CLV alone, with no creation date
            profile("e@example.com", anchor, total_clv=50.0, is_buyer=True),
        ]

    def test_buyer_mix(self, audience, anchor) -> None:
        insights = audience_insights(audience, anchor)
        assert insights.total_subscribers == 5
        assert insights.buyer_count == 4
        assert insights.non_buyer_count == 1
        assert insights.buyer_percentage == pytest.approx(80.0)

    def test_clv_averages_prefer_historic(self, audience, anchor) -> None:
        insights = audience_insights(audience, anchor)
        assert insights.avg_clv_all == pytest.approx(1050.0 / 5)
        assert insights.avg_clv_buyers == pytest.approx(1050.0 / 4)

    def test_purchase_frequency(self, audience, anchor) -> None:
        """A buyer with no recorded orders lands in no frequency bucket."""
        insights = audience_insights(audience, anchor)
        assert insights.purchase_frequency == {
            "never": 1,
            "one_order": 1,
            "two_orders": 0,
            "three_to_five": 1,
            "six_plus": 1,
        }

    def test_lifetime_distribution(self, audience, anchor) -> None:
        insights = audience_insights(audience, anchor)
        assert insights.lifetime_distribution == {
            "0_3_months": 2,
            "3_6_months": 1,
            "6_12_months": 1,
            "1_2_years": 0,
            "2_years_plus": 1,
        }

    @pytest.mark.parametrize(
        "days,bucket",
        [
            (90, "0_3_months"),
            (91, "3_6_months"),
            (365, "6_12_months"),
            (730, "1_2_years"),
            (731, "2_years_plus"),
        ],
    )
    def test_lifetime_boundaries(self, anchor, days, bucket) -> None:
        sub = profile("a@example.com", anchor, profile_created_days=days)
        insights = audience_insights([sub], anchor)
        assert insights.lifetime_distribution[bucket] == 1

    @pytest.mark.parametrize(
        "orders,bucket",
        [(2, "two_orders"), (3, "three_to_five"), (5, "three_to_five"), (6, "six_plus")],
    )
    def test_order_boundaries(self, anchor, orders, bucket) -> None:
        sub = profile("a@example.com", anchor, historic_orders=orders, is_buyer=True)
        assert audience_insights([sub], anchor).purchase_frequency[bucket] == 1

    def test_empty_audience(self, anchor) -> None:
        """No subscribers gives zeros rather than dividing by zero."""
        insights = audience_insights([], anchor)
        assert insights.total_subscribers == 0
        assert insights.buyer_percentage == 0
        assert insights.avg_clv_all == 0
        assert insights.avg_clv_buyers == 0
        assert sum(insights.purchase_frequency.values()) == 0
        assert sum(insights.lifetime_distribution.values()) == 0

    def test_to_dict(self, audience, anchor) -> None:
        data = audience_insights(audience, anchor).to_dict()
        assert data["buyer_count"] == 4
        assert data["purchase_frequency"]["six_plus"] == 1
