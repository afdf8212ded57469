"""Audience segmentation and plan cost estimates.

All ages are whole days measured back from an anchor date, normally the
latest send in the session.
"""

import logging
import math
from collections.abc import Sequence
from datetime import datetime

from ..models.records import OptionalInstant, Subscriber
from ..settings import DeadWeightPolicy, PricingTier
from .calendar import days_between
from .models import (
    AudienceInsights,
    DeadWeightSummary,
    HighValueSegment,
    LastActiveSegment,
)

logger = logging.getLogger(__name__)


def price_for(count: int, tiers: Sequence[PricingTier]) -> float | None:
    """Monthly price for a profile count; None beyond the top tier."""
    for tier in tiers:
        if tier.contains(count):
            return tier.monthly_price
    return None


def _age_days(anchor: datetime, instant: OptionalInstant, missing: float) -> float:
    if instant.value is None:
        return missing
    return days_between(anchor, instant.value)


# =============================================================================
# DEAD WEIGHT
# =============================================================================


def is_never_active(sub: Subscriber, anchor: datetime, policy: DeadWeightPolicy) -> bool:
    """No activity recorded and the profile is old enough to have shown some."""
    created_age = sub.lifetime_days(anchor)
    return (
        sub.first_active.is_absent
        and sub.last_active.value is None
        and created_age >= policy.never_active_min_age_days
    )


def is_dormant(sub: Subscriber, anchor: datetime, policy: DeadWeightPolicy) -> bool:
    """Old profile with no recent opens or clicks (missing counts as never)."""
    created_age = sub.lifetime_days(anchor)
    if created_age < policy.dormant_min_age_days:
        return False
    open_age = _age_days(anchor, sub.last_open, missing=math.inf)
    click_age = _age_days(anchor, sub.last_click, missing=math.inf)
    return (
        open_age >= policy.dormant_inactivity_days
        and click_age >= policy.dormant_inactivity_days
    )


def dead_weight_summary(
    subscribers: Sequence[Subscriber],
    anchor: datetime,
    tiers: Sequence[PricingTier],
    policy: DeadWeightPolicy | None = None,
) -> DeadWeightSummary | None:
    """Count dead-weight profiles and estimate savings from suppressing them.

    Both segments are unioned by case-insensitive email. Returns None when
    there are no subscribers.
    """
    if not subscribers:
        return None
    policy = policy or DeadWeightPolicy()

    never_active = {s.email_key for s in subscribers if is_never_active(s, anchor, policy)}
    dormant = {s.email_key for s in subscribers if is_dormant(s, anchor, policy)}
    dead_weight_count = len(never_active | dormant)

    current_count = len(subscribers)
    projected_count = max(0, current_count - dead_weight_count)
    current_price = price_for(current_count, tiers)
    projected_price = price_for(projected_count, tiers)

    if current_price is not None and projected_price is not None:
        monthly_savings = current_price - projected_price
        annual_savings = monthly_savings * 12
    else:
        logger.info(
            "Savings not calculable: %d or %d profiles outside pricing tiers",
            current_count,
            projected_count,
        )
        monthly_savings = annual_savings = None

    return DeadWeightSummary(
        current_subscribers=current_count,
        never_active_count=len(never_active),
        dormant_count=len(dormant),
        dead_weight_count=dead_weight_count,
        projected_subscribers=projected_count,
        current_monthly_price=current_price,
        projected_monthly_price=projected_price,
        monthly_savings=monthly_savings,
        annual_savings=annual_savings,
    )


# =============================================================================
# VALUE & ACTIVITY SEGMENTS
# =============================================================================


def average_buyer_clv(subscribers: Sequence[Subscriber]) -> float:
    """Mean CLV across buyers, preferring historic CLV when known."""
    buyers = [s for s in subscribers if s.is_buyer]
    if not buyers:
        return 0.0
    return sum(s.clv_for_average for s in buyers) / len(buyers)


def high_value_segments(
    subscribers: Sequence[Subscriber],
    multipliers: Sequence[float] = (2, 3, 6),
) -> list[HighValueSegment]:
    """Buyers at or above each multiple of the average buyer CLV.

    Membership is cumulative: a 6x customer also counts toward 2x and 3x.
    Revenue shares are relative to total buyer revenue.
    """
    average = average_buyer_clv(subscribers)
    buyers = [s for s in subscribers if s.is_buyer and s.total_clv > 0]
    buyer_revenue = sum(s.total_clv for s in buyers)

    segments = []
    for multiplier in multipliers:
        threshold = average * multiplier
        members = [s for s in buyers if s.total_clv >= threshold]
        revenue = sum(s.total_clv for s in members)
        segments.append(
            HighValueSegment(
                multiplier=float(multiplier),
                threshold=threshold,
                customers=len(members),
                revenue=revenue,
                revenue_percentage=(
                    revenue / buyer_revenue * 100 if buyer_revenue > 0 else 0.0
                ),
            )
        )
    return segments


def last_active_segments(
    subscribers: Sequence[Subscriber],
    anchor: datetime,
    thresholds_days: Sequence[int] = (90, 120, 180, 365),
) -> list[LastActiveSegment]:
    """Never-active count followed by cumulative inactivity buckets."""
    total = len(subscribers)

    def percent(count: int) -> float:
        return count / total * 100 if total else 0.0

    never = sum(1 for s in subscribers if s.last_active.value is None)
    segments = [LastActiveSegment("Never Active", None, never, percent(never))]

    ages = [
        days_between(anchor, s.last_active.value)
        for s in subscribers
        if s.last_active.value is not None
    ]
    for days in thresholds_days:
        count = sum(1 for age in ages if age >= days)
        segments.append(
            LastActiveSegment(f"Inactive for {days}+ days", days, count, percent(count))
        )
    return segments


# =============================================================================
# AUDIENCE INSIGHTS
# =============================================================================

# (label, lowest order count); a bucket runs up to the next one's start
ORDER_BUCKETS = (
    ("one_order", 1),
    ("two_orders", 2),
    ("three_to_five", 3),
    ("six_plus", 6),
)

# (label, highest profile age in days); None is open-ended
LIFETIME_BUCKETS = (
    ("0_3_months", 90),
    ("3_6_months", 180),
    ("6_12_months", 365),
    ("1_2_years", 730),
    ("2_years_plus", None),
)


def _order_bucket(orders: int) -> str | None:
    label = None
    for name, lowest in ORDER_BUCKETS:
        if orders >= lowest:
            label = name
    return label


def _lifetime_bucket(days: int) -> str:
    for name, highest in LIFETIME_BUCKETS:
        if highest is None or days <= highest:
            return name
    return LIFETIME_BUCKETS[-1][0]


def audience_insights(
    subscribers: Sequence[Subscriber], anchor: datetime
) -> AudienceInsights:
    """Summarize who buys, what they are worth and how long they have been around.

    CLV averages use historic CLV when known. Buyers are split by historic
    order count; a buyer flagged only through CLV with no recorded orders
    falls in no frequency bucket. Profiles with no creation date count as
    0 days old. An empty audience gives an all-zero summary.
    """
    total = len(subscribers)
    buyers = [s for s in subscribers if s.is_buyer]

    frequency = {"never": total - len(buyers)}
    frequency.update({name: 0 for name, _ in ORDER_BUCKETS})
    for sub in buyers:
        bucket = _order_bucket(sub.historic_orders)
        if bucket is not None:
            frequency[bucket] += 1

    lifetime = {name: 0 for name, _ in LIFETIME_BUCKETS}
    for sub in subscribers:
        lifetime[_lifetime_bucket(sub.lifetime_days(anchor))] += 1

    return AudienceInsights(
        total_subscribers=total,
        buyer_count=len(buyers),
        non_buyer_count=total - len(buyers),
        buyer_percentage=len(buyers) / total * 100 if total else 0.0,
        avg_clv_all=(
            sum(s.clv_for_average for s in subscribers) / total if total else 0.0
        ),
        avg_clv_buyers=average_buyer_clv(subscribers),
        purchase_frequency=frequency,
        lifetime_distribution=lifetime,
    )
