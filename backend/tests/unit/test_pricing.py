"""Unit tests for tier validation, price computation and snapshots."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from league_billing.pricing import (
    build_tier_snapshot,
    calculate_gst,
    calculate_total,
    check_tier_limits,
    compute_price_breakdown,
    is_near_limit,
    round2,
    utc_timestamp,
)
from league_billing.schemas.tier import DynamicPricing, FixedPricing, TierConfig


def make_tier(pricing, max_days: int = 30, max_participants: int = 100) -> TierConfig:
    return TierConfig(
        id=uuid4(),
        name="starter",
        display_name="Starter",
        description="For small groups",
        max_days=max_days,
        max_participants=max_participants,
        features=["Leaderboards"],
        pricing=pricing,
    )


@pytest.fixture
def fixed_tier() -> TierConfig:
    return make_tier(FixedPricing(fixed_price=Decimal("999"), gst_percentage=Decimal("18")))


@pytest.fixture
def dynamic_tier() -> TierConfig:
    return make_tier(
        DynamicPricing(
            base_fee=Decimal("100"),
            per_day_rate=Decimal("5"),
            per_participant_rate=Decimal("2"),
            gst_percentage=Decimal("18"),
        ),
        max_days=90,
        max_participants=200,
    )


class TestRounding:
    """Money rounding rules."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            ("1.005", "1.01"),
            ("1.004", "1.00"),
            ("2.675", "2.68"),
            ("179.82", "179.82"),
            ("0", "0.00"),
        ],
    )
    def test_round2_half_up(self, amount, expected):
        """Test that rounding is half away from zero at two places."""
        assert round2(Decimal(amount)) == Decimal(expected)

    def test_gst_rounded_once(self):
        """Test GST on an odd subtotal."""
        assert calculate_gst(Decimal("333.33"), Decimal("18")) == Decimal("60.00")
        assert calculate_total(Decimal("333.33"), Decimal("18")) == Decimal("393.33")

    def test_zero_gst(self):
        """Test that a 0% GST tier charges the subtotal."""
        assert calculate_gst(Decimal("500"), Decimal("0")) == Decimal("0.00")
        assert calculate_total(Decimal("500"), Decimal("0")) == Decimal("500.00")


class TestTierLimits:
    """Validation of a configuration against tier limits."""

    def test_within_limits(self, fixed_tier):
        """Test a configuration well inside both limits."""
        result = check_tier_limits(fixed_tier, 10, 20)

        assert result.valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_limits_are_inclusive(self, fixed_tier):
        """Test that exactly max_days and max_participants are allowed."""
        result = check_tier_limits(fixed_tier, 30, 100)

        assert result.valid is True
        assert result.errors == []

    def test_duration_over_limit(self, fixed_tier):
        """Test duration above max_days."""
        result = check_tier_limits(fixed_tier, 31, 10)

        assert result.valid is False
        assert result.errors == ["Duration (31 days) exceeds tier limit (30 days)"]

    def test_participants_over_limit(self, fixed_tier):
        """Test participants above max_participants."""
        result = check_tier_limits(fixed_tier, 10, 101)

        assert result.valid is False
        assert result.errors == ["Participant count (101) exceeds tier limit (100)"]

    def test_both_limits_exceeded_in_order(self, fixed_tier):
        """Test that duration errors come before participant errors."""
        result = check_tier_limits(fixed_tier, 45, 150)

        assert result.errors == [
            "Duration (45 days) exceeds tier limit (30 days)",
            "Participant count (150) exceeds tier limit (100)",
        ]

    def test_missing_tier(self):
        """Test that a missing or inactive tier is a single error."""
        result = check_tier_limits(None, 10, 10)

        assert result.valid is False
        assert result.errors == ["Invalid or inactive tier selected"]
        assert result.warnings == []

    def test_non_positive_inputs(self, fixed_tier):
        """Test zero duration and participants."""
        result = check_tier_limits(fixed_tier, 0, 0)

        assert result.valid is False
        assert result.errors[:2] == ["Duration must be at least 1 day", "Must have at least 1 participant"]

    def test_input_errors_before_tier_lookup(self):
        """Test error order when inputs are bad and the tier is missing."""
        result = check_tier_limits(None, 0, 5)

        assert result.errors == ["Duration must be at least 1 day", "Invalid or inactive tier selected"]

    def test_near_limit_warnings(self, fixed_tier):
        """Test warnings at 80% of each limit."""
        result = check_tier_limits(fixed_tier, 24, 80)

        assert result.valid is True
        assert result.warnings == [
            "Duration is close to tier limit (30 days)",
            "Participant count is close to tier limit (100)",
        ]

    def test_no_warning_below_threshold(self, fixed_tier):
        """Test that 79% of a limit does not warn."""
        result = check_tier_limits(fixed_tier, 23, 79)

        assert result.warnings == []

    def test_warning_accompanies_error(self, fixed_tier):
        """Test that an exceeded limit also reports the near-limit warning."""
        result = check_tier_limits(fixed_tier, 31, 10)

        assert result.valid is False
        assert "Duration is close to tier limit (30 days)" in result.warnings

    def test_smaller_config_stays_valid(self, fixed_tier):
        """Test that shrinking a valid configuration never makes it invalid."""
        assert check_tier_limits(fixed_tier, 30, 100).valid
        for days in (1, 15, 29):
            for participants in (1, 50, 99):
                assert check_tier_limits(fixed_tier, days, participants).valid

    @pytest.mark.parametrize(
        "value,limit,expected",
        [
            (4, 5, True),
            (3, 5, False),
            (6, 7, True),
            (4, 7, False),
            (80, 100, True),
            (79, 100, False),
        ],
    )
    def test_is_near_limit_exact(self, value, limit, expected):
        """Test the warning threshold without float error."""
        assert is_near_limit(value, limit) is expected


class TestPriceBreakdown:
    """Fixed and dynamic price computation."""

    def test_fixed_price_ignores_usage(self, fixed_tier):
        """Test that a fixed tier costs the same for any duration and size."""
        small = compute_price_breakdown(fixed_tier, 1, 1)
        large = compute_price_breakdown(fixed_tier, 30, 100)

        assert small.subtotal == large.subtotal == Decimal("999")
        assert small.gst_amount == Decimal("179.82")
        assert small.total == Decimal("1178.82")
        assert small.pricing_type == "fixed"
        assert small.breakdown_details == ["Fixed price: ₹999.00"]
        assert small.base_fee is None

    def test_dynamic_price(self, dynamic_tier):
        """Test base fee plus per-day and per-participant components."""
        breakdown = compute_price_breakdown(dynamic_tier, 30, 50)

        assert breakdown.base_fee == Decimal("100")
        assert breakdown.days_cost == Decimal("150")
        assert breakdown.participants_cost == Decimal("100")
        assert breakdown.subtotal == Decimal("350")
        assert breakdown.gst_amount == Decimal("63.00")
        assert breakdown.total == Decimal("413.00")
        assert breakdown.breakdown_details == [
            "Base fee: ₹100.00",
            "Duration: 30 days × ₹5 = ₹150.00",
            "Participants: 50 × ₹2 = ₹100.00",
        ]

    def test_dynamic_price_skips_zero_components(self):
        """Test that zero components are left out of the details."""
        tier = make_tier(DynamicPricing(per_participant_rate=Decimal("2.50")))

        breakdown = compute_price_breakdown(tier, 10, 4)

        assert breakdown.subtotal == Decimal("10.00")
        assert breakdown.breakdown_details == ["Participants: 4 × ₹2.5 = ₹10.00"]

    def test_dynamic_price_monotonic(self, dynamic_tier):
        """Test that more days or participants never cost less."""
        base = compute_price_breakdown(dynamic_tier, 10, 10).total

        assert compute_price_breakdown(dynamic_tier, 11, 10).total >= base
        assert compute_price_breakdown(dynamic_tier, 10, 11).total >= base

    def test_total_is_subtotal_plus_gst(self, dynamic_tier):
        """Test the total invariant over a few configurations."""
        for days, participants in [(1, 1), (7, 33), (89, 199)]:
            breakdown = compute_price_breakdown(dynamic_tier, days, participants)
            assert breakdown.total == round2(breakdown.subtotal + breakdown.gst_amount)

    def test_breakdown_uses_display_name(self, fixed_tier):
        """Test the tier name shown on the breakdown."""
        breakdown = compute_price_breakdown(fixed_tier, 10, 10, currency="USD")

        assert breakdown.tier_name == "Starter"
        assert breakdown.currency == "USD"
        assert breakdown.breakdown_details == ["Fixed price: $999.00"]


class TestSnapshot:
    """Snapshot construction."""

    def test_snapshot_copies_tier_and_price(self, dynamic_tier):
        """Test that the snapshot carries tier terms, price and league config."""
        breakdown = compute_price_breakdown(dynamic_tier, 30, 50)
        created_at = datetime(2026, 10, 18, 9, 30, 0)

        snapshot = build_tier_snapshot(dynamic_tier, breakdown, 30, 50, created_at=created_at)

        assert snapshot.tier_id == dynamic_tier.id
        assert snapshot.tier_name == "starter"
        assert snapshot.display_name == "Starter"
        assert snapshot.max_days == 90
        assert snapshot.features == ["Leaderboards"]
        assert snapshot.pricing.pricing_type == "dynamic"
        assert snapshot.pricing.fixed_price is None
        assert snapshot.pricing.per_day_rate == Decimal("5")
        assert snapshot.pricing.total == breakdown.total
        assert snapshot.league_config.duration_days == 30
        assert snapshot.league_config.estimated_participants == 50
        assert snapshot.snapshot_created_at == "2026-10-18T09:30:00Z"

    def test_aware_clock_normalised_to_utc(self, dynamic_tier):
        """Test that an offset-aware creation time is stored as UTC with a single Z."""
        breakdown = compute_price_breakdown(dynamic_tier, 30, 50)
        created_at = datetime(2026, 10, 18, 15, 0, 0, tzinfo=timezone(timedelta(hours=3)))

        snapshot = build_tier_snapshot(dynamic_tier, breakdown, 30, 50, created_at=created_at)

        assert snapshot.snapshot_created_at == "2026-10-18T12:00:00Z"

    def test_utc_timestamp_naive_and_aware_agree(self):
        """Test that naive UTC and aware UTC render the same."""
        assert utc_timestamp(datetime(2026, 10, 18, 12, 0, 0)) == "2026-10-18T12:00:00Z"
        assert utc_timestamp(datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)) == "2026-10-18T12:00:00Z"

    def test_fixed_snapshot_omits_rates(self, fixed_tier):
        """Test that a fixed snapshot has no dynamic rate fields."""
        breakdown = compute_price_breakdown(fixed_tier, 10, 10)

        snapshot = build_tier_snapshot(fixed_tier, breakdown, 10, 10, created_at=datetime(2026, 1, 1))
        data = snapshot.model_dump(mode="json")

        assert data["pricing"]["fixed_price"] == 999.0
        assert data["pricing"]["base_fee"] is None
        assert data["pricing"]["total"] == 1178.82
