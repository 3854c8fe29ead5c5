"""Tier pricing rules.

Pure functions shared by price previews, checkout and snapshots. Nothing in
here touches the database; callers fetch the tier and pass it in.

Pricing models:
    fixed:   subtotal = fixed_price
    dynamic: subtotal = base_fee + days * per_day_rate + participants * per_participant_rate

GST is applied to the subtotal for both models:
    gst_amount = round2(subtotal * gst_percentage / 100)
    total      = round2(subtotal + gst_amount)
"""
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction

from league_billing.schemas.pricing import PriceBreakdown, TierValidationResult
from league_billing.schemas.snapshot import SnapshotLeagueConfig, SnapshotPricing, TierSnapshot
from league_billing.schemas.tier import DynamicPricing, FixedPricing, TierConfig
from league_billing.utils.currency import format_money, format_rate

# Usage at or above this share of a tier limit produces a warning
LIMIT_WARNING_RATIO = Fraction(4, 5)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


def round2(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_gst(subtotal: Decimal, gst_percentage: Decimal) -> Decimal:
    """GST on a subtotal, rounded once."""
    return round2(Decimal(subtotal) * Decimal(gst_percentage) / Decimal(100))


def calculate_total(subtotal: Decimal, gst_percentage: Decimal) -> Decimal:
    """Subtotal plus rounded GST, rounded once."""
    return round2(Decimal(subtotal) + calculate_gst(subtotal, gst_percentage))


def is_near_limit(value: int, limit: int) -> bool:
    """True when value is at or above LIMIT_WARNING_RATIO of limit."""
    return value * LIMIT_WARNING_RATIO.denominator >= limit * LIMIT_WARNING_RATIO.numerator


def check_tier_limits(
    tier: TierConfig | None,
    duration_days: int,
    participants: int,
) -> TierValidationResult:
    """
    Check a league configuration against a tier's limits.

    Errors are reported in a fixed order: input checks, tier lookup, duration
    limit, participant limit. A missing tier stops further checks.

    Args:
        tier: Active tier, or None if it was not found or is inactive
        duration_days: Requested league duration
        participants: Estimated participant count

    Returns:
        Validation result; valid iff there are no errors
    """
    errors: list[str] = []
    warnings: list[str] = []

    if duration_days <= 0:
        errors.append("Duration must be at least 1 day")

    if participants <= 0:
        errors.append("Must have at least 1 participant")

    if tier is None:
        errors.append("Invalid or inactive tier selected")
        return TierValidationResult(valid=False, errors=errors, warnings=warnings)

    if duration_days > tier.max_days:
        errors.append(f"Duration ({duration_days} days) exceeds tier limit ({tier.max_days} days)")

    if participants > tier.max_participants:
        errors.append(f"Participant count ({participants}) exceeds tier limit ({tier.max_participants})")

    if is_near_limit(duration_days, tier.max_days):
        warnings.append(f"Duration is close to tier limit ({tier.max_days} days)")

    if is_near_limit(participants, tier.max_participants):
        warnings.append(f"Participant count is close to tier limit ({tier.max_participants})")

    return TierValidationResult(valid=not errors, errors=errors, warnings=warnings)


def compute_price_breakdown(
    tier: TierConfig,
    duration_days: int,
    participants: int,
    currency: str = "INR",
) -> PriceBreakdown:
    """
    Apply a tier's pricing configuration to a league configuration.

    Does not validate; callers must run check_tier_limits first.
    """
    pricing = tier.pricing

    if isinstance(pricing, FixedPricing):
        subtotal = pricing.fixed_price or ZERO
        return PriceBreakdown(
            tier_id=tier.id,
            tier_name=tier.display_name,
            pricing_type="fixed",
            duration_days=duration_days,
            participants=participants,
            subtotal=subtotal,
            gst_amount=calculate_gst(subtotal, pricing.gst_percentage),
            total=calculate_total(subtotal, pricing.gst_percentage),
            currency=currency,
            breakdown_details=[f"Fixed price: {format_money(subtotal, currency)}"],
        )

    base_fee = pricing.base_fee or ZERO
    per_day_rate = pricing.per_day_rate or ZERO
    per_participant_rate = pricing.per_participant_rate or ZERO

    days_cost = duration_days * per_day_rate
    participants_cost = participants * per_participant_rate
    subtotal = base_fee + days_cost + participants_cost

    details = []
    if base_fee > 0:
        details.append(f"Base fee: {format_money(base_fee, currency)}")
    if days_cost > 0:
        details.append(
            f"Duration: {duration_days} days × {format_rate(per_day_rate, currency)} = "
            f"{format_money(days_cost, currency)}"
        )
    if participants_cost > 0:
        details.append(
            f"Participants: {participants} × {format_rate(per_participant_rate, currency)} = "
            f"{format_money(participants_cost, currency)}"
        )

    return PriceBreakdown(
        tier_id=tier.id,
        tier_name=tier.display_name,
        pricing_type="dynamic",
        duration_days=duration_days,
        participants=participants,
        base_fee=base_fee,
        days_cost=days_cost,
        participants_cost=participants_cost,
        subtotal=subtotal,
        gst_amount=calculate_gst(subtotal, pricing.gst_percentage),
        total=calculate_total(subtotal, pricing.gst_percentage),
        currency=currency,
        breakdown_details=details,
    )


def utc_timestamp(moment: datetime) -> str:
    """ISO-8601 with a Z suffix; naive values are taken to be UTC already."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat() + "Z"


def build_tier_snapshot(
    tier: TierConfig,
    breakdown: PriceBreakdown,
    duration_days: int,
    estimated_participants: int,
    created_at: datetime,
) -> TierSnapshot:
    """Freeze a tier's terms and the price computed for a league."""
    pricing = tier.pricing
    dynamic = isinstance(pricing, DynamicPricing)

    return TierSnapshot(
        tier_id=tier.id,
        tier_name=tier.name,
        display_name=tier.display_name,
        description=tier.description,
        max_days=tier.max_days,
        max_participants=tier.max_participants,
        features=list(tier.features),
        pricing=SnapshotPricing(
            pricing_type=pricing.pricing_type,
            fixed_price=None if dynamic else pricing.fixed_price,
            base_fee=pricing.base_fee if dynamic else None,
            per_day_rate=pricing.per_day_rate if dynamic else None,
            per_participant_rate=pricing.per_participant_rate if dynamic else None,
            gst_percentage=pricing.gst_percentage,
            subtotal=breakdown.subtotal,
            gst_amount=breakdown.gst_amount,
            total=breakdown.total,
            currency=breakdown.currency,
            breakdown_details=list(breakdown.breakdown_details),
        ),
        league_config=SnapshotLeagueConfig(
            duration_days=duration_days,
            estimated_participants=estimated_participants,
        ),
        snapshot_created_at=utc_timestamp(created_at),
    )
