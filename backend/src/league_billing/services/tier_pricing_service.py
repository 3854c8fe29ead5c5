"""Tier pricing service: validation, price calculation and snapshots.

The backend is the single source of truth for league prices. Every price that
reaches a payment order or a snapshot is recomputed here from the stored tier
configuration; client-side figures are only ever previews.
"""
from datetime import datetime
from typing import Callable
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.config import settings
from league_billing.metrics import (
    price_calculations_total,
    tier_snapshots_total,
    tier_validation_failures_total,
)
from league_billing.pricing import build_tier_snapshot, check_tier_limits, compute_price_breakdown
from league_billing.schemas.pricing import PriceBreakdown, PriceCalculationInput, TierValidationResult
from league_billing.schemas.snapshot import TierSnapshot
from league_billing.schemas.tier import TierConfig
from league_billing.services.tier_repository import TierRepository

logger = structlog.get_logger(__name__)


class TierPricingService:
    """Service layer for tier validation, pricing and snapshots."""

    def __init__(
        self,
        db: AsyncSession,
        currency: str | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """Initialize pricing service with database session."""
        self.db = db
        self.repository = TierRepository(db)
        self.currency = currency or settings.default_currency
        self.clock = clock

    async def get_tier_config(self, tier_id: UUID) -> TierConfig | None:
        """Active tier with pricing, or None."""
        return await self.repository.get_tier_config(tier_id)

    async def get_active_tiers(self) -> list[TierConfig]:
        """Active tiers in display order."""
        return await self.repository.get_active_tiers()

    async def _evaluate(
        self,
        tier_id: UUID,
        duration_days: int,
        participants: int,
    ) -> tuple[TierConfig | None, TierValidationResult]:
        tier = await self.repository.get_tier_config(tier_id)
        validation = check_tier_limits(tier, duration_days, participants)

        if not validation.valid:
            tier_validation_failures_total.inc()
            logger.info(
                "tier_validation_failed",
                tier_id=str(tier_id),
                duration_days=duration_days,
                participants=participants,
                errors=validation.errors,
            )

        return tier, validation

    async def validate_tier_limits(
        self,
        tier_id: UUID,
        duration_days: int,
        participants: int,
    ) -> TierValidationResult:
        """
        Validate a league configuration against tier limits.

        Args:
            tier_id: Tier UUID
            duration_days: Requested league duration
            participants: Estimated participant count

        Returns:
            Validation result with errors and near-limit warnings
        """
        _, validation = await self._evaluate(tier_id, duration_days, participants)
        return validation

    async def calculate_price(self, calculation: PriceCalculationInput) -> PriceBreakdown | None:
        """
        Calculate the price of a league on a tier.

        Re-runs tier validation first, so this never prices a configuration
        the validator would reject.

        Args:
            calculation: Tier id, duration and participant estimate

        Returns:
            Price breakdown, or None if validation failed
        """
        _, breakdown = await self._price(
            calculation.tier_id,
            calculation.duration_days,
            calculation.estimated_participants,
        )
        return breakdown

    async def _price(
        self,
        tier_id: UUID,
        duration_days: int,
        participants: int,
    ) -> tuple[TierConfig | None, PriceBreakdown | None]:
        tier, validation = await self._evaluate(tier_id, duration_days, participants)

        if tier is None or not validation.valid:
            price_calculations_total.labels(pricing_type="unknown", outcome="rejected").inc()
            return tier, None

        breakdown = compute_price_breakdown(tier, duration_days, participants, currency=self.currency)

        price_calculations_total.labels(pricing_type=breakdown.pricing_type, outcome="priced").inc()
        logger.info(
            "price_calculated",
            tier_id=str(tier.id),
            pricing_type=breakdown.pricing_type,
            duration_days=duration_days,
            participants=participants,
            subtotal=str(breakdown.subtotal),
            total=str(breakdown.total),
        )

        return tier, breakdown

    async def create_tier_snapshot(
        self,
        tier_id: UUID,
        duration_days: int,
        estimated_participants: int,
    ) -> TierSnapshot | None:
        """
        Lock a tier's configuration and price for a league.

        The price is always re-derived from the stored tier rather than taken
        from the caller.

        Args:
            tier_id: Tier UUID
            duration_days: League duration in days
            estimated_participants: Estimated number of participants

        Returns:
            Snapshot to store on the league, or None if the tier is unusable
            or the configuration fails validation
        """
        # Tier copy and price come from the same read
        tier, breakdown = await self._price(tier_id, duration_days, estimated_participants)

        if tier is None or breakdown is None:
            tier_snapshots_total.labels(outcome="failed").inc()
            logger.error(
                "tier_snapshot_price_failed",
                tier_id=str(tier_id),
                duration_days=duration_days,
                estimated_participants=estimated_participants,
            )
            return None

        snapshot = build_tier_snapshot(
            tier,
            breakdown,
            duration_days,
            estimated_participants,
            created_at=self.clock(),
        )

        tier_snapshots_total.labels(outcome="created").inc()
        logger.info("tier_snapshot_created", tier_id=str(tier_id), total=str(breakdown.total))

        return snapshot
