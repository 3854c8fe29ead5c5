"""Read access to league tiers and their pricing configuration."""
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from league_billing.models.league import League
from league_billing.models.tier import LeagueTier, Pricing, PricingType
from league_billing.schemas.tier import DynamicPricing, FixedPricing, TierConfig

logger = structlog.get_logger(__name__)


def pricing_config_from_row(pricing: Pricing) -> FixedPricing | DynamicPricing:
    """Build the pricing variant that matches the row's pricing_type."""
    if pricing.pricing_type == PricingType.FIXED:
        return FixedPricing(
            id=pricing.id,
            tier_name=pricing.tier_name,
            fixed_price=pricing.fixed_price or 0,
            gst_percentage=pricing.gst_percentage,
            config=dict(pricing.config or {}),
        )
    return DynamicPricing(
        id=pricing.id,
        tier_name=pricing.tier_name,
        base_fee=pricing.base_fee or 0,
        per_day_rate=pricing.per_day_rate or 0,
        per_participant_rate=pricing.per_participant_rate or 0,
        gst_percentage=pricing.gst_percentage,
        config=dict(pricing.config or {}),
    )


def tier_config_from_row(tier: LeagueTier) -> TierConfig:
    """Copy a tier row and its pricing into an immutable TierConfig."""
    return TierConfig(
        id=tier.id,
        name=tier.name,
        display_name=tier.display_name,
        description=tier.description,
        max_days=tier.max_days,
        max_participants=tier.max_participants,
        pricing_id=tier.pricing_id,
        is_active=tier.is_active,
        is_featured=tier.is_featured,
        display_order=tier.display_order,
        features=list(tier.features or []),
        pricing=pricing_config_from_row(tier.pricing),
    )


class TierRepository:
    """Repository for tier + pricing reads."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    def _tier_query(self):
        return (
            select(LeagueTier)
            .options(selectinload(LeagueTier.pricing))
            .execution_options(populate_existing=True)
        )

    async def get_tier_config(self, tier_id: UUID) -> TierConfig | None:
        """
        Get an active tier with its pricing.

        Args:
            tier_id: Tier UUID

        Returns:
            TierConfig, or None if the tier is missing, inactive or has no pricing
        """
        result = await self.db.execute(
            self._tier_query().where(LeagueTier.id == tier_id, LeagueTier.is_active == True)  # noqa: E712
        )
        tier = result.scalar_one_or_none()

        if tier is None or tier.pricing is None:
            logger.info("tier_config_unavailable", tier_id=str(tier_id))
            return None

        return tier_config_from_row(tier)

    async def get_active_tiers(self) -> list[TierConfig]:
        """
        Get all active tiers for presentation to league hosts.

        Returns:
            Active tiers ordered by display_order ascending
        """
        result = await self.db.execute(
            self._tier_query()
            .where(LeagueTier.is_active == True)  # noqa: E712
            .order_by(LeagueTier.display_order.asc(), LeagueTier.name.asc())
        )
        return [tier_config_from_row(tier) for tier in result.scalars().all() if tier.pricing is not None]

    async def get_tier(self, tier_id: UUID) -> LeagueTier | None:
        """
        Get a tier row regardless of its active flag.

        Args:
            tier_id: Tier UUID

        Returns:
            LeagueTier or None if not found
        """
        result = await self.db.execute(self._tier_query().where(LeagueTier.id == tier_id))
        return result.scalar_one_or_none()

    async def get_tier_by_name(self, name: str) -> LeagueTier | None:
        """Get a tier row by its machine name."""
        result = await self.db.execute(self._tier_query().where(LeagueTier.name == name))
        return result.scalar_one_or_none()

    async def list_tiers(self) -> list[LeagueTier]:
        """All tiers, active or not, in display order."""
        result = await self.db.execute(
            self._tier_query().order_by(LeagueTier.display_order.asc(), LeagueTier.name.asc())
        )
        return list(result.scalars().all())

    async def count_leagues(self, tier_id: UUID) -> int:
        """Number of leagues that reference a tier."""
        result = await self.db.execute(
            select(func.count()).select_from(League).where(League.tier_id == tier_id)
        )
        return result.scalar() or 0

    async def league_counts(self) -> dict[UUID, int]:
        """League counts keyed by tier id."""
        result = await self.db.execute(
            select(League.tier_id, func.count()).group_by(League.tier_id)
        )
        return {tier_id: count for tier_id, count in result.all()}
