"""Tier administration for platform admins.

Tier and pricing rows are edited live. Leagues that were already paid keep the
terms recorded in their tier snapshot, so nothing here touches leagues.
"""
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.exceptions import (
    InvalidPricingConfigError,
    TierInUseError,
    TierNameConflictError,
    TierNotFoundError,
)
from league_billing.metrics import tier_admin_changes_total
from league_billing.models.tier import LeagueTier, Pricing, PricingType
from league_billing.schemas.tier import PricingDetail, TierAdmin, TierCreate, TierUpdate
from league_billing.services.tier_repository import TierRepository
from league_billing.utils.audit import diff_fields, log_audit

logger = structlog.get_logger(__name__)

TIER_FIELDS = (
    "name",
    "display_name",
    "description",
    "max_days",
    "max_participants",
    "display_order",
    "is_featured",
    "features",
    "is_active",
)
PRICING_FIELDS = (
    "pricing_type",
    "fixed_price",
    "base_fee",
    "per_day_rate",
    "per_participant_rate",
    "gst_percentage",
)
# Columns that may be cleared by sending null
NULLABLE_FIELDS = ("description", "fixed_price")

ZERO = Decimal("0")


def validate_pricing_values(
    pricing_type: PricingType,
    fixed_price: Decimal | None,
    base_fee: Decimal | None,
    per_day_rate: Decimal | None,
    per_participant_rate: Decimal | None,
) -> None:
    """
    Reject pricing that would price every league at zero.

    Raises:
        InvalidPricingConfigError: If the configuration is not usable
    """
    if pricing_type == PricingType.FIXED:
        if not fixed_price or fixed_price <= ZERO:
            raise InvalidPricingConfigError("Fixed pricing requires fixed_price greater than 0")
        return

    components = (base_fee or ZERO, per_day_rate or ZERO, per_participant_rate or ZERO)
    if not any(component > ZERO for component in components):
        raise InvalidPricingConfigError(
            "Dynamic pricing requires at least one of base_fee, per_day_rate or "
            "per_participant_rate greater than 0"
        )


def to_tier_admin(tier: LeagueTier, league_count: int = 0) -> TierAdmin:
    """Build the admin view of a tier row."""
    pricing = tier.pricing
    return TierAdmin(
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
        pricing=PricingDetail(
            id=pricing.id,
            tier_name=pricing.tier_name,
            pricing_type=pricing.pricing_type.value,
            fixed_price=pricing.fixed_price,
            base_fee=pricing.base_fee,
            per_day_rate=pricing.per_day_rate,
            per_participant_rate=pricing.per_participant_rate,
            gst_percentage=pricing.gst_percentage,
        ),
        league_count=league_count,
        created_at=tier.created_at,
        updated_at=tier.updated_at,
    )


class TierAdminService:
    """Service layer for tier and pricing administration."""

    def __init__(self, db: AsyncSession):
        """Initialize admin service with database session."""
        self.db = db
        self.repository = TierRepository(db)

    async def _require_tier(self, tier_id: UUID) -> LeagueTier:
        tier = await self.repository.get_tier(tier_id)
        if tier is None:
            raise TierNotFoundError(f"Tier {tier_id} not found")
        return tier

    async def _ensure_name_available(self, name: str, tier_id: UUID | None = None) -> None:
        existing = await self.repository.get_tier_by_name(name)
        if existing is not None and existing.id != tier_id:
            raise TierNameConflictError(f"Tier with name '{name}' already exists")

    async def list_tiers(self) -> list[TierAdmin]:
        """
        List every tier, active or not, with league usage counts.

        Returns:
            Tiers in display order
        """
        tiers = await self.repository.list_tiers()
        counts = await self.repository.league_counts()
        return [to_tier_admin(tier, counts.get(tier.id, 0)) for tier in tiers]

    async def get_tier(self, tier_id: UUID) -> TierAdmin:
        """
        Get a tier by ID regardless of its active flag.

        Raises:
            TierNotFoundError: If the tier does not exist
        """
        tier = await self._require_tier(tier_id)
        return to_tier_admin(tier, await self.repository.count_leagues(tier_id))

    async def create_tier(self, tier_data: TierCreate, user_id: str | None = None) -> TierAdmin:
        """
        Create a tier together with its pricing row.

        Args:
            tier_data: Tier and pricing fields
            user_id: Acting platform admin

        Returns:
            Created tier

        Raises:
            TierNameConflictError: If the name is taken
            InvalidPricingConfigError: If the pricing would be zero
        """
        pricing_type = PricingType(tier_data.pricing_type)
        validate_pricing_values(
            pricing_type,
            tier_data.fixed_price,
            tier_data.base_fee,
            tier_data.per_day_rate,
            tier_data.per_participant_rate,
        )
        await self._ensure_name_available(tier_data.name)

        fixed = pricing_type == PricingType.FIXED
        pricing = Pricing(
            tier_name=tier_data.name,
            pricing_type=pricing_type,
            fixed_price=tier_data.fixed_price if fixed else None,
            base_fee=ZERO if fixed else tier_data.base_fee or ZERO,
            per_day_rate=ZERO if fixed else tier_data.per_day_rate or ZERO,
            per_participant_rate=ZERO if fixed else tier_data.per_participant_rate or ZERO,
            gst_percentage=tier_data.gst_percentage,
            config={},
            created_by=user_id,
            updated_by=user_id,
        )
        self.db.add(pricing)
        await self.db.flush()

        tier = LeagueTier(
            name=tier_data.name,
            display_name=tier_data.display_name,
            description=tier_data.description,
            max_days=tier_data.max_days,
            max_participants=tier_data.max_participants,
            pricing_id=pricing.id,
            is_active=True,
            is_featured=tier_data.is_featured,
            display_order=tier_data.display_order,
            features=list(tier_data.features),
            created_by=user_id,
            updated_by=user_id,
        )
        self.db.add(tier)
        await self.db.flush()

        await log_audit(self.db, "pricing", pricing.id, "create", user_id=user_id)
        await log_audit(self.db, "tier", tier.id, "create", user_id=user_id)

        tier_admin_changes_total.labels(action="create").inc()
        logger.info(
            "tier_created",
            tier_id=str(tier.id),
            name=tier.name,
            pricing_type=pricing_type.value,
            user_id=user_id,
        )

        return to_tier_admin(await self._require_tier(tier.id))

    async def update_tier(
        self,
        tier_id: UUID,
        update_data: TierUpdate,
        user_id: str | None = None,
    ) -> TierAdmin:
        """
        Partially update a tier and its pricing.

        The pricing that results from the update is re-checked with the same
        rules as creation. Renaming a tier also renames its pricing row.

        Args:
            tier_id: Tier UUID
            update_data: Fields to change
            user_id: Acting platform admin

        Returns:
            Updated tier with the number of leagues that reference it

        Raises:
            TierNotFoundError: If the tier does not exist
            TierNameConflictError: If the new name is taken
            InvalidPricingConfigError: If the resulting pricing would be zero
        """
        tier = await self._require_tier(tier_id)
        pricing = tier.pricing

        update_dict = {
            field: value
            for field, value in update_data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        if "pricing_type" in update_dict:
            update_dict["pricing_type"] = PricingType(update_dict["pricing_type"])

        tier_updates = {k: v for k, v in update_dict.items() if k in TIER_FIELDS}
        pricing_updates = {k: v for k, v in update_dict.items() if k in PRICING_FIELDS}

        if "name" in tier_updates and tier_updates["name"] != tier.name:
            await self._ensure_name_available(tier_updates["name"], tier_id)
            pricing_updates["tier_name"] = tier_updates["name"]

        effective: dict[str, Any] = {
            field: pricing_updates.get(field, getattr(pricing, field)) for field in PRICING_FIELDS
        }
        validate_pricing_values(
            effective["pricing_type"],
            effective["fixed_price"],
            effective["base_fee"],
            effective["per_day_rate"],
            effective["per_participant_rate"],
        )

        tier_changes = diff_fields(tier, tier_updates)
        pricing_changes = diff_fields(pricing, pricing_updates)

        for field, value in tier_updates.items():
            setattr(tier, field, value)
        for field, value in pricing_updates.items():
            setattr(pricing, field, value)

        if tier_changes:
            tier.updated_by = user_id
            await log_audit(self.db, "tier", tier.id, "update", user_id=user_id, changes=tier_changes)
        if pricing_changes:
            pricing.updated_by = user_id
            await log_audit(self.db, "pricing", pricing.id, "update", user_id=user_id, changes=pricing_changes)

        await self.db.flush()

        league_count = await self.repository.count_leagues(tier_id)

        tier_admin_changes_total.labels(action="update").inc()
        logger.info(
            "tier_updated",
            tier_id=str(tier_id),
            changed_fields=sorted([*tier_changes, *pricing_changes]),
            league_count=league_count,
            user_id=user_id,
        )

        return to_tier_admin(await self._require_tier(tier_id), league_count)

    async def toggle_tier(self, tier_id: UUID, user_id: str | None = None) -> TierAdmin:
        """
        Flip a tier between active and inactive.

        Deactivated tiers disappear from the purchase list; leagues already on
        the tier are unaffected.

        Raises:
            TierNotFoundError: If the tier does not exist
        """
        tier = await self._require_tier(tier_id)
        old_value = tier.is_active
        tier.is_active = not old_value
        tier.updated_by = user_id

        await log_audit(
            self.db,
            "tier",
            tier.id,
            "toggle",
            user_id=user_id,
            changes={"is_active": {"old": old_value, "new": tier.is_active}},
        )
        await self.db.flush()

        tier_admin_changes_total.labels(action="toggle").inc()
        logger.info("tier_toggled", tier_id=str(tier_id), is_active=tier.is_active, user_id=user_id)

        return to_tier_admin(
            await self._require_tier(tier_id),
            await self.repository.count_leagues(tier_id),
        )

    async def delete_tier(self, tier_id: UUID, user_id: str | None = None) -> None:
        """
        Delete a tier and its pricing row.

        Raises:
            TierNotFoundError: If the tier does not exist
            TierInUseError: If any league references the tier
        """
        tier = await self._require_tier(tier_id)

        league_count = await self.repository.count_leagues(tier_id)
        if league_count > 0:
            raise TierInUseError(
                f"Tier is used by {league_count} league(s) and cannot be deleted. "
                "Deactivate it instead."
            )

        pricing = tier.pricing
        await log_audit(
            self.db,
            "tier",
            tier.id,
            "delete",
            user_id=user_id,
            changes={"name": {"old": tier.name, "new": None}},
        )

        await self.db.delete(tier)
        await self.db.flush()
        if pricing is not None:
            await self.db.delete(pricing)
            await self.db.flush()

        tier_admin_changes_total.labels(action="delete").inc()
        logger.info("tier_deleted", tier_id=str(tier_id), name=tier.name, user_id=user_id)
