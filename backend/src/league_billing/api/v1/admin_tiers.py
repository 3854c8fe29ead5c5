"""Platform admin endpoints for tier and pricing management."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.api.deps import get_current_user, get_db
from league_billing.auth.rbac import Role, require_roles
from league_billing.cache import cache
from league_billing.exceptions import (
    InvalidPricingConfigError,
    TierInUseError,
    TierNameConflictError,
    TierNotFoundError,
)
from league_billing.schemas.error import REMEDIATION_HINTS, ErrorCode
from league_billing.schemas.tier import TierAdmin, TierAdminList, TierCreate, TierUpdate
from league_billing.services.tier_admin_service import TierAdminService

router = APIRouter(prefix="/admin/tiers", tags=["Admin Tiers"])


async def _invalidate_tier_cache() -> None:
    await cache.invalidate_pattern("tiers:*")


@router.get("", response_model=TierAdminList)
@require_roles(Role.PLATFORM_ADMIN)
async def list_tiers(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> TierAdminList:
    """
    List all tiers, including inactive ones.

    Each tier includes its pricing row and the number of leagues using it.
    """
    service = TierAdminService(db)
    tiers = await service.list_tiers()
    return TierAdminList(items=tiers, total=len(tiers))


@router.post("", response_model=TierAdmin, status_code=status.HTTP_201_CREATED)
@require_roles(Role.PLATFORM_ADMIN)
async def create_tier(
    tier_data: TierCreate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> TierAdmin:
    """
    Create a tier with its pricing.

    - **pricing_type=fixed**: requires fixed_price > 0
    - **pricing_type=dynamic**: requires at least one of base_fee,
      per_day_rate, per_participant_rate > 0
    """
    service = TierAdminService(db)

    try:
        tier = await service.create_tier(tier_data, user_id=current_user.get("sub"))
        await db.commit()
    except InvalidPricingConfigError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "remediation": REMEDIATION_HINTS[ErrorCode.INVALID_PRICING_CONFIG]},
        ) from e
    except TierNameConflictError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    await _invalidate_tier_cache()

    return tier


@router.get("/{tier_id}", response_model=TierAdmin)
@require_roles(Role.PLATFORM_ADMIN)
async def get_tier(
    tier_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> TierAdmin:
    """Get a tier by ID, active or not."""
    service = TierAdminService(db)

    try:
        return await service.get_tier(tier_id)
    except TierNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.patch("/{tier_id}", response_model=TierAdmin)
@require_roles(Role.PLATFORM_ADMIN)
async def update_tier(
    tier_id: UUID,
    update_data: TierUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> TierAdmin:
    """
    Update tier and pricing fields.

    All fields are optional. Leagues already paid for keep the terms in their
    tier snapshot; league_count in the response shows how many reference
    the tier.
    """
    service = TierAdminService(db)

    try:
        tier = await service.update_tier(tier_id, update_data, user_id=current_user.get("sub"))
        await db.commit()
    except TierNotFoundError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except InvalidPricingConfigError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "remediation": REMEDIATION_HINTS[ErrorCode.INVALID_PRICING_CONFIG]},
        ) from e
    except TierNameConflictError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    await _invalidate_tier_cache()

    return tier


@router.patch("/{tier_id}/toggle", response_model=TierAdmin)
@require_roles(Role.PLATFORM_ADMIN)
async def toggle_tier(
    tier_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> TierAdmin:
    """Activate or deactivate a tier."""
    service = TierAdminService(db)

    try:
        tier = await service.toggle_tier(tier_id, user_id=current_user.get("sub"))
        await db.commit()
    except TierNotFoundError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    await _invalidate_tier_cache()

    return tier


@router.delete("/{tier_id}", status_code=status.HTTP_204_NO_CONTENT)
@require_roles(Role.PLATFORM_ADMIN)
async def delete_tier(
    tier_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> Response:
    """
    Delete a tier and its pricing.

    Tiers that any league references cannot be deleted; deactivate them instead.
    """
    service = TierAdminService(db)

    try:
        await service.delete_tier(tier_id, user_id=current_user.get("sub"))
        await db.commit()
    except TierNotFoundError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except TierInUseError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    await _invalidate_tier_cache()

    return Response(status_code=status.HTTP_204_NO_CONTENT)
