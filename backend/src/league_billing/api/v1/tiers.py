"""Public tier endpoints: tier listing and price preview."""
from typing import Union

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.api.deps import get_db
from league_billing.cache import ACTIVE_TIERS_KEY, ACTIVE_TIERS_TTL, cache
from league_billing.schemas.pricing import PricePreviewFailure, PricePreviewRequest, PricePreviewResponse
from league_billing.schemas.tier import ActiveTierList
from league_billing.services.tier_pricing_service import TierPricingService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Tiers"])


@router.get("/leagues/tiers", response_model=ActiveTierList)
async def list_active_tiers(db: AsyncSession = Depends(get_db)) -> ActiveTierList:
    """
    List tiers available for new leagues.

    Tiers are ordered by display_order. An empty list is a valid answer and
    comes with a message for the league form.
    """
    cached = await cache.get(ACTIVE_TIERS_KEY)
    if cached:
        return ActiveTierList.model_validate(cached)

    service = TierPricingService(db)
    tiers = await service.get_active_tiers()

    result = ActiveTierList(
        tiers=tiers,
        message=None if tiers else "No tiers are currently available",
    )

    await cache.set(ACTIVE_TIERS_KEY, result.model_dump(mode="json"), ttl=ACTIVE_TIERS_TTL)

    return result


@router.post(
    "/tiers/preview-price",
    response_model=PricePreviewResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": PricePreviewFailure}},
)
async def preview_price(
    request: PricePreviewRequest,
    db: AsyncSession = Depends(get_db),
) -> Union[PricePreviewResponse, JSONResponse]:
    """
    Preview the price of a league configuration on a tier.

    - **tier_id**: Tier to price against
    - **duration_days**: League duration (1-365)
    - **estimated_participants**: Expected participants (1-10000)

    Returns the breakdown plus any near-limit warnings. Configurations that
    break tier limits get 400 with the validation errors.
    """
    service = TierPricingService(db)

    validation = await service.validate_tier_limits(
        request.tier_id,
        request.duration_days,
        request.estimated_participants,
    )

    breakdown = None
    if validation.valid:
        breakdown = await service.calculate_price(request)

    if breakdown is None:
        failure = PricePreviewFailure(error="Tier validation failed", validation=validation)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=failure.model_dump(mode="json"),
        )

    return PricePreviewResponse(price_breakdown=breakdown, validation=validation)
