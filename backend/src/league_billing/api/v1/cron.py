"""Scheduler-triggered maintenance endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.adapters.stripe_adapter import StripeAdapter
from league_billing.api.deps import get_db, get_payment_gateway, verify_cron_secret
from league_billing.schemas.league import CleanupResult
from league_billing.services.league_checkout_service import LeagueCheckoutService

router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(verify_cron_secret)])


@router.post("/cleanup-abandoned-payments", response_model=CleanupResult)
async def cleanup_abandoned_payments(
    db: AsyncSession = Depends(get_db),
    gateway: StripeAdapter = Depends(get_payment_gateway),
) -> CleanupResult:
    """
    Expire checkouts left unpaid past the configured age.

    Requires `Authorization: Bearer <CRON_SECRET>`.
    """
    service = LeagueCheckoutService(db, gateway=gateway)
    cleaned = await service.cleanup_abandoned_payments()
    await db.commit()

    return CleanupResult(
        cleaned_count=cleaned,
        message=f"Cleaned up {cleaned} abandoned payment(s)",
    )
