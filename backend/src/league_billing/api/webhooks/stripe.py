"""Stripe webhook handler for league payment events."""
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.adapters.stripe_adapter import StripeAdapter
from league_billing.api.deps import get_db, get_payment_gateway
from league_billing.exceptions import LeagueNotFoundError, ReconciliationRequiredError
from league_billing.services.league_checkout_service import LeagueCheckoutService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks/stripe", tags=["webhooks"])

HANDLED_EVENTS = (
    "payment_intent.succeeded",
    "payment_intent.payment_failed",
    "payment_intent.canceled",
)


@router.post("")
async def handle_stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    stripe_adapter: StripeAdapter = Depends(get_payment_gateway),
):
    """
    Handle incoming Stripe webhook events.

    Verifies the webhook signature and applies payment intent events to the
    league checkout:
    - payment_intent.succeeded: verify payment, snapshot tier, activate league
    - payment_intent.payment_failed: mark payment failed, league back to draft
    - payment_intent.canceled: mark payment cancelled, league back to draft

    Covers the case where the client never calls the verify endpoint after
    paying.

    Raises:
        HTTPException: If signature verification fails
    """
    body = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        logger.error("stripe_webhook_missing_signature")
        raise HTTPException(status_code=400, detail="Missing Stripe signature")

    try:
        event = await stripe_adapter.construct_webhook_event(body, signature)
    except ValueError as e:
        logger.error("stripe_webhook_verification_failed", error=str(e))
        raise HTTPException(status_code=400, detail=f"Webhook verification failed: {e}")

    event_type = event["type"]
    event_data = event["data"]["object"]

    logger.info(
        "stripe_webhook_received",
        event_type=event_type,
        event_id=event.get("id"),
        payment_intent_id=event_data.get("id"),
    )

    if event_type not in HANDLED_EVENTS:
        logger.info("stripe_webhook_unhandled_event", event_type=event_type)
        return {"status": "ignored", "event_type": event_type}

    service = LeagueCheckoutService(db, gateway=stripe_adapter)

    try:
        outcome = await service.handle_gateway_event(event_type, event_data)
    except (ReconciliationRequiredError, LeagueNotFoundError) as e:
        # Acknowledge so Stripe stops retrying; the payment is flagged for support
        outcome = "reconciliation_required"
        logger.error("stripe_webhook_reconciliation_required", payment_intent_id=event_data.get("id"), error=str(e))

    await db.commit()

    return {"status": outcome, "event_type": event_type}
