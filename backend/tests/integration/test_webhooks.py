"""Integration tests for Stripe webhook handling of league payments."""
import json
from decimal import Decimal

import pytest
from fastapi.encoders import jsonable_encoder
from httpx import AsyncClient

from league_billing.models.league import League, LeagueStatus
from league_billing.models.payment import PaymentStatus
from league_billing.models.tier import LeagueTier
from utils.factories import LeagueFactory

SIGNATURE = {"stripe-signature": "t=1,v1=valid"}


def stripe_event(event_type: str, payment_intent: dict) -> str:
    return json.dumps(
        {
            "id": "evt_test_1",
            "type": event_type,
            "data": {"object": {"object": "payment_intent", **payment_intent}},
        }
    )


async def start_checkout(async_client: AsyncClient, tier: LeagueTier) -> dict:
    response = await async_client.post(
        "/v1/leagues/checkout",
        json=jsonable_encoder(LeagueFactory.create(tier.id)),
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_missing_signature(async_client: AsyncClient):
    """Test that unsigned webhooks are rejected."""
    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("payment_intent.succeeded", {"id": "pi_1"}),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing Stripe signature"


@pytest.mark.asyncio
async def test_invalid_signature(async_client: AsyncClient):
    """Test that webhooks with a bad signature are rejected."""
    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("payment_intent.succeeded", {"id": "pi_1"}),
        headers={"stripe-signature": "t=1,v1=forged"},
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unhandled_event_type(async_client: AsyncClient):
    """Test that unrelated events are acknowledged and ignored."""
    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("customer.created", {"id": "cus_1"}),
        headers=SIGNATURE,
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ignored", "event_type": "customer.created"}


@pytest.mark.asyncio
async def test_unknown_payment_intent(async_client: AsyncClient):
    """Test events for orders this service never created."""
    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("payment_intent.succeeded", {"id": "pi_elsewhere"}),
        headers=SIGNATURE,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "ignored"


@pytest.mark.asyncio
async def test_payment_succeeded_activates_league(
    async_client: AsyncClient,
    gateway,
    db_session,
    fixed_tier: LeagueTier,
):
    """Test that a succeeded event completes a checkout the client never verified."""
    checkout = await start_checkout(async_client, fixed_tier)
    gateway.mark_paid(checkout["order_id"])

    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event(
            "payment_intent.succeeded",
            {"id": checkout["order_id"], "latest_charge": "ch_webhook_1"},
        ),
        headers=SIGNATURE,
    )

    assert response.status_code == 200
    assert response.json() == {"status": "completed", "event_type": "payment_intent.succeeded"}

    from league_billing.services.league_checkout_service import LeagueCheckoutService

    payment = await LeagueCheckoutService(db_session, gateway=gateway).get_payment_by_order(checkout["order_id"])
    league = await db_session.get(League, payment.league_id)
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.gateway_payment_id == "ch_webhook_1"
    assert league.status == LeagueStatus.SCHEDULED
    assert league.tier_snapshot is not None

    # Redelivery is harmless
    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("payment_intent.succeeded", {"id": checkout["order_id"]}),
        headers=SIGNATURE,
    )
    assert response.json()["status"] == "completed"


@pytest.mark.asyncio
async def test_payment_failed_returns_league_to_draft(
    async_client: AsyncClient,
    db_session,
    fixed_tier: LeagueTier,
):
    """Test a payment_failed event."""
    checkout = await start_checkout(async_client, fixed_tier)

    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event(
            "payment_intent.payment_failed",
            {"id": checkout["order_id"], "last_payment_error": {"message": "Your card was declined."}},
        ),
        headers=SIGNATURE,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "failed"

    league = (await async_client.get(f"/v1/leagues/{checkout['league_id']}")).json()
    assert league["status"] == "draft"


@pytest.mark.asyncio
async def test_payment_canceled(async_client: AsyncClient, fixed_tier: LeagueTier):
    """Test a canceled event."""
    checkout = await start_checkout(async_client, fixed_tier)

    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("payment_intent.canceled", {"id": checkout["order_id"]}),
        headers=SIGNATURE,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_failed_event_after_completion_ignored(
    async_client: AsyncClient,
    gateway,
    fixed_tier: LeagueTier,
):
    """Test that a late failure event does not undo a verified payment."""
    checkout = await start_checkout(async_client, fixed_tier)
    gateway.mark_paid(checkout["order_id"])
    await async_client.post("/v1/payments/verify", json={"order_id": checkout["order_id"]})

    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("payment_intent.payment_failed", {"id": checkout["order_id"]}),
        headers=SIGNATURE,
    )

    assert response.json()["status"] == "ignored"
    league = (await async_client.get(f"/v1/leagues/{checkout['league_id']}")).json()
    assert league["status"] == "scheduled"


@pytest.mark.asyncio
async def test_succeeded_after_price_change_acknowledged(
    async_client: AsyncClient,
    gateway,
    db_session,
    fixed_tier: LeagueTier,
):
    """Test that reconciliation cases are acknowledged so Stripe stops retrying."""
    checkout = await start_checkout(async_client, fixed_tier)
    fixed_tier.pricing.fixed_price = Decimal("1999")
    await db_session.commit()
    gateway.mark_paid(checkout["order_id"])

    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("payment_intent.succeeded", {"id": checkout["order_id"]}),
        headers=SIGNATURE,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "reconciliation_required"

    league = (await async_client.get(f"/v1/leagues/{checkout['league_id']}")).json()
    assert league["status"] == "pending_payment"
    assert league["tier_snapshot"] is None


@pytest.mark.asyncio
async def test_succeeded_after_cancel_flagged(async_client: AsyncClient, gateway, fixed_tier: LeagueTier):
    """Test a capture that arrives after the checkout was cancelled."""
    checkout = await start_checkout(async_client, fixed_tier)
    await async_client.post(f"/v1/payments/{checkout['order_id']}/cancel")
    gateway.mark_paid(checkout["order_id"])

    response = await async_client.post(
        "/webhooks/stripe",
        content=stripe_event("payment_intent.succeeded", {"id": checkout["order_id"]}),
        headers=SIGNATURE,
    )

    assert response.json()["status"] == "reconciliation_required"
