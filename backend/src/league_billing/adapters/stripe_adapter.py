"""Stripe payment gateway adapter.

League checkouts map onto Stripe PaymentIntents: the intent id is the gateway
order id, and a payment is verified once Stripe reports the intent succeeded.
"""
import json
from typing import Any

import stripe
import structlog

from league_billing.config import settings

logger = structlog.get_logger(__name__)


class StripeAdapter:
    """Adapter for Stripe payment gateway integration."""

    def __init__(self):
        """Initialize Stripe adapter with API key."""
        stripe.api_key = settings.stripe_secret_key

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        idempotency_key: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Create a payment order for a league checkout.

        Args:
            amount: Amount in the currency's lowest subunit (paise for INR)
            currency: ISO currency code
            receipt: Merchant receipt reference
            idempotency_key: Idempotency key for retries
            metadata: Additional metadata

        Returns:
            Order details (id, amount, currency, status, client_secret)
        """
        params: dict[str, Any] = {
            "amount": amount,
            "currency": currency.lower(),
            "automatic_payment_methods": {"enabled": True},
            "metadata": {**(metadata or {}), "receipt": receipt},
        }

        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        payment_intent = stripe.PaymentIntent.create(**params)

        logger.info(
            "stripe_order_created",
            order_id=payment_intent.id,
            amount=payment_intent.amount,
            currency=payment_intent.currency,
        )

        return {
            "id": payment_intent.id,
            "amount": payment_intent.amount,
            "currency": payment_intent.currency.upper(),
            "status": payment_intent.status,
            "client_secret": payment_intent.client_secret,
        }

    async def verify_payment(self, order_id: str, payment_id: str | None = None) -> dict[str, Any]:
        """
        Confirm with Stripe whether an order has been paid.

        Args:
            order_id: Stripe payment intent ID
            payment_id: Charge ID reported by the client, if any

        Returns:
            Verification result (verified, status, amount, payment_id)
        """
        payment_intent = stripe.PaymentIntent.retrieve(order_id)
        charge_id = getattr(payment_intent, "latest_charge", None)

        verified = payment_intent.status == "succeeded"
        if verified and payment_id and charge_id and payment_id != charge_id:
            logger.warning(
                "stripe_payment_id_mismatch",
                order_id=order_id,
                reported_payment_id=payment_id,
                charge_id=charge_id,
            )
            verified = False

        return {
            "verified": verified,
            "status": payment_intent.status,
            "amount": payment_intent.amount,
            "payment_id": charge_id or payment_id,
        }

    async def cancel_order(self, order_id: str) -> dict[str, Any]:
        """
        Cancel an unpaid order.

        Args:
            order_id: Stripe payment intent ID

        Returns:
            Order status after the cancellation attempt
        """
        try:
            payment_intent = stripe.PaymentIntent.cancel(order_id)
        except stripe.InvalidRequestError as e:
            # Already succeeded or cancelled; report the current state instead
            logger.warning("stripe_order_cancel_rejected", order_id=order_id, error=str(e))
            payment_intent = stripe.PaymentIntent.retrieve(order_id)

        return {
            "id": payment_intent.id,
            "status": payment_intent.status,
        }

    async def construct_webhook_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Construct and verify webhook event.

        Args:
            payload: Webhook payload
            signature: Webhook signature

        Returns:
            Verified event as a plain dict

        Raises:
            ValueError: If signature verification fails
        """
        try:
            stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)
        except ValueError as e:
            raise ValueError(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise ValueError(f"Invalid signature: {e}") from e

        return json.loads(payload)
