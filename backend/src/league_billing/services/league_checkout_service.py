"""League checkout: tier-priced league creation and payment verification.

League lifecycle driven by this service:

    draft -> pending_payment -> scheduled | active
                 |
                 +-> draft      (payment failed or checkout cancelled)
                 +-> abandoned  (checkout never completed)

The price charged is always recomputed server side, and the tier snapshot is
rebuilt from the same stored inputs when the payment is verified. A league only
becomes scheduled or active together with its snapshot.
"""
from datetime import datetime, timedelta
from typing import Any, Callable
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.adapters.stripe_adapter import StripeAdapter
from league_billing.config import settings
from league_billing.exceptions import (
    InvalidStateTransitionError,
    LeagueNotFoundError,
    PaymentNotFoundError,
    PaymentVerificationError,
    ReconciliationRequiredError,
    TierValidationError,
)
from league_billing.metrics import (
    abandoned_payments_cleaned_total,
    league_checkouts_total,
    league_payment_amount_total,
    league_payments_total,
    payment_reconciliation_failures_total,
)
from league_billing.models.league import League, LeagueStatus, PAID_STATUSES
from league_billing.models.payment import Payment, PaymentPurpose, PaymentStatus
from league_billing.schemas.league import CheckoutResponse, LeagueCreate
from league_billing.schemas.pricing import PriceCalculationInput
from league_billing.services.tier_pricing_service import TierPricingService
from league_billing.utils.currency import convert_from_smallest_unit, convert_to_smallest_unit

logger = structlog.get_logger(__name__)

# Payments that may still be confirmed by the gateway
VERIFIABLE_STATUSES = (PaymentStatus.PENDING, PaymentStatus.FAILED)


class LeagueCheckoutService:
    """Orchestrates league creation, gateway orders and payment verification."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: Any = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        """
        Initialize checkout service.

        Args:
            db: Database session
            gateway: Payment gateway adapter (defaults to Stripe)
            clock: Source of the current UTC time
        """
        self.db = db
        self.gateway = gateway or StripeAdapter()
        self.clock = clock
        self.pricing = TierPricingService(db, clock=clock)

    async def get_payment_by_order(self, order_id: str, user_id: str | None = None) -> Payment:
        """
        Get the payment recorded for a gateway order.

        Args:
            order_id: Gateway order ID
            user_id: When given, the payment must belong to this user

        Raises:
            PaymentNotFoundError: If no visible payment exists
        """
        result = await self.db.execute(select(Payment).where(Payment.gateway_order_id == order_id))
        payment = result.scalar_one_or_none()

        if payment is None or (user_id is not None and payment.user_id != user_id):
            raise PaymentNotFoundError(f"Payment for order {order_id} not found")

        return payment

    async def get_league(
        self,
        league_id: UUID,
        user_id: str | None = None,
        include_private: bool = False,
    ) -> League:
        """
        Get a league with its tier snapshot.

        Private leagues are only visible to their creator unless
        include_private is set.

        Raises:
            LeagueNotFoundError: If the league does not exist or is not visible
        """
        league = await self.db.get(League, league_id)

        if league is None:
            raise LeagueNotFoundError(f"League {league_id} not found")

        if not (league.is_public or include_private or league.created_by == user_id):
            raise LeagueNotFoundError(f"League {league_id} not found")

        return league

    async def start_checkout(self, user_id: str, league_data: LeagueCreate) -> CheckoutResponse:
        """
        Validate a league against its tier, price it and open a gateway order.

        Creates the league as a draft, charges exactly the server-computed
        total, and leaves the league in pending_payment.

        Args:
            user_id: Host creating the league
            league_data: League form

        Returns:
            Gateway order details for the checkout client

        Raises:
            TierValidationError: If the configuration violates tier limits;
                nothing is created in that case
        """
        duration_days = league_data.duration_days
        participants = league_data.participant_estimate

        validation = await self.pricing.validate_tier_limits(league_data.tier_id, duration_days, participants)
        if not validation.valid:
            raise TierValidationError(validation.errors, validation.warnings)

        breakdown = await self.pricing.calculate_price(
            PriceCalculationInput(
                tier_id=league_data.tier_id,
                duration_days=duration_days,
                estimated_participants=participants,
            )
        )
        if breakdown is None:
            raise TierValidationError(["Invalid or inactive tier selected"])

        league = League(
            name=league_data.league_name,
            description=league_data.description,
            start_date=league_data.start_date,
            end_date=league_data.end_date,
            tier_id=league_data.tier_id,
            num_teams=league_data.num_teams,
            max_participants=league_data.max_participants,
            rest_days=league_data.rest_days,
            is_public=league_data.is_public,
            is_exclusive=league_data.is_exclusive,
            created_by=user_id,
            status=LeagueStatus.DRAFT,
        )
        self.db.add(league)
        await self.db.flush()

        currency = breakdown.currency
        amount = convert_to_smallest_unit(breakdown.total, currency)
        receipt = f"league_{league.id.hex[:16]}"

        order = await self.gateway.create_order(
            amount=amount,
            currency=currency,
            receipt=receipt,
            idempotency_key=f"league-checkout-{league.id}",
            metadata={
                "league_id": str(league.id),
                "user_id": user_id,
                "tier_id": str(league_data.tier_id),
            },
        )

        payment = Payment(
            user_id=user_id,
            league_id=league.id,
            purpose=PaymentPurpose.LEAGUE_CREATION,
            gateway_order_id=order["id"],
            status=PaymentStatus.PENDING,
            base_amount=breakdown.subtotal,
            gst_amount=breakdown.gst_amount,
            total_amount=breakdown.total,
            amount_subunits=amount,
            currency=currency,
            description=f"League creation: {league.name} ({breakdown.tier_name})",
            receipt=receipt,
            notes={
                "tier_id": str(league_data.tier_id),
                "tier_name": breakdown.tier_name,
                "duration_days": duration_days,
                "estimated_participants": participants,
            },
        )
        self.db.add(payment)

        league.status = LeagueStatus.PENDING_PAYMENT
        await self.db.flush()

        league_checkouts_total.labels(currency=currency).inc()
        logger.info(
            "checkout_started",
            league_id=str(league.id),
            order_id=order["id"],
            user_id=user_id,
            tier_id=str(league_data.tier_id),
            duration_days=duration_days,
            participants=participants,
            total=str(breakdown.total),
            amount=amount,
            currency=currency,
        )

        return CheckoutResponse(
            league_id=league.id,
            order_id=order["id"],
            amount=amount,
            currency=currency,
            client_secret=order.get("client_secret"),
            publishable_key=settings.stripe_publishable_key,
            price_breakdown=breakdown,
            validation=validation,
        )

    async def verify_payment(
        self,
        order_id: str,
        payment_id: str | None = None,
        user_id: str | None = None,
    ) -> tuple[Payment, League]:
        """
        Confirm a payment with the gateway and activate the league.

        Safe to call more than once: an already completed payment returns the
        league as it is.

        Args:
            order_id: Gateway order ID
            payment_id: Gateway payment/charge ID reported by the client
            user_id: When given, the payment must belong to this user

        Returns:
            Tuple of (payment, league)

        Raises:
            PaymentNotFoundError: If no payment exists for the order
            InvalidStateTransitionError: If the checkout was cancelled
            PaymentVerificationError: If the gateway did not confirm payment;
                payment is marked failed and the league returns to draft
            ReconciliationRequiredError: If money was captured but the league
                could not be activated
        """
        payment = await self.get_payment_by_order(order_id, user_id)
        league = await self._payment_league(payment)

        if payment.status == PaymentStatus.COMPLETED:
            if league.status in PAID_STATUSES:
                logger.info("payment_already_verified", order_id=order_id, league_id=str(league.id))
                return payment, league
            raise ReconciliationRequiredError(
                payment.failure_message or f"Payment {order_id} needs manual reconciliation"
            )

        if payment.status not in VERIFIABLE_STATUSES:
            raise InvalidStateTransitionError(
                f"Payment for order {order_id} is {payment.status.value} and cannot be verified"
            )

        result = await self.gateway.verify_payment(order_id, payment_id)
        payment.gateway_payment_id = result.get("payment_id") or payment_id

        if not result["verified"]:
            message = f"Payment not confirmed by gateway (status: {result.get('status')})"
            self._mark_failed(payment, league, message)
            await self.db.flush()
            raise PaymentVerificationError(message)

        if result.get("amount") is not None and result["amount"] != payment.amount_subunits:
            await self._flag_reconciliation(
                payment,
                league,
                f"Captured amount {convert_from_smallest_unit(result['amount'], payment.currency)} "
                f"does not match charged total {payment.total_amount}",
            )

        notes = payment.notes or {}
        snapshot = await self.pricing.create_tier_snapshot(
            UUID(notes["tier_id"]),
            notes["duration_days"],
            notes["estimated_participants"],
        )

        if snapshot is None:
            await self._flag_reconciliation(payment, league, "Tier snapshot could not be created after payment")

        if snapshot.pricing.total != payment.total_amount:
            await self._flag_reconciliation(
                payment,
                league,
                f"Snapshot total {snapshot.pricing.total} does not match charged total {payment.total_amount}",
            )

        league.tier_snapshot = snapshot.model_dump(mode="json")
        league.status = self._initial_status(league)

        payment.status = PaymentStatus.COMPLETED
        payment.completed_at = self.clock()
        payment.failure_message = None
        await self.db.flush()

        league_payments_total.labels(status="completed").inc()
        league_payment_amount_total.labels(currency=payment.currency).inc(payment.amount_subunits)
        logger.info(
            "payment_verified",
            order_id=order_id,
            payment_id=payment.gateway_payment_id,
            league_id=str(league.id),
            league_status=league.status.value,
            total=str(payment.total_amount),
        )

        return payment, league

    async def cancel_checkout(self, order_id: str, user_id: str | None = None) -> Payment:
        """
        Abandon a checkout before payment.

        Cancels the gateway order, marks the payment cancelled and returns the
        league to draft. Never creates a snapshot.

        Raises:
            PaymentNotFoundError: If no payment exists for the order
            InvalidStateTransitionError: If the payment already went through, or the
                gateway has not confirmed the cancellation
        """
        payment = await self.get_payment_by_order(order_id, user_id)

        if payment.status == PaymentStatus.CANCELLED:
            return payment

        if payment.status not in VERIFIABLE_STATUSES:
            raise InvalidStateTransitionError(
                f"Payment for order {order_id} is {payment.status.value} and cannot be cancelled"
            )

        result = await self.gateway.cancel_order(order_id)
        gateway_status = result.get("status")
        if gateway_status == "succeeded":
            raise InvalidStateTransitionError(
                f"Payment for order {order_id} was already captured; verify it instead"
            )
        if gateway_status != "canceled":
            # processing, requires_capture: money may still arrive
            logger.warning("checkout_cancel_not_confirmed", order_id=order_id, gateway_status=gateway_status)
            raise InvalidStateTransitionError(
                f"Payment for order {order_id} is {gateway_status} at the gateway and cannot be cancelled yet"
            )

        league = await self._payment_league(payment)
        self._mark_cancelled(payment, league, "Checkout cancelled by user")
        await self.db.flush()

        return payment

    async def handle_gateway_event(self, event_type: str, payment_intent: dict[str, Any]) -> str:
        """
        Apply a verified gateway webhook event.

        Args:
            event_type: Gateway event type
            payment_intent: Event payload object

        Returns:
            Outcome label for the webhook response
        """
        order_id = payment_intent["id"]

        try:
            payment = await self.get_payment_by_order(order_id)
        except PaymentNotFoundError:
            logger.warning("gateway_event_unknown_order", event_type=event_type, order_id=order_id)
            return "ignored"

        if event_type == "payment_intent.succeeded":
            try:
                await self.verify_payment(order_id, payment_intent.get("latest_charge"))
            except PaymentVerificationError as e:
                logger.warning("gateway_event_verification_failed", order_id=order_id, error=str(e))
                return "failed"
            except InvalidStateTransitionError as e:
                # Captured after the checkout was closed; needs a refund or manual activation
                logger.critical("gateway_event_payment_after_close", order_id=order_id, error=str(e))
                payment_reconciliation_failures_total.inc()
                return "reconciliation_required"
            return "completed"

        if payment.status not in VERIFIABLE_STATUSES:
            logger.info(
                "gateway_event_ignored",
                event_type=event_type,
                order_id=order_id,
                payment_status=payment.status.value,
            )
            return "ignored"

        league = await self._payment_league(payment)

        if event_type == "payment_intent.payment_failed":
            error = payment_intent.get("last_payment_error") or {}
            self._mark_failed(payment, league, error.get("message") or "Payment failed at gateway")
            await self.db.flush()
            return "failed"

        if event_type == "payment_intent.canceled":
            self._mark_cancelled(payment, league, "Payment cancelled at gateway")
            await self.db.flush()
            return "cancelled"

        logger.info("gateway_event_unhandled", event_type=event_type, order_id=order_id)
        return "ignored"

    async def cleanup_abandoned_payments(self, older_than_hours: int | None = None) -> int:
        """
        Expire checkouts that were never paid.

        Pending payments older than the cutoff are cancelled at the gateway and
        locally; their leagues, if still waiting for payment, become abandoned.

        Args:
            older_than_hours: Age cutoff (defaults to settings.abandoned_payment_hours)

        Returns:
            Number of payments cleaned up
        """
        hours = older_than_hours or settings.abandoned_payment_hours
        cutoff = self.clock() - timedelta(hours=hours)

        result = await self.db.execute(
            select(Payment)
            .where(Payment.status == PaymentStatus.PENDING, Payment.created_at < cutoff)
            .order_by(Payment.created_at.asc())
        )
        payments = list(result.scalars().all())

        logger.info("abandoned_payment_cleanup_started", candidates=len(payments), cutoff=cutoff.isoformat())

        cleaned = 0
        for payment in payments:
            try:
                order = await self.gateway.cancel_order(payment.gateway_order_id)
            except Exception as e:
                logger.exception(
                    "abandoned_payment_cancel_error",
                    order_id=payment.gateway_order_id,
                    exc_info=e,
                )
                continue

            if order.get("status") != "canceled":
                # Captured or still settling; leave it for verification or the next run
                logger.warning(
                    "abandoned_payment_not_cancelled",
                    order_id=payment.gateway_order_id,
                    payment_id=str(payment.id),
                    gateway_status=order.get("status"),
                )
                continue

            payment.status = PaymentStatus.CANCELLED
            payment.failure_message = f"Checkout abandoned for more than {hours} hours"

            if payment.league_id is not None:
                league = await self.db.get(League, payment.league_id)
                if league is not None and league.status == LeagueStatus.PENDING_PAYMENT:
                    league.status = LeagueStatus.ABANDONED

            cleaned += 1

        await self.db.flush()

        abandoned_payments_cleaned_total.inc(cleaned)
        logger.info("abandoned_payment_cleanup_completed", cleaned_count=cleaned)

        return cleaned

    async def _payment_league(self, payment: Payment) -> League:
        league = await self.db.get(League, payment.league_id) if payment.league_id else None
        if league is None:
            raise LeagueNotFoundError(f"League for order {payment.gateway_order_id} not found")
        return league

    def _initial_status(self, league: League) -> LeagueStatus:
        """Scheduled if the league starts after today, otherwise active."""
        if league.start_date > self.clock().date():
            return LeagueStatus.SCHEDULED
        return LeagueStatus.ACTIVE

    def _mark_failed(self, payment: Payment, league: League, message: str) -> None:
        payment.status = PaymentStatus.FAILED
        payment.failure_message = message
        if league.status == LeagueStatus.PENDING_PAYMENT:
            league.status = LeagueStatus.DRAFT

        league_payments_total.labels(status="failed").inc()
        logger.warning(
            "payment_failed",
            order_id=payment.gateway_order_id,
            league_id=str(league.id),
            reason=message,
        )

    def _mark_cancelled(self, payment: Payment, league: League, message: str) -> None:
        payment.status = PaymentStatus.CANCELLED
        payment.failure_message = message
        if league.status == LeagueStatus.PENDING_PAYMENT:
            league.status = LeagueStatus.DRAFT

        league_payments_total.labels(status="cancelled").inc()
        logger.info(
            "checkout_cancelled",
            order_id=payment.gateway_order_id,
            league_id=str(league.id),
            reason=message,
        )

    async def _flag_reconciliation(self, payment: Payment, league: League, reason: str) -> None:
        """Record a captured payment whose league could not be activated, then raise."""
        payment.status = PaymentStatus.COMPLETED
        payment.completed_at = self.clock()
        payment.failure_message = reason
        await self.db.flush()

        payment_reconciliation_failures_total.inc()
        logger.critical(
            "tier_snapshot_reconciliation_failed",
            order_id=payment.gateway_order_id,
            payment_id=payment.gateway_payment_id,
            league_id=str(league.id),
            league_status=league.status.value,
            total=str(payment.total_amount),
            reason=reason,
        )

        raise ReconciliationRequiredError(reason)
