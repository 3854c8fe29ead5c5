"""League checkout and payment endpoints."""
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.adapters.stripe_adapter import StripeAdapter
from league_billing.api.deps import get_current_user, get_db, get_payment_gateway
from league_billing.auth.rbac import Role, is_platform_admin, require_roles
from league_billing.exceptions import (
    InvalidStateTransitionError,
    LeagueNotFoundError,
    PaymentNotFoundError,
    PaymentVerificationError,
    ReconciliationRequiredError,
    TierValidationError,
)
from league_billing.schemas.error import REMEDIATION_HINTS, ErrorCode
from league_billing.schemas.league import (
    CheckoutResponse,
    League,
    LeagueCreate,
    Payment,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)
from league_billing.services.league_checkout_service import LeagueCheckoutService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Leagues"])


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")


@router.post("/leagues/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@require_roles(Role.HOST)
async def start_checkout(
    league_data: LeagueCreate,
    db: AsyncSession = Depends(get_db),
    gateway: StripeAdapter = Depends(get_payment_gateway),
    current_user: dict = Depends(get_current_user),
) -> CheckoutResponse:
    """
    Create a league and open a payment order for its tier price.

    The price is computed on the server from the tier configuration; the
    response carries the gateway order for the checkout client. The league
    stays in pending_payment until the payment is verified.
    """
    service = LeagueCheckoutService(db, gateway=gateway)

    try:
        checkout = await service.start_checkout(current_user["sub"], league_data)
        await db.commit()
    except TierValidationError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Tier validation failed",
                "errors": e.errors,
                "warnings": e.warnings,
                "remediation": REMEDIATION_HINTS[ErrorCode.TIER_LIMIT_EXCEEDED],
            },
        ) from e

    return checkout


@router.post("/payments/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    request: Request,
    verify_data: PaymentVerifyRequest,
    db: AsyncSession = Depends(get_db),
    gateway: StripeAdapter = Depends(get_payment_gateway),
    current_user: dict = Depends(get_current_user),
) -> PaymentVerifyResponse:
    """
    Verify a payment and activate its league.

    On success the league carries its tier snapshot and is scheduled (future
    start date) or active. Calling this again for a verified payment returns
    the same result.
    """
    service = LeagueCheckoutService(db, gateway=gateway)

    try:
        payment, league = await service.verify_payment(
            verify_data.order_id,
            verify_data.payment_id,
            user_id=current_user["sub"],
        )
        await db.commit()
    except (PaymentNotFoundError, LeagueNotFoundError) as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except InvalidStateTransitionError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except PaymentVerificationError as e:
        # Keep the failed payment and the league's return to draft
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": str(e),
                "remediation": REMEDIATION_HINTS[ErrorCode.PAYMENT_VERIFICATION_FAILED],
            },
        ) from e
    except ReconciliationRequiredError as e:
        # Keep the captured payment on record for support
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": "Payment received but the league could not be activated",
                "remediation": REMEDIATION_HINTS[ErrorCode.RECONCILIATION_REQUIRED],
                "request_id": _request_id(request),
            },
        ) from e

    return PaymentVerifyResponse(
        payment=Payment.model_validate(payment),
        league=League.model_validate(league),
    )


@router.post("/payments/{order_id}/cancel", response_model=Payment)
async def cancel_checkout(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    gateway: StripeAdapter = Depends(get_payment_gateway),
    current_user: dict = Depends(get_current_user),
) -> Payment:
    """
    Abandon a checkout before paying.

    The gateway order is cancelled and the league returns to draft.
    """
    service = LeagueCheckoutService(db, gateway=gateway)

    try:
        payment = await service.cancel_checkout(order_id, user_id=current_user["sub"])
        await db.commit()
    except (PaymentNotFoundError, LeagueNotFoundError) as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except InvalidStateTransitionError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return Payment.model_validate(payment)


@router.get("/leagues/{league_id}", response_model=League)
async def get_league(
    league_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> League:
    """
    Get a league with its tier snapshot.

    Private leagues are visible to their host and to platform admins.
    """
    service = LeagueCheckoutService(db)

    try:
        league = await service.get_league(
            league_id,
            user_id=current_user.get("sub"),
            include_private=is_platform_admin(current_user),
        )
    except LeagueNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    return League.model_validate(league)
