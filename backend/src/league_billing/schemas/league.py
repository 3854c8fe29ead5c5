"""Pydantic schemas for league checkout and payment verification."""
from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from league_billing.models.league import LeagueStatus
from league_billing.models.payment import PaymentStatus
from league_billing.schemas.pricing import PriceBreakdown, TierValidationResult
from league_billing.schemas.tier import Money

# Participants assumed per team when the host gives no explicit estimate
DEFAULT_MEMBERS_PER_TEAM = 5


class LeagueCreate(BaseModel):
    """Schema for starting a paid league checkout.

    Examples:
        ```json
        {
            "league_name": "Spring Step Challenge",
            "start_date": "2026-11-01",
            "end_date": "2026-11-30",
            "tier_id": "6f1c2f1e-8d8a-4c4e-9b1f-3f7f1a2b9c10",
            "num_teams": 4,
            "max_participants": 40
        }
        ```
    """

    league_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    start_date: date
    end_date: date
    tier_id: UUID
    num_teams: int = Field(default=4, ge=1, le=1000)
    max_participants: int | None = Field(default=None, ge=1, le=10000)
    estimated_participants: int | None = Field(default=None, ge=1, le=10000)
    rest_days: int = Field(default=0, ge=0)
    is_public: bool = False
    is_exclusive: bool = False

    @model_validator(mode="after")
    def check_date_range(self) -> "LeagueCreate":
        """Reject leagues that end before they start."""
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    @property
    def duration_days(self) -> int:
        """Inclusive number of days between start and end date."""
        return (self.end_date - self.start_date).days + 1

    @property
    def participant_estimate(self) -> int:
        """Participant count used for pricing."""
        if self.estimated_participants:
            return self.estimated_participants
        if self.max_participants:
            return self.max_participants
        return self.num_teams * DEFAULT_MEMBERS_PER_TEAM


class League(BaseModel):
    """Schema for returning league data."""

    id: UUID
    name: str
    description: str | None
    start_date: date
    end_date: date
    tier_id: UUID
    num_teams: int
    max_participants: int | None
    rest_days: int
    is_public: bool
    is_exclusive: bool
    created_by: str
    status: LeagueStatus
    tier_snapshot: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CheckoutResponse(BaseModel):
    """Gateway order details handed to the checkout client."""

    league_id: UUID
    order_id: str
    amount: int = Field(..., description="Amount in the currency's lowest subunit")
    currency: str
    client_secret: str | None = None
    publishable_key: str
    price_breakdown: PriceBreakdown
    validation: TierValidationResult


class PaymentVerifyRequest(BaseModel):
    """Client callback after the gateway reports a completed payment."""

    order_id: str = Field(..., min_length=1)
    payment_id: str | None = Field(default=None, description="Gateway charge/payment identifier")


class Payment(BaseModel):
    """Schema for returning payment data."""

    id: UUID
    user_id: str
    league_id: UUID | None
    gateway_order_id: str
    gateway_payment_id: str | None
    status: PaymentStatus
    base_amount: Money
    platform_fee: Money
    gst_amount: Money
    total_amount: Money
    amount_subunits: int
    currency: str
    failure_message: str | None = None
    completed_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentVerifyResponse(BaseModel):
    """Result of a verified payment."""

    success: bool = True
    payment: Payment
    league: League


class CleanupResult(BaseModel):
    """Result of an abandoned-payment cleanup run."""

    success: bool = True
    cleaned_count: int
    message: str
