"""Pydantic schemas for price calculation, validation and preview."""
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from league_billing.schemas.tier import Money


class PriceCalculationInput(BaseModel):
    """Inputs to a price calculation.

    Bounds are deliberately absent here: the validator re-checks them and
    reports violations as errors rather than raising.
    """

    tier_id: UUID
    duration_days: int
    estimated_participants: int


class PricePreviewRequest(PriceCalculationInput):
    """Price preview request body with input-layer bounds."""

    duration_days: int = Field(..., ge=1, le=365, description="League duration in days")
    estimated_participants: int = Field(..., ge=1, le=10000, description="Estimated number of participants")


class TierValidationResult(BaseModel):
    """Outcome of checking a configuration against a tier's limits."""

    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PriceBreakdown(BaseModel):
    """Computed price for a tier and (duration, participants) pair."""

    tier_id: UUID
    tier_name: str
    pricing_type: Literal["fixed", "dynamic"]

    duration_days: int
    participants: int

    # Dynamic pricing components
    base_fee: Money | None = None
    days_cost: Money | None = None
    participants_cost: Money | None = None

    subtotal: Money
    gst_amount: Money
    total: Money

    currency: str
    breakdown_details: list[str] = Field(default_factory=list)


class PricePreviewResponse(BaseModel):
    """Successful price preview."""

    success: Literal[True] = True
    price_breakdown: PriceBreakdown
    validation: TierValidationResult


class PricePreviewFailure(BaseModel):
    """Price preview rejected by tier validation."""

    success: Literal[False] = False
    error: str
    validation: TierValidationResult | None = None
