"""Pydantic schemas for league tiers and their pricing configuration."""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Money is kept as Decimal in Python and rendered as a JSON number
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class FixedPricing(BaseModel):
    """Single price regardless of duration or participant count."""

    model_config = ConfigDict(frozen=True)

    pricing_type: Literal["fixed"] = "fixed"
    id: UUID | None = None
    tier_name: str = ""
    fixed_price: Money = Field(default=Decimal("0"), ge=0)
    gst_percentage: Money = Field(default=Decimal("18"), ge=0, le=100)
    config: dict[str, Any] = Field(default_factory=dict)


class DynamicPricing(BaseModel):
    """Usage-based price: base fee plus per-day and per-participant rates."""

    model_config = ConfigDict(frozen=True)

    pricing_type: Literal["dynamic"] = "dynamic"
    id: UUID | None = None
    tier_name: str = ""
    base_fee: Money = Field(default=Decimal("0"), ge=0)
    per_day_rate: Money = Field(default=Decimal("0"), ge=0)
    per_participant_rate: Money = Field(default=Decimal("0"), ge=0)
    gst_percentage: Money = Field(default=Decimal("18"), ge=0, le=100)
    config: dict[str, Any] = Field(default_factory=dict)


PricingConfig = Annotated[Union[FixedPricing, DynamicPricing], Field(discriminator="pricing_type")]


class TierConfig(BaseModel):
    """Active tier joined with its pricing configuration."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    display_name: str
    description: str | None = None
    max_days: int = Field(..., gt=0)
    max_participants: int = Field(..., gt=0)
    pricing_id: UUID | None = None
    is_active: bool = True
    is_featured: bool = False
    display_order: int = 0
    features: list[str] = Field(default_factory=list)
    pricing: PricingConfig


class TierCreate(BaseModel):
    """Schema for creating a tier together with its pricing.

    Examples:
        Fixed tier:
            ```json
            {
                "name": "starter",
                "display_name": "Starter",
                "max_days": 30,
                "max_participants": 100,
                "pricing_type": "fixed",
                "fixed_price": 999,
                "gst_percentage": 18
            }
            ```

        Dynamic tier:
            ```json
            {
                "name": "pro",
                "display_name": "Pro",
                "max_days": 90,
                "max_participants": 200,
                "pricing_type": "dynamic",
                "base_fee": 100,
                "per_day_rate": 5,
                "per_participant_rate": 2
            }
            ```
    """

    name: str = Field(..., min_length=2, max_length=50, pattern=r"^[a-z0-9_]+$", description="Machine name")
    display_name: str = Field(..., min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    max_days: int = Field(..., ge=1, le=365)
    max_participants: int = Field(..., ge=1, le=10000)
    pricing_type: Literal["fixed", "dynamic"]
    fixed_price: Decimal | None = Field(default=None, ge=0)
    base_fee: Decimal | None = Field(default=None, ge=0)
    per_day_rate: Decimal | None = Field(default=None, ge=0)
    per_participant_rate: Decimal | None = Field(default=None, ge=0)
    gst_percentage: Decimal = Field(default=Decimal("18"), ge=0, le=100)
    display_order: int = Field(default=0, ge=0)
    is_featured: bool = False
    features: list[str] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "name": "starter",
                    "display_name": "Starter",
                    "max_days": 30,
                    "max_participants": 100,
                    "pricing_type": "fixed",
                    "fixed_price": 999,
                    "gst_percentage": 18,
                },
                {
                    "name": "pro",
                    "display_name": "Pro",
                    "max_days": 90,
                    "max_participants": 200,
                    "pricing_type": "dynamic",
                    "base_fee": 100,
                    "per_day_rate": 5,
                    "per_participant_rate": 2,
                },
            ]
        }
    )


class TierUpdate(BaseModel):
    """Schema for updating a tier (all fields optional)."""

    name: str | None = Field(default=None, min_length=2, max_length=50, pattern=r"^[a-z0-9_]+$")
    display_name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    max_days: int | None = Field(default=None, ge=1, le=365)
    max_participants: int | None = Field(default=None, ge=1, le=10000)
    display_order: int | None = Field(default=None, ge=0)
    is_featured: bool | None = None
    features: list[str] | None = None
    is_active: bool | None = None
    pricing_type: Literal["fixed", "dynamic"] | None = None
    fixed_price: Decimal | None = Field(default=None, ge=0)
    base_fee: Decimal | None = Field(default=None, ge=0)
    per_day_rate: Decimal | None = Field(default=None, ge=0)
    per_participant_rate: Decimal | None = Field(default=None, ge=0)
    gst_percentage: Decimal | None = Field(default=None, ge=0, le=100)


class PricingDetail(BaseModel):
    """Raw pricing row as shown to platform admins."""

    id: UUID
    tier_name: str
    pricing_type: Literal["fixed", "dynamic"]
    fixed_price: Money | None = None
    base_fee: Money
    per_day_rate: Money
    per_participant_rate: Money
    gst_percentage: Money


class TierAdmin(BaseModel):
    """Schema for returning tier data to platform admins."""

    id: UUID
    name: str
    display_name: str
    description: str | None
    max_days: int
    max_participants: int
    pricing_id: UUID
    is_active: bool
    is_featured: bool
    display_order: int
    features: list[str]
    pricing: PricingDetail
    league_count: int = 0
    created_at: datetime
    updated_at: datetime


class TierAdminList(BaseModel):
    """Schema for the admin tier table."""

    items: list[TierAdmin]
    total: int


class ActiveTierList(BaseModel):
    """Schema for tiers offered to league hosts."""

    tiers: list[TierConfig]
    message: str | None = None
