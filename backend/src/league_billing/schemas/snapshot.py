"""Pydantic schema for the tier snapshot stored on a league."""
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from league_billing.schemas.tier import Money


class SnapshotPricing(BaseModel):
    """Pricing fields copied from the tier plus the amounts computed for the league."""

    model_config = ConfigDict(frozen=True)

    pricing_type: str
    fixed_price: Money | None = None
    base_fee: Money | None = None
    per_day_rate: Money | None = None
    per_participant_rate: Money | None = None
    gst_percentage: Money

    subtotal: Money
    gst_amount: Money
    total: Money
    currency: str
    breakdown_details: list[str] = Field(default_factory=list)


class SnapshotLeagueConfig(BaseModel):
    """League configuration the price was computed for."""

    model_config = ConfigDict(frozen=True)

    duration_days: int
    estimated_participants: int


class TierSnapshot(BaseModel):
    """Immutable record of what a league was sold, independent of later tier edits."""

    model_config = ConfigDict(frozen=True)

    tier_id: UUID
    tier_name: str
    display_name: str
    description: str | None = None
    max_days: int
    max_participants: int
    features: list[str] = Field(default_factory=list)
    pricing: SnapshotPricing
    league_config: SnapshotLeagueConfig
    snapshot_created_at: str
