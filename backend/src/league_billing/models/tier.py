"""League tier and pricing configuration models."""
from sqlalchemy import Boolean, Column, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
import enum

from league_billing.models.base import Base, JSONType, enum_values


class PricingType(enum.Enum):
    """How a tier's price is derived."""

    FIXED = "fixed"  # One price regardless of duration/participants
    DYNAMIC = "dynamic"  # base_fee + days * per_day_rate + participants * per_participant_rate


class Pricing(Base):
    """
    Monetary rules for a league tier.

    Fixed tiers only use fixed_price; dynamic tiers only use the three rate
    components. gst_percentage applies to both.
    """

    __tablename__ = "pricing"

    tier_name = Column(String(50), nullable=False)
    pricing_type = Column(SQLEnum(PricingType, values_callable=enum_values), nullable=False)
    fixed_price = Column(Numeric(12, 2), nullable=True)
    base_fee = Column(Numeric(12, 2), nullable=False, default=0)
    per_day_rate = Column(Numeric(12, 2), nullable=False, default=0)
    per_participant_rate = Column(Numeric(12, 2), nullable=False, default=0)
    gst_percentage = Column(Numeric(5, 2), nullable=False, default=18)
    config = Column(JSONType, nullable=False, default=dict)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)

    tier = relationship("LeagueTier", back_populates="pricing", uselist=False, passive_deletes=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Pricing(id={self.id}, tier_name={self.tier_name}, type={self.pricing_type.value})>"


class LeagueTier(Base):
    """
    Purchasable league plan with duration/participant limits.

    Inactive tiers are hidden from new leagues but stay valid for leagues
    that already reference them.
    """

    __tablename__ = "league_tiers"

    name = Column(String(50), nullable=False, unique=True)
    display_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    max_days = Column(Integer, nullable=False)
    max_participants = Column(Integer, nullable=False)
    pricing_id = Column(Uuid(as_uuid=True), ForeignKey("pricing.id"), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    features = Column(JSONType, nullable=False, default=list)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)

    # Relationships
    pricing = relationship("Pricing", back_populates="tier", lazy="selectin")
    leagues = relationship("League", back_populates="tier", lazy="raise", passive_deletes=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<LeagueTier(id={self.id}, name={self.name}, active={self.is_active})>"
