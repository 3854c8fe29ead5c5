"""League model for hosted fitness leagues."""
from sqlalchemy import Boolean, CheckConstraint, Column, Date, Enum as SQLEnum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
import enum

from league_billing.models.base import Base, NullableJSONType, enum_values


class LeagueStatus(enum.Enum):
    """League lifecycle status."""

    DRAFT = "draft"
    PENDING_PAYMENT = "pending_payment"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ABANDONED = "abandoned"


# Statuses that require a locked-in tier snapshot
PAID_STATUSES = (LeagueStatus.SCHEDULED, LeagueStatus.ACTIVE, LeagueStatus.COMPLETED)


class League(Base):
    """
    A time-boxed competitive league purchased on a tier.

    tier_snapshot is written once, when payment is verified, and is the
    authoritative record of the terms and price the league was sold at.
    """

    __tablename__ = "leagues"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_leagues_date_range"),
        CheckConstraint(
            "status NOT IN ('scheduled', 'active', 'completed') OR tier_snapshot IS NOT NULL",
            name="ck_leagues_paid_has_snapshot",
        ),
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    tier_id = Column(Uuid(as_uuid=True), ForeignKey("league_tiers.id"), nullable=False, index=True)
    num_teams = Column(Integer, nullable=False, default=4)
    max_participants = Column(Integer, nullable=True)
    rest_days = Column(Integer, nullable=False, default=0)
    is_public = Column(Boolean, nullable=False, default=False)
    is_exclusive = Column(Boolean, nullable=False, default=False)
    created_by = Column(String, nullable=False, index=True)
    status = Column(SQLEnum(LeagueStatus, values_callable=enum_values), nullable=False, default=LeagueStatus.DRAFT, index=True)
    tier_snapshot = Column(NullableJSONType, nullable=True)

    # Relationships
    tier = relationship("LeagueTier", back_populates="leagues", lazy="raise")
    payments = relationship("Payment", back_populates="league", lazy="raise", passive_deletes=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<League(id={self.id}, name={self.name}, status={self.status.value})>"
