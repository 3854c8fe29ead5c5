"""Payment model for league checkout transactions."""
from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship
import enum

from league_billing.models.base import Base, JSONType, enum_values


class PaymentStatus(enum.Enum):
    """Payment transaction status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentPurpose(enum.Enum):
    """What a payment is for."""

    LEAGUE_CREATION = "league_creation"
    SUBSCRIPTION = "subscription"
    OTHER = "other"


class Payment(Base):
    """
    Payment for a league tier purchase.

    notes holds the exact pricing inputs used to create the gateway order so
    that verification can re-derive the snapshot from the same inputs.
    """

    __tablename__ = "payments"

    user_id = Column(String, nullable=False, index=True)
    league_id = Column(Uuid(as_uuid=True), ForeignKey("leagues.id", ondelete="SET NULL"), nullable=True, index=True)
    purpose = Column(SQLEnum(PaymentPurpose, values_callable=enum_values), nullable=False, default=PaymentPurpose.LEAGUE_CREATION)
    gateway_order_id = Column(String, nullable=False, unique=True, index=True)
    gateway_payment_id = Column(String, nullable=True)
    status = Column(SQLEnum(PaymentStatus, values_callable=enum_values), nullable=False, default=PaymentStatus.PENDING, index=True)
    base_amount = Column(Numeric(12, 2), nullable=False)
    platform_fee = Column(Numeric(12, 2), nullable=False, default=0)
    gst_amount = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    amount_subunits = Column(Integer, nullable=False)  # Amount in paise for INR
    currency = Column(String(3), nullable=False, default="INR")
    description = Column(String, nullable=True)
    receipt = Column(String, nullable=True)
    notes = Column(JSONType, nullable=False, default=dict)
    failure_message = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    league = relationship("League", back_populates="payments", lazy="raise")

    def __repr__(self) -> str:
        """String representation."""
        return f"<Payment(id={self.id}, order={self.gateway_order_id}, status={self.status.value}, total={self.total_amount})>"
