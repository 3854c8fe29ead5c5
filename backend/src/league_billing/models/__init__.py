"""SQLAlchemy ORM models for league tier billing."""
# Import all models here to ensure they are registered with Alembic

from league_billing.models.base import Base
from league_billing.models.tier import LeagueTier, Pricing, PricingType
from league_billing.models.league import League, LeagueStatus, PAID_STATUSES
from league_billing.models.payment import Payment, PaymentPurpose, PaymentStatus
from league_billing.models.audit_log import AuditLog

__all__ = [
    "Base",
    "LeagueTier",
    "Pricing",
    "PricingType",
    "League",
    "LeagueStatus",
    "PAID_STATUSES",
    "Payment",
    "PaymentPurpose",
    "PaymentStatus",
    "AuditLog",
]
