"""Audit log model for tracking admin changes."""
from sqlalchemy import Column, String, Uuid

from league_billing.models.base import Base, JSONType


class AuditLog(Base):
    """
    Audit log for compliance and support.

    Tracks create/update/delete operations on tiers and pricing with user context.
    """

    __tablename__ = "audit_logs"

    entity_type = Column(String, nullable=False, index=True)  # tier, pricing, league
    entity_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    action = Column(String, nullable=False)  # create, update, delete, toggle
    user_id = Column(String, nullable=True)  # User who performed action
    changes = Column(JSONType, nullable=False, default=dict)  # {field: {old: X, new: Y}}
    request_id = Column(String, nullable=True)  # Correlation ID from request

    def __repr__(self) -> str:
        """String representation."""
        return f"<AuditLog(entity_type={self.entity_type}, entity_id={self.entity_id}, action={self.action})>"
