"""Audit trail for tier and pricing edits made through the admin API."""
from enum import Enum
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from league_billing.models.audit_log import AuditLog

logger = structlog.get_logger(__name__)

Changes = dict[str, dict[str, Any]]


def _audit_value(value: Any) -> Any:
    """JSON-safe form of a column value; Decimals and dates become strings."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_audit_value(item) for item in value]
    return str(value)


def diff_fields(entity: Any, updates: dict[str, Any]) -> Changes:
    """``{field: {"old": ..., "new": ...}}`` for the updates that change ``entity``."""
    return {
        field: {"old": _audit_value(getattr(entity, field, None)), "new": _audit_value(new)}
        for field, new in updates.items()
        if getattr(entity, field, None) != new
    }


async def log_audit(
    db: AsyncSession,
    entity_type: str,
    entity_id: UUID,
    action: str,
    user_id: Optional[str] = None,
    changes: Optional[Changes] = None,
    request_id: Optional[str] = None,
) -> AuditLog:
    """
    Add an audit row for ``action`` (create, update, toggle, delete) on a tier or pricing row.

    Without an explicit ``request_id`` the id bound by the logging middleware
    is used, so audit rows can be matched to request logs.
    """
    entry = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        user_id=user_id,
        changes=changes or {},
        request_id=request_id or structlog.contextvars.get_contextvars().get("request_id"),
    )
    db.add(entry)
    await db.flush()

    logger.info(
        "audit_recorded",
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        fields=sorted(entry.changes),
    )
    return entry
