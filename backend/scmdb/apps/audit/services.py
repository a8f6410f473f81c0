from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models, schemas

logger = logging.getLogger(__name__)


def create_audit_event(
    db: Session,
    *,
    data: schemas.AuditEventCreate,
) -> models.AuditEvent:
    event = models.AuditEvent(
        entity_type=data.entity_type,
        entity_id=data.entity_id,
        action=data.action,
        actor_id=data.actor_id,
        before=data.before,
        after=data.after,
        correlation_id=data.correlation_id,
        metadata_json=data.metadata,
    )
    if data.occurred_at is not None:
        event.occurred_at = data.occurred_at
    db.add(event)
    db.flush()
    return event


def log_event(
    db: Session,
    *,
    actor_id: Optional[str],
    entity_type: str,
    entity_id: str,
    action: str,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    correlation_id: Optional[str] = None,
    metadata: Optional[dict] = None,
    critical: bool = False,
) -> Optional[models.AuditEvent]:
    """
    Best-effort audit event logger.

    The event is written inside a SAVEPOINT so that a failed insert only
    discards the audit row, never the surrounding business transaction.
    - For critical actions, raise on failure.
    - For non-critical actions, log warning and continue.
    """
    try:
        with db.begin_nested():
            return create_audit_event(
                db,
                data=schemas.AuditEventCreate(
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    action=action,
                    actor_id=actor_id,
                    before=before,
                    after=after,
                    correlation_id=correlation_id,
                    metadata=metadata,
                ),
            )
    except Exception:
        logger.warning(
            "Failed to log audit event",
            exc_info=True,
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "critical": critical,
            },
        )
        if critical:
            raise
        return None


def list_audit_events(
    db: Session,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[models.AuditEvent]:
    query = db.query(models.AuditEvent)
    if entity_type:
        query = query.filter(models.AuditEvent.entity_type == entity_type)
    if entity_id:
        query = query.filter(models.AuditEvent.entity_id == entity_id)
    if action:
        query = query.filter(models.AuditEvent.action == action)
    if start:
        query = query.filter(models.AuditEvent.occurred_at >= start)
    if end:
        query = query.filter(models.AuditEvent.occurred_at <= end)
    return query.order_by(models.AuditEvent.occurred_at.desc(), models.AuditEvent.id.desc()).all()
