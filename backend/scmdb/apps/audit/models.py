from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, JSON, String, desc

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(Base):
    """
    Append-only audit trail for document transitions, edits and ledger batches.
    """

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_entity", "entity_type", "entity_id"),
        Index("ix_audit_events_action", "action"),
        Index("ix_audit_events_time_desc", desc("occurred_at")),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    entity_type = Column(String(64), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False, index=True)
    action = Column(String(64), nullable=False)
    actor_id = Column(String(64), nullable=True, index=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    correlation_id = Column(String(64), nullable=True, index=True)
    metadata_json = Column("metadata", JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditEvent id={self.id} entity={self.entity_type}:{self.entity_id} action={self.action}>"
