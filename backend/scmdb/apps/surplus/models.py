from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Integer, Numeric, String, Text

from scmdb.database import Base
from scmdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SurplusDispositionEnum(str, enum.Enum):
    TRANSFER = "transfer"
    RETURN = "return"
    SELL = "sell"


class SurplusItem(Base):
    __tablename__ = "surplus_items"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="identified", index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    qty = Column(Numeric(18, 4), nullable=False)
    condition = Column(String(32), nullable=True)
    estimated_value = Column(Numeric(18, 2), nullable=True)
    description = Column(Text, nullable=True)

    disposition = Column(
        SAEnum(
            SurplusDispositionEnum,
            name="surplus_disposition",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=True,
    )
    target_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=True)
    evaluation_notes = Column(Text, nullable=True)
    evaluated_by_id = Column(String(64), nullable=True)
    evaluated_at = Column(DateTime(timezone=True), nullable=True)
    ou_head_approved_by_id = Column(String(64), nullable=True)
    ou_head_approved_at = Column(DateTime(timezone=True), nullable=True)
    scm_approved_by_id = Column(String(64), nullable=True)
    scm_approved_at = Column(DateTime(timezone=True), nullable=True)
    linked_document_type = Column(String(32), nullable=True)
    linked_document_id = Column(String(36), nullable=True, index=True)
    actioned_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
