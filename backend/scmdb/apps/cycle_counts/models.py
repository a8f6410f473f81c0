from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Enum as SAEnum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from scmdb.database import Base
from scmdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CountTypeEnum(str, enum.Enum):
    FULL = "full"
    ABC_BASED = "abc_based"
    RANDOM = "random"
    ZONE = "zone"


class CycleCount(Base):
    __tablename__ = "cycle_counts"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="scheduled", index=True)
    count_type = Column(
        SAEnum(CountTypeEnum, name="cycle_count_type", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CountTypeEnum.FULL,
    )
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    zone = Column(String(64), nullable=True)
    scheduled_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    adjustments_applied_at = Column(DateTime(timezone=True), nullable=True)
    adjustments_applied_by_id = Column(String(64), nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    lines = relationship(
        "CycleCountLine",
        back_populates="cycle_count",
        cascade="all, delete-orphan",
        order_by="CycleCountLine.line_number",
        lazy="selectin",
    )


class CycleCountLine(Base):
    __tablename__ = "cycle_count_lines"

    id = Column(Integer, primary_key=True, index=True)
    cycle_count_id = Column(String(36), ForeignKey("cycle_counts.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    expected_qty = Column(Numeric(18, 4), nullable=False, default=0)
    counted_qty = Column(Numeric(18, 4), nullable=True)
    variance_qty = Column(Numeric(18, 4), nullable=True)
    variance_percent = Column(Numeric(9, 2), nullable=True)
    status = Column(String(16), nullable=False, default="pending")
    counted_by_id = Column(String(64), nullable=True)
    counted_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(String(255), nullable=True)

    cycle_count = relationship("CycleCount", back_populates="lines")
