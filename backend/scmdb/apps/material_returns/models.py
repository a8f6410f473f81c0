from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Enum as SAEnum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from scmdb.database import Base
from scmdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReturnConditionEnum(str, enum.Enum):
    GOOD = "good"
    DAMAGED = "damaged"
    REJECTED = "rejected"


class MaterialReturn(Base):
    __tablename__ = "material_returns"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="draft", index=True)
    return_type = Column(String(32), nullable=False, default="return_to_store")
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=True)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    return_date = Column(Date, nullable=True)
    reason = Column(Text, nullable=True)
    source_surplus_id = Column(String(36), ForeignKey("surplus_items.id", ondelete="SET NULL"), nullable=True, index=True)

    received_by_id = Column(String(64), nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    lines = relationship(
        "MaterialReturnLine",
        back_populates="material_return",
        cascade="all, delete-orphan",
        order_by="MaterialReturnLine.line_number",
        lazy="selectin",
    )


class MaterialReturnLine(Base):
    __tablename__ = "material_return_lines"

    id = Column(Integer, primary_key=True, index=True)
    return_id = Column(String(36), ForeignKey("material_returns.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    qty_returned = Column(Numeric(18, 4), nullable=False)
    condition = Column(
        SAEnum(ReturnConditionEnum, name="return_condition", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ReturnConditionEnum.GOOD,
    )
    notes = Column(Text, nullable=True)

    material_return = relationship("MaterialReturn", back_populates="lines")
