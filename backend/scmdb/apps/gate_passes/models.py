from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from scmdb.database import Base
from scmdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GatePass(Base):
    __tablename__ = "gate_passes"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="draft", index=True)
    pass_type = Column(String(16), nullable=False, default="outbound")
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    vehicle_number = Column(String(32), nullable=True)
    driver_name = Column(String(128), nullable=True)
    destination = Column(String(255), nullable=True)
    purpose = Column(Text, nullable=True)
    issue_date = Column(Date, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    material_issue_id = Column(String(36), ForeignKey("material_issues.id", ondelete="SET NULL"), nullable=True, index=True)

    approved_by_id = Column(String(64), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    security_officer = Column(String(128), nullable=True)
    exit_time = Column(DateTime(timezone=True), nullable=True)
    return_time = Column(DateTime(timezone=True), nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    lines = relationship(
        "GatePassItem",
        back_populates="gate_pass",
        cascade="all, delete-orphan",
        order_by="GatePassItem.line_number",
        lazy="selectin",
    )


class GatePassItem(Base):
    __tablename__ = "gate_pass_items"

    id = Column(Integer, primary_key=True, index=True)
    gate_pass_id = Column(String(36), ForeignKey("gate_passes.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Numeric(18, 4), nullable=False)
    description = Column(String(255), nullable=True)

    gate_pass = relationship("GatePass", back_populates="lines")
