from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from scmdb.database import Base
from scmdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ToolConditionEnum(str, enum.Enum):
    GOOD = "good"
    DAMAGED = "damaged"


class Tool(Base):
    __tablename__ = "tools"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="good", index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(64), nullable=True, index=True)
    serial_number = Column(String(128), nullable=True, unique=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="SET NULL"), nullable=True, index=True)
    purchase_date = Column(Date, nullable=True)
    warranty_expiry = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    issues = relationship("ToolIssue", back_populates="tool", order_by="ToolIssue.issued_at")


class ToolIssue(Base):
    __tablename__ = "tool_issues"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="issued", index=True)
    tool_id = Column(String(36), ForeignKey("tools.id", ondelete="RESTRICT"), nullable=False, index=True)
    issued_to_id = Column(String(64), nullable=False, index=True)
    issued_by_id = Column(String(64), nullable=True)
    issued_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    expected_return_date = Column(Date, nullable=True)
    returned_at = Column(DateTime(timezone=True), nullable=True)
    return_condition = Column(
        SAEnum(ToolConditionEnum, name="tool_condition", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    return_verified_by_id = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    tool = relationship("Tool", back_populates="issues")
