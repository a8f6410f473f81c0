from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Enum as SAEnum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from scmdb.database import Base
from scmdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReservationStatusEnum(str, enum.Enum):
    NONE = "none"
    RESERVED = "reserved"
    RELEASED = "released"


class MaterialIssue(Base):
    __tablename__ = "material_issues"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="draft", index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    location_of_work = Column(String(255), nullable=True)
    purpose = Column(Text, nullable=True)
    required_date = Column(Date, nullable=True)
    reservation_status = Column(
        SAEnum(
            ReservationStatusEnum,
            name="reservation_status_enum",
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=ReservationStatusEnum.NONE,
    )

    approved_by_id = Column(String(64), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    qc_signed_by_id = Column(String(64), nullable=True)
    qc_signed_at = Column(DateTime(timezone=True), nullable=True)
    issued_by_id = Column(String(64), nullable=True)
    issued_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    # gate_passes.material_issue_id holds the foreign key for this link.
    gate_pass_id = Column(String(36), nullable=True, index=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    lines = relationship(
        "MaterialIssueLine",
        back_populates="issue",
        cascade="all, delete-orphan",
        order_by="MaterialIssueLine.line_number",
        lazy="selectin",
    )


class MaterialIssueLine(Base):
    __tablename__ = "material_issue_lines"

    id = Column(Integer, primary_key=True, index=True)
    issue_id = Column(String(36), ForeignKey("material_issues.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    qty_requested = Column(Numeric(18, 4), nullable=False)
    qty_approved = Column(Numeric(18, 4), nullable=True)
    qty_issued = Column(Numeric(18, 4), nullable=True)
    issued_cost = Column(Numeric(18, 4), nullable=True)
    notes = Column(String(255), nullable=True)

    issue = relationship("MaterialIssue", back_populates="lines")
