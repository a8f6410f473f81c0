from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from scmdb.database import Base
from scmdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoodsReceipt(Base):
    __tablename__ = "goods_receipts"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="draft", index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    supplier_name = Column(String(255), nullable=True)
    po_number = Column(String(64), nullable=True, index=True)
    delivery_note = Column(String(64), nullable=True)
    receive_date = Column(Date, nullable=True)
    qc_required = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    qc_approved_by_id = Column(String(64), nullable=True)
    qc_approved_at = Column(DateTime(timezone=True), nullable=True)
    received_by_id = Column(String(64), nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=True)
    stored_by_id = Column(String(64), nullable=True)
    stored_at = Column(DateTime(timezone=True), nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    lines = relationship(
        "GoodsReceiptLine",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="GoodsReceiptLine.line_number",
        lazy="selectin",
    )


class GoodsReceiptLine(Base):
    __tablename__ = "goods_receipt_lines"

    id = Column(Integer, primary_key=True, index=True)
    receipt_id = Column(String(36), ForeignKey("goods_receipts.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    qty_received = Column(Numeric(18, 4), nullable=False)
    qty_damaged = Column(Numeric(18, 4), nullable=False, default=0)
    unit_cost = Column(Numeric(18, 4), nullable=True)
    condition = Column(String(16), nullable=False, default="good")

    receipt = relationship("GoodsReceipt", back_populates="lines")
