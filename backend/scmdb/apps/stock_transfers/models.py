from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from scmdb.database import Base
from scmdb.utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockTransfer(Base):
    __tablename__ = "stock_transfers"

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(String(32), nullable=False, default="draft", index=True)
    transfer_type = Column(String(32), nullable=False, default="warehouse_to_warehouse")
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    transfer_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    source_surplus_id = Column(String(36), ForeignKey("surplus_items.id", ondelete="SET NULL"), nullable=True, index=True)

    approved_by_id = Column(String(64), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    shipped_by_id = Column(String(64), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    received_by_id = Column(String(64), nullable=True)
    received_at = Column(DateTime(timezone=True), nullable=True)

    created_by_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    lines = relationship(
        "StockTransferLine",
        back_populates="transfer",
        cascade="all, delete-orphan",
        order_by="StockTransferLine.line_number",
        lazy="selectin",
    )


class StockTransferLine(Base):
    __tablename__ = "stock_transfer_lines"
    id = Column(Integer, primary_key=True, index=True)
    transfer_id = Column(String(36), ForeignKey("stock_transfers.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Numeric(18, 4), nullable=False)
    condition = Column(String(16), nullable=False, default="good")
    unit_cost = Column(Numeric(18, 4), nullable=True)

    transfer = relationship("StockTransfer", back_populates="lines")
