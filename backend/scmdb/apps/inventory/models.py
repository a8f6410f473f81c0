from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from scmdb.database import Base

QTY = Numeric(18, 4)
COST = Numeric(18, 4)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockMovementTypeEnum(str, enum.Enum):
    RECEIVE = "RECEIVE"
    ISSUE = "ISSUE"
    RESERVE = "RESERVE"
    RELEASE = "RELEASE"
    CONSUME = "CONSUME"
    ADJUSTMENT = "ADJUSTMENT"


class AbcClassEnum(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"


class Item(Base):
    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("item_code", name="uq_items_item_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_code = Column(String(64), nullable=False, index=True)
    description = Column(String(255), nullable=True)
    uom = Column(String(16), nullable=False, default="EA")
    abc_class = Column(SAEnum(AbcClassEnum, name="item_abc_class", native_enum=False), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Warehouse(Base):
    __tablename__ = "warehouses"
    __table_args__ = (
        UniqueConstraint("code", name="uq_warehouses_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(32), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class InventoryLevel(Base):
    """
    Current stock of one item in one warehouse.

    Written only by the ledger functions in services.py, always through a
    conditional UPDATE on `version`.
    """

    __tablename__ = "inventory_levels"
    __table_args__ = (
        UniqueConstraint("item_id", "warehouse_id", name="uq_inventory_levels_item_warehouse"),
        CheckConstraint("qty_on_hand >= 0", name="ck_inventory_levels_on_hand_non_negative"),
        CheckConstraint("qty_reserved >= 0", name="ck_inventory_levels_reserved_non_negative"),
        CheckConstraint("qty_reserved <= qty_on_hand", name="ck_inventory_levels_reserved_within_on_hand"),
        Index("ix_inventory_levels_warehouse", "warehouse_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False)
    qty_on_hand = Column(QTY, nullable=False, default=0)
    qty_reserved = Column(QTY, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=0)
    last_movement_at = Column(DateTime(timezone=True), nullable=True)
    min_level = Column(QTY, nullable=True)
    reorder_point = Column(QTY, nullable=True)
    alert_sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    item = relationship("Item", lazy="joined")
    warehouse = relationship("Warehouse", lazy="joined")


class StockMovement(Base):
    """
    Append-only history: one row per level touched by a ledger mutation.
    """

    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_item_warehouse", "item_id", "warehouse_id"),
        Index("ix_stock_movements_reference", "reference_type", "reference_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    level_id = Column(Integer, ForeignKey("inventory_levels.id", ondelete="RESTRICT"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False)
    movement_type = Column(
        SAEnum(StockMovementTypeEnum, name="stock_movement_type", native_enum=False),
        nullable=False,
        index=True,
    )
    qty_delta = Column(QTY, nullable=False, default=0)
    reserved_delta = Column(QTY, nullable=False, default=0)
    balance_after = Column(QTY, nullable=False)
    reference_type = Column(String(32), nullable=True)
    reference_id = Column(String(64), nullable=True)
    actor_id = Column(String(64), nullable=True, index=True)
    notes = Column(Text, nullable=True)
    total_cost = Column(COST, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)


class LotStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    DEPLETED = "depleted"


class InventoryLot(Base):
    """
    One receipt of stock into a level, consumed oldest first.

    The remaining quantities of a level's lots add up to its on-hand.
    """

    __tablename__ = "inventory_lots"
    __table_args__ = (
        UniqueConstraint("lot_number", name="uq_inventory_lots_lot_number"),
        CheckConstraint("qty_remaining >= 0", name="ck_inventory_lots_remaining_non_negative"),
        CheckConstraint("qty_remaining <= qty_received", name="ck_inventory_lots_remaining_within_received"),
        Index("ix_inventory_lots_fifo", "item_id", "warehouse_id", "received_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    lot_number = Column(String(32), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False)
    movement_id = Column(Integer, ForeignKey("stock_movements.id", ondelete="RESTRICT"), nullable=False, index=True)
    qty_received = Column(QTY, nullable=False)
    qty_remaining = Column(QTY, nullable=False)
    unit_cost = Column(COST, nullable=True)
    status = Column(
        SAEnum(LotStatusEnum, name="inventory_lot_status", native_enum=False),
        nullable=False,
        default=LotStatusEnum.ACTIVE,
    )
    received_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class LotConsumption(Base):
    __tablename__ = "lot_consumptions"

    id = Column(Integer, primary_key=True, index=True)
    lot_id = Column(Integer, ForeignKey("inventory_lots.id", ondelete="RESTRICT"), nullable=False, index=True)
    movement_id = Column(Integer, ForeignKey("stock_movements.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(QTY, nullable=False)
    unit_cost = Column(COST, nullable=True)
    consumed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
