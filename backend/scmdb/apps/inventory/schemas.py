from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from . import models


class ItemCreate(BaseModel):
    item_code: str = Field(..., min_length=1, max_length=64)
    description: Optional[str] = None
    uom: str = "EA"
    abc_class: Optional[models.AbcClassEnum] = None


class ItemRead(ItemCreate):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class WarehouseCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=32)
    name: str
    is_active: bool = True


class WarehouseRead(WarehouseCreate):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class StockMovementRequest(BaseModel):
    item_id: int
    warehouse_id: int
    quantity: Decimal = Field(..., gt=0)
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None


class StockReceiptRequest(StockMovementRequest):
    unit_cost: Optional[Decimal] = Field(default=None, ge=0)


class StockAdjustmentRequest(BaseModel):
    item_id: int
    warehouse_id: int
    quantity: Decimal = Field(..., ge=0)
    notes: Optional[str] = None


class ThresholdUpdate(BaseModel):
    item_id: int
    warehouse_id: int
    min_level: Optional[Decimal] = Field(default=None, ge=0)
    reorder_point: Optional[Decimal] = Field(default=None, ge=0)


class StockMovementRead(BaseModel):
    id: int
    level_id: int
    item_id: int
    warehouse_id: int
    movement_type: models.StockMovementTypeEnum
    qty_delta: Decimal
    reserved_delta: Decimal
    balance_after: Decimal
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    actor_id: Optional[str] = None
    notes: Optional[str] = None
    total_cost: Optional[Decimal] = None
    occurred_at: datetime

    class Config:
        from_attributes = True


class InventoryLevelRead(BaseModel):
    id: int
    item_id: int
    warehouse_id: int
    qty_on_hand: Decimal
    qty_reserved: Decimal
    version: int
    last_movement_at: Optional[datetime] = None
    min_level: Optional[Decimal] = None
    reorder_point: Optional[Decimal] = None
    alert_sent: bool

    class Config:
        from_attributes = True


class StockLevelRead(BaseModel):
    item_id: int
    warehouse_id: int
    on_hand: Decimal
    reserved: Decimal
    available: Decimal
    version: int

    class Config:
        from_attributes = True


class InventoryLotRead(BaseModel):
    id: int
    lot_number: str
    item_id: int
    warehouse_id: int
    movement_id: int
    qty_received: Decimal
    qty_remaining: Decimal
    unit_cost: Optional[Decimal] = None
    status: models.LotStatusEnum
    received_at: datetime

    class Config:
        from_attributes = True


class LotConsumptionRead(BaseModel):
    id: int
    lot_id: int
    movement_id: int
    quantity: Decimal
    unit_cost: Optional[Decimal] = None
    consumed_at: datetime

    class Config:
        from_attributes = True
