from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class StockTransferLineIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(..., gt=0)
    condition: str = "good"


class StockTransferLineRead(StockTransferLineIn):
    id: int
    line_number: int
    unit_cost: Optional[Decimal] = None

    class Config:
        from_attributes = True


class StockTransferCreate(BaseModel):
    from_warehouse_id: int
    to_warehouse_id: int
    transfer_type: str = "warehouse_to_warehouse"
    transfer_date: Optional[date] = None
    notes: Optional[str] = None
    lines: List[StockTransferLineIn] = []


class StockTransferUpdate(BaseModel):
    from_warehouse_id: Optional[int] = None
    to_warehouse_id: Optional[int] = None
    transfer_type: Optional[str] = None
    transfer_date: Optional[date] = None
    notes: Optional[str] = None
    lines: Optional[List[StockTransferLineIn]] = None


class StockTransferRead(BaseModel):
    id: str
    number: str
    status: str
    transfer_type: str
    from_warehouse_id: int
    to_warehouse_id: int
    transfer_date: Optional[date] = None
    notes: Optional[str] = None
    source_surplus_id: Optional[str] = None
    approved_by_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    shipped_by_id: Optional[str] = None
    shipped_at: Optional[datetime] = None
    received_by_id: Optional[str] = None
    received_at: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    lines: List[StockTransferLineRead] = []

    class Config:
        from_attributes = True


class StockTransferListResponse(BaseModel):
    data: List[StockTransferRead]
    total: int
