from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class GoodsReceiptLineIn(BaseModel):
    item_id: int
    qty_received: Decimal = Field(..., gt=0)
    qty_damaged: Decimal = Field(Decimal("0"), ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    condition: str = "good"


class GoodsReceiptLineRead(GoodsReceiptLineIn):
    id: int
    line_number: int

    class Config:
        from_attributes = True


class GoodsReceiptCreate(BaseModel):
    warehouse_id: int
    supplier_name: Optional[str] = None
    po_number: Optional[str] = None
    delivery_note: Optional[str] = None
    receive_date: Optional[date] = None
    qc_required: bool = True
    notes: Optional[str] = None
    lines: List[GoodsReceiptLineIn] = []


class GoodsReceiptUpdate(BaseModel):
    warehouse_id: Optional[int] = None
    supplier_name: Optional[str] = None
    po_number: Optional[str] = None
    delivery_note: Optional[str] = None
    receive_date: Optional[date] = None
    qc_required: Optional[bool] = None
    notes: Optional[str] = None
    lines: Optional[List[GoodsReceiptLineIn]] = None


class GoodsReceiptRead(BaseModel):
    id: str
    number: str
    status: str
    warehouse_id: int
    supplier_name: Optional[str] = None
    po_number: Optional[str] = None
    delivery_note: Optional[str] = None
    receive_date: Optional[date] = None
    qc_required: bool
    notes: Optional[str] = None
    qc_approved_by_id: Optional[str] = None
    qc_approved_at: Optional[datetime] = None
    received_by_id: Optional[str] = None
    received_at: Optional[datetime] = None
    stored_by_id: Optional[str] = None
    stored_at: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    lines: List[GoodsReceiptLineRead] = []

    class Config:
        from_attributes = True


class GoodsReceiptListResponse(BaseModel):
    data: List[GoodsReceiptRead]
    total: int
