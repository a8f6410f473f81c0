from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import CountTypeEnum


class CycleCountLineIn(BaseModel):
    item_id: int


class CycleCountLineRead(BaseModel):
    id: int
    line_number: int
    item_id: int
    expected_qty: Decimal
    counted_qty: Optional[Decimal] = None
    variance_qty: Optional[Decimal] = None
    variance_percent: Optional[Decimal] = None
    status: str
    counted_by_id: Optional[str] = None
    counted_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class CycleCountCreate(BaseModel):
    warehouse_id: int
    count_type: CountTypeEnum = CountTypeEnum.FULL
    zone: Optional[str] = None
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None


class CycleCountUpdate(BaseModel):
    count_type: Optional[CountTypeEnum] = None
    zone: Optional[str] = None
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None
    # Explicit item list; expected quantities are read from the ledger.
    lines: Optional[List[CycleCountLineIn]] = None


class CountRecord(BaseModel):
    counted_qty: Decimal = Field(..., ge=0)
    notes: Optional[str] = None


class CycleCountRead(BaseModel):
    id: str
    number: str
    status: str
    count_type: CountTypeEnum
    warehouse_id: int
    zone: Optional[str] = None
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    adjustments_applied_at: Optional[datetime] = None
    adjustments_applied_by_id: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    lines: List[CycleCountLineRead] = []

    class Config:
        from_attributes = True


class CycleCountListResponse(BaseModel):
    data: List[CycleCountRead]
    total: int
