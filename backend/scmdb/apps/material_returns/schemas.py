from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import ReturnConditionEnum


class MaterialReturnLineIn(BaseModel):
    item_id: int
    qty_returned: Decimal = Field(..., gt=0)
    condition: ReturnConditionEnum = ReturnConditionEnum.GOOD
    notes: Optional[str] = None


class MaterialReturnLineRead(MaterialReturnLineIn):
    id: int
    line_number: int

    class Config:
        from_attributes = True


class MaterialReturnCreate(BaseModel):
    to_warehouse_id: int
    from_warehouse_id: Optional[int] = None
    return_type: str = "return_to_store"
    return_date: Optional[date] = None
    reason: Optional[str] = None
    lines: List[MaterialReturnLineIn] = []


class MaterialReturnUpdate(BaseModel):
    to_warehouse_id: Optional[int] = None
    from_warehouse_id: Optional[int] = None
    return_type: Optional[str] = None
    return_date: Optional[date] = None
    reason: Optional[str] = None
    lines: Optional[List[MaterialReturnLineIn]] = None


class MaterialReturnRead(BaseModel):
    id: str
    number: str
    status: str
    return_type: str
    from_warehouse_id: Optional[int] = None
    to_warehouse_id: int
    return_date: Optional[date] = None
    reason: Optional[str] = None
    source_surplus_id: Optional[str] = None
    received_by_id: Optional[str] = None
    received_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    lines: List[MaterialReturnLineRead] = []

    class Config:
        from_attributes = True


class MaterialReturnListResponse(BaseModel):
    data: List[MaterialReturnRead]
    total: int
