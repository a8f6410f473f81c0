from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class GatePassItemIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(..., gt=0)
    description: Optional[str] = None


class GatePassItemRead(GatePassItemIn):
    id: int
    line_number: int

    class Config:
        from_attributes = True


class GatePassCreate(BaseModel):
    warehouse_id: int
    pass_type: str = "outbound"
    vehicle_number: Optional[str] = None
    driver_name: Optional[str] = None
    destination: Optional[str] = None
    purpose: Optional[str] = None
    issue_date: Optional[date] = None
    valid_until: Optional[datetime] = None
    lines: List[GatePassItemIn] = []


class GatePassUpdate(BaseModel):
    warehouse_id: Optional[int] = None
    pass_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    driver_name: Optional[str] = None
    destination: Optional[str] = None
    purpose: Optional[str] = None
    issue_date: Optional[date] = None
    valid_until: Optional[datetime] = None
    lines: Optional[List[GatePassItemIn]] = None


class GatePassRelease(BaseModel):
    security_officer: str = Field(..., min_length=1)


class GatePassRead(BaseModel):
    id: str
    number: str
    status: str
    pass_type: str
    warehouse_id: int
    vehicle_number: Optional[str] = None
    driver_name: Optional[str] = None
    destination: Optional[str] = None
    purpose: Optional[str] = None
    issue_date: Optional[date] = None
    valid_until: Optional[datetime] = None
    material_issue_id: Optional[str] = None
    approved_by_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    security_officer: Optional[str] = None
    exit_time: Optional[datetime] = None
    return_time: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    lines: List[GatePassItemRead] = []

    class Config:
        from_attributes = True


class GatePassListResponse(BaseModel):
    data: List[GatePassRead]
    total: int
