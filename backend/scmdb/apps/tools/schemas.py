from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import ToolConditionEnum


class ToolCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
    serial_number: Optional[str] = None
    warehouse_id: Optional[int] = None
    purchase_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    notes: Optional[str] = None


class ToolUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    serial_number: Optional[str] = None
    warehouse_id: Optional[int] = None
    purchase_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    notes: Optional[str] = None


class ToolRead(BaseModel):
    id: str
    number: str
    status: str
    name: str
    category: Optional[str] = None
    serial_number: Optional[str] = None
    warehouse_id: Optional[int] = None
    purchase_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    notes: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ToolListResponse(BaseModel):
    data: List[ToolRead]
    total: int


class ToolIssueCreate(BaseModel):
    tool_id: str
    issued_to_id: str = Field(..., min_length=1)
    expected_return_date: Optional[date] = None
    notes: Optional[str] = None


class ToolReturn(BaseModel):
    return_condition: ToolConditionEnum = ToolConditionEnum.GOOD
    notes: Optional[str] = None


class ToolIssueRead(BaseModel):
    id: str
    number: str
    status: str
    tool_id: str
    issued_to_id: str
    issued_by_id: Optional[str] = None
    issued_at: datetime
    expected_return_date: Optional[date] = None
    returned_at: Optional[datetime] = None
    return_condition: Optional[ToolConditionEnum] = None
    return_verified_by_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ToolIssueListResponse(BaseModel):
    data: List[ToolIssueRead]
    total: int
