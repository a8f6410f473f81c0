from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import ReservationStatusEnum


class MaterialIssueLineIn(BaseModel):
    item_id: int
    qty_requested: Decimal = Field(..., gt=0)
    notes: Optional[str] = None


class MaterialIssueLineRead(MaterialIssueLineIn):
    id: int
    line_number: int
    qty_approved: Optional[Decimal] = None
    qty_issued: Optional[Decimal] = None
    issued_cost: Optional[Decimal] = None

    class Config:
        from_attributes = True


class MaterialIssueCreate(BaseModel):
    warehouse_id: int
    location_of_work: Optional[str] = None
    purpose: Optional[str] = None
    required_date: Optional[date] = None
    lines: List[MaterialIssueLineIn] = []


class MaterialIssueUpdate(BaseModel):
    warehouse_id: Optional[int] = None
    location_of_work: Optional[str] = None
    purpose: Optional[str] = None
    required_date: Optional[date] = None
    lines: Optional[List[MaterialIssueLineIn]] = None


class ApprovedQuantity(BaseModel):
    line_number: int
    qty_approved: Decimal = Field(..., ge=0)


class MaterialIssueApprove(BaseModel):
    # Lines not listed are approved at the requested quantity.
    lines: List[ApprovedQuantity] = []


class MaterialIssueRead(BaseModel):
    id: str
    number: str
    status: str
    warehouse_id: int
    location_of_work: Optional[str] = None
    purpose: Optional[str] = None
    required_date: Optional[date] = None
    reservation_status: ReservationStatusEnum
    approved_by_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    qc_signed_by_id: Optional[str] = None
    qc_signed_at: Optional[datetime] = None
    issued_by_id: Optional[str] = None
    issued_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    gate_pass_id: Optional[str] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    lines: List[MaterialIssueLineRead] = []

    class Config:
        from_attributes = True


class SpawnedDocumentRead(BaseModel):
    document_type: str
    id: str
    number: str

    class Config:
        from_attributes = True


class MaterialIssueActionRead(BaseModel):
    material_issue: MaterialIssueRead
    spawned: Optional[SpawnedDocumentRead] = None


class MaterialIssueListResponse(BaseModel):
    data: List[MaterialIssueRead]
    total: int
