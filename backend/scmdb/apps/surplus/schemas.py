from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import SurplusDispositionEnum


class SurplusCreate(BaseModel):
    item_id: int
    warehouse_id: int
    qty: Decimal = Field(..., gt=0)
    condition: Optional[str] = None
    estimated_value: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None


class SurplusUpdate(BaseModel):
    item_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    qty: Optional[Decimal] = Field(default=None, gt=0)
    condition: Optional[str] = None
    estimated_value: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None


class SurplusEvaluate(BaseModel):
    disposition: SurplusDispositionEnum
    target_warehouse_id: Optional[int] = None
    estimated_value: Optional[Decimal] = Field(default=None, ge=0)
    evaluation_notes: Optional[str] = None


class SurplusRead(BaseModel):
    id: str
    number: str
    status: str
    item_id: int
    warehouse_id: int
    qty: Decimal
    condition: Optional[str] = None
    estimated_value: Optional[Decimal] = None
    description: Optional[str] = None
    disposition: Optional[SurplusDispositionEnum] = None
    target_warehouse_id: Optional[int] = None
    evaluation_notes: Optional[str] = None
    evaluated_by_id: Optional[str] = None
    evaluated_at: Optional[datetime] = None
    ou_head_approved_by_id: Optional[str] = None
    ou_head_approved_at: Optional[datetime] = None
    scm_approved_by_id: Optional[str] = None
    scm_approved_at: Optional[datetime] = None
    linked_document_type: Optional[str] = None
    linked_document_id: Optional[str] = None
    actioned_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SpawnedDocumentRead(BaseModel):
    document_type: str
    id: str
    number: str

    class Config:
        from_attributes = True


class SurplusActionRead(BaseModel):
    surplus: SurplusRead
    spawned: Optional[SpawnedDocumentRead] = None


class SurplusListResponse(BaseModel):
    data: List[SurplusRead]
    total: int
