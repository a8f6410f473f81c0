from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/goods-receipts", tags=["goods-receipts"])


@router.post("", response_model=schemas.GoodsReceiptRead, status_code=status.HTTP_201_CREATED)
def create_receipt(
    payload: schemas.GoodsReceiptCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.create_receipt(db, payload=payload, actor_id=actor_id)


@router.get("", response_model=schemas.GoodsReceiptListResponse)
def list_receipts(
    status: Optional[str] = None,
    search: Optional[str] = None,
    warehouse_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_receipts(db, status=status, search=search, warehouse_id=warehouse_id, skip=skip, limit=limit)


@router.get("/{receipt_id}", response_model=schemas.GoodsReceiptRead)
def get_receipt(receipt_id: str, db: Session = Depends(get_read_db)):
    return services.get_receipt(db, receipt_id)


@router.patch("/{receipt_id}", response_model=schemas.GoodsReceiptRead)
def update_receipt(
    receipt_id: str,
    payload: schemas.GoodsReceiptUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.update_receipt(db, receipt_id=receipt_id, patch=payload, actor_id=actor_id).updated


@router.post("/{receipt_id}/submit", response_model=schemas.GoodsReceiptRead)
def submit_receipt(receipt_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.submit_receipt(db, receipt_id=receipt_id, actor_id=actor_id)


@router.post("/{receipt_id}/approve-qc", response_model=schemas.GoodsReceiptRead)
def approve_qc(receipt_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.approve_qc(db, receipt_id=receipt_id, actor_id=actor_id)


@router.post("/{receipt_id}/reject", response_model=schemas.GoodsReceiptRead)
def reject_receipt(receipt_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.reject_receipt(db, receipt_id=receipt_id, actor_id=actor_id)


@router.post("/{receipt_id}/reopen", response_model=schemas.GoodsReceiptRead)
def reopen_receipt(receipt_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.reopen_receipt(db, receipt_id=receipt_id, actor_id=actor_id)


@router.post("/{receipt_id}/receive", response_model=schemas.GoodsReceiptRead)
def receive_receipt(receipt_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.receive_receipt(db, receipt_id=receipt_id, actor_id=actor_id)


@router.post("/{receipt_id}/store", response_model=schemas.GoodsReceiptRead)
def store_receipt(receipt_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.store_receipt(db, receipt_id=receipt_id, actor_id=actor_id)
