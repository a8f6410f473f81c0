from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/stock-transfers", tags=["stock-transfers"])


@router.post("", response_model=schemas.StockTransferRead, status_code=status.HTTP_201_CREATED)
def create_transfer(
    payload: schemas.StockTransferCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.create_transfer(db, payload=payload, actor_id=actor_id)


@router.get("", response_model=schemas.StockTransferListResponse)
def list_transfers(
    status: Optional[str] = None,
    search: Optional[str] = None,
    warehouse_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_transfers(
        db, status=status, search=search, warehouse_id=warehouse_id, skip=skip, limit=limit
    )


@router.get("/{transfer_id}", response_model=schemas.StockTransferRead)
def get_transfer(transfer_id: str, db: Session = Depends(get_read_db)):
    return services.get_transfer(db, transfer_id)


@router.patch("/{transfer_id}", response_model=schemas.StockTransferRead)
def update_transfer(
    transfer_id: str,
    payload: schemas.StockTransferUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.update_transfer(db, transfer_id=transfer_id, patch=payload, actor_id=actor_id).updated


@router.post("/{transfer_id}/submit", response_model=schemas.StockTransferRead)
def submit_transfer(transfer_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.submit_transfer(db, transfer_id=transfer_id, actor_id=actor_id)


@router.post("/{transfer_id}/approve", response_model=schemas.StockTransferRead)
def approve_transfer(transfer_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.approve_transfer(db, transfer_id=transfer_id, actor_id=actor_id)


@router.post("/{transfer_id}/ship", response_model=schemas.StockTransferRead)
def ship_transfer(transfer_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.ship_transfer(db, transfer_id=transfer_id, actor_id=actor_id)


@router.post("/{transfer_id}/receive", response_model=schemas.StockTransferRead)
def receive_transfer(transfer_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.receive_transfer(db, transfer_id=transfer_id, actor_id=actor_id)


@router.post("/{transfer_id}/complete", response_model=schemas.StockTransferRead)
def complete_transfer(transfer_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.complete_transfer(db, transfer_id=transfer_id, actor_id=actor_id)


@router.post("/{transfer_id}/cancel", response_model=schemas.StockTransferRead)
def cancel_transfer(transfer_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.cancel_transfer(db, transfer_id=transfer_id, actor_id=actor_id)
