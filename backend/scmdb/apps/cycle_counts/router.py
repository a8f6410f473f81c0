from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/cycle-counts", tags=["cycle-counts"])


@router.post("", response_model=schemas.CycleCountRead, status_code=status.HTTP_201_CREATED)
def create_count(
    payload: schemas.CycleCountCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.create_count(db, payload=payload, actor_id=actor_id)


@router.get("", response_model=schemas.CycleCountListResponse)
def list_counts(
    status: Optional[str] = None,
    search: Optional[str] = None,
    warehouse_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_counts(db, status=status, search=search, warehouse_id=warehouse_id, skip=skip, limit=limit)


@router.get("/{cycle_count_id}", response_model=schemas.CycleCountRead)
def get_count(cycle_count_id: str, db: Session = Depends(get_read_db)):
    return services.get_count(db, cycle_count_id)


@router.patch("/{cycle_count_id}", response_model=schemas.CycleCountRead)
def update_count(
    cycle_count_id: str,
    payload: schemas.CycleCountUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.update_count(db, cycle_count_id=cycle_count_id, patch=payload, actor_id=actor_id).updated


@router.post("/{cycle_count_id}/generate-lines", response_model=schemas.CycleCountRead)
def generate_lines(cycle_count_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.generate_lines(db, cycle_count_id=cycle_count_id, actor_id=actor_id)


@router.post("/{cycle_count_id}/start", response_model=schemas.CycleCountRead)
def start_count(cycle_count_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.start_count(db, cycle_count_id=cycle_count_id, actor_id=actor_id)


@router.post("/{cycle_count_id}/lines/{line_id}/count", response_model=schemas.CycleCountLineRead)
def record_count(
    cycle_count_id: str,
    line_id: int,
    payload: schemas.CountRecord,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.record_count(
        db, cycle_count_id=cycle_count_id, line_id=line_id, payload=payload, actor_id=actor_id
    )


@router.post("/{cycle_count_id}/complete", response_model=schemas.CycleCountRead)
def complete_count(cycle_count_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.complete_count(db, cycle_count_id=cycle_count_id, actor_id=actor_id)


@router.post("/{cycle_count_id}/cancel", response_model=schemas.CycleCountRead)
def cancel_count(cycle_count_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.cancel_count(db, cycle_count_id=cycle_count_id, actor_id=actor_id)


@router.post("/{cycle_count_id}/apply-adjustments", response_model=schemas.CycleCountRead)
def apply_adjustments(
    cycle_count_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)
):
    return services.apply_adjustments(db, cycle_count_id=cycle_count_id, actor_id=actor_id)
