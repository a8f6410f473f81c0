from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/gate-passes", tags=["gate-passes"])


@router.post("", response_model=schemas.GatePassRead, status_code=status.HTTP_201_CREATED)
def create_gate_pass(
    payload: schemas.GatePassCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.create_gate_pass(db, payload=payload, actor_id=actor_id)


@router.get("", response_model=schemas.GatePassListResponse)
def list_gate_passes(
    status: Optional[str] = None,
    search: Optional[str] = None,
    pass_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_gate_passes(db, status=status, search=search, pass_type=pass_type, skip=skip, limit=limit)


@router.get("/{gate_pass_id}", response_model=schemas.GatePassRead)
def get_gate_pass(gate_pass_id: str, db: Session = Depends(get_read_db)):
    return services.get_gate_pass(db, gate_pass_id)


@router.patch("/{gate_pass_id}", response_model=schemas.GatePassRead)
def update_gate_pass(
    gate_pass_id: str,
    payload: schemas.GatePassUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.update_gate_pass(db, gate_pass_id=gate_pass_id, patch=payload, actor_id=actor_id).updated


@router.post("/{gate_pass_id}/submit", response_model=schemas.GatePassRead)
def submit_gate_pass(gate_pass_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.submit_gate_pass(db, gate_pass_id=gate_pass_id, actor_id=actor_id)


@router.post("/{gate_pass_id}/approve", response_model=schemas.GatePassRead)
def approve_gate_pass(gate_pass_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.approve_gate_pass(db, gate_pass_id=gate_pass_id, actor_id=actor_id)


@router.post("/{gate_pass_id}/release", response_model=schemas.GatePassRead)
def release_gate_pass(
    gate_pass_id: str,
    payload: schemas.GatePassRelease,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.release_gate_pass(
        db, gate_pass_id=gate_pass_id, security_officer=payload.security_officer, actor_id=actor_id
    )


@router.post("/{gate_pass_id}/return", response_model=schemas.GatePassRead)
def return_gate_pass(gate_pass_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.return_gate_pass(db, gate_pass_id=gate_pass_id, actor_id=actor_id)


@router.post("/{gate_pass_id}/expire", response_model=schemas.GatePassRead)
def expire_gate_pass(gate_pass_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.expire_gate_pass(db, gate_pass_id=gate_pass_id, actor_id=actor_id)


@router.post("/{gate_pass_id}/cancel", response_model=schemas.GatePassRead)
def cancel_gate_pass(gate_pass_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.cancel_gate_pass(db, gate_pass_id=gate_pass_id, actor_id=actor_id)
