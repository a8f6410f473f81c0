from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/surplus", tags=["surplus"])


@router.post("", response_model=schemas.SurplusRead, status_code=status.HTTP_201_CREATED)
def create_surplus(
    payload: schemas.SurplusCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.create_surplus(db, payload=payload, actor_id=actor_id)


@router.get("", response_model=schemas.SurplusListResponse)
def list_surplus(
    status: Optional[str] = None,
    search: Optional[str] = None,
    disposition: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_surplus(db, status=status, search=search, disposition=disposition, skip=skip, limit=limit)


@router.get("/{surplus_id}", response_model=schemas.SurplusRead)
def get_surplus(surplus_id: str, db: Session = Depends(get_read_db)):
    return services.get_surplus(db, surplus_id)


@router.patch("/{surplus_id}", response_model=schemas.SurplusRead)
def update_surplus(
    surplus_id: str,
    payload: schemas.SurplusUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.update_surplus(db, surplus_id=surplus_id, patch=payload, actor_id=actor_id).updated


@router.post("/{surplus_id}/evaluate", response_model=schemas.SurplusRead)
def evaluate_surplus(
    surplus_id: str,
    payload: schemas.SurplusEvaluate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.evaluate_surplus(db, surplus_id=surplus_id, payload=payload, actor_id=actor_id)


@router.post("/{surplus_id}/approve", response_model=schemas.SurplusRead)
def approve_surplus(surplus_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.approve_surplus(db, surplus_id=surplus_id, actor_id=actor_id)


@router.post("/{surplus_id}/reject", response_model=schemas.SurplusRead)
def reject_surplus(surplus_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.reject_surplus(db, surplus_id=surplus_id, actor_id=actor_id)


@router.post("/{surplus_id}/reopen", response_model=schemas.SurplusRead)
def reopen_surplus(surplus_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.reopen_surplus(db, surplus_id=surplus_id, actor_id=actor_id)


@router.post("/{surplus_id}/action", response_model=schemas.SurplusActionRead)
def action_surplus(surplus_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    result = services.action_surplus(db, surplus_id=surplus_id, actor_id=actor_id)
    return schemas.SurplusActionRead(
        surplus=schemas.SurplusRead.model_validate(result.document),
        spawned=schemas.SpawnedDocumentRead.model_validate(result.spawned) if result.spawned else None,
    )


@router.post("/{surplus_id}/close", response_model=schemas.SurplusRead)
def close_surplus(surplus_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.close_surplus(db, surplus_id=surplus_id, actor_id=actor_id)
