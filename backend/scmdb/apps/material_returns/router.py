from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/material-returns", tags=["material-returns"])


@router.post("", response_model=schemas.MaterialReturnRead, status_code=status.HTTP_201_CREATED)
def create_return(
    payload: schemas.MaterialReturnCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.create_return(db, payload=payload, actor_id=actor_id)


@router.get("", response_model=schemas.MaterialReturnListResponse)
def list_returns(
    status: Optional[str] = None,
    search: Optional[str] = None,
    return_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_returns(db, status=status, search=search, return_type=return_type, skip=skip, limit=limit)


@router.get("/{return_id}", response_model=schemas.MaterialReturnRead)
def get_return(return_id: str, db: Session = Depends(get_read_db)):
    return services.get_return(db, return_id)


@router.patch("/{return_id}", response_model=schemas.MaterialReturnRead)
def update_return(
    return_id: str,
    payload: schemas.MaterialReturnUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.update_return(db, return_id=return_id, patch=payload, actor_id=actor_id).updated


@router.post("/{return_id}/submit", response_model=schemas.MaterialReturnRead)
def submit_return(return_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.submit_return(db, return_id=return_id, actor_id=actor_id)


@router.post("/{return_id}/receive", response_model=schemas.MaterialReturnRead)
def receive_return(return_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.receive_return(db, return_id=return_id, actor_id=actor_id)


@router.post("/{return_id}/reject", response_model=schemas.MaterialReturnRead)
def reject_return(return_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.reject_return(db, return_id=return_id, actor_id=actor_id)


@router.post("/{return_id}/reopen", response_model=schemas.MaterialReturnRead)
def reopen_return(return_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.reopen_return(db, return_id=return_id, actor_id=actor_id)


@router.post("/{return_id}/complete", response_model=schemas.MaterialReturnRead)
def complete_return(return_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.complete_return(db, return_id=return_id, actor_id=actor_id)
