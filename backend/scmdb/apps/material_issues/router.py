from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/material-issues", tags=["material-issues"])


@router.post("", response_model=schemas.MaterialIssueRead, status_code=status.HTTP_201_CREATED)
def create_issue(
    payload: schemas.MaterialIssueCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.create_issue(db, payload=payload, actor_id=actor_id)


@router.get("", response_model=schemas.MaterialIssueListResponse)
def list_issues(
    status: Optional[str] = None,
    search: Optional[str] = None,
    warehouse_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_issues(db, status=status, search=search, warehouse_id=warehouse_id, skip=skip, limit=limit)


@router.get("/{issue_id}", response_model=schemas.MaterialIssueRead)
def get_issue(issue_id: str, db: Session = Depends(get_read_db)):
    return services.get_issue(db, issue_id)


@router.patch("/{issue_id}", response_model=schemas.MaterialIssueRead)
def update_issue(
    issue_id: str,
    payload: schemas.MaterialIssueUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.update_issue(db, issue_id=issue_id, patch=payload, actor_id=actor_id).updated


@router.post("/{issue_id}/submit", response_model=schemas.MaterialIssueRead)
def submit_issue(issue_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.submit_issue(db, issue_id=issue_id, actor_id=actor_id)


@router.post("/{issue_id}/approve", response_model=schemas.MaterialIssueRead)
def approve_issue(
    issue_id: str,
    payload: Optional[schemas.MaterialIssueApprove] = Body(None),
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.approve_issue(db, issue_id=issue_id, actor_id=actor_id, payload=payload)


@router.post("/{issue_id}/reject", response_model=schemas.MaterialIssueRead)
def reject_issue(issue_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.reject_issue(db, issue_id=issue_id, actor_id=actor_id)


@router.post("/{issue_id}/reopen", response_model=schemas.MaterialIssueRead)
def reopen_issue(issue_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.reopen_issue(db, issue_id=issue_id, actor_id=actor_id)


@router.post("/{issue_id}/sign-qc", response_model=schemas.MaterialIssueRead)
def sign_qc(issue_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.sign_qc(db, issue_id=issue_id, actor_id=actor_id)


@router.post("/{issue_id}/issue", response_model=schemas.MaterialIssueActionRead)
def issue_materials(issue_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    result = services.issue_materials(db, issue_id=issue_id, actor_id=actor_id)
    return schemas.MaterialIssueActionRead(
        material_issue=schemas.MaterialIssueRead.model_validate(result.document),
        spawned=schemas.SpawnedDocumentRead.model_validate(result.spawned) if result.spawned else None,
    )


@router.post("/{issue_id}/complete", response_model=schemas.MaterialIssueRead)
def complete_issue(issue_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.complete_issue(db, issue_id=issue_id, actor_id=actor_id)


@router.post("/{issue_id}/cancel", response_model=schemas.MaterialIssueRead)
def cancel_issue(issue_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.cancel_issue(db, issue_id=issue_id, actor_id=actor_id)
