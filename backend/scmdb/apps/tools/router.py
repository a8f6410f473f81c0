from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from scmdb.database import get_db, get_read_db
from scmdb.security import get_current_actor_id

from . import schemas, services

router = APIRouter(prefix="/tools", tags=["tools"])


@router.post("", response_model=schemas.ToolRead, status_code=status.HTTP_201_CREATED)
def create_tool(
    payload: schemas.ToolCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.create_tool(db, payload=payload, actor_id=actor_id)


@router.get("", response_model=schemas.ToolListResponse)
def list_tools(
    status: Optional[str] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_tools(db, status=status, search=search, category=category, skip=skip, limit=limit)


# Issue routes come before "/{tool_id}" so "issues" is not taken for a tool id.
@router.post("/issues", response_model=schemas.ToolIssueRead, status_code=status.HTTP_201_CREATED)
def issue_tool(
    payload: schemas.ToolIssueCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.issue_tool(db, payload=payload, actor_id=actor_id)


@router.get("/issues", response_model=schemas.ToolIssueListResponse)
def list_issues(
    status: Optional[str] = None,
    search: Optional[str] = None,
    tool_id: Optional[str] = None,
    issued_to_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_read_db),
):
    return services.list_issues(
        db, status=status, search=search, tool_id=tool_id, issued_to_id=issued_to_id, skip=skip, limit=limit
    )


@router.get("/issues/{issue_id}", response_model=schemas.ToolIssueRead)
def get_issue(issue_id: str, db: Session = Depends(get_read_db)):
    return services.get_issue(db, issue_id)


@router.post("/issues/{issue_id}/return", response_model=schemas.ToolIssueRead)
def return_tool(
    issue_id: str,
    payload: Optional[schemas.ToolReturn] = Body(None),
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.return_tool(db, issue_id=issue_id, actor_id=actor_id, payload=payload)


@router.post("/issues/{issue_id}/overdue", response_model=schemas.ToolIssueRead)
def mark_overdue(issue_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.mark_overdue(db, issue_id=issue_id, actor_id=actor_id)


@router.get("/{tool_id}", response_model=schemas.ToolRead)
def get_tool(tool_id: str, db: Session = Depends(get_read_db)):
    return services.get_tool(db, tool_id)


@router.patch("/{tool_id}", response_model=schemas.ToolRead)
def update_tool(
    tool_id: str,
    payload: schemas.ToolUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
):
    return services.update_tool(db, tool_id=tool_id, patch=payload, actor_id=actor_id).updated


@router.post("/{tool_id}/damage", response_model=schemas.ToolRead)
def mark_damaged(tool_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.mark_damaged(db, tool_id=tool_id, actor_id=actor_id)


@router.post("/{tool_id}/repair", response_model=schemas.ToolRead)
def repair_tool(tool_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.repair_tool(db, tool_id=tool_id, actor_id=actor_id)


@router.post("/{tool_id}/decommission", response_model=schemas.ToolRead)
def decommission_tool(tool_id: str, db: Session = Depends(get_db), actor_id: str = Depends(get_current_actor_id)):
    return services.decommission_tool(db, tool_id=tool_id, actor_id=actor_id)
