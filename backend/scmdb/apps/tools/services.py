from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy.orm import Session

from scmdb.apps.audit import services as audit_services
from scmdb.apps.inventory import services as inventory_services
from scmdb.apps.numbering import services as numbering_services
from scmdb.apps.workflow import apply_transition, documents
from scmdb.apps.workflow.documents import UpdateResult
from scmdb.apps.workflow.registry import initial_status
from scmdb.database import unit_of_work
from scmdb.errors import BusinessRuleError

from . import models, schemas
from .models import ToolConditionEnum

logger = logging.getLogger(__name__)

TOOL_TYPE = "tool"
ISSUE_TYPE = "tool_issue"
OPEN_ISSUE_STATUSES = ("issued", "overdue")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate(db: Session, tool: models.Tool) -> None:
    if tool.warehouse_id is not None:
        inventory_services.get_warehouse(db, tool.warehouse_id)
    if tool.serial_number:
        with db.no_autoflush:
            clash = (
                db.query(models.Tool)
                .filter(models.Tool.serial_number == tool.serial_number, models.Tool.id != tool.id)
                .first()
            )
        if clash is not None:
            raise BusinessRuleError(
                f"Serial number {tool.serial_number} is already registered to {clash.number}",
                detail=[{"field": "serial_number", "reason": "duplicate"}],
            )


def _open_issue(db: Session, tool_id: str) -> Optional[models.ToolIssue]:
    return (
        db.query(models.ToolIssue)
        .filter(models.ToolIssue.tool_id == tool_id, models.ToolIssue.status.in_(OPEN_ISSUE_STATUSES))
        .first()
    )


# ---------------------------------------------------------------------------
# TOOLS
# ---------------------------------------------------------------------------


def create_tool(db: Session, *, payload: schemas.ToolCreate, actor_id: str) -> models.Tool:
    with unit_of_work(db):
        tool = models.Tool(
            number=numbering_services.generate_document_number(db, TOOL_TYPE),
            status=initial_status(TOOL_TYPE),
            created_by_id=actor_id,
            **payload.model_dump(),
        )
        _validate(db, tool)
        db.add(tool)
        db.flush()
        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=TOOL_TYPE,
            entity_id=tool.id,
            action="create",
            after=documents.snapshot(tool),
        )
    logger.info("Tool registered", extra={"document_id": tool.id, "number": tool.number})
    return tool


def get_tool(db: Session, tool_id: str) -> models.Tool:
    return documents.load_document(db, models.Tool, tool_id)


def list_tools(
    db: Session,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> Dict[str, object]:
    filters = []
    if category:
        filters.append(models.Tool.category == category)
    return documents.list_documents(
        db,
        models.Tool,
        status=status,
        search=search,
        search_columns=[models.Tool.name, models.Tool.serial_number],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def update_tool(db: Session, *, tool_id: str, patch: schemas.ToolUpdate, actor_id: str) -> UpdateResult:
    return documents.update_document(
        db,
        model=models.Tool,
        document_type=TOOL_TYPE,
        document_id=tool_id,
        patch=patch,
        actor_id=actor_id,
        validate=_validate,
    )


def _tool_transition(db: Session, tool_id: str, to_state: str, actor_id: str, effect=None) -> models.Tool:
    return documents.transition_document(
        db,
        model=models.Tool,
        document_type=TOOL_TYPE,
        document_id=tool_id,
        to_state=to_state,
        actor_id=actor_id,
        effect=effect,
    ).document


def mark_damaged(db: Session, *, tool_id: str, actor_id: str) -> models.Tool:
    return _tool_transition(db, tool_id, "damaged", actor_id)


def repair_tool(db: Session, *, tool_id: str, actor_id: str) -> models.Tool:
    return _tool_transition(db, tool_id, "good", actor_id)


def decommission_tool(db: Session, *, tool_id: str, actor_id: str) -> models.Tool:
    def ensure_returned(tool: models.Tool) -> None:
        open_issue = _open_issue(db, tool.id)
        if open_issue is not None:
            raise BusinessRuleError(
                f"{tool.number} is still out on {open_issue.number}",
                detail=[{"field": "tool_id", "reason": "tool has an open issue"}],
            )

    return _tool_transition(db, tool_id, "decommissioned", actor_id, ensure_returned)


# ---------------------------------------------------------------------------
# TOOL ISSUES
# ---------------------------------------------------------------------------


def issue_tool(db: Session, *, payload: schemas.ToolIssueCreate, actor_id: str) -> models.ToolIssue:
    """Hand a tool out. Only a tool in good condition and not already out can be issued."""
    with unit_of_work(db):
        tool = get_tool(db, payload.tool_id)
        if tool.status != "good":
            raise BusinessRuleError(
                f"{tool.number} is {tool.status} and cannot be issued",
                detail=[{"field": "tool_id", "reason": f"tool status is {tool.status}"}],
            )
        open_issue = _open_issue(db, tool.id)
        if open_issue is not None:
            raise BusinessRuleError(
                f"{tool.number} is already issued on {open_issue.number}",
                detail=[{"field": "tool_id", "reason": "tool has an open issue"}],
            )

        issue = models.ToolIssue(
            number=numbering_services.generate_document_number(db, ISSUE_TYPE),
            status=initial_status(ISSUE_TYPE),
            tool_id=tool.id,
            issued_to_id=payload.issued_to_id,
            issued_by_id=actor_id,
            issued_at=_utcnow(),
            expected_return_date=payload.expected_return_date,
            notes=payload.notes,
        )
        db.add(issue)
        db.flush()
        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=ISSUE_TYPE,
            entity_id=issue.id,
            action="create",
            after=documents.snapshot(issue),
        )
    logger.info("Tool issued", extra={"document_id": issue.id, "tool_id": tool.id, "issued_to_id": issue.issued_to_id})
    return issue


def get_issue(db: Session, issue_id: str) -> models.ToolIssue:
    return documents.load_document(db, models.ToolIssue, issue_id)


def list_issues(
    db: Session,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    tool_id: Optional[str] = None,
    issued_to_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> Dict[str, object]:
    filters = []
    if tool_id:
        filters.append(models.ToolIssue.tool_id == tool_id)
    if issued_to_id:
        filters.append(models.ToolIssue.issued_to_id == issued_to_id)
    return documents.list_documents(
        db,
        models.ToolIssue,
        status=status,
        search=search,
        search_columns=[models.ToolIssue.issued_to_id, models.ToolIssue.notes],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def return_tool(
    db: Session,
    *,
    issue_id: str,
    actor_id: str,
    payload: Optional[schemas.ToolReturn] = None,
) -> models.ToolIssue:
    """Close an issue; a damaged return moves the tool to damaged in the same unit."""
    payload = payload or schemas.ToolReturn()

    def record_return(issue: models.ToolIssue) -> None:
        issue.returned_at = _utcnow()
        issue.return_condition = payload.return_condition
        issue.return_verified_by_id = actor_id
        if payload.notes:
            issue.notes = payload.notes
        tool = get_tool(db, issue.tool_id)
        if payload.return_condition == ToolConditionEnum.DAMAGED and tool.status != "damaged":
            apply_transition(
                db,
                document=tool,
                document_type=TOOL_TYPE,
                to_state="damaged",
                actor_id=actor_id,
                metadata={"tool_issue_id": issue.id},
            )

    return documents.transition_document(
        db,
        model=models.ToolIssue,
        document_type=ISSUE_TYPE,
        document_id=issue_id,
        to_state="returned",
        actor_id=actor_id,
        effect=record_return,
    ).document


def mark_overdue(
    db: Session,
    *,
    issue_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> models.ToolIssue:
    return documents.transition_document(
        db,
        model=models.ToolIssue,
        document_type=ISSUE_TYPE,
        document_id=issue_id,
        to_state="overdue",
        actor_id=actor_id,
        now=now,
    ).document
