from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from scmdb.apps.audit import services as audit_services
from scmdb.apps.gate_passes import schemas as gate_pass_schemas
from scmdb.apps.gate_passes import services as gate_pass_services
from scmdb.apps.inventory import services as inventory_services
from scmdb.apps.inventory.services import LedgerEntry
from scmdb.apps.numbering import services as numbering_services
from scmdb.apps.workflow import documents
from scmdb.apps.workflow.documents import ActionResult, SpawnedDocument, UpdateResult
from scmdb.apps.workflow.registry import initial_status
from scmdb.database import unit_of_work
from scmdb.errors import BusinessRuleError

from . import models, schemas
from .models import ReservationStatusEnum

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "material_issue"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _build_lines(db: Session, lines: List[dict]) -> List[models.MaterialIssueLine]:
    built = []
    for number, line in enumerate(lines, start=1):
        inventory_services.get_item(db, line["item_id"])
        built.append(
            models.MaterialIssueLine(
                line_number=number,
                item_id=line["item_id"],
                qty_requested=line["qty_requested"],
                notes=line.get("notes"),
            )
        )
    return built


def _validate(db: Session, issue: models.MaterialIssue) -> None:
    inventory_services.get_warehouse(db, issue.warehouse_id)


def _approved_lines(issue: models.MaterialIssue) -> List[models.MaterialIssueLine]:
    return [line for line in issue.lines if line.qty_approved and Decimal(line.qty_approved) > 0]


def _approved_entries(issue: models.MaterialIssue) -> List[LedgerEntry]:
    return [
        LedgerEntry(
            item_id=line.item_id,
            warehouse_id=issue.warehouse_id,
            quantity=line.qty_approved,
            reference_type=DOCUMENT_TYPE,
            reference_id=issue.id,
        )
        for line in _approved_lines(issue)
    ]


def create_issue(db: Session, *, payload: schemas.MaterialIssueCreate, actor_id: str) -> models.MaterialIssue:
    with unit_of_work(db):
        issue = models.MaterialIssue(
            number=numbering_services.generate_document_number(db, DOCUMENT_TYPE),
            status=initial_status(DOCUMENT_TYPE),
            reservation_status=ReservationStatusEnum.NONE,
            created_by_id=actor_id,
            **payload.model_dump(exclude={"lines"}),
        )
        _validate(db, issue)
        issue.lines = _build_lines(db, [line.model_dump() for line in payload.lines])
        db.add(issue)
        db.flush()

        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=DOCUMENT_TYPE,
            entity_id=issue.id,
            action="create",
            after=documents.snapshot(issue),
        )
    logger.info("Material issue created", extra={"document_id": issue.id, "number": issue.number})
    return issue


def get_issue(db: Session, issue_id: str) -> models.MaterialIssue:
    return documents.load_document(db, models.MaterialIssue, issue_id)


def list_issues(
    db: Session,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    warehouse_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 50,
) -> Dict[str, object]:
    filters = []
    if warehouse_id is not None:
        filters.append(models.MaterialIssue.warehouse_id == warehouse_id)
    return documents.list_documents(
        db,
        models.MaterialIssue,
        status=status,
        search=search,
        search_columns=[models.MaterialIssue.location_of_work, models.MaterialIssue.purpose],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def update_issue(
    db: Session,
    *,
    issue_id: str,
    patch: schemas.MaterialIssueUpdate,
    actor_id: str,
) -> UpdateResult:
    return documents.update_document(
        db,
        model=models.MaterialIssue,
        document_type=DOCUMENT_TYPE,
        document_id=issue_id,
        patch=patch,
        actor_id=actor_id,
        build_lines=_build_lines,
        validate=_validate,
    )


def _transition(db: Session, issue_id: str, to_state: str, actor_id: str, effect=None) -> ActionResult:
    return documents.transition_document(
        db,
        model=models.MaterialIssue,
        document_type=DOCUMENT_TYPE,
        document_id=issue_id,
        to_state=to_state,
        actor_id=actor_id,
        effect=effect,
    )


def submit_issue(db: Session, *, issue_id: str, actor_id: str) -> models.MaterialIssue:
    return _transition(db, issue_id, "pending_approval", actor_id).document


def approve_issue(
    db: Session,
    *,
    issue_id: str,
    actor_id: str,
    payload: Optional[schemas.MaterialIssueApprove] = None,
) -> models.MaterialIssue:
    """Approve the request and reserve the approved quantities."""
    overrides = {line.line_number: line.qty_approved for line in (payload.lines if payload else [])}

    def reserve(issue: models.MaterialIssue) -> None:
        known = {line.line_number for line in issue.lines}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise BusinessRuleError(
                "Approved quantities reference unknown lines",
                detail=[{"field": "lines", "reason": f"no line {number}"} for number in unknown],
            )
        for line in issue.lines:
            approved = overrides.get(line.line_number, line.qty_requested)
            if Decimal(approved) > Decimal(line.qty_requested):
                raise BusinessRuleError(
                    "Approved quantity cannot exceed requested quantity",
                    detail=[{"field": f"lines[{line.line_number}].qty_approved", "reason": "greater than requested"}],
                )
            line.qty_approved = approved
        inventory_services.reserve_batch(db, _approved_entries(issue), actor_id=actor_id)
        issue.reservation_status = ReservationStatusEnum.RESERVED
        issue.approved_by_id = actor_id
        issue.approved_at = _utcnow()

    return _transition(db, issue_id, "approved", actor_id, reserve).document


def reject_issue(db: Session, *, issue_id: str, actor_id: str) -> models.MaterialIssue:
    return _transition(db, issue_id, "rejected", actor_id).document


def reopen_issue(db: Session, *, issue_id: str, actor_id: str) -> models.MaterialIssue:
    return _transition(db, issue_id, "draft", actor_id).document


def sign_qc(db: Session, *, issue_id: str, actor_id: str) -> models.MaterialIssue:
    """Record the QC counter-signature required before issuing."""
    with unit_of_work(db):
        issue = get_issue(db, issue_id)
        if issue.status != "approved":
            raise BusinessRuleError(
                f"{issue.number} is {issue.status}; QC can only sign approved issues",
                detail=[{"field": "status", "reason": "QC signature requires status approved"}],
            )
        before = {"qc_signed_by_id": issue.qc_signed_by_id}
        issue.qc_signed_by_id = actor_id
        issue.qc_signed_at = _utcnow()
        db.flush()
        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=DOCUMENT_TYPE,
            entity_id=issue.id,
            action="qc_sign",
            before=before,
            after={"qc_signed_by_id": actor_id},
        )
    return issue


def _spawn_gate_pass(db: Session, issue: models.MaterialIssue, actor_id: str) -> SpawnedDocument:
    gate_pass = gate_pass_services.build_gate_pass(
        db,
        payload=gate_pass_schemas.GatePassCreate(
            warehouse_id=issue.warehouse_id,
            pass_type="outbound",
            destination=issue.location_of_work,
            purpose=f"Material issue {issue.number}",
            lines=[
                gate_pass_schemas.GatePassItemIn(item_id=line.item_id, quantity=line.qty_issued)
                for line in issue.lines
                if line.qty_issued and Decimal(line.qty_issued) > 0
            ],
        ),
        actor_id=actor_id,
        material_issue_id=issue.id,
    )
    return SpawnedDocument(gate_pass_services.DOCUMENT_TYPE, gate_pass.id, gate_pass.number)


def issue_materials(db: Session, *, issue_id: str, actor_id: str) -> ActionResult:
    """Consume the reservation and raise an outbound gate pass."""

    def consume(issue: models.MaterialIssue) -> SpawnedDocument:
        movements = inventory_services.consume_reserved_batch(db, _approved_entries(issue), actor_id=actor_id)
        for line, movement in zip(_approved_lines(issue), movements):
            line.issued_cost = movement.total_cost
        for line in issue.lines:
            line.qty_issued = line.qty_approved or Decimal("0")
        issue.reservation_status = ReservationStatusEnum.RELEASED
        issue.issued_by_id = actor_id
        issue.issued_at = _utcnow()
        spawned = _spawn_gate_pass(db, issue, actor_id)
        issue.gate_pass_id = spawned.id
        return spawned

    result = _transition(db, issue_id, "issued", actor_id, consume)
    logger.info(
        "Material issue issued",
        extra={"document_id": issue_id, "gate_pass_id": result.spawned.id if result.spawned else None},
    )
    return result


def complete_issue(db: Session, *, issue_id: str, actor_id: str) -> models.MaterialIssue:
    def stamp(issue: models.MaterialIssue) -> None:
        issue.completed_at = _utcnow()

    return _transition(db, issue_id, "completed", actor_id, stamp).document


def cancel_issue(db: Session, *, issue_id: str, actor_id: str) -> models.MaterialIssue:
    """Cancel the request, releasing any stock reserved at approval."""

    def release(issue: models.MaterialIssue) -> None:
        if issue.reservation_status == ReservationStatusEnum.RESERVED:
            inventory_services.release_batch(db, _approved_entries(issue), actor_id=actor_id)
            issue.reservation_status = ReservationStatusEnum.RELEASED

    return _transition(db, issue_id, "cancelled", actor_id, release).document
