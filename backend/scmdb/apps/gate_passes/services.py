from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from scmdb.apps.audit import services as audit_services
from scmdb.apps.inventory import services as inventory_services
from scmdb.apps.numbering import services as numbering_services
from scmdb.apps.workflow import documents
from scmdb.apps.workflow.documents import UpdateResult
from scmdb.apps.workflow.registry import initial_status
from scmdb.database import unit_of_work

from . import models, schemas

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "gate_pass"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _build_lines(db: Session, lines: List[dict]) -> List[models.GatePassItem]:
    built = []
    for number, line in enumerate(lines, start=1):
        inventory_services.get_item(db, line["item_id"])
        built.append(
            models.GatePassItem(
                line_number=number,
                item_id=line["item_id"],
                quantity=line["quantity"],
                description=line.get("description"),
            )
        )
    return built


def _validate(db: Session, gate_pass: models.GatePass) -> None:
    inventory_services.get_warehouse(db, gate_pass.warehouse_id)


def build_gate_pass(
    db: Session,
    *,
    payload: schemas.GatePassCreate,
    actor_id: str,
    material_issue_id: Optional[str] = None,
) -> models.GatePass:
    """Create a draft gate pass inside the caller's transaction."""
    number = numbering_services.generate_document_number(db, DOCUMENT_TYPE)
    gate_pass = models.GatePass(
        number=number,
        status=initial_status(DOCUMENT_TYPE),
        material_issue_id=material_issue_id,
        created_by_id=actor_id,
        **payload.model_dump(exclude={"lines"}),
    )
    _validate(db, gate_pass)
    gate_pass.lines = _build_lines(db, [line.model_dump() for line in payload.lines])
    db.add(gate_pass)
    db.flush()

    audit_services.log_event(
        db,
        actor_id=actor_id,
        entity_type=DOCUMENT_TYPE,
        entity_id=gate_pass.id,
        action="create",
        after=documents.snapshot(gate_pass),
    )
    return gate_pass


def create_gate_pass(db: Session, *, payload: schemas.GatePassCreate, actor_id: str) -> models.GatePass:
    with unit_of_work(db):
        gate_pass = build_gate_pass(db, payload=payload, actor_id=actor_id)
    logger.info("Gate pass created", extra={"document_id": gate_pass.id, "number": gate_pass.number})
    return gate_pass


def get_gate_pass(db: Session, gate_pass_id: str) -> models.GatePass:
    return documents.load_document(db, models.GatePass, gate_pass_id)


def list_gate_passes(
    db: Session,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    pass_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> Dict[str, object]:
    filters = []
    if pass_type:
        filters.append(models.GatePass.pass_type == pass_type)
    return documents.list_documents(
        db,
        models.GatePass,
        status=status,
        search=search,
        search_columns=[
            models.GatePass.vehicle_number,
            models.GatePass.driver_name,
            models.GatePass.destination,
        ],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def update_gate_pass(
    db: Session,
    *,
    gate_pass_id: str,
    patch: schemas.GatePassUpdate,
    actor_id: str,
) -> UpdateResult:
    return documents.update_document(
        db,
        model=models.GatePass,
        document_type=DOCUMENT_TYPE,
        document_id=gate_pass_id,
        patch=patch,
        actor_id=actor_id,
        build_lines=_build_lines,
        validate=_validate,
    )


def _transition(db: Session, gate_pass_id: str, to_state: str, actor_id: str, effect=None, now=None) -> models.GatePass:
    return documents.transition_document(
        db,
        model=models.GatePass,
        document_type=DOCUMENT_TYPE,
        document_id=gate_pass_id,
        to_state=to_state,
        actor_id=actor_id,
        effect=effect,
        now=now,
    ).document


def submit_gate_pass(db: Session, *, gate_pass_id: str, actor_id: str) -> models.GatePass:
    return _transition(db, gate_pass_id, "pending", actor_id)


def approve_gate_pass(db: Session, *, gate_pass_id: str, actor_id: str) -> models.GatePass:
    def stamp(gate_pass: models.GatePass) -> None:
        gate_pass.approved_by_id = actor_id
        gate_pass.approved_at = _utcnow()

    return _transition(db, gate_pass_id, "approved", actor_id, stamp)


def release_gate_pass(
    db: Session,
    *,
    gate_pass_id: str,
    security_officer: str,
    actor_id: str,
) -> models.GatePass:
    def record_exit(gate_pass: models.GatePass) -> None:
        gate_pass.security_officer = security_officer
        gate_pass.exit_time = _utcnow()

    return _transition(db, gate_pass_id, "released", actor_id, record_exit)


def return_gate_pass(db: Session, *, gate_pass_id: str, actor_id: str) -> models.GatePass:
    def record_return(gate_pass: models.GatePass) -> None:
        gate_pass.return_time = _utcnow()

    return _transition(db, gate_pass_id, "returned", actor_id, record_return)


def expire_gate_pass(
    db: Session,
    *,
    gate_pass_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> models.GatePass:
    return _transition(db, gate_pass_id, "expired", actor_id, now=now)


def cancel_gate_pass(db: Session, *, gate_pass_id: str, actor_id: str) -> models.GatePass:
    return _transition(db, gate_pass_id, "cancelled", actor_id)
