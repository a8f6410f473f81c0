from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from scmdb.apps.audit import services as audit_services
from scmdb.apps.inventory import services as inventory_services
from scmdb.apps.inventory.services import LedgerEntry
from scmdb.apps.numbering import services as numbering_services
from scmdb.apps.workflow import documents
from scmdb.apps.workflow.documents import UpdateResult
from scmdb.apps.workflow.registry import initial_status
from scmdb.database import unit_of_work

from . import models, schemas

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "material_return"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _build_lines(db: Session, lines: List[dict]) -> List[models.MaterialReturnLine]:
    built = []
    for number, line in enumerate(lines, start=1):
        inventory_services.get_item(db, line["item_id"])
        built.append(
            models.MaterialReturnLine(
                line_number=number,
                item_id=line["item_id"],
                qty_returned=line["qty_returned"],
                condition=line.get("condition") or models.ReturnConditionEnum.GOOD,
                notes=line.get("notes"),
            )
        )
    return built


def _validate(db: Session, material_return: models.MaterialReturn) -> None:
    inventory_services.get_warehouse(db, material_return.to_warehouse_id)
    if material_return.from_warehouse_id is not None:
        inventory_services.get_warehouse(db, material_return.from_warehouse_id)


def build_return(
    db: Session,
    *,
    payload: schemas.MaterialReturnCreate,
    actor_id: str,
    source_surplus_id: Optional[str] = None,
) -> models.MaterialReturn:
    """Create a draft return inside the caller's transaction."""
    number = numbering_services.generate_document_number(db, DOCUMENT_TYPE)
    material_return = models.MaterialReturn(
        number=number,
        status=initial_status(DOCUMENT_TYPE),
        source_surplus_id=source_surplus_id,
        created_by_id=actor_id,
        **payload.model_dump(exclude={"lines"}),
    )
    _validate(db, material_return)
    material_return.lines = _build_lines(db, [line.model_dump() for line in payload.lines])
    db.add(material_return)
    db.flush()

    audit_services.log_event(
        db,
        actor_id=actor_id,
        entity_type=DOCUMENT_TYPE,
        entity_id=material_return.id,
        action="create",
        after=documents.snapshot(material_return),
    )
    return material_return


def create_return(db: Session, *, payload: schemas.MaterialReturnCreate, actor_id: str) -> models.MaterialReturn:
    with unit_of_work(db):
        material_return = build_return(db, payload=payload, actor_id=actor_id)
    logger.info("Material return created", extra={"document_id": material_return.id, "number": material_return.number})
    return material_return


def get_return(db: Session, return_id: str) -> models.MaterialReturn:
    return documents.load_document(db, models.MaterialReturn, return_id)


def list_returns(
    db: Session,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    return_type: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> Dict[str, object]:
    filters = []
    if return_type:
        filters.append(models.MaterialReturn.return_type == return_type)
    return documents.list_documents(
        db,
        models.MaterialReturn,
        status=status,
        search=search,
        search_columns=[models.MaterialReturn.reason],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def update_return(
    db: Session,
    *,
    return_id: str,
    patch: schemas.MaterialReturnUpdate,
    actor_id: str,
) -> UpdateResult:
    return documents.update_document(
        db,
        model=models.MaterialReturn,
        document_type=DOCUMENT_TYPE,
        document_id=return_id,
        patch=patch,
        actor_id=actor_id,
        build_lines=_build_lines,
        validate=_validate,
    )


def _transition(db: Session, return_id: str, to_state: str, actor_id: str, effect=None) -> models.MaterialReturn:
    return documents.transition_document(
        db,
        model=models.MaterialReturn,
        document_type=DOCUMENT_TYPE,
        document_id=return_id,
        to_state=to_state,
        actor_id=actor_id,
        effect=effect,
    ).document


def submit_return(db: Session, *, return_id: str, actor_id: str) -> models.MaterialReturn:
    return _transition(db, return_id, "pending", actor_id)


def receive_return(db: Session, *, return_id: str, actor_id: str) -> models.MaterialReturn:
    def stamp(material_return: models.MaterialReturn) -> None:
        material_return.received_by_id = actor_id
        material_return.received_at = _utcnow()

    return _transition(db, return_id, "received", actor_id, stamp)


def reject_return(db: Session, *, return_id: str, actor_id: str) -> models.MaterialReturn:
    return _transition(db, return_id, "rejected", actor_id)


def reopen_return(db: Session, *, return_id: str, actor_id: str) -> models.MaterialReturn:
    return _transition(db, return_id, "draft", actor_id)


def complete_return(db: Session, *, return_id: str, actor_id: str) -> models.MaterialReturn:
    """Close the return and put the good-condition lines back into stock."""

    def restock_good_lines(material_return: models.MaterialReturn) -> None:
        entries = [
            LedgerEntry(
                item_id=line.item_id,
                warehouse_id=material_return.to_warehouse_id,
                quantity=line.qty_returned,
                reference_type=DOCUMENT_TYPE,
                reference_id=material_return.id,
            )
            for line in material_return.lines
            if line.condition == models.ReturnConditionEnum.GOOD
        ]
        inventory_services.increase_batch(db, entries, actor_id=actor_id)
        material_return.completed_at = _utcnow()

    return _transition(db, return_id, "completed", actor_id, restock_good_lines)
