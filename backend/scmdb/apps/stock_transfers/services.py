from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
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
from scmdb.errors import BusinessRuleError

from . import models, schemas

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "stock_transfer"

UNIT_COST_STEP = Decimal("0.0001")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _build_lines(db: Session, lines: List[dict]) -> List[models.StockTransferLine]:
    built = []
    for number, line in enumerate(lines, start=1):
        inventory_services.get_item(db, line["item_id"])
        built.append(
            models.StockTransferLine(
                line_number=number,
                item_id=line["item_id"],
                quantity=line["quantity"],
                condition=line.get("condition") or "good",
            )
        )
    return built


def _validate(db: Session, transfer: models.StockTransfer) -> None:
    inventory_services.get_warehouse(db, transfer.from_warehouse_id)
    inventory_services.get_warehouse(db, transfer.to_warehouse_id)
    if transfer.from_warehouse_id == transfer.to_warehouse_id:
        raise BusinessRuleError(
            "Source and destination warehouse must differ",
            detail=[{"field": "to_warehouse_id", "reason": "same as from_warehouse_id"}],
        )


def _entries(transfer: models.StockTransfer, warehouse_id: int) -> List[LedgerEntry]:
    return [
        LedgerEntry(
            item_id=line.item_id,
            warehouse_id=warehouse_id,
            quantity=line.quantity,
            reference_type=DOCUMENT_TYPE,
            reference_id=transfer.id,
            unit_cost=line.unit_cost,
        )
        for line in transfer.lines
    ]


def build_transfer(
    db: Session,
    *,
    payload: schemas.StockTransferCreate,
    actor_id: str,
    source_surplus_id: Optional[str] = None,
) -> models.StockTransfer:
    """Create a draft transfer inside the caller's transaction."""
    number = numbering_services.generate_document_number(db, DOCUMENT_TYPE)
    transfer = models.StockTransfer(
        number=number,
        status=initial_status(DOCUMENT_TYPE),
        transfer_type=payload.transfer_type,
        from_warehouse_id=payload.from_warehouse_id,
        to_warehouse_id=payload.to_warehouse_id,
        transfer_date=payload.transfer_date,
        notes=payload.notes,
        source_surplus_id=source_surplus_id,
        created_by_id=actor_id,
    )
    _validate(db, transfer)
    transfer.lines = _build_lines(db, [line.model_dump() for line in payload.lines])
    db.add(transfer)
    db.flush()

    audit_services.log_event(
        db,
        actor_id=actor_id,
        entity_type=DOCUMENT_TYPE,
        entity_id=transfer.id,
        action="create",
        after=documents.snapshot(transfer),
    )
    return transfer


def create_transfer(
    db: Session,
    *,
    payload: schemas.StockTransferCreate,
    actor_id: str,
) -> models.StockTransfer:
    with unit_of_work(db):
        transfer = build_transfer(db, payload=payload, actor_id=actor_id)
    logger.info("Stock transfer created", extra={"document_id": transfer.id, "number": transfer.number})
    return transfer


def get_transfer(db: Session, transfer_id: str) -> models.StockTransfer:
    return documents.load_document(db, models.StockTransfer, transfer_id)


def list_transfers(
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
        filters.append(
            (models.StockTransfer.from_warehouse_id == warehouse_id)
            | (models.StockTransfer.to_warehouse_id == warehouse_id)
        )
    return documents.list_documents(
        db,
        models.StockTransfer,
        status=status,
        search=search,
        search_columns=[models.StockTransfer.notes, models.StockTransfer.transfer_type],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def update_transfer(
    db: Session,
    *,
    transfer_id: str,
    patch: schemas.StockTransferUpdate,
    actor_id: str,
) -> UpdateResult:
    return documents.update_document(
        db,
        model=models.StockTransfer,
        document_type=DOCUMENT_TYPE,
        document_id=transfer_id,
        patch=patch,
        actor_id=actor_id,
        build_lines=_build_lines,
        validate=_validate,
    )


def _transition(db: Session, transfer_id: str, to_state: str, actor_id: str, effect=None) -> models.StockTransfer:
    result = documents.transition_document(
        db,
        model=models.StockTransfer,
        document_type=DOCUMENT_TYPE,
        document_id=transfer_id,
        to_state=to_state,
        actor_id=actor_id,
        effect=effect,
    )
    return result.document


def submit_transfer(db: Session, *, transfer_id: str, actor_id: str) -> models.StockTransfer:
    return _transition(db, transfer_id, "pending", actor_id)


def approve_transfer(db: Session, *, transfer_id: str, actor_id: str) -> models.StockTransfer:
    def stamp(transfer: models.StockTransfer) -> None:
        transfer.approved_by_id = actor_id
        transfer.approved_at = _utcnow()

    return _transition(db, transfer_id, "approved", actor_id, stamp)


def ship_transfer(db: Session, *, transfer_id: str, actor_id: str) -> models.StockTransfer:
    def deduct_at_source(transfer: models.StockTransfer) -> None:
        movements = inventory_services.decrease_batch(
            db, _entries(transfer, transfer.from_warehouse_id), actor_id=actor_id
        )
        # The destination lots carry the average FIFO cost of what left the source.
        for line, movement in zip(transfer.lines, movements):
            if movement.total_cost is not None:
                line.unit_cost = (movement.total_cost / Decimal(line.quantity)).quantize(UNIT_COST_STEP)
        transfer.shipped_by_id = actor_id
        transfer.shipped_at = _utcnow()

    return _transition(db, transfer_id, "shipped", actor_id, deduct_at_source)


def receive_transfer(db: Session, *, transfer_id: str, actor_id: str) -> models.StockTransfer:
    def add_at_destination(transfer: models.StockTransfer) -> None:
        inventory_services.increase_batch(db, _entries(transfer, transfer.to_warehouse_id), actor_id=actor_id)
        transfer.received_by_id = actor_id
        transfer.received_at = _utcnow()

    return _transition(db, transfer_id, "received", actor_id, add_at_destination)


def complete_transfer(db: Session, *, transfer_id: str, actor_id: str) -> models.StockTransfer:
    return _transition(db, transfer_id, "completed", actor_id)


def cancel_transfer(db: Session, *, transfer_id: str, actor_id: str) -> models.StockTransfer:
    return _transition(db, transfer_id, "cancelled", actor_id)
