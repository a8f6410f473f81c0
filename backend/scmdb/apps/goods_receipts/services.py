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

DOCUMENT_TYPE = "goods_receipt"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _build_lines(db: Session, lines: List[dict]) -> List[models.GoodsReceiptLine]:
    built = []
    for number, line in enumerate(lines, start=1):
        inventory_services.get_item(db, line["item_id"])
        qty_damaged = line.get("qty_damaged") or Decimal("0")
        if qty_damaged > line["qty_received"]:
            raise BusinessRuleError(
                "Damaged quantity cannot exceed received quantity",
                detail=[{"field": f"lines[{number - 1}].qty_damaged", "reason": "greater than qty_received"}],
            )
        built.append(
            models.GoodsReceiptLine(
                line_number=number,
                item_id=line["item_id"],
                qty_received=line["qty_received"],
                qty_damaged=qty_damaged,
                unit_cost=line.get("unit_cost"),
                condition=line.get("condition") or "good",
            )
        )
    return built


def _validate(db: Session, receipt: models.GoodsReceipt) -> None:
    inventory_services.get_warehouse(db, receipt.warehouse_id)


def accepted_quantity(line: models.GoodsReceiptLine) -> Decimal:
    return Decimal(line.qty_received) - Decimal(line.qty_damaged or 0)


def create_receipt(db: Session, *, payload: schemas.GoodsReceiptCreate, actor_id: str) -> models.GoodsReceipt:
    with unit_of_work(db):
        receipt = models.GoodsReceipt(
            number=numbering_services.generate_document_number(db, DOCUMENT_TYPE),
            status=initial_status(DOCUMENT_TYPE),
            created_by_id=actor_id,
            **payload.model_dump(exclude={"lines"}),
        )
        _validate(db, receipt)
        receipt.lines = _build_lines(db, [line.model_dump() for line in payload.lines])
        db.add(receipt)
        db.flush()

        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=DOCUMENT_TYPE,
            entity_id=receipt.id,
            action="create",
            after=documents.snapshot(receipt),
        )
    logger.info("Goods receipt created", extra={"document_id": receipt.id, "number": receipt.number})
    return receipt


def get_receipt(db: Session, receipt_id: str) -> models.GoodsReceipt:
    return documents.load_document(db, models.GoodsReceipt, receipt_id)


def list_receipts(
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
        filters.append(models.GoodsReceipt.warehouse_id == warehouse_id)
    return documents.list_documents(
        db,
        models.GoodsReceipt,
        status=status,
        search=search,
        search_columns=[models.GoodsReceipt.supplier_name, models.GoodsReceipt.po_number],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def update_receipt(
    db: Session,
    *,
    receipt_id: str,
    patch: schemas.GoodsReceiptUpdate,
    actor_id: str,
) -> UpdateResult:
    return documents.update_document(
        db,
        model=models.GoodsReceipt,
        document_type=DOCUMENT_TYPE,
        document_id=receipt_id,
        patch=patch,
        actor_id=actor_id,
        build_lines=_build_lines,
        validate=_validate,
    )


def _transition(db: Session, receipt_id: str, to_state: str, actor_id: str, effect=None) -> models.GoodsReceipt:
    return documents.transition_document(
        db,
        model=models.GoodsReceipt,
        document_type=DOCUMENT_TYPE,
        document_id=receipt_id,
        to_state=to_state,
        actor_id=actor_id,
        effect=effect,
    ).document


def submit_receipt(db: Session, *, receipt_id: str, actor_id: str) -> models.GoodsReceipt:
    return _transition(db, receipt_id, "pending_qc", actor_id)


def approve_qc(db: Session, *, receipt_id: str, actor_id: str) -> models.GoodsReceipt:
    def stamp(receipt: models.GoodsReceipt) -> None:
        receipt.qc_approved_by_id = actor_id
        receipt.qc_approved_at = _utcnow()

    return _transition(db, receipt_id, "qc_approved", actor_id, stamp)


def reject_receipt(db: Session, *, receipt_id: str, actor_id: str) -> models.GoodsReceipt:
    return _transition(db, receipt_id, "rejected", actor_id)


def reopen_receipt(db: Session, *, receipt_id: str, actor_id: str) -> models.GoodsReceipt:
    return _transition(db, receipt_id, "draft", actor_id)


def receive_receipt(db: Session, *, receipt_id: str, actor_id: str) -> models.GoodsReceipt:
    def stamp(receipt: models.GoodsReceipt) -> None:
        receipt.received_by_id = actor_id
        receipt.received_at = _utcnow()

    return _transition(db, receipt_id, "received", actor_id, stamp)


def store_receipt(db: Session, *, receipt_id: str, actor_id: str) -> models.GoodsReceipt:
    """Put the accepted quantity of every line into the receiving warehouse."""

    def add_accepted_stock(receipt: models.GoodsReceipt) -> None:
        entries = [
            LedgerEntry(
                item_id=line.item_id,
                warehouse_id=receipt.warehouse_id,
                quantity=accepted_quantity(line),
                reference_type=DOCUMENT_TYPE,
                reference_id=receipt.id,
                unit_cost=line.unit_cost,
            )
            for line in receipt.lines
            if accepted_quantity(line) > 0
        ]
        inventory_services.increase_batch(db, entries, actor_id=actor_id)
        receipt.stored_by_id = actor_id
        receipt.stored_at = _utcnow()

    return _transition(db, receipt_id, "stored", actor_id, add_accepted_stock)
