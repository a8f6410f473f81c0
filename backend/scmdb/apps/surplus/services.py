from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy.orm import Session

from scmdb.apps.audit import services as audit_services
from scmdb.apps.inventory import services as inventory_services
from scmdb.apps.material_returns import schemas as return_schemas
from scmdb.apps.material_returns import services as return_services
from scmdb.apps.numbering import services as numbering_services
from scmdb.apps.stock_transfers import schemas as transfer_schemas
from scmdb.apps.stock_transfers import services as transfer_services
from scmdb.apps.workflow import documents
from scmdb.apps.workflow.documents import ActionResult, SpawnedDocument, UpdateResult
from scmdb.apps.workflow.registry import initial_status
from scmdb.database import unit_of_work

from . import models, schemas
from .models import SurplusDispositionEnum

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "surplus"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate(db: Session, surplus: models.SurplusItem) -> None:
    inventory_services.get_item(db, surplus.item_id)
    inventory_services.get_warehouse(db, surplus.warehouse_id)
    if surplus.target_warehouse_id is not None:
        inventory_services.get_warehouse(db, surplus.target_warehouse_id)


def create_surplus(db: Session, *, payload: schemas.SurplusCreate, actor_id: str) -> models.SurplusItem:
    with unit_of_work(db):
        number = numbering_services.generate_document_number(db, DOCUMENT_TYPE)
        surplus = models.SurplusItem(
            number=number,
            status=initial_status(DOCUMENT_TYPE),
            created_by_id=actor_id,
            **payload.model_dump(),
        )
        _validate(db, surplus)
        db.add(surplus)
        db.flush()
        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=DOCUMENT_TYPE,
            entity_id=surplus.id,
            action="create",
            after=documents.snapshot(surplus),
        )
    return surplus


def get_surplus(db: Session, surplus_id: str) -> models.SurplusItem:
    return documents.load_document(db, models.SurplusItem, surplus_id)


def list_surplus(
    db: Session,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    disposition: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> Dict[str, object]:
    filters = []
    if disposition:
        filters.append(models.SurplusItem.disposition == disposition)
    return documents.list_documents(
        db,
        models.SurplusItem,
        status=status,
        search=search,
        search_columns=[models.SurplusItem.description, models.SurplusItem.condition],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def update_surplus(
    db: Session,
    *,
    surplus_id: str,
    patch: schemas.SurplusUpdate,
    actor_id: str,
) -> UpdateResult:
    return documents.update_document(
        db,
        model=models.SurplusItem,
        document_type=DOCUMENT_TYPE,
        document_id=surplus_id,
        patch=patch,
        actor_id=actor_id,
        validate=_validate,
    )


def _transition(db: Session, surplus_id: str, to_state: str, actor_id: str, effect=None, now=None) -> ActionResult:
    return documents.transition_document(
        db,
        model=models.SurplusItem,
        document_type=DOCUMENT_TYPE,
        document_id=surplus_id,
        to_state=to_state,
        actor_id=actor_id,
        effect=effect,
        now=now,
    )


def evaluate_surplus(
    db: Session,
    *,
    surplus_id: str,
    payload: schemas.SurplusEvaluate,
    actor_id: str,
) -> models.SurplusItem:
    def record_evaluation(surplus: models.SurplusItem) -> None:
        surplus.disposition = payload.disposition
        surplus.target_warehouse_id = payload.target_warehouse_id
        surplus.evaluation_notes = payload.evaluation_notes
        if payload.estimated_value is not None:
            surplus.estimated_value = payload.estimated_value
        _validate(db, surplus)
        surplus.evaluated_by_id = actor_id
        surplus.evaluated_at = _utcnow()

    return _transition(db, surplus_id, "evaluated", actor_id, record_evaluation).document


def approve_surplus(db: Session, *, surplus_id: str, actor_id: str) -> models.SurplusItem:
    def record_ou_head_approval(surplus: models.SurplusItem) -> None:
        surplus.ou_head_approved_by_id = actor_id
        surplus.ou_head_approved_at = _utcnow()

    return _transition(db, surplus_id, "approved", actor_id, record_ou_head_approval).document


def reject_surplus(db: Session, *, surplus_id: str, actor_id: str) -> models.SurplusItem:
    return _transition(db, surplus_id, "rejected", actor_id).document


def reopen_surplus(db: Session, *, surplus_id: str, actor_id: str) -> models.SurplusItem:
    return _transition(db, surplus_id, "identified", actor_id).document


def _spawn_transfer(db: Session, surplus: models.SurplusItem, actor_id: str) -> SpawnedDocument:
    transfer = transfer_services.build_transfer(
        db,
        payload=transfer_schemas.StockTransferCreate(
            from_warehouse_id=surplus.warehouse_id,
            to_warehouse_id=surplus.target_warehouse_id,
            transfer_type="surplus_transfer",
            notes=f"Surplus {surplus.number}",
            lines=[
                transfer_schemas.StockTransferLineIn(
                    item_id=surplus.item_id,
                    quantity=surplus.qty,
                    condition=surplus.condition or "good",
                )
            ],
        ),
        actor_id=actor_id,
        source_surplus_id=surplus.id,
    )
    return SpawnedDocument(transfer_services.DOCUMENT_TYPE, transfer.id, transfer.number)


def _spawn_supplier_return(db: Session, surplus: models.SurplusItem, actor_id: str) -> SpawnedDocument:
    # Goods going back to the supplier must not be restocked on completion.
    material_return = return_services.build_return(
        db,
        payload=return_schemas.MaterialReturnCreate(
            to_warehouse_id=surplus.warehouse_id,
            from_warehouse_id=surplus.warehouse_id,
            return_type="return_to_supplier",
            reason=f"Surplus {surplus.number}",
            lines=[
                return_schemas.MaterialReturnLineIn(
                    item_id=surplus.item_id,
                    qty_returned=surplus.qty,
                    condition="rejected",
                )
            ],
        ),
        actor_id=actor_id,
        source_surplus_id=surplus.id,
    )
    return SpawnedDocument(return_services.DOCUMENT_TYPE, material_return.id, material_return.number)


def action_surplus(
    db: Session,
    *,
    surplus_id: str,
    actor_id: str,
    now: Optional[datetime] = None,
) -> ActionResult:
    """
    Carry out the approved disposition.

    transfer: spawns a draft stock transfer to the target warehouse.
    return: spawns a draft material return to the supplier.
    sell: no document; records the SCM approval. Only allowed once the
    OU head approval is old enough (see guard_surplus_sale_hold).
    """

    def carry_out(surplus: models.SurplusItem) -> Optional[SpawnedDocument]:
        spawned = None
        if surplus.disposition == SurplusDispositionEnum.TRANSFER:
            spawned = _spawn_transfer(db, surplus, actor_id)
        elif surplus.disposition == SurplusDispositionEnum.RETURN:
            spawned = _spawn_supplier_return(db, surplus, actor_id)
        else:
            surplus.scm_approved_by_id = actor_id
            surplus.scm_approved_at = now or _utcnow()

        if spawned is not None:
            surplus.linked_document_type = spawned.document_type
            surplus.linked_document_id = spawned.id
        surplus.actioned_at = now or _utcnow()
        return spawned

    result = _transition(db, surplus_id, "actioned", actor_id, carry_out, now=now)
    logger.info(
        "Surplus actioned",
        extra={
            "document_id": surplus_id,
            "disposition": result.document.disposition.value,
            "spawned_id": result.spawned.id if result.spawned else None,
        },
    )
    return result


def close_surplus(db: Session, *, surplus_id: str, actor_id: str) -> models.SurplusItem:
    def stamp(surplus: models.SurplusItem) -> None:
        surplus.closed_at = _utcnow()

    return _transition(db, surplus_id, "closed", actor_id, stamp).document
