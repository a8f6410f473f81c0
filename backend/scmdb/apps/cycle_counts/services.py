from __future__ import annotations

import logging
import math
import random
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from scmdb.apps.audit import services as audit_services
from scmdb.apps.inventory import services as inventory_services
from scmdb.apps.inventory.models import AbcClassEnum
from scmdb.apps.numbering import services as numbering_services
from scmdb.apps.workflow import documents
from scmdb.apps.workflow.documents import UpdateResult
from scmdb.apps.workflow.registry import initial_status
from scmdb.database import unit_of_work
from scmdb.errors import BusinessRuleError, NotFoundError

from . import models, schemas
from .models import CountTypeEnum

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "cycle_count"
RANDOM_SAMPLE_SHARE = 0.2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate(db: Session, count: models.CycleCount) -> None:
    inventory_services.get_warehouse(db, count.warehouse_id)
    if count.count_type == CountTypeEnum.ZONE and not count.zone:
        raise BusinessRuleError(
            "Zone counts need a zone",
            detail=[{"field": "zone", "reason": "required for count_type zone"}],
        )


def _line_for(db: Session, warehouse_id: int, item_id: int, line_number: int) -> models.CycleCountLine:
    inventory_services.get_item(db, item_id)
    expected = inventory_services.get_stock_level(db, item_id=item_id, warehouse_id=warehouse_id).on_hand
    return models.CycleCountLine(line_number=line_number, item_id=item_id, expected_qty=expected, status="pending")


def variance(expected: Decimal, counted: Decimal) -> tuple:
    """Return (variance_qty, variance_percent) with the percent rounded to 2 places."""
    expected = Decimal(expected)
    counted = Decimal(counted)
    diff = counted - expected
    if expected != 0:
        percent = diff / expected * 100
    else:
        percent = Decimal("100") if counted != 0 else Decimal("0")
    return diff, percent.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def create_count(db: Session, *, payload: schemas.CycleCountCreate, actor_id: str) -> models.CycleCount:
    with unit_of_work(db):
        count = models.CycleCount(
            number=numbering_services.generate_document_number(db, DOCUMENT_TYPE),
            status=initial_status(DOCUMENT_TYPE),
            created_by_id=actor_id,
            **payload.model_dump(),
        )
        _validate(db, count)
        db.add(count)
        db.flush()
        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=DOCUMENT_TYPE,
            entity_id=count.id,
            action="create",
            after=documents.snapshot(count),
        )
    logger.info(
        "Cycle count created",
        extra={"document_id": count.id, "number": count.number, "count_type": count.count_type.value},
    )
    return count


def get_count(db: Session, cycle_count_id: str) -> models.CycleCount:
    return documents.load_document(db, models.CycleCount, cycle_count_id)


def list_counts(
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
        filters.append(models.CycleCount.warehouse_id == warehouse_id)
    return documents.list_documents(
        db,
        models.CycleCount,
        status=status,
        search=search,
        search_columns=[models.CycleCount.zone, models.CycleCount.notes],
        filters=filters,
        skip=skip,
        limit=limit,
    )


def update_count(
    db: Session,
    *,
    cycle_count_id: str,
    patch: schemas.CycleCountUpdate,
    actor_id: str,
) -> UpdateResult:
    def build_lines(db: Session, lines: List[dict]) -> List[models.CycleCountLine]:
        warehouse_id = get_count(db, cycle_count_id).warehouse_id
        return [
            _line_for(db, warehouse_id, line["item_id"], number)
            for number, line in enumerate(lines, start=1)
        ]

    return documents.update_document(
        db,
        model=models.CycleCount,
        document_type=DOCUMENT_TYPE,
        document_id=cycle_count_id,
        patch=patch,
        actor_id=actor_id,
        build_lines=build_lines,
        validate=_validate,
    )


def generate_lines(
    db: Session,
    *,
    cycle_count_id: str,
    actor_id: str,
    rng: Optional[random.Random] = None,
) -> models.CycleCount:
    """
    Replace the count's lines with the levels selected by its count type.

    full and zone take every level in the warehouse, abc_based only class A
    items, random a sample of a fifth of the levels (at least one).
    """
    with unit_of_work(db):
        count = get_count(db, cycle_count_id)
        documents.ensure_editable(DOCUMENT_TYPE, count)

        levels = inventory_services.list_levels(db, warehouse_id=count.warehouse_id)
        if count.count_type == CountTypeEnum.ABC_BASED:
            levels = [level for level in levels if level.item.abc_class == AbcClassEnum.A]
        elif count.count_type == CountTypeEnum.RANDOM and levels:
            sample_size = max(1, math.ceil(len(levels) * RANDOM_SAMPLE_SHARE))
            levels = sorted((rng or random).sample(levels, sample_size), key=lambda level: level.item_id)

        if not levels:
            raise BusinessRuleError(
                f"No inventory found in warehouse {count.warehouse_id} for a {count.count_type.value} count",
                detail=[{"field": "count_type", "reason": "no matching inventory levels"}],
            )

        count.lines = [
            models.CycleCountLine(
                line_number=number,
                item_id=level.item_id,
                expected_qty=level.qty_on_hand,
                status="pending",
            )
            for number, level in enumerate(levels, start=1)
        ]
        db.flush()
        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=DOCUMENT_TYPE,
            entity_id=count.id,
            action="generate_lines",
            after={"line_count": len(count.lines)},
        )
    logger.info("Cycle count lines generated", extra={"document_id": count.id, "line_count": len(count.lines)})
    return count


def _transition(db: Session, cycle_count_id: str, to_state: str, actor_id: str, effect=None) -> models.CycleCount:
    return documents.transition_document(
        db,
        model=models.CycleCount,
        document_type=DOCUMENT_TYPE,
        document_id=cycle_count_id,
        to_state=to_state,
        actor_id=actor_id,
        effect=effect,
    ).document


def start_count(db: Session, *, cycle_count_id: str, actor_id: str) -> models.CycleCount:
    def stamp(count: models.CycleCount) -> None:
        count.started_at = _utcnow()

    return _transition(db, cycle_count_id, "in_progress", actor_id, stamp)


def record_count(
    db: Session,
    *,
    cycle_count_id: str,
    line_id: int,
    payload: schemas.CountRecord,
    actor_id: str,
) -> models.CycleCountLine:
    with unit_of_work(db):
        count = get_count(db, cycle_count_id)
        if count.status != "in_progress":
            raise BusinessRuleError(
                f"{count.number} is {count.status}; counts can only be recorded while in progress",
                detail=[{"field": "status", "reason": "count must be in_progress"}],
            )
        line = next((candidate for candidate in count.lines if candidate.id == line_id), None)
        if line is None:
            raise NotFoundError("CycleCountLine", line_id)

        line.counted_qty = payload.counted_qty
        line.variance_qty, line.variance_percent = variance(line.expected_qty, payload.counted_qty)
        line.status = "counted"
        line.counted_by_id = actor_id
        line.counted_at = _utcnow()
        if payload.notes is not None:
            line.notes = payload.notes
        db.flush()
        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=DOCUMENT_TYPE,
            entity_id=count.id,
            action="record_count",
            after={
                "line_id": line.id,
                "counted_qty": str(line.counted_qty),
                "variance_qty": str(line.variance_qty),
                "variance_percent": str(line.variance_percent),
            },
        )
    return line


def complete_count(db: Session, *, cycle_count_id: str, actor_id: str) -> models.CycleCount:
    def stamp(count: models.CycleCount) -> None:
        count.completed_at = _utcnow()

    return _transition(db, cycle_count_id, "completed", actor_id, stamp)


def cancel_count(db: Session, *, cycle_count_id: str, actor_id: str) -> models.CycleCount:
    return _transition(db, cycle_count_id, "cancelled", actor_id)


def apply_adjustments(db: Session, *, cycle_count_id: str, actor_id: str) -> models.CycleCount:
    """
    Post the variances of a completed count to the ledger.

    Each counted line with a non-zero variance sets on-hand to the counted
    quantity. Runs once per count; all adjustments commit together or not at all.
    """
    with unit_of_work(db):
        count = get_count(db, cycle_count_id)
        if count.status != "completed":
            raise BusinessRuleError(
                f"{count.number} is {count.status}; adjustments need a completed count",
                detail=[{"field": "status", "reason": "count must be completed"}],
            )
        if count.adjustments_applied_at is not None:
            raise BusinessRuleError(
                f"Adjustments for {count.number} were already applied",
                detail=[{"field": "adjustments_applied_at", "reason": "already applied"}],
            )

        adjusted = []
        for line in count.lines:
            if line.status != "counted" or not line.variance_qty:
                continue
            inventory_services.set_quantity(
                db,
                item_id=line.item_id,
                warehouse_id=count.warehouse_id,
                quantity=line.counted_qty,
                actor_id=actor_id,
                reference_type=DOCUMENT_TYPE,
                reference_id=count.id,
                notes=f"{count.number} line {line.line_number}",
            )
            line.status = "adjusted"
            adjusted.append(line.id)

        count.adjustments_applied_at = _utcnow()
        count.adjustments_applied_by_id = actor_id
        db.flush()
        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=DOCUMENT_TYPE,
            entity_id=count.id,
            action="apply_adjustments",
            after={"adjusted_lines": adjusted},
        )
    logger.info("Cycle count adjustments applied", extra={"document_id": count.id, "adjusted": len(adjusted)})
    return count
