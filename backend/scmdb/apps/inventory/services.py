"""
Inventory ledger.

The only code allowed to change `InventoryLevel.qty_on_hand` and
`qty_reserved`. Every change is a conditional UPDATE that checks both the
row version and the stock invariants in its WHERE clause, and writes exactly
one StockMovement per level touched.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scmdb.apps.numbering import services as numbering_services
from scmdb.errors import (
    BusinessRuleError,
    ConcurrentModificationError,
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
)
from scmdb.utils.identifiers import normalize_code

from . import models, schemas

logger = logging.getLogger(__name__)

MAX_RETRIES = int(os.getenv("INVENTORY_MAX_RETRIES", "3"))

ZERO = Decimal("0")

Level = models.InventoryLevel


@dataclass(frozen=True)
class LedgerEntry:
    item_id: int
    warehouse_id: int
    quantity: Decimal
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    unit_cost: Optional[Decimal] = None


@dataclass(frozen=True)
class StockLevel:
    item_id: int
    warehouse_id: int
    on_hand: Decimal
    reserved: Decimal
    available: Decimal
    version: int


@dataclass(frozen=True)
class _LevelState:
    id: int
    qty_on_hand: Decimal
    qty_reserved: Decimal
    version: int
    min_level: Optional[Decimal]
    reorder_point: Optional[Decimal]
    alert_sent: bool


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_quantity(value, *, allow_zero: bool = False) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidQuantityError(f"Invalid quantity: {value!r}")
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidQuantityError(f"Invalid quantity: {value!r}") from None
    if not quantity.is_finite() or quantity < 0 or (quantity == 0 and not allow_zero):
        raise InvalidQuantityError(
            f"Quantity must be {'zero or more' if allow_zero else 'greater than zero'}, got {value}",
            detail=[{"field": "quantity", "reason": "must be positive"}],
        )
    return quantity


def _to_unit_cost(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return _to_quantity(value, allow_zero=True)
    except InvalidQuantityError:
        raise InvalidQuantityError(
            f"Invalid unit cost: {value!r}",
            detail=[{"field": "unit_cost", "reason": "must be zero or more"}],
        ) from None


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


# ---------------------------------------------------------------------------
# MASTER DATA
# ---------------------------------------------------------------------------


def create_item(db: Session, *, payload: schemas.ItemCreate) -> models.Item:
    item_code = normalize_code(payload.item_code)
    if db.query(models.Item.id).filter(models.Item.item_code == item_code).first():
        raise BusinessRuleError(
            f"Item {item_code} already exists",
            detail=[{"field": "item_code", "reason": "duplicate"}],
        )
    item = models.Item(
        item_code=item_code,
        description=payload.description,
        uom=payload.uom,
        abc_class=payload.abc_class,
    )
    db.add(item)
    db.flush()
    return item


def create_warehouse(db: Session, *, payload: schemas.WarehouseCreate) -> models.Warehouse:
    code = normalize_code(payload.code)
    if db.query(models.Warehouse.id).filter(models.Warehouse.code == code).first():
        raise BusinessRuleError(
            f"Warehouse {code} already exists",
            detail=[{"field": "code", "reason": "duplicate"}],
        )
    warehouse = models.Warehouse(code=code, name=payload.name, is_active=payload.is_active)
    db.add(warehouse)
    db.flush()
    return warehouse


def get_item(db: Session, item_id: int) -> models.Item:
    item = db.get(models.Item, item_id)
    if item is None:
        raise NotFoundError("Item", item_id)
    return item


def get_warehouse(db: Session, warehouse_id: int) -> models.Warehouse:
    warehouse = db.get(models.Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFoundError("Warehouse", warehouse_id)
    return warehouse


def list_items(db: Session) -> List[models.Item]:
    return db.query(models.Item).order_by(models.Item.item_code.asc()).all()


def list_warehouses(db: Session) -> List[models.Warehouse]:
    return db.query(models.Warehouse).order_by(models.Warehouse.code.asc()).all()


# ---------------------------------------------------------------------------
# LEVEL ACCESS
# ---------------------------------------------------------------------------


def _read_level(db: Session, item_id: int, warehouse_id: int) -> Optional[_LevelState]:
    row = db.execute(
        select(
            Level.id,
            Level.qty_on_hand,
            Level.qty_reserved,
            Level.version,
            Level.min_level,
            Level.reorder_point,
            Level.alert_sent,
        ).where(Level.item_id == item_id, Level.warehouse_id == warehouse_id)
    ).one_or_none()
    if row is None:
        return None
    return _LevelState(
        id=row.id,
        qty_on_hand=_dec(row.qty_on_hand),
        qty_reserved=_dec(row.qty_reserved),
        version=row.version,
        min_level=row.min_level,
        reorder_point=row.reorder_point,
        alert_sent=bool(row.alert_sent),
    )


def _create_level(db: Session, item_id: int, warehouse_id: int) -> None:
    try:
        with db.begin_nested():
            db.add(
                models.InventoryLevel(
                    item_id=item_id,
                    warehouse_id=warehouse_id,
                    qty_on_hand=ZERO,
                    qty_reserved=ZERO,
                    version=0,
                )
            )
    except IntegrityError:
        # Created by a concurrent writer; the caller re-reads it.
        logger.info(
            "Inventory level created concurrently",
            extra={"item_id": item_id, "warehouse_id": warehouse_id},
        )


def _ensure_references(db: Session, item_id: int, warehouse_id: int) -> None:
    get_item(db, item_id)
    get_warehouse(db, warehouse_id)


def _low_stock_severity(state: _LevelState, available: Decimal) -> Optional[str]:
    if state.min_level is not None and available <= _dec(state.min_level):
        return "critical"
    if state.reorder_point is not None and available <= _dec(state.reorder_point):
        return "warning"
    return None


def _open_lot(
    db: Session, movement: models.StockMovement, quantity: Decimal, unit_cost: Optional[Decimal]
) -> models.InventoryLot:
    lot = models.InventoryLot(
        lot_number=numbering_services.generate_document_number(db, "lot"),
        item_id=movement.item_id,
        warehouse_id=movement.warehouse_id,
        movement_id=movement.id,
        qty_received=quantity,
        qty_remaining=quantity,
        unit_cost=unit_cost,
        received_at=movement.occurred_at,
    )
    db.add(lot)
    return lot


def _consume_lots(db: Session, movement: models.StockMovement, quantity: Decimal) -> Optional[Decimal]:
    """
    Take `quantity` from the level's lots, oldest receipt first.

    Returns the cost of what was taken, or None when no consumed lot carried
    a unit cost. Called after the level UPDATE, so the level row lock
    serializes lot consumption per level.
    """
    Lot = models.InventoryLot
    lots = (
        db.query(Lot)
        .filter(
            Lot.item_id == movement.item_id,
            Lot.warehouse_id == movement.warehouse_id,
            Lot.status == models.LotStatusEnum.ACTIVE,
        )
        .order_by(Lot.received_at.asc(), Lot.id.asc())
        .all()
    )

    remaining = quantity
    total_cost = ZERO
    costed = False
    for lot in lots:
        if remaining <= 0:
            break
        taken = min(remaining, _dec(lot.qty_remaining))
        if taken <= 0:
            continue
        lot.qty_remaining = _dec(lot.qty_remaining) - taken
        if lot.qty_remaining == 0:
            lot.status = models.LotStatusEnum.DEPLETED
        db.add(
            models.LotConsumption(
                lot_id=lot.id,
                movement_id=movement.id,
                quantity=taken,
                unit_cost=lot.unit_cost,
                consumed_at=movement.occurred_at,
            )
        )
        if lot.unit_cost is not None:
            costed = True
            total_cost += taken * _dec(lot.unit_cost)
        remaining -= taken

    if remaining > 0:
        # Stock that predates lot tracking.
        logger.warning(
            "Stock consumed without a lot",
            extra={
                "item_id": movement.item_id,
                "warehouse_id": movement.warehouse_id,
                "quantity": str(remaining),
            },
        )
    return total_cost if costed else None


def _apply_change(
    db: Session,
    *,
    item_id: int,
    warehouse_id: int,
    movement_type: models.StockMovementTypeEnum,
    actor_id: Optional[str],
    on_hand_delta: Decimal = ZERO,
    reserved_delta: Decimal = ZERO,
    target: Optional[Decimal] = None,
    create_missing: bool = False,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    notes: Optional[str] = None,
    unit_cost: Optional[Decimal] = None,
) -> Optional[models.StockMovement]:
    """
    Apply one delta (or an absolute `target` on-hand) to a level.

    Zero rows updated means either the invariant guard failed or another
    writer bumped the version first; a re-read tells the two apart.

    An on-hand increase opens a lot at `unit_cost`; a decrease consumes lots
    FIFO and records their cost on the movement.
    """
    for attempt in range(1, MAX_RETRIES + 1):
        state = _read_level(db, item_id, warehouse_id)
        if state is None:
            if not create_missing:
                raise InsufficientStockError(
                    f"No stock of item {item_id} in warehouse {warehouse_id}",
                    detail=[{"field": "item_id", "reason": "no inventory level"}],
                )
            _create_level(db, item_id, warehouse_id)
            state = _read_level(db, item_id, warehouse_id)

        delta = (target - state.qty_on_hand) if target is not None else on_hand_delta
        if delta == 0 and reserved_delta == 0:
            return None

        new_on_hand = state.qty_on_hand + delta
        new_reserved = state.qty_reserved + reserved_delta
        severity = _low_stock_severity(state, new_on_hand - new_reserved)
        # Any restock clears the alert; it is raised again on the next drop.
        alert_sent = False if delta > 0 else (state.alert_sent or severity is not None)
        now = _utcnow()

        result = db.execute(
            update(Level)
            .where(
                Level.id == state.id,
                Level.version == state.version,
                Level.qty_on_hand + delta >= 0,
                Level.qty_reserved + reserved_delta >= 0,
                Level.qty_on_hand + delta >= Level.qty_reserved + reserved_delta,
            )
            .values(
                qty_on_hand=Level.qty_on_hand + delta,
                qty_reserved=Level.qty_reserved + reserved_delta,
                version=Level.version + 1,
                last_movement_at=now,
                alert_sent=alert_sent,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1:
            movement = models.StockMovement(
                level_id=state.id,
                item_id=item_id,
                warehouse_id=warehouse_id,
                movement_type=movement_type,
                qty_delta=delta,
                reserved_delta=reserved_delta,
                balance_after=new_on_hand,
                reference_type=reference_type,
                reference_id=reference_id,
                actor_id=actor_id,
                notes=notes,
                total_cost=delta * unit_cost if delta > 0 and unit_cost is not None else None,
                occurred_at=now,
            )
            db.add(movement)
            db.flush()
            if delta > 0:
                _open_lot(db, movement, delta, unit_cost)
            elif delta < 0:
                movement.total_cost = _consume_lots(db, movement, -delta)
            db.flush()
            if alert_sent and not state.alert_sent:
                logger.warning(
                    "Low stock",
                    extra={
                        "item_id": item_id,
                        "warehouse_id": warehouse_id,
                        "available": str(new_on_hand - new_reserved),
                        "severity": severity,
                    },
                )
            return movement

        current = _read_level(db, item_id, warehouse_id)
        if current is not None and current.version == state.version:
            available = state.qty_on_hand - state.qty_reserved
            raise InsufficientStockError(
                f"Insufficient stock for item {item_id} in warehouse {warehouse_id}: "
                f"on hand {state.qty_on_hand}, reserved {state.qty_reserved}, available {available}",
                detail=[{"field": "quantity", "reason": f"available {available}"}],
            )

        logger.warning(
            "Inventory level version conflict, retrying",
            extra={"item_id": item_id, "warehouse_id": warehouse_id, "attempt": attempt},
        )

    raise ConcurrentModificationError(
        f"Inventory level for item {item_id} in warehouse {warehouse_id} kept changing; "
        f"gave up after {MAX_RETRIES} attempts",
        detail=[{"field": "version", "reason": "concurrent modification"}],
    )


def _run_batch(
    db: Session,
    entries: Sequence[LedgerEntry],
    *,
    actor_id: Optional[str],
    movement_type: models.StockMovementTypeEnum,
    on_hand_sign: int,
    reserved_sign: int,
    create_missing: bool,
) -> List[models.StockMovement]:
    if not entries:
        return []

    # Validate everything up front so bad input never touches a level.
    quantities = [_to_quantity(entry.quantity) for entry in entries]
    unit_costs = [_to_unit_cost(entry.unit_cost) for entry in entries]
    for entry in entries:
        _ensure_references(db, entry.item_id, entry.warehouse_id)

    movements: List[models.StockMovement] = []
    with db.begin_nested():
        for entry, quantity, unit_cost in zip(entries, quantities, unit_costs):
            movement = _apply_change(
                db,
                item_id=entry.item_id,
                warehouse_id=entry.warehouse_id,
                movement_type=movement_type,
                actor_id=actor_id,
                on_hand_delta=quantity * on_hand_sign,
                reserved_delta=quantity * reserved_sign,
                create_missing=create_missing,
                reference_type=entry.reference_type,
                reference_id=entry.reference_id,
                notes=entry.notes,
                unit_cost=unit_cost,
            )
            movements.append(movement)
        db.flush()

    logger.info(
        "Ledger batch applied",
        extra={"movement_type": movement_type.value, "entries": len(entries), "actor_id": actor_id},
    )
    return movements


# ---------------------------------------------------------------------------
# LEDGER OPERATIONS
# ---------------------------------------------------------------------------


def increase_batch(
    db: Session, entries: Sequence[LedgerEntry], *, actor_id: Optional[str]
) -> List[models.StockMovement]:
    """Add stock for every entry, creating levels as needed. All or nothing."""
    return _run_batch(
        db,
        entries,
        actor_id=actor_id,
        movement_type=models.StockMovementTypeEnum.RECEIVE,
        on_hand_sign=1,
        reserved_sign=0,
        create_missing=True,
    )


def decrease_batch(
    db: Session, entries: Sequence[LedgerEntry], *, actor_id: Optional[str]
) -> List[models.StockMovement]:
    """Remove stock for every entry. One short entry fails the whole batch."""
    return _run_batch(
        db,
        entries,
        actor_id=actor_id,
        movement_type=models.StockMovementTypeEnum.ISSUE,
        on_hand_sign=-1,
        reserved_sign=0,
        create_missing=False,
    )


def reserve_batch(
    db: Session, entries: Sequence[LedgerEntry], *, actor_id: Optional[str]
) -> List[models.StockMovement]:
    return _run_batch(
        db,
        entries,
        actor_id=actor_id,
        movement_type=models.StockMovementTypeEnum.RESERVE,
        on_hand_sign=0,
        reserved_sign=1,
        create_missing=False,
    )


def release_batch(
    db: Session, entries: Sequence[LedgerEntry], *, actor_id: Optional[str]
) -> List[models.StockMovement]:
    return _run_batch(
        db,
        entries,
        actor_id=actor_id,
        movement_type=models.StockMovementTypeEnum.RELEASE,
        on_hand_sign=0,
        reserved_sign=-1,
        create_missing=False,
    )


def consume_reserved_batch(
    db: Session, entries: Sequence[LedgerEntry], *, actor_id: Optional[str]
) -> List[models.StockMovement]:
    """Issue stock that was reserved earlier: on hand and reserved both drop."""
    return _run_batch(
        db,
        entries,
        actor_id=actor_id,
        movement_type=models.StockMovementTypeEnum.CONSUME,
        on_hand_sign=-1,
        reserved_sign=-1,
        create_missing=False,
    )


def increase(
    db: Session,
    *,
    item_id: int,
    warehouse_id: int,
    quantity,
    actor_id: Optional[str],
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    notes: Optional[str] = None,
    unit_cost=None,
) -> models.StockMovement:
    entry = LedgerEntry(item_id, warehouse_id, quantity, reference_type, reference_id, notes, unit_cost)
    return increase_batch(db, [entry], actor_id=actor_id)[0]


def decrease(
    db: Session,
    *,
    item_id: int,
    warehouse_id: int,
    quantity,
    actor_id: Optional[str],
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> models.StockMovement:
    entry = LedgerEntry(item_id, warehouse_id, quantity, reference_type, reference_id, notes)
    return decrease_batch(db, [entry], actor_id=actor_id)[0]


def set_quantity(
    db: Session,
    *,
    item_id: int,
    warehouse_id: int,
    quantity,
    actor_id: Optional[str],
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Optional[models.StockMovement]:
    """
    Set on-hand to an absolute quantity (stock count adjustment).

    Records an ADJUSTMENT movement carrying the signed difference; returns
    None when the level already holds `quantity`.
    """
    target = _to_quantity(quantity, allow_zero=True)
    _ensure_references(db, item_id, warehouse_id)
    if target == 0 and _read_level(db, item_id, warehouse_id) is None:
        return None
    with db.begin_nested():
        movement = _apply_change(
            db,
            item_id=item_id,
            warehouse_id=warehouse_id,
            movement_type=models.StockMovementTypeEnum.ADJUSTMENT,
            actor_id=actor_id,
            target=target,
            create_missing=target > 0,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        )
        db.flush()
    return movement


def update_thresholds(
    db: Session,
    *,
    item_id: int,
    warehouse_id: int,
    min_level=None,
    reorder_point=None,
) -> models.InventoryLevel:
    _ensure_references(db, item_id, warehouse_id)
    if _read_level(db, item_id, warehouse_id) is None:
        _create_level(db, item_id, warehouse_id)
    db.execute(
        update(Level)
        .where(Level.item_id == item_id, Level.warehouse_id == warehouse_id)
        .values(
            min_level=None if min_level is None else _to_quantity(min_level, allow_zero=True),
            reorder_point=None if reorder_point is None else _to_quantity(reorder_point, allow_zero=True),
            version=Level.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return (
        db.query(Level)
        .populate_existing()
        .filter(Level.item_id == item_id, Level.warehouse_id == warehouse_id)
        .one()
    )


# ---------------------------------------------------------------------------
# QUERIES
# ---------------------------------------------------------------------------


def get_stock_level(db: Session, *, item_id: int, warehouse_id: int) -> StockLevel:
    state = _read_level(db, item_id, warehouse_id)
    if state is None:
        return StockLevel(item_id, warehouse_id, ZERO, ZERO, ZERO, 0)
    return StockLevel(
        item_id=item_id,
        warehouse_id=warehouse_id,
        on_hand=state.qty_on_hand,
        reserved=state.qty_reserved,
        available=state.qty_on_hand - state.qty_reserved,
        version=state.version,
    )


def list_levels(
    db: Session,
    *,
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    low_stock_only: bool = False,
) -> List[models.InventoryLevel]:
    query = db.query(Level).populate_existing()
    if item_id is not None:
        query = query.filter(Level.item_id == item_id)
    if warehouse_id is not None:
        query = query.filter(Level.warehouse_id == warehouse_id)
    if low_stock_only:
        query = query.filter(Level.alert_sent.is_(True))
    return query.order_by(Level.warehouse_id.asc(), Level.item_id.asc()).all()


def list_movements(
    db: Session,
    *,
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    movement_types: Optional[Iterable[models.StockMovementTypeEnum]] = None,
    limit: int = 500,
) -> List[models.StockMovement]:
    query = db.query(models.StockMovement)
    if item_id is not None:
        query = query.filter(models.StockMovement.item_id == item_id)
    if warehouse_id is not None:
        query = query.filter(models.StockMovement.warehouse_id == warehouse_id)
    if reference_type:
        query = query.filter(models.StockMovement.reference_type == reference_type)
    if reference_id:
        query = query.filter(models.StockMovement.reference_id == reference_id)
    if movement_types:
        query = query.filter(models.StockMovement.movement_type.in_(list(movement_types)))
    return query.order_by(models.StockMovement.id.asc()).limit(limit).all()


def list_lots(
    db: Session,
    *,
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    active_only: bool = True,
) -> List[models.InventoryLot]:
    """Lots in consumption order: oldest receipt first."""
    Lot = models.InventoryLot
    query = db.query(Lot)
    if item_id is not None:
        query = query.filter(Lot.item_id == item_id)
    if warehouse_id is not None:
        query = query.filter(Lot.warehouse_id == warehouse_id)
    if active_only:
        query = query.filter(Lot.status == models.LotStatusEnum.ACTIVE)
    return query.order_by(Lot.received_at.asc(), Lot.id.asc()).all()


def list_lot_consumptions(db: Session, *, movement_id: int) -> List[models.LotConsumption]:
    return (
        db.query(models.LotConsumption)
        .filter(models.LotConsumption.movement_id == movement_id)
        .order_by(models.LotConsumption.id.asc())
        .all()
    )
