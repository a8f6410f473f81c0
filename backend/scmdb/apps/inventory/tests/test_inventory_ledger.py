from __future__ import annotations

import threading
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

from scmdb.database import Base, build_engine, unit_of_work
from scmdb.apps.inventory import models as inventory_models
from scmdb.apps.inventory import services as ledger
from scmdb.apps.inventory.services import LedgerEntry
from scmdb.errors import (
    ConcurrentModificationError,
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
)


def _stock(db, item, warehouse) -> Decimal:
    return ledger.get_stock_level(db, item_id=item.id, warehouse_id=warehouse.id).on_hand


def _receive(db, item, warehouse, quantity):
    with unit_of_work(db):
        ledger.increase(db, item_id=item.id, warehouse_id=warehouse.id, quantity=quantity, actor_id="u-store")


def test_increase_creates_level_lazily_and_records_movement(db_session, catalog):
    assert ledger.get_stock_level(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id).version == 0

    _receive(db_session, catalog.bolt, catalog.main, 10)

    level = ledger.get_stock_level(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    assert level.on_hand == 10
    assert level.available == 10
    assert level.version == 1

    movements = ledger.list_movements(db_session, item_id=catalog.bolt.id)
    assert len(movements) == 1
    assert movements[0].movement_type == inventory_models.StockMovementTypeEnum.RECEIVE
    assert movements[0].qty_delta == 10
    assert movements[0].balance_after == 10
    assert movements[0].actor_id == "u-store"


def test_decrease_below_zero_is_rejected_without_side_effects(db_session, catalog):
    _receive(db_session, catalog.bolt, catalog.main, 4)

    with pytest.raises(InsufficientStockError):
        with unit_of_work(db_session):
            ledger.decrease(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=5, actor_id="u")

    assert _stock(db_session, catalog.bolt, catalog.main) == 4
    assert len(ledger.list_movements(db_session, item_id=catalog.bolt.id)) == 1


def test_decrease_without_level_is_insufficient(db_session, catalog):
    with pytest.raises(InsufficientStockError):
        ledger.decrease(db_session, item_id=catalog.valve.id, warehouse_id=catalog.site.id, quantity=1, actor_id="u")


@pytest.mark.parametrize("quantity", [0, -1, Decimal("-0.5"), None, "abc", float("nan")])
def test_non_positive_or_malformed_quantities_are_rejected(db_session, catalog, quantity):
    with pytest.raises(InvalidQuantityError):
        ledger.increase(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=quantity, actor_id="u")
    assert ledger.list_movements(db_session) == []


def test_unknown_item_or_warehouse_is_not_found(db_session, catalog):
    with pytest.raises(NotFoundError):
        ledger.increase(db_session, item_id=9999, warehouse_id=catalog.main.id, quantity=1, actor_id="u")
    with pytest.raises(NotFoundError):
        ledger.increase(db_session, item_id=catalog.bolt.id, warehouse_id=9999, quantity=1, actor_id="u")


def test_decrease_batch_is_all_or_nothing(db_session, catalog):
    _receive(db_session, catalog.bolt, catalog.main, 10)
    _receive(db_session, catalog.cable, catalog.main, 3)

    with pytest.raises(InsufficientStockError):
        with unit_of_work(db_session):
            ledger.decrease_batch(
                db_session,
                [
                    LedgerEntry(catalog.bolt.id, catalog.main.id, Decimal("5")),
                    LedgerEntry(catalog.cable.id, catalog.main.id, Decimal("50")),
                ],
                actor_id="u",
            )

    assert _stock(db_session, catalog.bolt, catalog.main) == 10
    assert _stock(db_session, catalog.cable, catalog.main) == 3
    issues = ledger.list_movements(db_session, movement_types=[inventory_models.StockMovementTypeEnum.ISSUE])
    assert issues == []


def test_failed_batch_inside_outer_transaction_keeps_earlier_work(db_session, catalog):
    _receive(db_session, catalog.bolt, catalog.main, 10)

    ledger.decrease(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=1, actor_id="u")
    with pytest.raises(InsufficientStockError):
        ledger.decrease_batch(
            db_session,
            [
                LedgerEntry(catalog.bolt.id, catalog.main.id, Decimal("2")),
                LedgerEntry(catalog.bolt.id, catalog.main.id, Decimal("100")),
            ],
            actor_id="u",
        )
    db_session.commit()

    assert _stock(db_session, catalog.bolt, catalog.main) == 9


def test_empty_batch_is_a_no_op(db_session, catalog):
    assert ledger.increase_batch(db_session, [], actor_id="u") == []
    assert ledger.decrease_batch(db_session, [], actor_id="u") == []
    assert ledger.list_movements(db_session) == []


def test_batch_movements_follow_caller_order(db_session, catalog):
    with unit_of_work(db_session):
        movements = ledger.increase_batch(
            db_session,
            [
                LedgerEntry(catalog.valve.id, catalog.site.id, Decimal("1"), "goods_receipt", "grn-1"),
                LedgerEntry(catalog.bolt.id, catalog.main.id, Decimal("2"), "goods_receipt", "grn-1"),
                LedgerEntry(catalog.valve.id, catalog.site.id, Decimal("3"), "goods_receipt", "grn-1"),
            ],
            actor_id="u",
        )

    assert [m.item_id for m in movements] == [catalog.valve.id, catalog.bolt.id, catalog.valve.id]
    assert [m.balance_after for m in movements] == [Decimal("1"), Decimal("2"), Decimal("4")]
    assert len(ledger.list_movements(db_session, reference_type="goods_receipt", reference_id="grn-1")) == 3


def test_reservations_limit_availability(db_session, catalog):
    _receive(db_session, catalog.bolt, catalog.main, 10)
    entry = LedgerEntry(catalog.bolt.id, catalog.main.id, Decimal("4"))

    with unit_of_work(db_session):
        ledger.reserve_batch(db_session, [entry], actor_id="u")
    level = ledger.get_stock_level(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    assert (level.on_hand, level.reserved, level.available) == (10, 4, 6)

    with pytest.raises(InsufficientStockError):
        ledger.decrease(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=7, actor_id="u")
    with pytest.raises(InsufficientStockError):
        ledger.reserve_batch(db_session, [LedgerEntry(catalog.bolt.id, catalog.main.id, Decimal("7"))], actor_id="u")

    with unit_of_work(db_session):
        ledger.consume_reserved_batch(db_session, [entry], actor_id="u")
    level = ledger.get_stock_level(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    assert (level.on_hand, level.reserved, level.available) == (6, 0, 6)

    with pytest.raises(InsufficientStockError):
        ledger.release_batch(db_session, [LedgerEntry(catalog.bolt.id, catalog.main.id, Decimal("1"))], actor_id="u")


def test_set_quantity_records_signed_adjustment(db_session, catalog):
    _receive(db_session, catalog.cable, catalog.main, 10)

    with unit_of_work(db_session):
        movement = ledger.set_quantity(
            db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id, quantity=7, actor_id="u"
        )
    assert movement.movement_type == inventory_models.StockMovementTypeEnum.ADJUSTMENT
    assert movement.qty_delta == -3
    assert _stock(db_session, catalog.cable, catalog.main) == 7

    assert ledger.set_quantity(db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id, quantity=7, actor_id="u") is None
    assert ledger.set_quantity(db_session, item_id=catalog.valve.id, warehouse_id=catalog.site.id, quantity=0, actor_id="u") is None


def test_set_quantity_cannot_drop_below_reserved(db_session, catalog):
    _receive(db_session, catalog.cable, catalog.main, 10)
    with unit_of_work(db_session):
        ledger.reserve_batch(db_session, [LedgerEntry(catalog.cable.id, catalog.main.id, Decimal("6"))], actor_id="u")

    with pytest.raises(InsufficientStockError):
        ledger.set_quantity(db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id, quantity=5, actor_id="u")


def test_low_stock_alert_is_raised_once_and_cleared_on_restock(db_session, catalog, caplog):
    _receive(db_session, catalog.bolt, catalog.main, 10)
    with unit_of_work(db_session):
        ledger.update_thresholds(
            db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, min_level=2, reorder_point=5
        )

    with unit_of_work(db_session):
        ledger.decrease(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=6, actor_id="u")
        ledger.decrease(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=1, actor_id="u")

    assert [level.alert_sent for level in ledger.list_levels(db_session, low_stock_only=True)] == [True]
    assert len([r for r in caplog.records if r.getMessage() == "Low stock"]) == 1

    _receive(db_session, catalog.bolt, catalog.main, 20)
    assert ledger.list_levels(db_session, low_stock_only=True) == []


def _bump_version_on_read(monkeypatch, *, times):
    """Simulate another writer committing between our read and our update."""
    real_read = ledger._read_level
    calls = {"count": 0}

    def racing_read(db, item_id, warehouse_id):
        state = real_read(db, item_id, warehouse_id)
        if state is not None and calls["count"] < times:
            calls["count"] += 1
            db.execute(
                update(inventory_models.InventoryLevel)
                .where(inventory_models.InventoryLevel.id == state.id)
                .values(version=inventory_models.InventoryLevel.version + 1)
                .execution_options(synchronize_session=False)
            )
        return state

    monkeypatch.setattr(ledger, "_read_level", racing_read)
    return calls


def test_version_conflict_is_retried(db_session, catalog, monkeypatch):
    _receive(db_session, catalog.bolt, catalog.main, 10)
    _bump_version_on_read(monkeypatch, times=1)

    with unit_of_work(db_session):
        ledger.decrease(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=3, actor_id="u")

    monkeypatch.undo()
    assert _stock(db_session, catalog.bolt, catalog.main) == 7


def test_persistent_conflict_raises_concurrent_modification(db_session, catalog, monkeypatch):
    _receive(db_session, catalog.bolt, catalog.main, 10)
    _bump_version_on_read(monkeypatch, times=1000)

    with pytest.raises(ConcurrentModificationError):
        with unit_of_work(db_session):
            ledger.decrease(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=3, actor_id="u")

    monkeypatch.undo()
    assert _stock(db_session, catalog.bolt, catalog.main) == 10
    assert len(ledger.list_movements(db_session, item_id=catalog.bolt.id)) == 1


def test_sequential_sessions_cannot_overdraw(engine, db_session, catalog):
    _receive(db_session, catalog.bolt, catalog.main, 10)
    db_session.close()

    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    first = Session()
    with unit_of_work(first):
        ledger.decrease(first, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=6, actor_id="a")
    first.close()

    second = Session()
    with pytest.raises(InsufficientStockError):
        with unit_of_work(second):
            ledger.decrease(second, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=6, actor_id="b")
    assert _stock(second, catalog.bolt, catalog.main) == 4
    second.close()


def test_concurrent_decreases_never_overdraw(tmp_path):
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    with Session() as setup:
        warehouse = inventory_models.Warehouse(code="WH-1", name="Store")
        item = inventory_models.Item(item_code="PUMP-1", description="Pump")
        setup.add_all([warehouse, item])
        setup.commit()
        with unit_of_work(setup):
            ledger.increase(setup, item_id=item.id, warehouse_id=warehouse.id, quantity=10, actor_id="seed")
        item_id, warehouse_id = item.id, warehouse.id

    barrier = threading.Barrier(2)
    outcomes = []

    def worker(actor):
        session = Session()
        try:
            barrier.wait()
            with unit_of_work(session):
                ledger.decrease(session, item_id=item_id, warehouse_id=warehouse_id, quantity=6, actor_id=actor)
            outcomes.append("ok")
        except InsufficientStockError:
            outcomes.append("insufficient")
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(f"worker-{n}",)) for n in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["insufficient", "ok"]
    with Session() as check:
        assert ledger.get_stock_level(check, item_id=item_id, warehouse_id=warehouse_id).on_hand == 4
        issues = ledger.list_movements(
            check, item_id=item_id, movement_types=[inventory_models.StockMovementTypeEnum.ISSUE]
        )
        assert len(issues) == 1
    engine.dispose()


def test_any_restock_clears_alert_even_below_threshold(db_session, catalog, caplog):
    _receive(db_session, catalog.cable, catalog.main, 10)
    with unit_of_work(db_session):
        ledger.update_thresholds(
            db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id, min_level=None, reorder_point=5
        )
    with unit_of_work(db_session):
        ledger.decrease(db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id, quantity=7, actor_id="u")
    assert len(ledger.list_levels(db_session, low_stock_only=True)) == 1

    _receive(db_session, catalog.cable, catalog.main, 1)
    assert ledger.list_levels(db_session, low_stock_only=True) == []

    with unit_of_work(db_session):
        ledger.decrease(db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id, quantity=1, actor_id="u")
    assert len(ledger.list_levels(db_session, low_stock_only=True)) == 1
    assert len([r for r in caplog.records if r.getMessage() == "Low stock"]) == 2


def test_increase_opens_a_lot_at_unit_cost(db_session, catalog):
    with unit_of_work(db_session):
        movement = ledger.increase(
            db_session,
            item_id=catalog.bolt.id,
            warehouse_id=catalog.main.id,
            quantity=10,
            unit_cost="2.50",
            actor_id="u",
        )

    assert movement.total_cost == Decimal("25")
    [lot] = ledger.list_lots(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    assert lot.lot_number.startswith("LOT-")
    assert lot.movement_id == movement.id
    assert lot.qty_received == lot.qty_remaining == Decimal("10")
    assert lot.unit_cost == Decimal("2.5")


def test_decrease_consumes_oldest_lots_first_and_reports_cost(db_session, catalog):
    for quantity, unit_cost in ((10, "2"), (10, "3")):
        with unit_of_work(db_session):
            ledger.increase(
                db_session,
                item_id=catalog.bolt.id,
                warehouse_id=catalog.main.id,
                quantity=quantity,
                unit_cost=unit_cost,
                actor_id="u",
            )

    with unit_of_work(db_session):
        movement = ledger.decrease(
            db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=15, actor_id="u"
        )

    assert movement.total_cost == Decimal("35")
    consumptions = ledger.list_lot_consumptions(db_session, movement_id=movement.id)
    assert [(c.quantity, c.unit_cost) for c in consumptions] == [
        (Decimal("10"), Decimal("2")),
        (Decimal("5"), Decimal("3")),
    ]

    [remaining] = ledger.list_lots(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    assert remaining.qty_remaining == Decimal("5")
    assert remaining.unit_cost == Decimal("3")
    depleted = ledger.list_lots(db_session, item_id=catalog.bolt.id, active_only=False)[0]
    assert depleted.status == inventory_models.LotStatusEnum.DEPLETED


def test_batch_entries_for_one_level_share_its_lots(db_session, catalog):
    with unit_of_work(db_session):
        ledger.increase_batch(
            db_session,
            [
                LedgerEntry(catalog.cable.id, catalog.main.id, Decimal("4"), unit_cost=Decimal("1")),
                LedgerEntry(catalog.cable.id, catalog.main.id, Decimal("4"), unit_cost=Decimal("5")),
            ],
            actor_id="u",
        )
        ledger.reserve_batch(db_session, [LedgerEntry(catalog.cable.id, catalog.main.id, Decimal("6"))], actor_id="u")

    with unit_of_work(db_session):
        first, second = ledger.consume_reserved_batch(
            db_session,
            [
                LedgerEntry(catalog.cable.id, catalog.main.id, Decimal("3")),
                LedgerEntry(catalog.cable.id, catalog.main.id, Decimal("3")),
            ],
            actor_id="u",
        )

    assert first.total_cost == Decimal("3")
    assert second.total_cost == Decimal("11")
    lots = ledger.list_lots(db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id)
    assert sum(lot.qty_remaining for lot in lots) == _stock(db_session, catalog.cable, catalog.main) == Decimal("2")


def test_uncosted_stock_reports_no_cost(db_session, catalog):
    _receive(db_session, catalog.valve, catalog.site, 3)

    with unit_of_work(db_session):
        movement = ledger.decrease(
            db_session, item_id=catalog.valve.id, warehouse_id=catalog.site.id, quantity=2, actor_id="u"
        )

    assert movement.total_cost is None
    [consumption] = ledger.list_lot_consumptions(db_session, movement_id=movement.id)
    assert consumption.quantity == Decimal("2")
    assert consumption.unit_cost is None


def test_set_quantity_adjusts_lots_both_ways(db_session, catalog):
    with unit_of_work(db_session):
        ledger.increase(
            db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=5, unit_cost=4, actor_id="u"
        )
        down = ledger.set_quantity(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=3, actor_id="u")
    assert down.total_cost == Decimal("8")

    with unit_of_work(db_session):
        ledger.set_quantity(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=6, actor_id="u")
    lots = ledger.list_lots(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    assert [(lot.qty_remaining, lot.unit_cost) for lot in lots] == [(Decimal("3"), Decimal("4")), (Decimal("3"), None)]


def test_negative_unit_cost_is_rejected(db_session, catalog):
    with pytest.raises(InvalidQuantityError) as excinfo:
        ledger.increase(
            db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id, quantity=1, unit_cost=-1, actor_id="u"
        )
    assert excinfo.value.detail == [{"field": "unit_cost", "reason": "must be zero or more"}]
    assert ledger.list_lots(db_session, item_id=catalog.bolt.id) == []
