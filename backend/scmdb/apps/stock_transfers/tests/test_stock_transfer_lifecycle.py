from __future__ import annotations

from decimal import Decimal

import pytest

from scmdb.apps.audit import models as audit_models
from scmdb.apps.inventory import models as inventory_models
from scmdb.apps.inventory import services as ledger
from scmdb.apps.numbering import services as numbering_services
from scmdb.apps.stock_transfers import models as transfer_models
from scmdb.apps.stock_transfers import schemas, services
from scmdb.database import unit_of_work
from scmdb.errors import (
    BusinessRuleError,
    FieldsLockedError,
    InsufficientStockError,
    InvalidTransitionError,
    MissingRequirementsError,
    NotFoundError,
)


def _seed(db, item, warehouse, quantity):
    with unit_of_work(db):
        ledger.increase(db, item_id=item.id, warehouse_id=warehouse.id, quantity=quantity, actor_id="seed")


def _draft(db, catalog, quantity=5):
    return services.create_transfer(
        db,
        payload=schemas.StockTransferCreate(
            from_warehouse_id=catalog.main.id,
            to_warehouse_id=catalog.site.id,
            lines=[schemas.StockTransferLineIn(item_id=catalog.bolt.id, quantity=quantity)],
        ),
        actor_id="u-planner",
    )


def _on_hand(db, item, warehouse):
    return ledger.get_stock_level(db, item_id=item.id, warehouse_id=warehouse.id).on_hand


def test_full_lifecycle_moves_stock_between_warehouses(db_session, catalog):
    _seed(db_session, catalog.bolt, catalog.main, 10)
    transfer = _draft(db_session, catalog)
    assert transfer.status == "draft"
    assert transfer.number.startswith("ST-")

    services.submit_transfer(db_session, transfer_id=transfer.id, actor_id="u-planner")
    services.approve_transfer(db_session, transfer_id=transfer.id, actor_id="u-manager")
    shipped = services.ship_transfer(db_session, transfer_id=transfer.id, actor_id="u-store")

    assert shipped.status == "shipped"
    assert shipped.shipped_by_id == "u-store"
    assert _on_hand(db_session, catalog.bolt, catalog.main) == 5
    issues = ledger.list_movements(db_session, reference_type="stock_transfer", reference_id=transfer.id)
    assert [m.movement_type for m in issues] == [inventory_models.StockMovementTypeEnum.ISSUE]

    services.receive_transfer(db_session, transfer_id=transfer.id, actor_id="u-site")
    assert _on_hand(db_session, catalog.bolt, catalog.site) == 5

    completed = services.complete_transfer(db_session, transfer_id=transfer.id, actor_id="u-site")
    assert completed.status == "completed"
    assert len(ledger.list_movements(db_session, reference_id=transfer.id)) == 2

    actions = sorted(
        event.after["status"]
        for event in db_session.query(audit_models.AuditEvent)
        .filter(audit_models.AuditEvent.entity_id == transfer.id, audit_models.AuditEvent.action == "transition")
    )
    assert actions == sorted(["pending", "approved", "shipped", "received", "completed"])


def test_ship_from_draft_is_rejected_without_ledger_effect(db_session, catalog):
    _seed(db_session, catalog.bolt, catalog.main, 10)
    transfer = _draft(db_session, catalog)

    with pytest.raises(InvalidTransitionError):
        services.ship_transfer(db_session, transfer_id=transfer.id, actor_id="u-store")

    assert services.get_transfer(db_session, transfer.id).status == "draft"
    assert _on_hand(db_session, catalog.bolt, catalog.main) == 10
    assert ledger.list_movements(db_session, reference_id=transfer.id) == []


def test_failed_ship_rolls_back_status(db_session, catalog):
    _seed(db_session, catalog.bolt, catalog.main, 3)
    transfer = _draft(db_session, catalog, quantity=5)
    services.submit_transfer(db_session, transfer_id=transfer.id, actor_id="u")
    services.approve_transfer(db_session, transfer_id=transfer.id, actor_id="u")

    with pytest.raises(InsufficientStockError):
        services.ship_transfer(db_session, transfer_id=transfer.id, actor_id="u")

    db_session.expire_all()
    assert services.get_transfer(db_session, transfer.id).status == "approved"
    assert _on_hand(db_session, catalog.bolt, catalog.main) == 3


@pytest.mark.parametrize("steps", [[], ["submit"], ["submit", "approve"]])
def test_cancel_is_allowed_before_shipping(db_session, catalog, steps):
    transfer = _draft(db_session, catalog)
    for step in steps:
        getattr(services, f"{step}_transfer")(db_session, transfer_id=transfer.id, actor_id="u")

    cancelled = services.cancel_transfer(db_session, transfer_id=transfer.id, actor_id="u")
    assert cancelled.status == "cancelled"


def test_cancel_after_shipping_is_rejected(db_session, catalog):
    _seed(db_session, catalog.bolt, catalog.main, 10)
    transfer = _draft(db_session, catalog)
    for step in ("submit", "approve", "ship"):
        getattr(services, f"{step}_transfer")(db_session, transfer_id=transfer.id, actor_id="u")

    with pytest.raises(InvalidTransitionError):
        services.cancel_transfer(db_session, transfer_id=transfer.id, actor_id="u")


def test_update_only_while_draft(db_session, catalog):
    transfer = _draft(db_session, catalog)

    result = services.update_transfer(
        db_session,
        transfer_id=transfer.id,
        patch=schemas.StockTransferUpdate(
            notes="urgent",
            lines=[schemas.StockTransferLineIn(item_id=catalog.cable.id, quantity=Decimal("2.5"))],
        ),
        actor_id="u",
    )
    assert result.existing["notes"] is None
    assert result.existing["lines"][0]["item_id"] == catalog.bolt.id
    assert result.updated.notes == "urgent"
    assert [(line.item_id, line.quantity) for line in result.updated.lines] == [(catalog.cable.id, Decimal("2.5"))]

    services.submit_transfer(db_session, transfer_id=transfer.id, actor_id="u")
    with pytest.raises(FieldsLockedError):
        services.update_transfer(
            db_session,
            transfer_id=transfer.id,
            patch=schemas.StockTransferUpdate(notes="too late"),
            actor_id="u",
        )
    assert services.get_transfer(db_session, transfer.id).notes == "urgent"


def test_submit_requires_lines(db_session, catalog):
    transfer = services.create_transfer(
        db_session,
        payload=schemas.StockTransferCreate(from_warehouse_id=catalog.main.id, to_warehouse_id=catalog.site.id),
        actor_id="u",
    )
    with pytest.raises(MissingRequirementsError):
        services.submit_transfer(db_session, transfer_id=transfer.id, actor_id="u")


def test_same_source_and_destination_is_rejected(db_session, catalog):
    with pytest.raises(BusinessRuleError):
        services.create_transfer(
            db_session,
            payload=schemas.StockTransferCreate(from_warehouse_id=catalog.main.id, to_warehouse_id=catalog.main.id),
            actor_id="u",
        )
    assert db_session.query(transfer_models.StockTransfer).count() == 0


def test_number_generator_failure_aborts_creation(db_session, catalog, monkeypatch):
    def broken(db, document_type):
        raise RuntimeError("sequence unavailable")

    monkeypatch.setattr(numbering_services, "generate_document_number", broken)
    with pytest.raises(RuntimeError):
        _draft(db_session, catalog)
    assert db_session.query(transfer_models.StockTransfer).count() == 0


def test_unknown_transfer_is_not_found(db_session, catalog):
    with pytest.raises(NotFoundError):
        services.submit_transfer(db_session, transfer_id="missing", actor_id="u")


def test_list_filters_by_status_and_search(db_session, catalog):
    first = _draft(db_session, catalog)
    second = _draft(db_session, catalog)
    services.update_transfer(
        db_session, transfer_id=second.id, patch=schemas.StockTransferUpdate(notes="Pump spares"), actor_id="u"
    )
    services.submit_transfer(db_session, transfer_id=first.id, actor_id="u")

    pending = services.list_transfers(db_session, status="pending")
    assert pending["total"] == 1
    assert pending["data"][0].id == first.id

    found = services.list_transfers(db_session, search="pump")
    assert [t.id for t in found["data"]] == [second.id]

    page = services.list_transfers(db_session, skip=1, limit=1)
    assert page["total"] == 2
    assert len(page["data"]) == 1


def test_transfer_carries_source_cost_to_destination_lots(db_session, catalog):
    with unit_of_work(db_session):
        for quantity, unit_cost in ((4, "1"), (6, "2")):
            ledger.increase(
                db_session,
                item_id=catalog.bolt.id,
                warehouse_id=catalog.main.id,
                quantity=quantity,
                unit_cost=unit_cost,
                actor_id="seed",
            )
    transfer = _draft(db_session, catalog, quantity=5)
    services.submit_transfer(db_session, transfer_id=transfer.id, actor_id="u-planner")
    services.approve_transfer(db_session, transfer_id=transfer.id, actor_id="u-manager")

    shipped = services.ship_transfer(db_session, transfer_id=transfer.id, actor_id="u-store")
    assert shipped.lines[0].unit_cost == Decimal("1.2")

    services.receive_transfer(db_session, transfer_id=transfer.id, actor_id="u-site")
    [site_lot] = ledger.list_lots(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.site.id)
    assert (site_lot.qty_remaining, site_lot.unit_cost) == (Decimal("5"), Decimal("1.2"))
    [main_lot] = ledger.list_lots(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    assert (main_lot.qty_remaining, main_lot.unit_cost) == (Decimal("5"), Decimal("2"))
