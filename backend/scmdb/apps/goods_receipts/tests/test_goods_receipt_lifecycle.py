from __future__ import annotations

from decimal import Decimal

import pytest

from scmdb.apps.goods_receipts import schemas, services
from scmdb.apps.inventory import services as ledger
from scmdb.errors import (
    BusinessRuleError,
    FieldsLockedError,
    InvalidTransitionError,
    MissingRequirementsError,
    NotFoundError,
)


def _draft(db, catalog, lines=None):
    if lines is None:
        lines = [
            schemas.GoodsReceiptLineIn(item_id=catalog.bolt.id, qty_received=100, qty_damaged=5, unit_cost="0.35"),
            schemas.GoodsReceiptLineIn(item_id=catalog.cable.id, qty_received=20),
        ]
    return services.create_receipt(
        db,
        payload=schemas.GoodsReceiptCreate(
            warehouse_id=catalog.main.id,
            supplier_name="Acme Fasteners",
            po_number="PO-7781",
            lines=lines,
        ),
        actor_id="u-store",
    )


def _advance(db, receipt, *actions):
    for action in actions:
        getattr(services, action)(db, receipt_id=receipt.id, actor_id="u")


def test_storing_adds_accepted_quantity(db_session, catalog):
    receipt = _draft(db_session, catalog)
    assert receipt.number.startswith("GRN-")

    _advance(db_session, receipt, "submit_receipt", "approve_qc", "receive_receipt")
    assert ledger.list_movements(db_session, reference_id=receipt.id) == []

    stored = services.store_receipt(db_session, receipt_id=receipt.id, actor_id="u-store")

    assert stored.status == "stored"
    assert stored.stored_by_id == "u-store"
    assert stored.qc_approved_by_id == "u"
    bolt = ledger.get_stock_level(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    cable = ledger.get_stock_level(db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id)
    assert bolt.on_hand == Decimal("95")
    assert cable.on_hand == Decimal("20")
    movements = ledger.list_movements(db_session, reference_type="goods_receipt", reference_id=receipt.id)
    assert [m.item_id for m in movements] == [catalog.bolt.id, catalog.cable.id]


def test_fully_damaged_line_adds_nothing(db_session, catalog):
    receipt = _draft(
        db_session,
        catalog,
        lines=[
            schemas.GoodsReceiptLineIn(item_id=catalog.valve.id, qty_received=2, qty_damaged=2),
            schemas.GoodsReceiptLineIn(item_id=catalog.bolt.id, qty_received=10),
        ],
    )
    _advance(db_session, receipt, "submit_receipt", "approve_qc", "receive_receipt", "store_receipt")

    movements = ledger.list_movements(db_session, reference_id=receipt.id)
    assert [m.item_id for m in movements] == [catalog.bolt.id]
    valve = ledger.get_stock_level(db_session, item_id=catalog.valve.id, warehouse_id=catalog.main.id)
    assert valve.on_hand == 0


def test_damaged_cannot_exceed_received(db_session, catalog):
    with pytest.raises(BusinessRuleError):
        _draft(
            db_session,
            catalog,
            lines=[schemas.GoodsReceiptLineIn(item_id=catalog.bolt.id, qty_received=1, qty_damaged=3)],
        )


def test_qc_rejection_returns_to_draft_for_correction(db_session, catalog):
    receipt = _draft(db_session, catalog)
    _advance(db_session, receipt, "submit_receipt", "reject_receipt")
    assert services.get_receipt(db_session, receipt.id).status == "rejected"

    with pytest.raises(InvalidTransitionError):
        services.store_receipt(db_session, receipt_id=receipt.id, actor_id="u")

    services.reopen_receipt(db_session, receipt_id=receipt.id, actor_id="u")
    result = services.update_receipt(
        db_session,
        receipt_id=receipt.id,
        patch=schemas.GoodsReceiptUpdate(supplier_name="Acme Fasteners Ltd"),
        actor_id="u",
    )
    assert result.existing["supplier_name"] == "Acme Fasteners"
    assert result.updated.supplier_name == "Acme Fasteners Ltd"
    assert len(result.updated.lines) == 2


def test_storing_before_qc_is_rejected(db_session, catalog):
    receipt = _draft(db_session, catalog)
    services.submit_receipt(db_session, receipt_id=receipt.id, actor_id="u")

    with pytest.raises(InvalidTransitionError) as excinfo:
        services.store_receipt(db_session, receipt_id=receipt.id, actor_id="u")
    assert "qc_approved" in excinfo.value.message
    assert ledger.list_movements(db_session) == []


def test_submit_requires_lines(db_session, catalog):
    receipt = _draft(db_session, catalog, lines=[])
    with pytest.raises(MissingRequirementsError):
        services.submit_receipt(db_session, receipt_id=receipt.id, actor_id="u")
    assert services.get_receipt(db_session, receipt.id).status == "draft"


def test_update_locked_after_submit(db_session, catalog):
    receipt = _draft(db_session, catalog)
    services.submit_receipt(db_session, receipt_id=receipt.id, actor_id="u")
    with pytest.raises(FieldsLockedError):
        services.update_receipt(
            db_session, receipt_id=receipt.id, patch=schemas.GoodsReceiptUpdate(po_number="PO-1"), actor_id="u"
        )


def test_list_searches_supplier_and_po(db_session, catalog):
    receipt = _draft(db_session, catalog)
    assert services.list_receipts(db_session, search="acme")["total"] == 1
    assert services.list_receipts(db_session, search="po-7781")["data"][0].id == receipt.id
    assert services.list_receipts(db_session, search="nothing")["total"] == 0
    assert services.list_receipts(db_session, warehouse_id=catalog.site.id)["total"] == 0


def test_unknown_receipt(db_session):
    with pytest.raises(NotFoundError):
        services.get_receipt(db_session, "nope")


def test_storing_opens_lots_at_line_unit_cost(db_session, catalog):
    receipt = _draft(db_session, catalog)
    _advance(db_session, receipt, "submit_receipt", "approve_qc", "receive_receipt", "store_receipt")

    [bolt_lot] = ledger.list_lots(db_session, item_id=catalog.bolt.id, warehouse_id=catalog.main.id)
    [cable_lot] = ledger.list_lots(db_session, item_id=catalog.cable.id, warehouse_id=catalog.main.id)
    assert (bolt_lot.qty_remaining, bolt_lot.unit_cost) == (Decimal("95"), Decimal("0.35"))
    assert (cable_lot.qty_remaining, cable_lot.unit_cost) == (Decimal("20"), None)
    bolt_movement = ledger.list_movements(db_session, item_id=catalog.bolt.id, reference_id=receipt.id)[0]
    assert bolt_movement.total_cost == Decimal("33.25")
