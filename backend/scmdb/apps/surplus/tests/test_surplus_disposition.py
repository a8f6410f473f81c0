from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from scmdb.apps.inventory import services as ledger
from scmdb.apps.material_returns import models as return_models
from scmdb.apps.material_returns import services as return_services
from scmdb.apps.stock_transfers import models as transfer_models
from scmdb.apps.surplus import schemas, services
from scmdb.errors import (
    BusinessRuleError,
    FieldsLockedError,
    MissingRequirementsError,
    PreconditionNotMetError,
)


def _approved(db, catalog, disposition, target=None):
    surplus = services.create_surplus(
        db,
        payload=schemas.SurplusCreate(
            item_id=catalog.valve.id,
            warehouse_id=catalog.main.id,
            qty=4,
            condition="good",
            description="Valves left over from pipeline job",
        ),
        actor_id="u-store",
    )
    services.evaluate_surplus(
        db,
        surplus_id=surplus.id,
        payload=schemas.SurplusEvaluate(disposition=disposition, target_warehouse_id=target),
        actor_id="u-evaluator",
    )
    return services.approve_surplus(db, surplus_id=surplus.id, actor_id="u-ou-head")


def test_transfer_disposition_spawns_draft_transfer(db_session, catalog):
    surplus = _approved(db_session, catalog, "transfer", target=catalog.site.id)
    assert surplus.ou_head_approved_by_id == "u-ou-head"

    result = services.action_surplus(db_session, surplus_id=surplus.id, actor_id="u-scm")

    assert result.document.status == "actioned"
    assert result.spawned.document_type == "stock_transfer"
    assert result.spawned.number.startswith("ST-")
    transfer = db_session.get(transfer_models.StockTransfer, result.spawned.id)
    assert transfer.status == "draft"
    assert transfer.source_surplus_id == surplus.id
    assert (transfer.from_warehouse_id, transfer.to_warehouse_id) == (catalog.main.id, catalog.site.id)
    assert [(line.item_id, line.quantity) for line in transfer.lines] == [(catalog.valve.id, 4)]
    assert result.document.linked_document_id == transfer.id

    closed = services.close_surplus(db_session, surplus_id=surplus.id, actor_id="u-scm")
    assert closed.status == "closed"


def test_return_disposition_spawns_supplier_return_that_does_not_restock(db_session, catalog):
    surplus = _approved(db_session, catalog, "return")

    result = services.action_surplus(db_session, surplus_id=surplus.id, actor_id="u-scm")

    assert result.spawned.document_type == "material_return"
    material_return = db_session.get(return_models.MaterialReturn, result.spawned.id)
    assert material_return.return_type == "return_to_supplier"
    assert material_return.source_surplus_id == surplus.id

    for action in ("submit", "receive", "complete"):
        getattr(return_services, f"{action}_return")(db_session, return_id=material_return.id, actor_id="u")
    assert ledger.list_movements(db_session, reference_id=material_return.id) == []


def test_sale_waits_for_hold_period_after_ou_head_approval(db_session, catalog):
    surplus = _approved(db_session, catalog, "sell")

    with pytest.raises(PreconditionNotMetError):
        services.action_surplus(db_session, surplus_id=surplus.id, actor_id="u-scm")
    assert services.get_surplus(db_session, surplus.id).status == "approved"

    approved_at = services.get_surplus(db_session, surplus.id).ou_head_approved_at
    result = services.action_surplus(
        db_session, surplus_id=surplus.id, actor_id="u-scm", now=approved_at + timedelta(days=15)
    )
    assert result.document.status == "actioned"
    assert result.spawned is None
    assert result.document.scm_approved_by_id == "u-scm"


def test_transfer_disposition_requires_target_warehouse(db_session, catalog):
    surplus = _approved(db_session, catalog, "transfer")

    with pytest.raises(MissingRequirementsError) as excinfo:
        services.action_surplus(db_session, surplus_id=surplus.id, actor_id="u-scm")
    assert excinfo.value.detail[0]["field"] == "target_warehouse_id"


def test_failed_spawn_leaves_surplus_approved(db_session, catalog):
    surplus = _approved(db_session, catalog, "transfer", target=catalog.main.id)

    with pytest.raises(BusinessRuleError):
        services.action_surplus(db_session, surplus_id=surplus.id, actor_id="u-scm")

    assert services.get_surplus(db_session, surplus.id).status == "approved"
    assert db_session.query(transfer_models.StockTransfer).count() == 0


def test_rejected_surplus_is_reopened_for_editing(db_session, catalog):
    surplus = services.create_surplus(
        db_session,
        payload=schemas.SurplusCreate(item_id=catalog.bolt.id, warehouse_id=catalog.main.id, qty=100),
        actor_id="u",
    )
    services.evaluate_surplus(
        db_session, surplus_id=surplus.id, payload=schemas.SurplusEvaluate(disposition="sell"), actor_id="u"
    )
    with pytest.raises(FieldsLockedError):
        services.update_surplus(db_session, surplus_id=surplus.id, patch=schemas.SurplusUpdate(qty=90), actor_id="u")

    services.reject_surplus(db_session, surplus_id=surplus.id, actor_id="u")
    assert services.reopen_surplus(db_session, surplus_id=surplus.id, actor_id="u").status == "identified"

    result = services.update_surplus(db_session, surplus_id=surplus.id, patch=schemas.SurplusUpdate(qty=90), actor_id="u")
    assert Decimal(result.existing["qty"]) == 100
    assert result.updated.qty == 90
