from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from scmdb.apps.gate_passes import schemas, services
from scmdb.apps.inventory import services as ledger
from scmdb.errors import FieldsLockedError, InvalidTransitionError, PreconditionNotMetError


def _create(db, catalog, *, valid_until=None):
    return services.create_gate_pass(
        db,
        payload=schemas.GatePassCreate(
            warehouse_id=catalog.main.id,
            vehicle_number="KAA 123X",
            driver_name="J. Mwangi",
            destination="Substation 4",
            valid_until=valid_until,
            lines=[schemas.GatePassItemIn(item_id=catalog.cable.id, quantity=40, description="Drum")],
        ),
        actor_id="u-clerk",
    )


def _release(db, gate_pass):
    services.submit_gate_pass(db, gate_pass_id=gate_pass.id, actor_id="u-clerk")
    services.approve_gate_pass(db, gate_pass_id=gate_pass.id, actor_id="u-manager")
    return services.release_gate_pass(db, gate_pass_id=gate_pass.id, security_officer="Officer Otieno", actor_id="u-gate")


def test_release_and_return_record_gate_times(db_session, catalog):
    gate_pass = _create(db_session, catalog)
    assert gate_pass.number.startswith("GP-")

    released = _release(db_session, gate_pass)
    assert released.status == "released"
    assert released.security_officer == "Officer Otieno"
    assert released.exit_time is not None
    assert released.return_time is None

    returned = services.return_gate_pass(db_session, gate_pass_id=gate_pass.id, actor_id="u-gate")
    assert returned.status == "returned"
    assert returned.return_time is not None


def test_gate_pass_has_no_ledger_effect(db_session, catalog):
    gate_pass = _create(db_session, catalog)
    _release(db_session, gate_pass)
    assert ledger.list_movements(db_session) == []


@pytest.mark.parametrize("steps", [[], ["submit"], ["submit", "approve"]])
def test_cancel_from_each_pre_release_status(db_session, catalog, steps):
    gate_pass = _create(db_session, catalog)
    for step in steps:
        getattr(services, f"{step}_gate_pass")(db_session, gate_pass_id=gate_pass.id, actor_id="u")

    assert services.cancel_gate_pass(db_session, gate_pass_id=gate_pass.id, actor_id="u").status == "cancelled"


def test_released_pass_cannot_be_cancelled(db_session, catalog):
    gate_pass = _create(db_session, catalog)
    _release(db_session, gate_pass)

    with pytest.raises(InvalidTransitionError):
        services.cancel_gate_pass(db_session, gate_pass_id=gate_pass.id, actor_id="u")


def test_return_requires_release(db_session, catalog):
    gate_pass = _create(db_session, catalog)
    services.submit_gate_pass(db_session, gate_pass_id=gate_pass.id, actor_id="u")
    services.approve_gate_pass(db_session, gate_pass_id=gate_pass.id, actor_id="u")

    with pytest.raises(InvalidTransitionError):
        services.return_gate_pass(db_session, gate_pass_id=gate_pass.id, actor_id="u")
    assert services.get_gate_pass(db_session, gate_pass.id).status == "approved"


def test_expiry_waits_for_validity_to_lapse(db_session, catalog):
    valid_until = datetime.now(timezone.utc) + timedelta(hours=4)
    gate_pass = _create(db_session, catalog, valid_until=valid_until)
    _release(db_session, gate_pass)

    with pytest.raises(PreconditionNotMetError):
        services.expire_gate_pass(db_session, gate_pass_id=gate_pass.id, actor_id="u-gate")
    assert services.get_gate_pass(db_session, gate_pass.id).status == "released"

    expired = services.expire_gate_pass(
        db_session,
        gate_pass_id=gate_pass.id,
        actor_id="u-gate",
        now=valid_until + timedelta(minutes=1),
    )
    assert expired.status == "expired"


def test_fields_locked_after_submit(db_session, catalog):
    gate_pass = _create(db_session, catalog)
    services.update_gate_pass(
        db_session, gate_pass_id=gate_pass.id, patch=schemas.GatePassUpdate(driver_name="P. Achieng"), actor_id="u"
    )
    services.submit_gate_pass(db_session, gate_pass_id=gate_pass.id, actor_id="u")

    with pytest.raises(FieldsLockedError):
        services.update_gate_pass(
            db_session, gate_pass_id=gate_pass.id, patch=schemas.GatePassUpdate(driver_name="Someone else"), actor_id="u"
        )
    assert services.get_gate_pass(db_session, gate_pass.id).driver_name == "P. Achieng"
