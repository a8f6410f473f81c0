from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from scmdb.apps.audit import models as audit_models
from scmdb.apps.audit import services as audit_services
from scmdb.apps.workflow import apply_transition, guards
from scmdb.apps.workflow.engine import check_guards
from scmdb.errors import InvalidTransitionError, MissingRequirementsError, PreconditionNotMetError


def _document(status, **fields):
    return SimpleNamespace(id="doc-1", number="ST-2026-0001", status=status, **fields)


def test_transition_writes_status_and_audit_event(db_session):
    document = _document("draft", lines=[{"item_id": 1}])

    apply_transition(
        db_session,
        document=document,
        document_type="stock_transfer",
        to_state="pending",
        actor_id="u-1",
        correlation_id="req-9",
    )
    db_session.commit()

    assert document.status == "pending"
    event = db_session.query(audit_models.AuditEvent).one()
    assert (event.entity_type, event.entity_id, event.action) == ("stock_transfer", "doc-1", "transition")
    assert event.before == {"status": "draft"}
    assert event.after == {"status": "pending"}
    assert event.actor_id == "u-1"
    assert event.correlation_id == "req-9"
    assert event.metadata_json["workflow"] == "stock_transfer"


def test_alias_is_recorded_under_canonical_type(db_session):
    document = _document("draft", lines=[{"item_id": 1}])
    apply_transition(db_session, document=document, document_type="wt", to_state="pending", actor_id="u")
    assert db_session.query(audit_models.AuditEvent).one().entity_type == "stock_transfer"


def test_invalid_edge_never_runs_effect(db_session):
    calls = []
    document = _document("draft")

    with pytest.raises(InvalidTransitionError):
        apply_transition(
            db_session,
            document=document,
            document_type="stock_transfer",
            to_state="shipped",
            actor_id="u",
            effect=lambda: calls.append("effect"),
        )

    assert calls == []
    assert document.status == "draft"
    assert db_session.query(audit_models.AuditEvent).count() == 0


def test_failing_effect_leaves_status_untouched(db_session):
    document = _document("approved")

    def boom():
        raise RuntimeError("ledger down")

    with pytest.raises(RuntimeError):
        apply_transition(
            db_session, document=document, document_type="stock_transfer", to_state="shipped", actor_id="u", effect=boom
        )
    assert document.status == "approved"


def test_effect_result_is_returned(db_session):
    document = _document("approved")
    result = apply_transition(
        db_session,
        document=document,
        document_type="stock_transfer",
        to_state="shipped",
        actor_id="u",
        effect=lambda: "moved",
    )
    assert result == "moved"


def test_audit_failure_does_not_block_transition(db_session, monkeypatch, caplog):
    def broken(db, *, data):
        raise RuntimeError("audit table missing")

    monkeypatch.setattr(audit_services, "create_audit_event", broken)
    document = _document("draft", lines=[{"item_id": 1}])

    with caplog.at_level(logging.WARNING):
        apply_transition(db_session, document=document, document_type="stock_transfer", to_state="pending", actor_id="u")

    assert document.status == "pending"
    assert "Failed to log audit event" in caplog.text


def test_critical_audit_failure_raises(db_session, monkeypatch):
    def broken(db, *, data):
        raise RuntimeError("audit table missing")

    monkeypatch.setattr(audit_services, "create_audit_event", broken)
    document = _document("draft", lines=[{"item_id": 1}])

    with pytest.raises(RuntimeError):
        apply_transition(
            db_session,
            document=document,
            document_type="stock_transfer",
            to_state="pending",
            actor_id="u",
            critical=True,
        )


def test_missing_lines_is_a_missing_requirement(db_session):
    with pytest.raises(MissingRequirementsError) as excinfo:
        check_guards(
            db_session, document_type="goods_receipt", document={"lines": []}, from_state="draft", to_state="pending_qc"
        )
    assert excinfo.value.detail == [{"field": "lines", "reason": "at least one line is required"}]


def test_qc_signature_reports_each_missing_field(db_session):
    with pytest.raises(MissingRequirementsError) as excinfo:
        check_guards(
            db_session,
            document_type="material_issue",
            document={"qc_signed_by_id": "qc-1"},
            from_state="approved",
            to_state="issued",
        )
    assert [item["field"] for item in excinfo.value.detail] == ["qc_signed_at"]


def test_sale_hold_is_a_precondition(db_session):
    approved_at = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    document = {"disposition": "sell", "ou_head_approved_at": approved_at}

    with pytest.raises(PreconditionNotMetError) as excinfo:
        check_guards(
            db_session,
            document_type="surplus",
            document=document,
            from_state="approved",
            to_state="actioned",
            now=approved_at + timedelta(days=3),
        )
    assert f"{guards.SURPLUS_SALE_HOLD_DAYS - 3} day(s) remaining" in excinfo.value.message

    check_guards(
        db_session,
        document_type="surplus",
        document=document,
        from_state="approved",
        to_state="actioned",
        now=approved_at + timedelta(days=guards.SURPLUS_SALE_HOLD_DAYS),
    )


def test_naive_clock_is_treated_as_utc(db_session):
    document = {"valid_until": datetime(2026, 5, 1, 12, 0)}
    check_guards(
        db_session,
        document_type="gate_pass",
        document=document,
        from_state="released",
        to_state="expired",
        now=datetime(2026, 5, 1, 12, 1),
    )


def test_return_date_gate(db_session):
    document = {"expected_return_date": date(2026, 4, 10)}
    with pytest.raises(PreconditionNotMetError):
        check_guards(
            db_session,
            document_type="tool_issue",
            document=document,
            from_state="issued",
            to_state="overdue",
            now=datetime(2026, 4, 10, 23, 0, tzinfo=timezone.utc),
        )
    check_guards(
        db_session,
        document_type="tool_issue",
        document=document,
        from_state="issued",
        to_state="overdue",
        now=datetime(2026, 4, 11, 0, 1, tzinfo=timezone.utc),
    )


def test_unguarded_edge_passes(db_session):
    check_guards(db_session, document_type="gate_pass", document={}, from_state="draft", to_state="pending")
