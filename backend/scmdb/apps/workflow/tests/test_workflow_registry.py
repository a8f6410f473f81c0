from __future__ import annotations

import itertools

import pytest

from scmdb.apps.workflow import registry
from scmdb.errors import BusinessRuleError, InvalidTransitionError

EXPECTED_EDGES = {
    "goods_receipt": {
        ("draft", "pending_qc"),
        ("pending_qc", "qc_approved"),
        ("pending_qc", "rejected"),
        ("qc_approved", "received"),
        ("received", "stored"),
        ("rejected", "draft"),
    },
    "material_issue": {
        ("draft", "pending_approval"),
        ("pending_approval", "approved"),
        ("pending_approval", "rejected"),
        ("pending_approval", "cancelled"),
        ("approved", "issued"),
        ("approved", "cancelled"),
        ("issued", "completed"),
        ("rejected", "draft"),
    },
    "material_return": {
        ("draft", "pending"),
        ("pending", "received"),
        ("pending", "rejected"),
        ("received", "completed"),
        ("rejected", "draft"),
    },
    "stock_transfer": {
        ("draft", "pending"),
        ("draft", "cancelled"),
        ("pending", "approved"),
        ("pending", "cancelled"),
        ("approved", "shipped"),
        ("approved", "cancelled"),
        ("shipped", "received"),
        ("received", "completed"),
    },
    "gate_pass": {
        ("draft", "pending"),
        ("draft", "cancelled"),
        ("pending", "approved"),
        ("pending", "cancelled"),
        ("approved", "released"),
        ("approved", "cancelled"),
        ("released", "returned"),
        ("released", "expired"),
    },
    "surplus": {
        ("identified", "evaluated"),
        ("evaluated", "approved"),
        ("evaluated", "rejected"),
        ("approved", "actioned"),
        ("actioned", "closed"),
        ("rejected", "identified"),
    },
    "tool": {
        ("good", "damaged"),
        ("good", "decommissioned"),
        ("damaged", "good"),
        ("damaged", "decommissioned"),
    },
    "tool_issue": {
        ("issued", "returned"),
        ("issued", "overdue"),
        ("overdue", "returned"),
    },
    "cycle_count": {
        ("scheduled", "in_progress"),
        ("scheduled", "cancelled"),
        ("in_progress", "completed"),
        ("in_progress", "cancelled"),
    },
}


def _all_pairs():
    for document_type, expected in EXPECTED_EDGES.items():
        statuses = sorted({state for edge in expected for state in edge})
        for from_state, to_state in itertools.product(statuses, repeat=2):
            yield document_type, from_state, to_state, (from_state, to_state) in expected


def test_every_document_type_is_registered():
    assert set(registry.WORKFLOWS) == set(EXPECTED_EDGES)


@pytest.mark.parametrize("document_type", sorted(EXPECTED_EDGES))
def test_declared_edges(document_type):
    assert registry.edges(document_type) == EXPECTED_EDGES[document_type]


@pytest.mark.parametrize("document_type,from_state,to_state,allowed", list(_all_pairs()))
def test_can_transition_matches_declared_graph(document_type, from_state, to_state, allowed):
    assert registry.can_transition(document_type, from_state, to_state) is allowed


@pytest.mark.parametrize("document_type", sorted(EXPECTED_EDGES))
def test_self_transitions_are_rejected(document_type):
    for status in registry.all_statuses(document_type):
        assert registry.can_transition(document_type, status, status) is False
        with pytest.raises(InvalidTransitionError):
            registry.assert_transition(document_type, status, status)


def test_invalid_transition_lists_allowed_targets():
    with pytest.raises(InvalidTransitionError) as excinfo:
        registry.assert_transition("stock_transfer", "draft", "shipped")

    assert isinstance(excinfo.value, BusinessRuleError)
    assert excinfo.value.status_code == 422
    assert "pending" in excinfo.value.message
    assert "cancelled" in excinfo.value.message


def test_terminal_status_message():
    with pytest.raises(InvalidTransitionError) as excinfo:
        registry.assert_transition("gate_pass", "returned", "released")
    assert "terminal" in excinfo.value.message


@pytest.mark.parametrize(
    "document_type,terminals",
    [
        ("goods_receipt", {"stored"}),
        ("material_issue", {"completed", "cancelled"}),
        ("material_return", {"completed"}),
        ("stock_transfer", {"completed", "cancelled"}),
        ("gate_pass", {"returned", "expired", "cancelled"}),
        ("surplus", {"closed"}),
        ("tool", {"decommissioned"}),
        ("tool_issue", {"returned"}),
        ("cycle_count", {"completed", "cancelled"}),
    ],
)
def test_terminal_statuses(document_type, terminals):
    found = {status for status in registry.all_statuses(document_type) if registry.is_terminal(document_type, status)}
    assert found == terminals


def test_cancellation_sources():
    assert set(registry.cancellable_from("stock_transfer")) == {"draft", "pending", "approved"}
    assert set(registry.cancellable_from("gate_pass")) == {"draft", "pending", "approved"}
    assert set(registry.cancellable_from("material_issue")) == {"pending_approval", "approved"}
    assert registry.cancellable_from("goods_receipt") == []


def test_initial_and_editable_statuses():
    assert registry.initial_status("surplus") == "identified"
    assert registry.initial_status("tool_issue") == "issued"
    assert registry.is_editable("stock_transfer", "draft")
    assert not registry.is_editable("stock_transfer", "pending")
    assert registry.is_editable("tool", "damaged")
    assert not registry.is_editable("tool", "decommissioned")


@pytest.mark.parametrize(
    "alias,canonical",
    [
        ("grn", "goods_receipt"),
        ("MRRV", "goods_receipt"),
        ("mirv", "material_issue"),
        ("mrn", "material_return"),
        ("wt", "stock_transfer"),
        ("stock-transfers", "stock_transfer"),
        ("gatepass", "gate_pass"),
        ("cycle_count", "cycle_count"),
    ],
)
def test_aliases_resolve(alias, canonical):
    assert registry.resolve_document_type(alias) == canonical


def test_aliases_share_the_canonical_graph():
    assert registry.can_transition("grn", "draft", "pending_qc")
    assert registry.next_statuses("mirv", "approved") == registry.next_statuses("material_issue", "approved")


def test_unknown_document_type():
    with pytest.raises(InvalidTransitionError):
        registry.can_transition("purchase_order", "draft", "approved")
