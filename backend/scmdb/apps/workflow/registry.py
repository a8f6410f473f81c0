"""
Transition registry.

One declarative status graph per document type. Each transition maps to
the guards that must pass before the edge may be taken; an empty list means
the edge is unconditional. The table is static and read-only at runtime.
"""

from __future__ import annotations

from typing import Dict, List, Set, Tuple

from scmdb.errors import InvalidTransitionError

from .guards import (
    guard_all_lines_counted,
    guard_has_lines,
    guard_pass_validity_elapsed,
    guard_qc_signature,
    guard_return_date_elapsed,
    guard_surplus_disposition,
    guard_surplus_sale_hold,
)

WORKFLOWS = {
    "goods_receipt": {
        "initial": "draft",
        "transitions": {
            "draft": {"pending_qc": [guard_has_lines]},
            "pending_qc": {"qc_approved": [], "rejected": []},
            "qc_approved": {"received": []},
            "received": {"stored": []},
            "rejected": {"draft": []},
            "stored": {},
        },
    },
    "material_issue": {
        "initial": "draft",
        "transitions": {
            "draft": {"pending_approval": [guard_has_lines]},
            "pending_approval": {"approved": [], "rejected": [], "cancelled": []},
            "approved": {"issued": [guard_qc_signature], "cancelled": []},
            "issued": {"completed": []},
            "rejected": {"draft": []},
            "completed": {},
            "cancelled": {},
        },
    },
    "material_return": {
        "initial": "draft",
        "transitions": {
            "draft": {"pending": [guard_has_lines]},
            "pending": {"received": [], "rejected": []},
            "received": {"completed": []},
            "rejected": {"draft": []},
            "completed": {},
        },
    },
    "stock_transfer": {
        "initial": "draft",
        "transitions": {
            "draft": {"pending": [guard_has_lines], "cancelled": []},
            "pending": {"approved": [], "cancelled": []},
            "approved": {"shipped": [], "cancelled": []},
            "shipped": {"received": []},
            "received": {"completed": []},
            "completed": {},
            "cancelled": {},
        },
    },
    "gate_pass": {
        "initial": "draft",
        "transitions": {
            "draft": {"pending": [], "cancelled": []},
            "pending": {"approved": [], "cancelled": []},
            "approved": {"released": [], "cancelled": []},
            "released": {"returned": [], "expired": [guard_pass_validity_elapsed]},
            "returned": {},
            "expired": {},
            "cancelled": {},
        },
    },
    "surplus": {
        "initial": "identified",
        "transitions": {
            "identified": {"evaluated": []},
            "evaluated": {"approved": [], "rejected": []},
            "approved": {"actioned": [guard_surplus_disposition, guard_surplus_sale_hold]},
            "actioned": {"closed": []},
            "rejected": {"identified": []},
            "closed": {},
        },
    },
    "tool": {
        "initial": "good",
        "editable": {"good", "damaged"},
        "transitions": {
            "good": {"damaged": [], "decommissioned": []},
            "damaged": {"good": [], "decommissioned": []},
            "decommissioned": {},
        },
    },
    "tool_issue": {
        "initial": "issued",
        "transitions": {
            "issued": {"returned": [], "overdue": [guard_return_date_elapsed]},
            "overdue": {"returned": []},
            "returned": {},
        },
    },
    "cycle_count": {
        "initial": "scheduled",
        "transitions": {
            "scheduled": {"in_progress": [guard_has_lines], "cancelled": []},
            "in_progress": {"completed": [guard_all_lines_counted], "cancelled": []},
            "completed": {},
            "cancelled": {},
        },
    },
}

# Legacy tags still sent by older clients and imports.
DOCUMENT_TYPE_ALIASES = {
    "grn": "goods_receipt",
    "mrrv": "goods_receipt",
    "mi": "material_issue",
    "mirv": "material_issue",
    "mrv": "material_return",
    "mrn": "material_return",
    "wt": "stock_transfer",
    "stock-transfers": "stock_transfer",
    "gatepass": "gate_pass",
    "gate-pass": "gate_pass",
    "cycle-count": "cycle_count",
}


def resolve_document_type(document_type: str) -> str:
    tag = (document_type or "").strip().lower()
    tag = DOCUMENT_TYPE_ALIASES.get(tag, tag)
    if tag not in WORKFLOWS:
        raise InvalidTransitionError(
            f"No workflow registered for {document_type}",
            detail=[{"field": "document_type", "reason": f"No workflow registered for {document_type}"}],
        )
    return tag


def _transitions(document_type: str) -> Dict[str, Dict[str, list]]:
    return WORKFLOWS[resolve_document_type(document_type)]["transitions"]


def can_transition(document_type: str, from_state: str, to_state: str) -> bool:
    if from_state == to_state:
        return False
    return to_state in _transitions(document_type).get(from_state, {})


def next_statuses(document_type: str, from_state: str) -> List[str]:
    return list(_transitions(document_type).get(from_state, {}))


def assert_transition(document_type: str, from_state: str, to_state: str) -> None:
    if can_transition(document_type, from_state, to_state):
        return
    allowed = next_statuses(document_type, from_state)
    allowed_text = ", ".join(allowed) if allowed else "none (terminal status)"
    raise InvalidTransitionError(
        f"Cannot transition {document_type} from {from_state} to {to_state}. Allowed: {allowed_text}",
        detail=[{"field": "status", "reason": f"Cannot transition from {from_state} to {to_state}"}],
    )


def guards_for(document_type: str, from_state: str, to_state: str) -> list:
    return list(_transitions(document_type).get(from_state, {}).get(to_state, []))


def all_statuses(document_type: str) -> List[str]:
    statuses: List[str] = []
    for from_state, targets in _transitions(document_type).items():
        for state in (from_state, *targets):
            if state not in statuses:
                statuses.append(state)
    return statuses


def edges(document_type: str) -> Set[Tuple[str, str]]:
    return {
        (from_state, to_state)
        for from_state, targets in _transitions(document_type).items()
        for to_state in targets
    }


def is_terminal(document_type: str, status: str) -> bool:
    return not next_statuses(document_type, status)


def initial_status(document_type: str) -> str:
    return WORKFLOWS[resolve_document_type(document_type)]["initial"]


def is_editable(document_type: str, status: str) -> bool:
    workflow = WORKFLOWS[resolve_document_type(document_type)]
    return status in workflow.get("editable", {workflow["initial"]})


def cancellable_from(document_type: str) -> List[str]:
    return [
        from_state
        for from_state, targets in _transitions(document_type).items()
        if "cancelled" in targets
    ]
