from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from scmdb.apps.audit import services as audit_services
from scmdb.errors import MissingRequirementsError, PreconditionNotMetError

from .guards import PRECONDITION_NOT_MET, as_utc
from .registry import assert_transition, guards_for, resolve_document_type

logger = logging.getLogger(__name__)


def check_guards(
    db: Session,
    *,
    document_type: str,
    document: Any,
    from_state: str,
    to_state: str,
    now: Optional[datetime] = None,
) -> None:
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    failures: List[Dict[str, str]] = []
    for guard in guards_for(document_type, from_state, to_state):
        failures.extend(
            guard(
                db,
                document=document,
                from_state=from_state,
                to_state=to_state,
                now=now,
            )
        )

    if not failures:
        return

    preconditions = [item for item in failures if item.get("code") == PRECONDITION_NOT_MET]
    if preconditions:
        raise PreconditionNotMetError(
            f"{document_type} cannot move to {to_state} yet: {preconditions[0]['reason']}",
            detail=[{"field": item["field"], "reason": item["reason"]} for item in preconditions],
        )
    raise MissingRequirementsError(
        f"{document_type} is missing requirements for {to_state}",
        detail=failures,
    )


def apply_transition(
    db: Session,
    *,
    document: Any,
    document_type: str,
    to_state: str,
    actor_id: Optional[str],
    effect: Optional[Callable[[], Any]] = None,
    correlation_id: Optional[str] = None,
    metadata: Optional[dict] = None,
    now: Optional[datetime] = None,
    critical: bool = False,
) -> Any:
    """
    Move `document` to `to_state`.

    Order: registry edge check, edge guards, ledger `effect`, status write,
    audit event. Nothing is committed here; callers run this inside
    `unit_of_work` so a failing effect discards the status change too.
    Returns whatever `effect` returned.
    """
    document_type = resolve_document_type(document_type)
    from_state = document.status
    assert_transition(document_type, from_state, to_state)
    check_guards(
        db,
        document_type=document_type,
        document=document,
        from_state=from_state,
        to_state=to_state,
        now=now,
    )

    result = effect() if effect is not None else None

    document.status = to_state
    db.flush()

    logger.info(
        "Document transitioned",
        extra={
            "document_type": document_type,
            "document_id": document.id,
            "from_state": from_state,
            "to_state": to_state,
            "actor_id": actor_id,
        },
    )
    audit_services.log_event(
        db,
        actor_id=actor_id,
        entity_type=document_type,
        entity_id=document.id,
        action="transition",
        before={"status": from_state},
        after={"status": to_state},
        correlation_id=correlation_id,
        metadata={"workflow": document_type, **(metadata or {})},
        critical=critical,
    )
    return result
