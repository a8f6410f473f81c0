"""
Shared plumbing for document lifecycle services.

Every document app (stock transfers, gate passes, ...) loads, edits,
transitions and lists its documents through these helpers so the edit lock,
the unit-of-work boundary and the audit trail behave the same everywhere.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import func, inspect, or_
from sqlalchemy.orm import Session

from scmdb.apps.audit import services as audit_services
from scmdb.database import unit_of_work
from scmdb.errors import FieldsLockedError, MissingRequirementsError, NotFoundError

from .engine import apply_transition
from .registry import is_editable, resolve_document_type


@dataclass(frozen=True)
class SpawnedDocument:
    document_type: str
    id: str
    number: str


@dataclass
class ActionResult:
    document: Any
    spawned: Optional[SpawnedDocument] = None


@dataclass
class UpdateResult:
    existing: Dict[str, Any]
    updated: Any


def _serialize_value(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def _model_to_dict(obj: Any) -> Dict[str, Any]:
    mapper = inspect(obj).mapper
    return {column.key: _serialize_value(getattr(obj, column.key)) for column in mapper.column_attrs}


def snapshot(document: Any) -> Dict[str, Any]:
    """JSON-safe copy of a document's columns, lines included when it has them."""
    data = _model_to_dict(document)
    lines = getattr(document, "lines", None)
    if lines is not None:
        data["lines"] = [_model_to_dict(line) for line in lines]
    return data


def load_document(db: Session, model: Any, document_id: str) -> Any:
    document = db.get(model, document_id)
    if document is None:
        raise NotFoundError(model.__name__, document_id)
    return document


def ensure_editable(document_type: str, document: Any) -> None:
    if not is_editable(document_type, document.status):
        raise FieldsLockedError(
            f"{document.number} is {document.status}; fields can only be changed while it is editable",
            detail=[{"field": "status", "reason": f"fields locked in status {document.status}"}],
        )


def _reject_required_nulls(model: Any, changes: Dict[str, Any]) -> None:
    columns = model.__table__.columns
    cleared = [
        field
        for field, value in changes.items()
        if value is None and field in columns and not columns[field].nullable
    ]
    if cleared:
        raise MissingRequirementsError(
            f"{model.__name__} fields cannot be cleared: {', '.join(cleared)}",
            detail=[{"field": field, "reason": "value required"} for field in cleared],
        )


def update_document(
    db: Session,
    *,
    model: Any,
    document_type: str,
    document_id: str,
    patch: BaseModel,
    actor_id: str,
    build_lines: Optional[Callable[[Session, List[dict]], list]] = None,
    validate: Optional[Callable[[Session, Any], None]] = None,
) -> UpdateResult:
    """
    Apply a typed patch to a document that is still in an editable status.

    Only fields explicitly set on the patch are written. A `lines` entry
    replaces every existing line.
    Setting a required column to null raises MissingRequirementsError.
    """
    document_type = resolve_document_type(document_type)
    with unit_of_work(db):
        document = load_document(db, model, document_id)
        ensure_editable(document_type, document)
        existing = snapshot(document)

        changes = patch.model_dump(exclude_unset=True)
        lines = changes.pop("lines", None)
        _reject_required_nulls(model, changes)
        for field, value in changes.items():
            setattr(document, field, value)
        if lines is not None and build_lines is not None:
            document.lines = build_lines(db, lines)
        if validate is not None:
            validate(db, document)
        db.flush()

        audit_services.log_event(
            db,
            actor_id=actor_id,
            entity_type=document_type,
            entity_id=document.id,
            action="update",
            before=existing,
            after=snapshot(document),
        )
    return UpdateResult(existing=existing, updated=document)


def transition_document(
    db: Session,
    *,
    model: Any,
    document_type: str,
    document_id: str,
    to_state: str,
    actor_id: str,
    effect: Optional[Callable[[Any], Optional[SpawnedDocument]]] = None,
    metadata: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> ActionResult:
    """
    Run one lifecycle action as a single unit of work.

    `effect` receives the loaded document and performs the ledger side of the
    action (and any header stamps). It may return the document it spawned.
    """
    with unit_of_work(db):
        document = load_document(db, model, document_id)
        spawned = apply_transition(
            db,
            document=document,
            document_type=document_type,
            to_state=to_state,
            actor_id=actor_id,
            effect=(lambda: effect(document)) if effect is not None else None,
            metadata=metadata,
            now=now,
        )
    return ActionResult(document=document, spawned=spawned)


def list_documents(
    db: Session,
    model: Any,
    *,
    status: Optional[str] = None,
    search: Optional[str] = None,
    search_columns: Sequence[Any] = (),
    filters: Iterable[Any] = (),
    skip: int = 0,
    limit: int = 50,
) -> Dict[str, Any]:
    query = db.query(model)
    if status:
        query = query.filter(model.status == status)
    for criterion in filters:
        query = query.filter(criterion)
    if search:
        pattern = f"%{search.strip().lower()}%"
        columns = [model.number, *search_columns]
        query = query.filter(or_(*[func.lower(column).like(pattern) for column in columns]))

    total = query.order_by(None).count()
    data = (
        query.order_by(model.created_at.desc(), model.id.desc())
        .offset(max(skip, 0))
        .limit(max(limit, 0))
        .all()
    )
    return {"data": data, "total": total}
