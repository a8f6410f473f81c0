from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scmdb.utils.identifiers import normalize_code

from . import models

logger = logging.getLogger(__name__)

DOCUMENT_PREFIXES = {
    "goods_receipt": "GRN",
    "material_issue": "MI",
    "material_return": "MRV",
    "stock_transfer": "ST",
    "gate_pass": "GP",
    "surplus": "SUR",
    "tool": "TL",
    "tool_issue": "TI",
    "cycle_count": "CC",
    "lot": "LOT",
}

SEQUENCE_WIDTH = 4


def prefix_for(document_type: str) -> str:
    return DOCUMENT_PREFIXES.get(document_type) or normalize_code(document_type)


def format_document_number(prefix: str, year: int, value: int) -> str:
    return f"{prefix}-{year}-{value:0{SEQUENCE_WIDTH}d}"


def generate_document_number(
    db: Session,
    document_type: str,
    *,
    now: Optional[datetime] = None,
) -> str:
    """
    Return the next number for `document_type`, e.g. ST-2026-0007.

    The counter row is bumped inside the caller's transaction, so a rolled
    back document creation also gives its number back.
    """
    prefix = prefix_for(document_type)
    year = (now or datetime.now(timezone.utc)).year

    value = _bump(db, prefix, year)
    if value is None:
        if _insert_first(db, prefix, year):
            value = 1
        else:
            value = _bump(db, prefix, year)
    return format_document_number(prefix, year, value)


def _bump(db: Session, prefix: str, year: int) -> Optional[int]:
    result = db.execute(
        update(models.DocumentSequence)
        .where(models.DocumentSequence.prefix == prefix, models.DocumentSequence.year == year)
        .values(last_value=models.DocumentSequence.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None
    return (
        db.query(models.DocumentSequence.last_value)
        .filter(models.DocumentSequence.prefix == prefix, models.DocumentSequence.year == year)
        .scalar()
    )


def _insert_first(db: Session, prefix: str, year: int) -> bool:
    try:
        with db.begin_nested():
            db.add(models.DocumentSequence(prefix=prefix, year=year, last_value=1))
    except IntegrityError:
        # Another writer started this prefix/year first; bump its row instead.
        logger.info("Document sequence created concurrently", extra={"prefix": prefix, "year": year})
        return False
    return True
