from __future__ import annotations

import math
import os
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

GuardResult = List[Dict[str, str]]

PRECONDITION_NOT_MET = "precondition_not_met"

SURPLUS_SALE_HOLD_DAYS = int(os.getenv("SURPLUS_SALE_HOLD_DAYS", "14"))


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _precondition(field: str, reason: str) -> Dict[str, str]:
    return {"field": field, "reason": reason, "code": PRECONDITION_NOT_MET}


def guard_has_lines(
    db: Session,
    *,
    document: Any,
    from_state: str,
    to_state: str,
    now: datetime,
) -> GuardResult:
    if not _get_value(document, "lines"):
        return [{"field": "lines", "reason": "at least one line is required"}]
    return []


def guard_all_lines_counted(
    db: Session,
    *,
    document: Any,
    from_state: str,
    to_state: str,
    now: datetime,
) -> GuardResult:
    pending = [line for line in (_get_value(document, "lines") or []) if _get_value(line, "status") == "pending"]
    if pending:
        return [{"field": "lines", "reason": f"{len(pending)} line(s) have not been counted"}]
    return []


def guard_qc_signature(
    db: Session,
    *,
    document: Any,
    from_state: str,
    to_state: str,
    now: datetime,
) -> GuardResult:
    missing = []
    if not _get_value(document, "qc_signed_by_id"):
        missing.append({"field": "qc_signed_by_id", "reason": "QC counter-signature required"})
    if not _get_value(document, "qc_signed_at"):
        missing.append({"field": "qc_signed_at", "reason": "QC signature timestamp required"})
    return missing


def guard_surplus_disposition(
    db: Session,
    *,
    document: Any,
    from_state: str,
    to_state: str,
    now: datetime,
) -> GuardResult:
    disposition = _get_value(document, "disposition")
    if not disposition:
        return [{"field": "disposition", "reason": "disposition required"}]
    if disposition == "transfer" and not _get_value(document, "target_warehouse_id"):
        return [{"field": "target_warehouse_id", "reason": "target warehouse required for transfer"}]
    return []


def guard_surplus_sale_hold(
    db: Session,
    *,
    document: Any,
    from_state: str,
    to_state: str,
    now: datetime,
) -> GuardResult:
    if _get_value(document, "disposition") != "sell":
        return []
    approved_at = _get_value(document, "ou_head_approved_at")
    if not approved_at:
        return [_precondition("ou_head_approved_at", "OU head approval required before sale")]
    release_at = as_utc(approved_at) + timedelta(days=SURPLUS_SALE_HOLD_DAYS)
    if now < release_at:
        remaining = math.ceil((release_at - now).total_seconds() / 86400)
        return [
            _precondition(
                "ou_head_approved_at",
                f"sale allowed {SURPLUS_SALE_HOLD_DAYS} days after OU head approval; {remaining} day(s) remaining",
            )
        ]
    return []


def guard_pass_validity_elapsed(
    db: Session,
    *,
    document: Any,
    from_state: str,
    to_state: str,
    now: datetime,
) -> GuardResult:
    valid_until = _get_value(document, "valid_until")
    if not valid_until:
        return [_precondition("valid_until", "gate pass has no validity end")]
    if now <= as_utc(valid_until):
        return [_precondition("valid_until", "gate pass is still valid")]
    return []


def guard_return_date_elapsed(
    db: Session,
    *,
    document: Any,
    from_state: str,
    to_state: str,
    now: datetime,
) -> GuardResult:
    expected: Optional[date] = _get_value(document, "expected_return_date")
    if not expected:
        return [_precondition("expected_return_date", "no expected return date recorded")]
    if now.date() <= expected:
        return [_precondition("expected_return_date", "expected return date has not passed")]
    return []
