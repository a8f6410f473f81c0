# backend/scmdb/errors.py
"""
Domain error taxonomy for scmdb.

Every error raised by the ledger, the workflow engine and the document
services derives from DomainError. The HTTP layer maps them to responses
with a single exception handler (see scmdb.main); services never raise
HTTPException themselves.
"""

from __future__ import annotations

from typing import Dict, List, Optional

Detail = List[Dict[str, str]]


class DomainError(Exception):
    code = "domain_error"
    status_code = 400

    def __init__(self, message: str, *, detail: Optional[Detail] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail: Detail = list(detail or [])

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class NotFoundError(DomainError):
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: object) -> None:
        super().__init__(
            f"{resource} not found: {identifier}",
            detail=[{"field": "id", "reason": f"{resource} {identifier} does not exist"}],
        )
        self.resource = resource
        self.identifier = identifier


class BusinessRuleError(DomainError):
    code = "business_rule_violation"
    status_code = 422


class InvalidTransitionError(BusinessRuleError):
    code = "invalid_transition"


class FieldsLockedError(BusinessRuleError):
    code = "fields_locked"


class MissingRequirementsError(BusinessRuleError):
    code = "missing_requirements"


class PreconditionNotMetError(BusinessRuleError):
    code = "precondition_not_met"


class InsufficientStockError(DomainError):
    code = "insufficient_stock"
    status_code = 409


class InvalidQuantityError(DomainError):
    code = "invalid_quantity"
    status_code = 400


class ConcurrentModificationError(DomainError):
    code = "concurrent_modification"
    status_code = 409
