from .documents import ActionResult, SpawnedDocument, UpdateResult
from .engine import apply_transition
from .registry import WORKFLOWS, assert_transition, can_transition, next_statuses

__all__ = [
    "ActionResult",
    "SpawnedDocument",
    "UpdateResult",
    "WORKFLOWS",
    "apply_transition",
    "assert_transition",
    "can_transition",
    "next_statuses",
]
