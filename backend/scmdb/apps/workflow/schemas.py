from __future__ import annotations

from typing import List

from pydantic import BaseModel


class WorkflowEdge(BaseModel):
    from_state: str
    to_state: str
    guards: List[str] = []


class WorkflowRead(BaseModel):
    document_type: str
    initial_status: str
    statuses: List[str]
    terminal_statuses: List[str]
    edges: List[WorkflowEdge]
