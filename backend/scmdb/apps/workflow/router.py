from __future__ import annotations

from fastapi import APIRouter

from . import registry, schemas

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.get("/{document_type}", response_model=schemas.WorkflowRead)
def get_workflow(document_type: str):
    document_type = registry.resolve_document_type(document_type)
    statuses = registry.all_statuses(document_type)
    return schemas.WorkflowRead(
        document_type=document_type,
        initial_status=registry.initial_status(document_type),
        statuses=statuses,
        terminal_statuses=[status for status in statuses if registry.is_terminal(document_type, status)],
        edges=[
            schemas.WorkflowEdge(
                from_state=from_state,
                to_state=to_state,
                guards=[guard.__name__ for guard in registry.guards_for(document_type, from_state, to_state)],
            )
            for from_state, to_state in sorted(registry.edges(document_type))
        ],
    )
