# backend/scmdb/main.py
import logging
import os
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import DomainError

from .apps.audit.router import router as audit_router
from .apps.workflow.router import router as workflow_router
from .apps.inventory.router import router as inventory_router
from .apps.goods_receipts.router import router as goods_receipts_router
from .apps.material_issues.router import router as material_issues_router
from .apps.material_returns.router import router as material_returns_router
from .apps.stock_transfers.router import router as stock_transfers_router
from .apps.gate_passes.router import router as gate_passes_router
from .apps.surplus.router import router as surplus_router
from .apps.tools.router import router as tools_router
from .apps.cycle_counts.router import router as cycle_counts_router

logger = logging.getLogger(__name__)


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:4173",
    ]


app = FastAPI(title="SCM Core API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info(
        "Request rejected",
        extra={"path": request.url.path, "code": exc.code, "status_code": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "SCM core backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(audit_router)
app.include_router(workflow_router)
app.include_router(inventory_router)
app.include_router(goods_receipts_router)
app.include_router(material_issues_router)
app.include_router(material_returns_router)
app.include_router(stock_transfers_router)
app.include_router(gate_passes_router)
app.include_router(surplus_router)
app.include_router(tools_router)
app.include_router(cycle_counts_router)
