from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from traceledger.api.batches import router as batches_router
from traceledger.api.certificates import router as certificates_router
from traceledger.api.dependencies import ERROR_STATUS, error_body
from traceledger.api.health import router as health_router
from traceledger.api.ledger import router as ledger_router
from traceledger.api.metrics_endpoint import router as metrics_router
from traceledger.api.roles import router as roles_router
from traceledger.api.verify import router as verify_router
from traceledger.core.config import SETTINGS
from traceledger.core.errors import LedgerError
from traceledger.core.logging import setup_logging
from traceledger.middleware.metrics import MetricsMiddleware
from traceledger.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="traceledger",
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[SETTINGS.verify_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(LedgerError)
async def ledger_error_handler(_request: Request, exc: LedgerError) -> JSONResponse:
    """Map errors raised by direct ledger reads (e.g. unknown ids)."""
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, 400),
        content={"detail": error_body(exc.kind, exc.message)},
    )


app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(ledger_router)
app.include_router(roles_router)
app.include_router(certificates_router)
app.include_router(batches_router)
app.include_router(verify_router)

logger.info(
    "traceledger started  env=%s log_level=%s port=%d admin=%s role_policy=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.ledger_admin,
    SETTINGS.role_policy,
)


def run() -> None:
    """Console entry point: serve the gateway on SETTINGS.port."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=SETTINGS.port, log_config=None)
