"""Prometheus scrape endpoint.

Serves the default registry in the Prometheus text exposition format
(not JSON).  Besides the HTTP series from the metrics middleware, the
ledger publishes:

  ledger_operations_total{operation, outcome}   admitted / rejected submissions
  ledger_notifications_total{kind}              published notifications
  ledger_pending_batches                        batches awaiting verification

Only the serving ledger reports these; ledgers rebuilt by replay do not.

The endpoint is excluded from the OpenAPI schema and from its own
request metrics.  Restrict access to /metrics in production; request
and rejection rates reveal who is active on the ledger.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
