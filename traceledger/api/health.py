"""Health and readiness endpoints.

LIVENESS vs READINESS
---------------------
An orchestrator asks the gateway two different questions:

  /health (liveness):
    "Is this process alive and answering?"
    A failure here gets the container restarted.  The response also
    carries a small summary of ledger state (journal height, supplies,
    notification count) so an operator can see at a glance that
    submissions are landing.

  /ready (readiness):
    "Can this instance take traffic right now?"
    A failure here only takes the instance out of the load balancer.
    The ledger lives in-process and has no external connections to
    warm up, so an instance that answers is ready.

RESPONSE SHAPE
--------------
  {"status": "ok",
   "ledger": {"height": 6, "certificates": 1, "batches": 1, "notifications": 6}}

``height`` counts admitted transactions only; rejected submissions
never show up here.
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from traceledger.api.dependencies import LedgerDep

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(ledger: LedgerDep) -> dict:
    return {
        "status": "ok",
        "ledger": {
            "height": ledger.height,
            "certificates": ledger.certificates.total_supply(),
            "batches": ledger.batches.total_supply(),
            "notifications": len(ledger.notifications),
        },
    }


@router.get("/ready")
async def ready() -> Response:
    return Response(status_code=200)
