"""Request context middleware: a request id and the calling principal on every log line.

REQUEST IDs
-----------
Several clients hit the gateway at once (a producer's ERP pushing
batches, a verifier's dashboard, consumers scanning labels), so log
lines from different requests interleave:

  INFO  Admitted create_batch from 0xproducer
  WARN  Rejected verify_batch from 0xproducer: caller is not authorized as verifier
  INFO  Admitted verify_batch from 0xverifier

With LOG_JSON=true every record carries the request id and principal,
so each line can be traced back to the call that produced it.  The same
id comes back to the client in the X-Request-ID response header:

  {"level": "INFO", "message": "Admitted create_batch ...",
   "request_id": "4be1...", "principal": "0xproducer"}
  {"level": "WARNING", "message": "Rejected verify_batch ...",
   "request_id": "91c0...", "principal": "0xproducer"}

An incoming X-Request-ID (set by a proxy or the caller) is kept as is;
otherwise a UUID4 is generated.

CONTEXT VARIABLES
-----------------
Requests run as tasks on the same event loop thread, so per-request
state lives in ``contextvars`` (``request_id_var``, ``principal_var``
in ``traceledger.core.logging``) rather than thread-locals.  Each task
sees its own value.  The logging handler's filter copies both onto
every record, including the ledger's accept/reject lines, which never
see the HTTP request.  ``principal_var`` is set later, by the caller
dependency, once the bearer token has been decoded.

REQUEST TIMING
--------------
Each request is timed and logged at INFO with its method, path, status
and ``duration_ms``.  The same measurement feeds the request duration
histogram in ``traceledger.middleware.metrics``.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from traceledger.core.logging import principal_var, request_id_var

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, time the request and log a completion line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        principal_var.set(None)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
