"""Prometheus metric inventory for traceledger.

All metrics are defined here; the modules that own the behavior import
and update them at the point of action.

  HTTP metrics      : populated by MetricsMiddleware for every request.
  Ledger metrics    : populated by the ledger host and the components:
                      one counter sample per attempted operation
                      (labelled admitted/rejected), one per published
                      notification, and a gauge tracking the size of
                      the pending-verification index.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Ledger metrics
# ---------------------------------------------------------------------------

LEDGER_OPERATIONS = Counter(
    "ledger_operations_total",
    "Submitted ledger operations by operation name and outcome",
    ["operation", "outcome"],  # outcome: "admitted" or "rejected"
)

LEDGER_NOTIFICATIONS = Counter(
    "ledger_notifications_total",
    "Notifications published to collaborators",
    ["kind"],
)

PENDING_BATCHES = Gauge(
    "ledger_pending_batches",
    "Batches currently awaiting verification",
)
