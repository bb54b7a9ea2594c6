from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import create_batch, issue_cert
from traceledger.services.ledger import Ledger


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "ledger": {"height": 0, "certificates": 0, "batches": 0, "notifications": 0},
    }


def test_health_reports_ledger_counts(client: TestClient, seeded: Ledger) -> None:
    cert_id = issue_cert(seeded)
    create_batch(seeded, cert_ids=[cert_id])

    ledger_info = client.get("/health").json()["ledger"]
    assert ledger_info["certificates"] == 1
    assert ledger_info["batches"] == 1
    assert ledger_info["notifications"] == len(seeded.notifications)


def test_ready_returns_200(client: TestClient) -> None:
    assert client.get("/ready").status_code == 200
