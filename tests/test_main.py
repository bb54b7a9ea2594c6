from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import ADMIN, CERTIFIER, CONSUMER, ONE_YEAR, PRODUCER, VERIFIER, auth
from traceledger.main import app


def test_routes_registered() -> None:
    paths = {route.path for route in app.routes}
    for expected in (
        "/health",
        "/ready",
        "/metrics",
        "/v1/ledger",
        "/v1/notifications",
        "/v1/roles/grant",
        "/v1/certificates",
        "/v1/batches",
        "/v1/batches/pending",
        "/v1/batches/{batch_id}/transfer",
        "/verify/{batch_id}",
        "/verify",
    ):
        assert expected in paths


def test_supply_chain_over_http(client: TestClient) -> None:
    for principal, role in (
        (CERTIFIER, "certifier"),
        (PRODUCER, "producer"),
        (VERIFIER, "verifier"),
    ):
        resp = client.post(
            "/v1/roles/grant",
            headers=auth(ADMIN),
            json={"principal": principal, "role": role},
        )
        assert resp.status_code == 200

    cert = client.post(
        "/v1/certificates",
        headers=auth(CERTIFIER),
        json={
            "external_id": "HALAL-2025-001",
            "cert_type": "Halal",
            "certified_entity": PRODUCER,
            "validity_seconds": ONE_YEAR,
        },
    ).json()

    batch = client.post(
        "/v1/batches",
        headers=auth(PRODUCER),
        json={
            "external_id": "BATCH-2025-001",
            "product_type": "Organic Palm Oil",
            "quantity": 5000,
            "unit": "Liters",
            "harvested_at": 1_749_000_000,
            "origin": "Tawau, Sabah",
            "linked_cert_ids": [cert["id"]],
        },
    ).json()

    client.post(f"/v1/batches/{batch['id']}/verify", headers=auth(VERIFIER))
    done = client.post(
        f"/v1/batches/{batch['id']}/transfer",
        headers=auth(PRODUCER),
        json={"to": CONSUMER},
    ).json()

    assert done["status"] == "received"
    assert done["current_owner"] == CONSUMER
    scan = client.get(f"/verify/{batch['id']}").json()
    assert scan["all_certificates_valid"] is True
    assert client.get("/v1/ledger").json()["height"] == 6
