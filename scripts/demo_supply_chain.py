"""Demo: walk a batch from certification to final receipt over HTTP.

Run with:
    python scripts/demo_supply_chain.py
"""

from __future__ import annotations

import time

from fastapi.testclient import TestClient

from traceledger.core.config import SETTINGS
from traceledger.main import app
from traceledger.services.token_service import create_access_token

ADMIN = SETTINGS.ledger_admin
CERTIFIER = "0xcertifier"
PRODUCER = "0xproducer"
VERIFIER = "0xverifier"
LOGISTICS = "0xlogistics"
RETAILER = "0xretailer"

ONE_YEAR = 365 * 24 * 60 * 60


def _auth(principal: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(sub=principal)}"}


def main() -> None:
    client = TestClient(app)

    # ── Step 1: admin grants roles ──────────────────────────────────
    for principal, role in (
        (CERTIFIER, "certifier"),
        (PRODUCER, "producer"),
        (VERIFIER, "verifier"),
    ):
        r = client.post(
            "/v1/roles/grant",
            json={"principal": principal, "role": role},
            headers=_auth(ADMIN),
        )
        print(f"1. grant {role:<9} to {principal:<12} → {r.status_code}")

    # ── Step 2: certifier issues a Halal certificate ────────────────
    r = client.post(
        "/v1/certificates",
        json={
            "external_id": "HALAL-2025-001",
            "cert_type": "Halal",
            "certified_entity": PRODUCER,
            "validity_seconds": ONE_YEAR,
            "metadata_ref": "ipfs://QmHalalCert",
        },
        headers=_auth(CERTIFIER),
    )
    cert_id = r.json()["id"]
    print(f"2. issue certificate           → {r.status_code}  id={cert_id}")

    # ── Step 3: producer creates a batch linking it ─────────────────
    r = client.post(
        "/v1/batches",
        json={
            "external_id": "BATCH-2025-001",
            "product_type": "Organic Palm Oil",
            "quantity": 5000,
            "unit": "Liters",
            "harvested_at": int(time.time()) - 86400,
            "origin": "Tawau Palm Oil Plantation, Sabah",
            "linked_cert_ids": [cert_id],
        },
        headers=_auth(PRODUCER),
    )
    batch = r.json()
    print(f"3. create batch                → {r.status_code}  status={batch['status']}")

    # ── Step 4: verifier approves it ────────────────────────────────
    r = client.post(f"/v1/batches/{batch['id']}/verify", headers=_auth(VERIFIER))
    print(f"4. verify batch                → {r.status_code}  status={r.json()['status']}")

    # ── Step 5: ship, hand over, scan ───────────────────────────────
    r = client.post(f"/v1/batches/{batch['id']}/in-transit", headers=_auth(PRODUCER))
    print(f"5. mark in transit             → {r.status_code}  status={r.json()['status']}")
    r = client.post(
        f"/v1/batches/{batch['id']}/transfer",
        json={"to": LOGISTICS},
        headers=_auth(PRODUCER),
    )
    print(f"6. transfer to logistics       → {r.status_code}  owner={r.json()['current_owner']}")
    r = client.post(
        f"/v1/batches/{batch['id']}/transfer",
        json={"to": RETAILER},
        headers=_auth(LOGISTICS),
    )
    print(f"7. transfer again (received)   → {r.status_code}  ({r.json()['detail']['error']})")

    r = client.get(f"/verify/{batch['id']}")
    body = r.json()
    print(
        f"8. scan {batch['verify_url']} → {r.status_code}  "
        f"certificates_valid={body['all_certificates_valid']}"
    )

    r = client.get("/v1/ledger")
    print(f"9. ledger height={r.json()['height']} digest={r.json()['state_digest'][:16]}…")


if __name__ == "__main__":
    main()
