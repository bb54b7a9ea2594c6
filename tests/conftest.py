from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from traceledger.api.dependencies import get_ledger
from traceledger.core.config import SETTINGS
from traceledger.main import app
from traceledger.models.principal import Role
from traceledger.services.clock import ManualClock
from traceledger.services.ledger import Ledger
from traceledger.services.token_service import create_access_token

T0 = 1_750_000_000
ONE_YEAR = 365 * 24 * 60 * 60

ADMIN = SETTINGS.ledger_admin
CERTIFIER = "0xcertifier"
PRODUCER = "0xproducer"
VERIFIER = "0xverifier"
LOGISTICS = "0xlogistics"
CONSUMER = "0xconsumer"
STRANGER = "0xstranger"


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=T0)


@pytest.fixture
def ledger(clock: ManualClock) -> Ledger:
    """Empty ledger whose admin matches the gateway's configured admin."""
    return Ledger(ADMIN, clock=clock)


@pytest.fixture
def seeded(ledger: Ledger) -> Ledger:
    """Ledger with one principal in each role."""
    ledger.roles.grant(ADMIN, CERTIFIER, Role.CERTIFIER)
    ledger.roles.grant(ADMIN, PRODUCER, Role.PRODUCER)
    ledger.roles.grant(ADMIN, VERIFIER, Role.VERIFIER)
    return ledger


def issue_cert(ledger: Ledger, validity: int = ONE_YEAR, **overrides) -> int:
    fields = {
        "external_id": "HALAL-2025-001",
        "cert_type": "Halal",
        "certified_entity": PRODUCER,
        "validity_seconds": validity,
        "metadata_ref": "ipfs://QmCert",
    }
    fields.update(overrides)
    return ledger.certificates.issue(CERTIFIER, **fields)


def create_batch(ledger: Ledger, cert_ids=(), caller: str = PRODUCER, **overrides) -> int:
    fields = {
        "external_id": "BATCH-2025-001",
        "product_type": "Organic Palm Oil",
        "quantity": 5000,
        "unit": "Liters",
        "harvested_at": T0 - 86400,
        "origin": "Tawau, Sabah",
        "linked_cert_ids": list(cert_ids),
        "metadata_ref": "ipfs://QmBatch",
    }
    fields.update(overrides)
    return ledger.batches.create(caller, **fields)


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def client(ledger: Ledger) -> Iterator[TestClient]:
    """TestClient bound to the per-test ledger."""
    app.dependency_overrides[get_ledger] = lambda: ledger
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_ledger, None)


def auth(principal: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(sub=principal)}"}
