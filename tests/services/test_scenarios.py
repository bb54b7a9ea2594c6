"""End-to-end supply chain flows driven through ``Ledger.submit``."""

from __future__ import annotations

from tests.conftest import ADMIN, CERTIFIER, CONSUMER, ONE_YEAR, PRODUCER, VERIFIER
from traceledger.models.batch import BatchStatus
from traceledger.models.transaction import Receipt
from traceledger.services.clock import ManualClock
from traceledger.services.ledger import Ledger


def _onboard(ledger: Ledger) -> None:
    for principal, role in (
        (CERTIFIER, "certifier"),
        (PRODUCER, "producer"),
        (VERIFIER, "verifier"),
    ):
        assert ledger.submit(ADMIN, "grant_role", principal=principal, role=role).admitted


def _issue(ledger: Ledger, validity: int) -> int:
    receipt = ledger.submit(
        CERTIFIER,
        "issue_certificate",
        external_id="HALAL-2025-001",
        cert_type="Halal",
        certified_entity=PRODUCER,
        validity_seconds=validity,
        metadata_ref="ipfs://QmCert",
    )
    assert receipt.admitted, receipt.error
    return receipt.result


def _create(ledger: Ledger, cert_ids: list[int]) -> Receipt:
    return ledger.submit(
        PRODUCER,
        "create_batch",
        external_id="BATCH-2025-001",
        product_type="Organic Palm Oil",
        quantity=5000,
        unit="Liters",
        harvested_at=1_749_000_000,
        origin="Tawau, Sabah",
        linked_cert_ids=cert_ids,
        metadata_ref="ipfs://QmBatch",
    )


def test_happy_path_to_consumer(ledger: Ledger) -> None:
    _onboard(ledger)
    cert_id = _issue(ledger, ONE_YEAR)
    batch_id = _create(ledger, [cert_id]).result
    assert ledger.certificates.valid(cert_id)

    assert ledger.submit(VERIFIER, "verify_batch", batch_id=batch_id).admitted
    assert ledger.certificates.valid(cert_id)

    receipt = ledger.submit(PRODUCER, "transfer_batch", batch_id=batch_id, to=CONSUMER)
    assert receipt.admitted

    batch = ledger.batches.get(batch_id)
    assert batch.status is BatchStatus.RECEIVED
    assert batch.current_owner == CONSUMER
    assert ledger.certificates.valid(cert_id)


def test_expired_certificate_leaves_links_alone(ledger: Ledger, clock: ManualClock) -> None:
    _onboard(ledger)
    cert_id = _issue(ledger, 60)
    batch_id = _create(ledger, [cert_id]).result
    assert ledger.submit(VERIFIER, "verify_batch", batch_id=batch_id).admitted

    clock.advance(61)

    assert ledger.certificates.valid(cert_id) is False
    assert ledger.batches.get(batch_id).linked_certificate_ids == (cert_id,)


def test_revoked_certificate_cannot_back_a_new_batch(ledger: Ledger) -> None:
    _onboard(ledger)
    cert_id = _issue(ledger, ONE_YEAR)
    assert ledger.submit(
        CERTIFIER, "revoke_certificate", certificate_id=cert_id, reason="audit"
    ).admitted
    height = ledger.height

    receipt = _create(ledger, [cert_id])

    assert receipt.status == "rejected"
    assert receipt.error_kind == "referential"
    assert ledger.height == height
    assert ledger.batches.total_supply() == 0
    assert _create(ledger, []).result == 1


def test_non_verifier_cannot_verify(ledger: Ledger) -> None:
    _onboard(ledger)
    batch_id = _create(ledger, []).result

    receipt = ledger.submit(PRODUCER, "verify_batch", batch_id=batch_id)

    assert receipt.error_kind == "authorization"
    assert ledger.batches.get(batch_id).status is BatchStatus.PENDING_VERIFICATION


def test_double_link_is_state_conflict(ledger: Ledger) -> None:
    _onboard(ledger)
    cert_id = _issue(ledger, ONE_YEAR)
    batch_id = _create(ledger, []).result

    first = ledger.submit(
        PRODUCER, "link_certificate", batch_id=batch_id, certificate_id=cert_id
    )
    second = ledger.submit(
        PRODUCER, "link_certificate", batch_id=batch_id, certificate_id=cert_id
    )

    assert first.admitted
    assert second.error_kind == "state_conflict"
    assert ledger.batches.get(batch_id).linked_certificate_ids == (cert_id,)
