from __future__ import annotations

import pytest

from tests.conftest import ADMIN, CERTIFIER, LOGISTICS, ONE_YEAR, PRODUCER, STRANGER, T0, VERIFIER
from traceledger.models.transaction import Transaction
from traceledger.services.clock import ManualClock
from traceledger.services.ledger import Ledger, ReplayDivergenceError
from traceledger.services.role_authority import LENIENT


def _busy_ledger(ledger: Ledger, clock: ManualClock) -> Ledger:
    ledger.submit(ADMIN, "grant_role", principal=CERTIFIER, role="certifier")
    ledger.submit(ADMIN, "grant_role", principal=PRODUCER, role="producer")
    ledger.submit(ADMIN, "grant_role", principal=VERIFIER, role="verifier")
    clock.advance(10)
    cert_id = ledger.submit(
        CERTIFIER,
        "issue_certificate",
        external_id="MSPO-7",
        cert_type="MSPO",
        certified_entity=PRODUCER,
        validity_seconds=ONE_YEAR,
    ).result
    clock.advance(10)
    batch_id = ledger.submit(
        PRODUCER,
        "create_batch",
        external_id="B-7",
        product_type="Palm Oil",
        quantity=10,
        unit="Tonnes",
        harvested_at=T0,
        origin="Sandakan",
        linked_cert_ids=[cert_id],
    ).result
    # Rejected submissions are not journaled.
    ledger.submit(STRANGER, "verify_batch", batch_id=batch_id)
    clock.advance(10)
    ledger.submit(VERIFIER, "verify_batch", batch_id=batch_id)
    ledger.submit(PRODUCER, "mark_in_transit", batch_id=batch_id)
    ledger.submit(PRODUCER, "transfer_batch", batch_id=batch_id, to=LOGISTICS)
    return ledger


def test_journal_holds_only_admitted_transactions(ledger: Ledger, clock: ManualClock) -> None:
    _busy_ledger(ledger, clock)

    journal = ledger.journal
    assert ledger.height == 8
    assert [tx.seq for tx in journal] == list(range(1, 9))
    assert all(tx.sender != STRANGER for tx in journal)


def test_replay_reproduces_state(ledger: Ledger, clock: ManualClock) -> None:
    _busy_ledger(ledger, clock)

    rebuilt = Ledger.replay(ledger.journal, admin=ADMIN)

    assert rebuilt.state_digest() == ledger.state_digest()
    assert rebuilt.snapshot() == ledger.snapshot()
    assert [n.to_dict() for n in rebuilt.notifications.since(0)] == [
        n.to_dict() for n in ledger.notifications.since(0)
    ]


def test_digest_tracks_state(ledger: Ledger, clock: ManualClock) -> None:
    empty = ledger.state_digest()
    ledger.submit(ADMIN, "grant_role", principal=PRODUCER, role="producer")
    assert ledger.state_digest() != empty

    # A rejected submission leaves the digest unchanged.
    before = ledger.state_digest()
    ledger.submit(ADMIN, "grant_role", principal=PRODUCER, role="producer")
    assert ledger.state_digest() == before


def test_block_timestamp_pins_clock(ledger: Ledger, clock: ManualClock) -> None:
    ledger.submit(ADMIN, "grant_role", principal=CERTIFIER, role="certifier")
    receipt = ledger.submit(
        CERTIFIER,
        "issue_certificate",
        external_id="X",
        cert_type="Halal",
        certified_entity=PRODUCER,
        validity_seconds=100,
    )
    cert = ledger.certificates.get(receipt.result)
    assert cert.issued_at == receipt.tx.timestamp == T0


def test_block_timestamps_never_go_backwards(ledger: Ledger, clock: ManualClock) -> None:
    clock.set(T0 + 100)
    first = ledger.submit(ADMIN, "grant_role", principal=PRODUCER, role="producer")
    clock.set(T0)
    second = ledger.submit(ADMIN, "grant_role", principal=VERIFIER, role="verifier")
    assert second.tx.timestamp == first.tx.timestamp == T0 + 100


def test_unknown_operation_and_bad_arguments(ledger: Ledger) -> None:
    unknown = ledger.submit(ADMIN, "mint_tokens", amount=5)
    assert unknown.error_kind == "validation"
    assert "unknown operation" in unknown.error

    bad = ledger.submit(ADMIN, "grant_role", principal=PRODUCER)
    assert bad.error_kind == "validation"
    assert ledger.height == 0


def test_replay_detects_divergence() -> None:
    forged = [
        Transaction(
            seq=1,
            sender=STRANGER,
            operation="grant_role",
            timestamp=T0,
            args={"principal": PRODUCER, "role": "producer"},
        )
    ]
    with pytest.raises(ReplayDivergenceError):
        Ledger.replay(forged, admin=ADMIN)


def test_replay_depends_on_policy() -> None:
    lenient = Ledger(ADMIN, clock=ManualClock(T0), policy=LENIENT)
    lenient.submit(ADMIN, "grant_role", principal=PRODUCER, role="producer")
    lenient.submit(ADMIN, "grant_role", principal=PRODUCER, role="producer")
    assert lenient.height == 2

    with pytest.raises(ReplayDivergenceError):
        Ledger.replay(lenient.journal, admin=ADMIN)
    assert Ledger.replay(lenient.journal, admin=ADMIN, policy=LENIENT).height == 2


def test_operations_catalogue(ledger: Ledger) -> None:
    assert ledger.operations == sorted(
        [
            "cancel_batch",
            "create_batch",
            "grant_role",
            "issue_certificate",
            "link_certificate",
            "mark_in_transit",
            "revoke_certificate",
            "revoke_role",
            "transfer_admin",
            "transfer_batch",
            "verify_batch",
        ]
    )


def test_journal_is_isolated_from_caller_mutation(ledger: Ledger, clock: ManualClock) -> None:
    _busy_ledger(ledger, clock)
    ids = [1]
    receipt = ledger.submit(
        PRODUCER,
        "create_batch",
        external_id="B-8",
        product_type="Palm Oil",
        quantity=5,
        unit="Tonnes",
        harvested_at=T0,
        origin="Sandakan",
        linked_cert_ids=ids,
    )
    assert receipt.admitted

    ids.append(99)

    assert ledger.journal[-1].args["linked_cert_ids"] == [1]
    rebuilt = Ledger.replay(ledger.journal, admin=ADMIN)
    assert rebuilt.state_digest() == ledger.state_digest()


@pytest.mark.parametrize(
    "operation, args",
    [
        ("create_batch", {"linked_cert_ids": [[1]]}),
        ("create_batch", {"linked_cert_ids": 7}),
        ("create_batch", {"product_type": None}),
        ("create_batch", {"unit": 3}),
        ("create_batch", {"external_id": 12}),
        ("issue_certificate", {"cert_type": None}),
        ("issue_certificate", {"external_id": ["X"]}),
        ("issue_certificate", {"certified_entity": 5}),
        ("transfer_batch", {"batch_id": [1]}),
        ("grant_role", {"principal": None}),
        ("grant_role", {"role": ["producer"]}),
        ("link_certificate", {"certificate_id": True}),
        ("revoke_certificate", {"certificate_id": "1"}),
    ],
)
def test_malformed_arguments_are_validation_rejections(
    ledger: Ledger, clock: ManualClock, operation: str, args: dict
) -> None:
    _busy_ledger(ledger, clock)
    base = {
        "create_batch": (
            PRODUCER,
            {
                "external_id": "B-8",
                "product_type": "Palm Oil",
                "quantity": 5,
                "unit": "Tonnes",
                "harvested_at": T0,
                "origin": "Sandakan",
            },
        ),
        "issue_certificate": (
            CERTIFIER,
            {
                "external_id": "MSPO-8",
                "cert_type": "MSPO",
                "certified_entity": PRODUCER,
                "validity_seconds": ONE_YEAR,
            },
        ),
        "transfer_batch": (LOGISTICS, {"batch_id": 1, "to": PRODUCER}),
        "grant_role": (ADMIN, {"principal": STRANGER, "role": "producer"}),
        "link_certificate": (PRODUCER, {"batch_id": 1, "certificate_id": 1}),
        "revoke_certificate": (CERTIFIER, {"certificate_id": 1}),
    }
    sender, fields = base[operation]
    height, digest = ledger.height, ledger.state_digest()

    receipt = ledger.submit(sender, operation, **{**fields, **args})

    assert receipt.status == "rejected"
    assert receipt.error_kind == "validation"
    assert ledger.height == height
    assert ledger.state_digest() == digest


def test_non_string_sender_is_rejected(ledger: Ledger) -> None:
    receipt = ledger.submit(None, "grant_role", principal=PRODUCER, role="producer")
    assert receipt.error_kind == "validation"
    assert ledger.height == 0


def test_transfer_to_non_string_recipient(ledger: Ledger, clock: ManualClock) -> None:
    _busy_ledger(ledger, clock)
    batch_id = ledger.submit(
        PRODUCER,
        "create_batch",
        external_id="B-8",
        product_type="Palm Oil",
        quantity=5,
        unit="Tonnes",
        harvested_at=T0,
        origin="Sandakan",
    ).result
    assert ledger.submit(VERIFIER, "verify_batch", batch_id=batch_id).admitted

    receipt = ledger.submit(PRODUCER, "transfer_batch", batch_id=batch_id, to=42)

    assert receipt.error_kind == "validation"
    assert ledger.batches.get(batch_id).current_owner == PRODUCER
