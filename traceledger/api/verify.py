"""Public scan target for product labels.

A label encodes ``{VERIFY_BASE_URL}/verify/{batch_id}``.  This endpoint
answers that link with the batch and the *current* validity of every
certificate linked to it.  Links are never re-validated on the ledger
itself, so a revoked or expired certificate shows up here as
``valid: false`` while staying linked.

Scanner apps that hand over the whole decoded link instead of building
the path themselves use ``GET /verify?link=...``; the link is parsed
back to a batch id and answered the same way.  A link that does not
point at ``/verify/{batch_id}`` is a 422 validation error.
"""

from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel

from traceledger.api.batches import BatchOut, batch_out
from traceledger.api.certificates import CertificateOut, certificate_out
from traceledger.api.dependencies import LedgerDep
from traceledger.services.ledger import Ledger
from traceledger.services.verify_link import parse_verification_url

router = APIRouter(tags=["verify"])


class VerificationOut(BaseModel):
    batch: BatchOut
    certificates: list[CertificateOut]
    all_certificates_valid: bool


def _verification(ledger: Ledger, batch_id: int) -> VerificationOut:
    batch = ledger.batches.get(batch_id)
    certificates = [
        certificate_out(ledger, ledger.certificates.get(cert_id))
        for cert_id in batch.linked_certificate_ids
    ]
    return VerificationOut(
        batch=batch_out(batch),
        certificates=certificates,
        all_certificates_valid=all(c.valid for c in certificates),
    )


@router.get("/verify/{batch_id}", response_model=VerificationOut)
async def verify_label(batch_id: int, ledger: LedgerDep) -> VerificationOut:
    return _verification(ledger, batch_id)


@router.get("/verify", response_model=VerificationOut)
async def verify_scanned_link(
    ledger: LedgerDep,
    link: str = Query(min_length=1, description="Full verification link as scanned"),
) -> VerificationOut:
    return _verification(ledger, parse_verification_url(link))
