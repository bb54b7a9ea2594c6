"""Certificate endpoints: issue, revoke, look up, check validity.

Reads are public; issuing needs the certifier role and revoking needs
to come from the issuer or the ledger admin.
"""

from __future__ import annotations

from fastapi import APIRouter, status
from pydantic import BaseModel

from traceledger.api.dependencies import CallerDep, LedgerDep, settle
from traceledger.models.certificate import Certificate
from traceledger.services.ledger import Ledger

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


class CertificateIssueIn(BaseModel):
    external_id: str
    cert_type: str
    certified_entity: str
    validity_seconds: int
    metadata_ref: str = ""


class CertificateRevokeIn(BaseModel):
    reason: str = ""


class CertificateOut(BaseModel):
    id: int
    external_id: str
    cert_type: str
    issuer: str
    certified_entity: str
    owner: str
    issued_at: int
    expires_at: int
    status: str
    metadata_ref: str
    valid: bool


class ValidityOut(BaseModel):
    id: int
    valid: bool
    checked_at: int


def certificate_out(ledger: Ledger, cert: Certificate) -> CertificateOut:
    return CertificateOut(
        id=cert.id,
        external_id=cert.external_id,
        cert_type=cert.cert_type,
        issuer=cert.issuer,
        certified_entity=cert.certified_entity,
        owner=cert.owner,
        issued_at=cert.issued_at,
        expires_at=cert.expires_at,
        status=cert.status.value,
        metadata_ref=cert.metadata_ref,
        valid=cert.is_valid_at(ledger.clock.now()),
    )


@router.post("", response_model=CertificateOut, status_code=status.HTTP_201_CREATED)
async def issue_certificate(
    body: CertificateIssueIn, caller: CallerDep, ledger: LedgerDep
) -> CertificateOut:
    cert_id = settle(ledger.submit(caller, "issue_certificate", **body.model_dump()))
    return certificate_out(ledger, ledger.certificates.get(cert_id))


@router.post("/{certificate_id}/revoke", response_model=CertificateOut)
async def revoke_certificate(
    certificate_id: int,
    body: CertificateRevokeIn,
    caller: CallerDep,
    ledger: LedgerDep,
) -> CertificateOut:
    revoked = settle(
        ledger.submit(
            caller,
            "revoke_certificate",
            certificate_id=certificate_id,
            reason=body.reason,
        )
    )
    return certificate_out(ledger, revoked)


@router.get("/owner/{principal}", response_model=list[CertificateOut])
async def list_certificates_by_owner(
    principal: str, ledger: LedgerDep
) -> list[CertificateOut]:
    return [certificate_out(ledger, c) for c in ledger.certificates.list_by_owner(principal)]


@router.get("/{certificate_id}", response_model=CertificateOut)
async def get_certificate(certificate_id: int, ledger: LedgerDep) -> CertificateOut:
    return certificate_out(ledger, ledger.certificates.get(certificate_id))


@router.get("/{certificate_id}/valid", response_model=ValidityOut)
async def check_certificate(certificate_id: int, ledger: LedgerDep) -> ValidityOut:
    now = ledger.clock.now()
    return ValidityOut(
        id=certificate_id,
        valid=ledger.certificates.valid(certificate_id),
        checked_at=now,
    )
