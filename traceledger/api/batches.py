"""Batch endpoints.

Every mutating route submits one ledger transaction and maps a
rejection to its HTTP status (see dependencies.ERROR_STATUS).  Reads
are public except the pending-verification queue, which is verifier-only.
"""

from __future__ import annotations

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from traceledger.api.dependencies import CallerDep, LedgerDep, settle
from traceledger.core.config import SETTINGS
from traceledger.models.batch import Batch
from traceledger.services.verify_link import verification_url

router = APIRouter(prefix="/v1/batches", tags=["batches"])


class BatchCreateIn(BaseModel):
    external_id: str
    product_type: str
    quantity: int
    unit: str
    harvested_at: int
    origin: str
    linked_cert_ids: list[int] = Field(default_factory=list)
    metadata_ref: str = ""


class LinkCertificateIn(BaseModel):
    certificate_id: int


class TransferIn(BaseModel):
    to: str


class CancelIn(BaseModel):
    reason: str = ""


class BatchOut(BaseModel):
    id: int
    external_id: str
    creator: str
    product_type: str
    quantity: int
    unit: str
    created_at: int
    harvested_at: int
    origin: str
    status: str
    linked_certificate_ids: list[int]
    current_owner: str
    metadata_ref: str
    verify_url: str


class PendingOut(BaseModel):
    batch_ids: list[int]


def batch_out(batch: Batch) -> BatchOut:
    return BatchOut(
        id=batch.id,
        external_id=batch.external_id,
        creator=batch.creator,
        product_type=batch.product_type,
        quantity=batch.quantity,
        unit=batch.unit,
        created_at=batch.created_at,
        harvested_at=batch.harvested_at,
        origin=batch.origin,
        status=batch.status.value,
        linked_certificate_ids=list(batch.linked_certificate_ids),
        current_owner=batch.current_owner,
        metadata_ref=batch.metadata_ref,
        verify_url=verification_url(SETTINGS.verify_base_url, batch.id),
    )


@router.post("", response_model=BatchOut, status_code=status.HTTP_201_CREATED)
async def create_batch(
    body: BatchCreateIn, caller: CallerDep, ledger: LedgerDep
) -> BatchOut:
    batch_id = settle(ledger.submit(caller, "create_batch", **body.model_dump()))
    return batch_out(ledger.batches.get(batch_id))


# Declared before /{batch_id} so "pending" is not parsed as an id.
@router.get("/pending", response_model=PendingOut)
async def list_pending(caller: CallerDep, ledger: LedgerDep) -> PendingOut:
    return PendingOut(batch_ids=ledger.batches.list_pending(caller))


@router.get("/owner/{principal}", response_model=list[BatchOut])
async def list_batches_by_owner(principal: str, ledger: LedgerDep) -> list[BatchOut]:
    return [batch_out(b) for b in ledger.batches.list_by_owner(principal)]


@router.get("/{batch_id}", response_model=BatchOut)
async def get_batch(batch_id: int, ledger: LedgerDep) -> BatchOut:
    return batch_out(ledger.batches.get(batch_id))


@router.post("/{batch_id}/verify", response_model=BatchOut)
async def verify_batch(batch_id: int, caller: CallerDep, ledger: LedgerDep) -> BatchOut:
    return batch_out(settle(ledger.submit(caller, "verify_batch", batch_id=batch_id)))


@router.post("/{batch_id}/certificates", response_model=BatchOut)
async def link_certificate(
    batch_id: int, body: LinkCertificateIn, caller: CallerDep, ledger: LedgerDep
) -> BatchOut:
    receipt = ledger.submit(
        caller,
        "link_certificate",
        batch_id=batch_id,
        certificate_id=body.certificate_id,
    )
    return batch_out(settle(receipt))


@router.post("/{batch_id}/in-transit", response_model=BatchOut)
async def mark_in_transit(
    batch_id: int, caller: CallerDep, ledger: LedgerDep
) -> BatchOut:
    return batch_out(settle(ledger.submit(caller, "mark_in_transit", batch_id=batch_id)))


@router.post("/{batch_id}/transfer", response_model=BatchOut)
async def transfer_batch(
    batch_id: int, body: TransferIn, caller: CallerDep, ledger: LedgerDep
) -> BatchOut:
    receipt = ledger.submit(caller, "transfer_batch", batch_id=batch_id, to=body.to)
    return batch_out(settle(receipt))


@router.post("/{batch_id}/cancel", response_model=BatchOut)
async def cancel_batch(
    batch_id: int, body: CancelIn, caller: CallerDep, ledger: LedgerDep
) -> BatchOut:
    receipt = ledger.submit(
        caller, "cancel_batch", batch_id=batch_id, reason=body.reason
    )
    return batch_out(settle(receipt))
