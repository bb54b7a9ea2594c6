"""Ledger-level reads: chain height, state digest, notification feed.

Indexers reconcile by polling ``/v1/notifications?after=<last seq>``
and comparing ``state_digest`` with their own replay.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel

from traceledger.api.dependencies import LedgerDep
from traceledger.models.notification import NotificationKind

router = APIRouter(prefix="/v1", tags=["ledger"])


class LedgerInfoOut(BaseModel):
    admin: str
    height: int
    state_digest: str
    certificates: int
    batches: int
    role_policy: str
    operations: list[str]


class NotificationOut(BaseModel):
    seq: int
    kind: str
    timestamp: int
    data: dict[str, Any]


@router.get("/ledger", response_model=LedgerInfoOut)
async def ledger_info(ledger: LedgerDep) -> LedgerInfoOut:
    return LedgerInfoOut(
        admin=ledger.roles.admin,
        height=ledger.height,
        state_digest=ledger.state_digest(),
        certificates=ledger.certificates.total_supply(),
        batches=ledger.batches.total_supply(),
        role_policy=ledger.roles.policy.name,
        operations=ledger.operations,
    )


@router.get("/notifications", response_model=list[NotificationOut])
async def list_notifications(
    ledger: LedgerDep,
    after: int = Query(default=0, ge=0),
    kind: NotificationKind | None = None,
) -> list[NotificationOut]:
    return [
        NotificationOut(**n.to_dict()) for n in ledger.notifications.since(after, kind)
    ]
