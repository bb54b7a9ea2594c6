"""Role administration endpoints (admin-gated)."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from traceledger.api.dependencies import CallerDep, LedgerDep, settle
from traceledger.models.principal import Role
from traceledger.services.ledger import Ledger

router = APIRouter(prefix="/v1/roles", tags=["roles"])


class RoleChangeIn(BaseModel):
    principal: str
    role: Role


class RoleChangeOut(BaseModel):
    principal: str
    role: Role
    changed: bool
    tx_seq: int


class AdminTransferIn(BaseModel):
    new_admin: str


class PrincipalRolesOut(BaseModel):
    principal: str
    roles: list[Role]
    is_admin: bool


@router.post("/grant", response_model=RoleChangeOut)
async def grant_role(
    body: RoleChangeIn, caller: CallerDep, ledger: LedgerDep
) -> RoleChangeOut:
    receipt = ledger.submit(
        caller, "grant_role", principal=body.principal, role=body.role.value
    )
    changed = settle(receipt)
    return RoleChangeOut(
        principal=body.principal, role=body.role, changed=changed, tx_seq=receipt.tx.seq
    )


@router.post("/revoke", response_model=RoleChangeOut)
async def revoke_role(
    body: RoleChangeIn, caller: CallerDep, ledger: LedgerDep
) -> RoleChangeOut:
    receipt = ledger.submit(
        caller, "revoke_role", principal=body.principal, role=body.role.value
    )
    changed = settle(receipt)
    return RoleChangeOut(
        principal=body.principal, role=body.role, changed=changed, tx_seq=receipt.tx.seq
    )


@router.post("/admin", response_model=PrincipalRolesOut)
async def transfer_admin(
    body: AdminTransferIn, caller: CallerDep, ledger: LedgerDep
) -> PrincipalRolesOut:
    settle(ledger.submit(caller, "transfer_admin", new_admin=body.new_admin))
    return _roles_out(ledger, body.new_admin)


@router.get("/{principal}", response_model=PrincipalRolesOut)
async def get_roles(principal: str, ledger: LedgerDep) -> PrincipalRolesOut:
    return _roles_out(ledger, principal)


def _roles_out(ledger: Ledger, principal: str) -> PrincipalRolesOut:
    roles = sorted(ledger.roles.roles_of(principal), key=lambda r: r.value)
    return PrincipalRolesOut(
        principal=principal, roles=roles, is_admin=ledger.roles.is_admin(principal)
    )
