"""RoleAuthority: who may certify, produce and verify.

A single admin principal grants and revokes capability roles.  The
other components hold a reference to one RoleAuthority and ask it
``has_role`` / ``is_admin`` before every mutating operation.

How strictly redundant grants/revokes are treated, and whether role
changes are published, is decided by a ``RolePolicy``:

  strict   redundant grant → StateConflictError,
           revoke of an unheld role → ValidationError,
           every change published
  lenient  redundant grant/revoke are silent no-ops
  minimal  lenient, and role changes are never published
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from traceledger.core.errors import AuthorizationError, StateConflictError, ValidationError
from traceledger.models.notification import NotificationKind
from traceledger.models.principal import Role, parse_role, require_principal
from traceledger.repos.role_repo import RoleMembershipRepo
from traceledger.services.notifications import NotificationLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RolePolicy:
    name: str
    reject_redundant: bool
    publish_changes: bool

    @staticmethod
    def named(name: str) -> RolePolicy:
        try:
            return _POLICIES[name]
        except KeyError:
            raise ValueError(f"unknown role policy {name!r}") from None


STRICT = RolePolicy(name="strict", reject_redundant=True, publish_changes=True)
LENIENT = RolePolicy(name="lenient", reject_redundant=False, publish_changes=True)
MINIMAL = RolePolicy(name="minimal", reject_redundant=False, publish_changes=False)

_POLICIES = {p.name: p for p in (STRICT, LENIENT, MINIMAL)}


class RoleAuthority:
    def __init__(
        self,
        admin: str,
        repo: RoleMembershipRepo,
        notifications: NotificationLog,
        policy: RolePolicy = STRICT,
    ) -> None:
        self._admin = require_principal(admin, "admin")
        self._repo = repo
        self._notifications = notifications
        self.policy = policy

    @property
    def admin(self) -> str:
        return self._admin

    def is_admin(self, principal: str) -> bool:
        return principal == self._admin

    def has_role(self, principal: str, role: Role) -> bool:
        return self._repo.has(principal, parse_role(role))

    def roles_of(self, principal: str) -> frozenset[Role]:
        return self._repo.roles_of(principal)

    def members(self, role: Role) -> list[str]:
        return self._repo.members(parse_role(role))

    def _require_admin(self, caller: str, action: str) -> None:
        if not self.is_admin(caller):
            logger.warning("Access denied: %s by non-admin caller=%s", action, caller)
            raise AuthorizationError(f"only the admin may {action}")

    def grant(self, caller: str, principal: str, role: Role) -> bool:
        """Add ``principal`` to ``role``.  Returns False for a lenient no-op."""
        self._require_admin(caller, "grant roles")
        require_principal(principal)
        role = parse_role(role)

        if self._repo.has(principal, role):
            if self.policy.reject_redundant:
                raise StateConflictError(f"{principal} already holds role {role.value}")
            return False

        self._repo.add(principal, role)
        logger.info("Granted role=%s to principal=%s", role.value, principal)
        if self.policy.publish_changes:
            self._notifications.emit(
                NotificationKind.ROLE_GRANTED,
                principal=principal,
                role=role.value,
                granted_by=caller,
            )
        return True

    def revoke(self, caller: str, principal: str, role: Role) -> bool:
        """Remove ``principal`` from ``role``.  Returns False for a lenient no-op."""
        self._require_admin(caller, "revoke roles")
        require_principal(principal)
        role = parse_role(role)

        if not self._repo.has(principal, role):
            if self.policy.reject_redundant:
                raise ValidationError(f"{principal} does not hold role {role.value}")
            return False

        self._repo.remove(principal, role)
        logger.info("Revoked role=%s from principal=%s", role.value, principal)
        if self.policy.publish_changes:
            self._notifications.emit(
                NotificationKind.ROLE_REVOKED,
                principal=principal,
                role=role.value,
                revoked_by=caller,
            )
        return True

    def transfer_admin(self, caller: str, new_admin: str) -> None:
        self._require_admin(caller, "transfer admin rights")
        require_principal(new_admin, "new_admin")
        previous = self._admin
        self._admin = new_admin
        logger.info("Admin transferred from=%s to=%s", previous, new_admin)
        self._notifications.emit(
            NotificationKind.ADMIN_TRANSFERRED,
            previous_admin=previous,
            new_admin=new_admin,
        )
