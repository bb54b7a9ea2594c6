from __future__ import annotations

from typing import Protocol

from traceledger.models.principal import Role


class RoleMembershipRepo(Protocol):
    def has(self, principal: str, role: Role) -> bool: ...
    def add(self, principal: str, role: Role) -> None: ...
    def remove(self, principal: str, role: Role) -> bool: ...
    def roles_of(self, principal: str) -> frozenset[Role]: ...
    def members(self, role: Role) -> list[str]: ...


class InMemoryRoleMembershipRepo:
    def __init__(self) -> None:
        self._by_role: dict[Role, set[str]] = {role: set() for role in Role}

    def has(self, principal: str, role: Role) -> bool:
        return principal in self._by_role[role]

    def add(self, principal: str, role: Role) -> None:
        if principal in self._by_role[role]:
            raise ValueError("membership already exists")
        self._by_role[role].add(principal)

    def remove(self, principal: str, role: Role) -> bool:
        members = self._by_role[role]
        if principal not in members:
            return False
        members.remove(principal)
        return True

    def roles_of(self, principal: str) -> frozenset[Role]:
        return frozenset(r for r, members in self._by_role.items() if principal in members)

    def members(self, role: Role) -> list[str]:
        return sorted(self._by_role[role])
