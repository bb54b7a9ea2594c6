from __future__ import annotations

from enum import Enum

from traceledger.core.errors import ValidationError

# Principals are opaque account identities (e.g. "0x9f3c...").
ZERO_PRINCIPAL = "0x" + "0" * 40


class Role(str, Enum):
    """Capability grants recorded by the RoleAuthority."""

    CERTIFIER = "certifier"
    PRODUCER = "producer"
    VERIFIER = "verifier"


def is_null_principal(principal: str | None) -> bool:
    if not isinstance(principal, str):
        return True
    value = principal.strip()
    return not value or value.lower() == ZERO_PRINCIPAL


def require_principal(principal: str | None, field: str = "principal") -> str:
    """Return the principal unchanged, or raise ValidationError if it is null."""
    if is_null_principal(principal):
        raise ValidationError(f"{field} must be a non-null principal")
    return principal  # type: ignore[return-value]


def parse_role(value: Role | str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(f"unknown role {value!r}") from None
