"""Field checks for operation arguments.

Operations reach the components through ``Ledger.submit`` with whatever
the caller sent, not only through the typed HTTP schemas.  Each helper
returns the value unchanged or raises ``ValidationError``.
"""

from __future__ import annotations

from traceledger.core.errors import ValidationError


def require_text(value: object, field: str, *, non_empty: bool = False) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    if non_empty and not value.strip():
        raise ValidationError(f"{field} must be non-empty")
    return value


def require_id(value: object, field: str) -> int:
    # bool is an int subclass; True is not an id.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer id")
    return value
