"""Error taxonomy shared by every ledger component.

Every operation is all-or-nothing: raising one of these means the
attempted operation was rejected and global state is unchanged.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for rejected ledger operations."""

    kind = "ledger_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthorizationError(LedgerError):
    """Caller lacks the role or ownership the operation requires."""

    kind = "authorization"


class NotFoundError(LedgerError):
    kind = "not_found"


class ValidationError(LedgerError):
    """Malformed input: empty strings, non-positive quantities, null principals."""

    kind = "validation"


class StateConflictError(LedgerError):
    """Operation not valid for the asset's current status."""

    kind = "state_conflict"


class ReferentialError(LedgerError):
    """A referenced certificate failed the validity check at link time."""

    kind = "referential"
