"""Shared FastAPI dependencies: the ledger instance and the calling principal.

THE LEDGER
----------
The gateway serves exactly one ``Ledger``, built at import time by
``build_ledger`` from SETTINGS (admin principal, role policy) on the
system clock.  Routes receive it through ``LedgerDep``; tests swap in
their own ledger on a manual clock via ``app.dependency_overrides``.

THE CALLER
----------
Every mutating route acts for the subject (``sub``) of an ES256 bearer
token.  ``require_caller`` decodes it and maps failures to 401:

  no token                -> "Not authenticated"
  expired                 -> "Token expired"
  bad signature / claims  -> "Invalid token"
  null subject            -> "Token subject is not a principal"

The principal is then stored in ``principal_var`` so every log line for
the rest of the request names it.

REJECTIONS
----------
Routes submit operations and hand the ``Receipt`` to ``settle``: an
admitted receipt yields its result, a rejected one becomes an
HTTPException whose status comes from ``ERROR_STATUS`` and whose detail
is ``{"error": kind, "message": ...}``.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from traceledger.core.config import SETTINGS
from traceledger.core.errors import LedgerError
from traceledger.core.logging import principal_var
from traceledger.models.principal import is_null_principal
from traceledger.models.transaction import Receipt
from traceledger.services import token_service
from traceledger.services.clock import Clock
from traceledger.services.ledger import Ledger
from traceledger.services.role_authority import RolePolicy

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# HTTP status for each rejected-operation kind.
ERROR_STATUS: dict[str, int] = {
    "authorization": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "validation": 422,
    "state_conflict": status.HTTP_409_CONFLICT,
    "referential": 422,
}


# ---------------------------------------------------------------------------
# Ledger singleton
# ---------------------------------------------------------------------------


def build_ledger(clock: Clock | None = None) -> Ledger:
    return Ledger(
        SETTINGS.ledger_admin,
        clock=clock,
        policy=RolePolicy.named(SETTINGS.role_policy),
    )


_ledger = build_ledger()


def get_ledger() -> Ledger:
    """FastAPI dependency returning the process-wide ledger.

    Tests swap it out through ``app.dependency_overrides``.
    """
    return _ledger


LedgerDep = Annotated[Ledger, Depends(get_ledger)]


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


async def require_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Validate the bearer token and return the principal it acts for."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = claims["sub"]
    if is_null_principal(principal):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token subject is not a principal",
            headers={"WWW-Authenticate": "Bearer"},
        )
    principal_var.set(principal)
    return principal


CallerDep = Annotated[str, Depends(require_caller)]


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def error_body(kind: str, message: str) -> dict[str, str]:
    return {"error": kind, "message": message}


def settle(receipt: Receipt) -> Any:
    """Return the result of an admitted transaction, or raise its HTTP error."""
    if receipt.admitted:
        return receipt.result
    kind = receipt.error_kind or LedgerError.kind
    raise HTTPException(
        status_code=ERROR_STATUS.get(kind, status.HTTP_400_BAD_REQUEST),
        detail=error_body(kind, receipt.error or ""),
    )
