"""Ledger host: wires the three components and records their history.

The host platform this service sits on orders every mutating operation
into one total order and executes each to completion before the next.
``Ledger.submit`` is that single entry point: it stamps a transaction
with a sequence number and a block timestamp, pins the clock to that
timestamp while the operation runs, and returns a ``Receipt``.  The
arguments are deep-copied into the transaction, so a caller mutating its
own objects afterwards cannot rewrite history.

Notifications emitted by an operation are held until the transaction is
journaled and then delivered; a rejected operation publishes none.

Only admitted transactions enter the journal.  Re-executing a journal
from genesis (``Ledger.replay``) reproduces the same state, which
``state_digest`` makes cheap to compare across executors.
"""

from __future__ import annotations

import copy
import hashlib
import inspect
import json
import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from traceledger.core.errors import LedgerError, ValidationError
from traceledger.core.metrics import LEDGER_OPERATIONS, PENDING_BATCHES
from traceledger.models.principal import Role
from traceledger.models.transaction import Receipt, Transaction
from traceledger.repos.batch_repo import InMemoryBatchRepo
from traceledger.repos.certificate_repo import InMemoryCertificateRepo
from traceledger.repos.role_repo import InMemoryRoleMembershipRepo
from traceledger.services.batch_ledger import BatchLedger
from traceledger.services.certificate_ledger import CertificateLedger
from traceledger.services.clock import Clock, ManualClock, SystemClock
from traceledger.services.notifications import NotificationLog
from traceledger.services.role_authority import STRICT, RoleAuthority, RolePolicy

logger = logging.getLogger(__name__)


class ReplayDivergenceError(RuntimeError):
    """A journaled transaction was rejected on replay."""


class _BlockClock:
    """Reads the source clock, except while a transaction is executing."""

    def __init__(self, source: Clock) -> None:
        self._source = source
        self._pinned: int | None = None

    def now(self) -> int:
        if self._pinned is not None:
            return self._pinned
        return self._source.now()

    @contextmanager
    def pinned(self, timestamp: int) -> Iterator[None]:
        self._pinned = timestamp
        try:
            yield
        finally:
            self._pinned = None


class Ledger:
    def __init__(
        self,
        admin: str,
        *,
        clock: Clock | None = None,
        policy: RolePolicy = STRICT,
        metrics: bool = True,
    ) -> None:
        self.source_clock = clock or SystemClock()
        self.clock = _BlockClock(self.source_clock)
        self.notifications = NotificationLog(self.clock, count_metrics=metrics)
        self._metrics = metrics

        self._role_repo = InMemoryRoleMembershipRepo()
        self._certificate_repo = InMemoryCertificateRepo()
        self._batch_repo = InMemoryBatchRepo(
            on_pending_change=PENDING_BATCHES.set if metrics else None
        )

        self.roles = RoleAuthority(admin, self._role_repo, self.notifications, policy)
        self.certificates = CertificateLedger(
            self.roles, self._certificate_repo, self.clock, self.notifications
        )
        self.batches = BatchLedger(
            self.roles,
            self.certificates,
            self._batch_repo,
            self.clock,
            self.notifications,
        )

        self._journal: list[Transaction] = []
        self._last_timestamp = 0
        self._executing = False
        self._operations: dict[str, Callable[..., Any]] = {
            "grant_role": self._grant_role,
            "revoke_role": self._revoke_role,
            "transfer_admin": self.roles.transfer_admin,
            "issue_certificate": self.certificates.issue,
            "revoke_certificate": self._revoke_certificate,
            "create_batch": self.batches.create,
            "verify_batch": self.batches.verify,
            "link_certificate": self._link_certificate,
            "mark_in_transit": self.batches.mark_in_transit,
            "transfer_batch": self.batches.transfer,
            "cancel_batch": self.batches.cancel,
        }

    # ------------------------------------------------------------------
    # Operation adapters (journal argument names -> component calls)
    # ------------------------------------------------------------------

    def _grant_role(self, caller: str, principal: str, role: str) -> bool:
        return self.roles.grant(caller, principal, role)

    def _revoke_role(self, caller: str, principal: str, role: str) -> bool:
        return self.roles.revoke(caller, principal, role)

    def _revoke_certificate(self, caller: str, certificate_id: int, reason: str = "") -> Any:
        return self.certificates.revoke(caller, certificate_id, reason)

    def _link_certificate(self, caller: str, batch_id: int, certificate_id: int) -> Any:
        return self.batches.link_certificate(caller, batch_id, certificate_id)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @property
    def operations(self) -> list[str]:
        return sorted(self._operations)

    @property
    def height(self) -> int:
        return len(self._journal)

    @property
    def journal(self) -> tuple[Transaction, ...]:
        return tuple(self._journal)

    def _next_timestamp(self) -> int:
        # Block timestamps never go backwards.
        return max(self.source_clock.now(), self._last_timestamp)

    def submit(self, sender: str, operation: str, **args: Any) -> Receipt:
        if self._executing:
            # Operations run to completion one at a time.
            raise RuntimeError(f"cannot submit {operation!r} while a transaction is executing")
        tx = Transaction(
            seq=self.height + 1,
            sender=sender,
            operation=operation,
            timestamp=self._next_timestamp(),
            args=copy.deepcopy(args),
        )
        return self._execute(tx)

    def _execute(self, tx: Transaction) -> Receipt:
        label = tx.operation if tx.operation in self._operations else "unknown"
        log_extra = {"operation": tx.operation, "tx_seq": tx.seq, "principal": tx.sender}

        self._executing = True
        self.notifications.hold()
        try:
            handler = self._bind(tx)
            with self.clock.pinned(tx.timestamp):
                result = handler()
        except LedgerError as exc:
            self.notifications.discard()
            if self._metrics:
                LEDGER_OPERATIONS.labels(operation=label, outcome="rejected").inc()
            logger.warning(
                "Rejected %s from %s: %s",
                tx.operation,
                tx.sender,
                exc.message,
                extra=log_extra,
            )
            return Receipt(tx=tx, status="rejected", error_kind=exc.kind, error=exc.message)
        except Exception:
            self.notifications.discard()
            raise
        finally:
            self._executing = False

        self._journal.append(tx)
        self._last_timestamp = tx.timestamp
        if self._metrics:
            LEDGER_OPERATIONS.labels(operation=label, outcome="admitted").inc()
        logger.info("Admitted %s from %s", tx.operation, tx.sender, extra=log_extra)
        self.notifications.commit()
        return Receipt(tx=tx, status="admitted", result=result)

    def _bind(self, tx: Transaction) -> Callable[[], Any]:
        handler = self._operations.get(tx.operation)
        if handler is None:
            raise ValidationError(f"unknown operation {tx.operation!r}")
        if not isinstance(tx.sender, str):
            raise ValidationError("sender must be a principal string")
        try:
            bound = inspect.signature(handler).bind(tx.sender, **tx.args)
        except TypeError as exc:
            raise ValidationError(f"bad arguments for {tx.operation}: {exc}") from None
        return lambda: handler(*bound.args, **bound.kwargs)

    # ------------------------------------------------------------------
    # Determinism
    # ------------------------------------------------------------------

    @classmethod
    def replay(
        cls,
        journal: Iterable[Transaction],
        *,
        admin: str,
        policy: RolePolicy = STRICT,
    ) -> Ledger:
        """Rebuild a ledger from genesis by re-executing ``journal``.

        The rebuilt ledger does not report metrics, so reconciling against
        a journal leaves the serving ledger's gauges and counters alone.
        """
        clock = ManualClock(start=0)
        ledger = cls(admin, clock=clock, policy=policy, metrics=False)
        for tx in journal:
            clock.set(tx.timestamp)
            receipt = ledger._execute(tx)
            if not receipt.admitted:
                raise ReplayDivergenceError(
                    f"transaction {tx.seq} ({tx.operation}) rejected on replay: "
                    f"{receipt.error}"
                )
        return ledger

    def snapshot(self) -> dict:
        return {
            "admin": self.roles.admin,
            "roles": {role.value: self.roles.members(role) for role in Role},
            "certificates": [c.to_dict() for c in self._certificate_repo.list_all()],
            "batches": [b.to_dict() for b in self._batch_repo.list_all()],
            "next_certificate_id": self._certificate_repo.peek_next_id(),
            "next_batch_id": self._batch_repo.peek_next_id(),
        }

    def state_digest(self) -> str:
        canonical = json.dumps(self.snapshot(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

