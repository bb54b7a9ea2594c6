"""BatchLedger: product batches from creation to final receipt.

Status graph (CANCELLED is terminal)::

    PENDING_VERIFICATION --verify--> ACTIVE --mark_in_transit--> IN_TRANSIT
    ACTIVE / IN_TRANSIT --transfer--> RECEIVED
    any non-cancelled status --cancel--> CANCELLED

Certificates are checked through an injected ``CertificateValidator``
only at the moment they are linked.  A certificate that later expires
or is revoked leaves the batch untouched.

Every operation validates fully before it writes anything, so a
rejected call leaves the ledger exactly as it found it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from traceledger.core.errors import (
    AuthorizationError,
    NotFoundError,
    ReferentialError,
    StateConflictError,
    ValidationError,
)
from traceledger.models.batch import Batch, BatchStatus, can_transition
from traceledger.models.fields import require_id, require_text
from traceledger.models.notification import NotificationKind
from traceledger.models.principal import Role, require_principal
from traceledger.repos.batch_repo import BatchRepo
from traceledger.services.certificate_ledger import CertificateValidator
from traceledger.services.clock import Clock
from traceledger.services.notifications import NotificationLog
from traceledger.services.role_authority import RoleAuthority

logger = logging.getLogger(__name__)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class BatchLedger:
    def __init__(
        self,
        roles: RoleAuthority,
        certificates: CertificateValidator,
        repo: BatchRepo,
        clock: Clock,
        notifications: NotificationLog,
    ) -> None:
        self._roles = roles
        self._certificates = certificates
        self._repo = repo
        self._clock = clock
        self._notifications = notifications

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, batch_id: int) -> Batch:
        batch = self._repo.get(require_id(batch_id, "batch_id"))
        if batch is None:
            raise NotFoundError(f"batch {batch_id} does not exist")
        return batch

    def owner_of(self, batch_id: int) -> str:
        return self.get(batch_id).current_owner

    def list_by_owner(self, owner: str) -> list[Batch]:
        return self._repo.list_by_owner(owner)

    def list_pending(self, caller: str) -> list[int]:
        """Ids awaiting verification, ascending.  Verifiers only."""
        self._require_role(caller, Role.VERIFIER, "list pending batches")
        return self._repo.list_pending_ids()

    def total_supply(self) -> int:
        return self._repo.count()

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_role(self, caller: str, role: Role, action: str) -> None:
        if not self._roles.has_role(caller, role):
            logger.warning(
                "Access denied: %s by caller=%s missing role=%s",
                action,
                caller,
                role.value,
            )
            raise AuthorizationError(f"caller is not authorized as {role.value}")

    def _require_owner(self, batch: Batch, caller: str, action: str) -> None:
        if caller != batch.current_owner:
            logger.warning(
                "Access denied: %s batch=%d by non-owner caller=%s",
                action,
                batch.id,
                caller,
            )
            raise AuthorizationError("caller is not the current owner")

    def _check_certificate(self, cert_id: int) -> None:
        try:
            ok = self._certificates.valid(cert_id)
        except NotFoundError:
            raise ReferentialError(f"certificate {cert_id} does not exist") from None
        if not ok:
            raise ReferentialError(f"certificate {cert_id} is not valid")

    def _move(self, batch: Batch, target: BatchStatus, **changes: object) -> Batch:
        if not can_transition(batch.status, target):
            raise StateConflictError(
                f"batch {batch.id} cannot move from {batch.status.value} to {target.value}"
            )
        updated = replace(batch, status=target, **changes)
        self._repo.update(updated)
        return updated

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        caller: str,
        *,
        external_id: str,
        product_type: str,
        quantity: int,
        unit: str,
        harvested_at: int,
        origin: str,
        linked_cert_ids: Iterable[int] = (),
        metadata_ref: str = "",
    ) -> int:
        self._require_role(caller, Role.PRODUCER, "create batch")

        require_text(external_id, "external_id", non_empty=True)
        for field, value in (
            ("product_type", product_type),
            ("unit", unit),
            ("origin", origin),
            ("metadata_ref", metadata_ref),
        ):
            require_text(value, field)
        if not _is_positive_int(quantity):
            raise ValidationError("quantity must be a positive integer")
        if (
            isinstance(harvested_at, bool)
            or not isinstance(harvested_at, int)
            or harvested_at < 0
        ):
            raise ValidationError("harvested_at must be a non-negative timestamp")

        if isinstance(linked_cert_ids, (str, bytes)):
            raise ValidationError("linked_cert_ids must be a list of certificate ids")
        try:
            cert_ids = tuple(linked_cert_ids)
        except TypeError:
            raise ValidationError("linked_cert_ids must be a list of certificate ids") from None
        for cert_id in cert_ids:
            require_id(cert_id, "linked_cert_ids entry")
        if len(set(cert_ids)) != len(cert_ids):
            raise ValidationError("linked_cert_ids contains duplicate entries")

        # All certificates are checked before anything is written.
        for cert_id in cert_ids:
            self._check_certificate(cert_id)

        batch = Batch(
            id=self._repo.peek_next_id(),
            external_id=external_id,
            creator=caller,
            product_type=product_type,
            quantity=quantity,
            unit=unit,
            created_at=self._clock.now(),
            harvested_at=harvested_at,
            origin=origin,
            current_owner=caller,
            metadata_ref=metadata_ref,
            linked_certificate_ids=cert_ids,
        )
        self._repo.add(batch)

        logger.info(
            "Created batch id=%d product=%s quantity=%d%s certs=%s",
            batch.id,
            batch.product_type,
            batch.quantity,
            batch.unit,
            list(cert_ids),
        )
        self._notifications.emit(
            NotificationKind.BATCH_CREATED,
            batch_id=batch.id,
            external_id=batch.external_id,
            creator=caller,
            product_type=batch.product_type,
            quantity=batch.quantity,
            linked_certificate_ids=list(cert_ids),
            status=batch.status.value,
        )
        return batch.id

    def verify(self, caller: str, batch_id: int) -> Batch:
        self._require_role(caller, Role.VERIFIER, "verify batch")
        batch = self.get(batch_id)

        if batch.status is not BatchStatus.PENDING_VERIFICATION:
            raise StateConflictError(
                f"batch {batch_id} is {batch.status.value}, not pending verification"
            )

        verified = self._move(batch, BatchStatus.ACTIVE)
        logger.info("Verified batch id=%d by verifier=%s", batch_id, caller)
        self._notifications.emit(
            NotificationKind.BATCH_VERIFIED,
            batch_id=batch_id,
            verifier=caller,
            status=verified.status.value,
        )
        return verified

    def link_certificate(self, caller: str, batch_id: int, cert_id: int) -> Batch:
        batch = self.get(batch_id)
        require_id(cert_id, "certificate_id")

        if not batch.is_controlled_by(caller):
            logger.warning(
                "Access denied: link certificate on batch=%d by caller=%s",
                batch_id,
                caller,
            )
            raise AuthorizationError("only the creator or current owner may link")
        if batch.status is BatchStatus.CANCELLED:
            raise StateConflictError(f"batch {batch_id} is cancelled")
        if cert_id in batch.linked_certificate_ids:
            raise StateConflictError(
                f"certificate {cert_id} already linked to batch {batch_id}"
            )
        self._check_certificate(cert_id)

        linked = replace(
            batch, linked_certificate_ids=batch.linked_certificate_ids + (cert_id,)
        )
        self._repo.update(linked)

        logger.info("Linked certificate=%d to batch=%d", cert_id, batch_id)
        self._notifications.emit(
            NotificationKind.CERTIFICATE_LINKED,
            batch_id=batch_id,
            certificate_id=cert_id,
            linked_certificate_ids=list(linked.linked_certificate_ids),
        )
        return linked

    def mark_in_transit(self, caller: str, batch_id: int) -> Batch:
        batch = self.get(batch_id)
        self._require_owner(batch, caller, "mark in transit")

        if batch.status is not BatchStatus.ACTIVE:
            raise StateConflictError(
                f"batch {batch_id} is {batch.status.value}, not active"
            )

        moved = self._move(batch, BatchStatus.IN_TRANSIT)
        logger.info("Batch id=%d marked in transit", batch_id)
        self._notifications.emit(
            NotificationKind.BATCH_IN_TRANSIT,
            batch_id=batch_id,
            owner=caller,
            status=moved.status.value,
        )
        return moved

    def transfer(self, caller: str, batch_id: int, to: str) -> Batch:
        """Hand the batch to ``to``.

        The result is always RECEIVED, whether ``to`` is a logistics
        party or the final consumer.
        """
        batch = self.get(batch_id)
        self._require_owner(batch, caller, "transfer")

        if batch.status not in (BatchStatus.ACTIVE, BatchStatus.IN_TRANSIT):
            raise StateConflictError(
                f"batch {batch_id} is {batch.status.value}; "
                "only active or in-transit batches can be transferred"
            )
        require_principal(to, "to")

        moved = self._move(batch, BatchStatus.RECEIVED, current_owner=to)
        logger.info("Transferred batch id=%d from=%s to=%s", batch_id, caller, to)
        self._notifications.emit(
            NotificationKind.BATCH_TRANSFERRED,
            batch_id=batch_id,
            from_owner=caller,
            to_owner=to,
            status=moved.status.value,
        )
        return moved

    def cancel(self, caller: str, batch_id: int, reason: str = "") -> Batch:
        batch = self.get(batch_id)
        require_text(reason, "reason")

        # TODO: the creator keeps this right after the batch changes hands;
        # decide whether cancel should require current ownership once a
        # batch has been transferred.
        if not batch.is_controlled_by(caller) and not self._roles.is_admin(caller):
            logger.warning(
                "Access denied: cancel batch=%d by caller=%s", batch_id, caller
            )
            raise AuthorizationError("only the creator, current owner or admin may cancel")
        if batch.status is BatchStatus.CANCELLED:
            raise StateConflictError(f"batch {batch_id} is already cancelled")

        cancelled = self._move(batch, BatchStatus.CANCELLED)
        logger.info("Cancelled batch id=%d by=%s reason=%r", batch_id, caller, reason)
        self._notifications.emit(
            NotificationKind.BATCH_CANCELLED,
            batch_id=batch_id,
            cancelled_by=caller,
            reason=reason,
            status=cancelled.status.value,
        )
        return cancelled
