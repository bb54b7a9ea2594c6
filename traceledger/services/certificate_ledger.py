"""CertificateLedger: issuance, revocation and validity of certificates.

Validity is derived, never stored::

    valid(c) = status(c) is ACTIVE and now <= expires_at(c)

so a certificate that ages past its expiry keeps status ACTIVE and
simply stops passing ``valid``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Protocol, runtime_checkable

from traceledger.core.errors import (
    AuthorizationError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from traceledger.models.certificate import Certificate, CertificateStatus
from traceledger.models.fields import require_id, require_text
from traceledger.models.notification import NotificationKind
from traceledger.models.principal import Role, require_principal
from traceledger.repos.certificate_repo import CertificateRepo
from traceledger.services.clock import Clock
from traceledger.services.notifications import NotificationLog
from traceledger.services.role_authority import RoleAuthority

logger = logging.getLogger(__name__)


@runtime_checkable
class CertificateValidator(Protocol):
    """The only capability BatchLedger needs from the certificate side.

    ``valid`` raises NotFoundError for unknown ids.
    """

    def valid(self, cert_id: int) -> bool: ...


class CertificateLedger:
    def __init__(
        self,
        roles: RoleAuthority,
        repo: CertificateRepo,
        clock: Clock,
        notifications: NotificationLog,
    ) -> None:
        self._roles = roles
        self._repo = repo
        self._clock = clock
        self._notifications = notifications

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, cert_id: int) -> Certificate:
        cert = self._repo.get(require_id(cert_id, "certificate_id"))
        if cert is None:
            raise NotFoundError(f"certificate {cert_id} does not exist")
        return cert

    def valid(self, cert_id: int) -> bool:
        return self.get(cert_id).is_valid_at(self._clock.now())

    def owner_of(self, cert_id: int) -> str:
        return self.get(cert_id).owner

    def list_by_owner(self, owner: str) -> list[Certificate]:
        return self._repo.list_by_owner(owner)

    def total_supply(self) -> int:
        return self._repo.count()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def issue(
        self,
        caller: str,
        *,
        external_id: str,
        cert_type: str,
        certified_entity: str,
        validity_seconds: int,
        metadata_ref: str = "",
    ) -> int:
        if not self._roles.has_role(caller, Role.CERTIFIER):
            logger.warning("Access denied: issue by non-certifier caller=%s", caller)
            raise AuthorizationError("caller is not authorized as certifier")

        require_text(external_id, "external_id", non_empty=True)
        require_text(cert_type, "cert_type")
        require_text(metadata_ref, "metadata_ref")
        require_principal(certified_entity, "certified_entity")
        if (
            isinstance(validity_seconds, bool)
            or not isinstance(validity_seconds, int)
            or validity_seconds <= 0
        ):
            raise ValidationError("validity_seconds must be a positive integer")

        cert = Certificate.new(
            id=self._repo.peek_next_id(),
            external_id=external_id,
            cert_type=cert_type,
            issuer=caller,
            certified_entity=certified_entity,
            issued_at=self._clock.now(),
            validity_seconds=validity_seconds,
            metadata_ref=metadata_ref,
        )
        self._repo.add(cert)

        logger.info(
            "Issued certificate id=%d type=%s to=%s expires_at=%d",
            cert.id,
            cert.cert_type,
            cert.certified_entity,
            cert.expires_at,
        )
        self._notifications.emit(
            NotificationKind.CERTIFICATE_ISSUED,
            certificate_id=cert.id,
            external_id=cert.external_id,
            cert_type=cert.cert_type,
            issuer=cert.issuer,
            certified_entity=cert.certified_entity,
            expires_at=cert.expires_at,
        )
        return cert.id

    def revoke(self, caller: str, cert_id: int, reason: str = "") -> Certificate:
        cert = self.get(cert_id)
        require_text(reason, "reason")

        if caller != cert.issuer and not self._roles.is_admin(caller):
            logger.warning(
                "Access denied: revoke certificate=%d by caller=%s", cert_id, caller
            )
            raise AuthorizationError("only the issuer or the admin may revoke")

        if cert.status is CertificateStatus.REVOKED:
            raise StateConflictError(f"certificate {cert_id} is already revoked")

        revoked = replace(cert, status=CertificateStatus.REVOKED)
        self._repo.update(revoked)

        logger.info("Revoked certificate id=%d reason=%r", cert_id, reason)
        self._notifications.emit(
            NotificationKind.CERTIFICATE_REVOKED,
            certificate_id=cert_id,
            revoked_by=caller,
            reason=reason,
        )
        return revoked
