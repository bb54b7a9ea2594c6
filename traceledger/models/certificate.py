from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CertificateStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


@dataclass(frozen=True, slots=True)
class Certificate:
    """A certification issued to an entity, e.g. Halal or MSPO.

    Every field is fixed at issuance except ``status``, which may move
    from ACTIVE to REVOKED once.  Expiry is not a status: an aged
    certificate stays ACTIVE and simply stops being valid.
    """

    id: int
    external_id: str
    cert_type: str
    issuer: str
    certified_entity: str
    issued_at: int
    expires_at: int
    metadata_ref: str
    status: CertificateStatus = CertificateStatus.ACTIVE

    @property
    def owner(self) -> str:
        return self.certified_entity

    def is_valid_at(self, now: int) -> bool:
        return self.status is CertificateStatus.ACTIVE and now <= self.expires_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "cert_type": self.cert_type,
            "issuer": self.issuer,
            "certified_entity": self.certified_entity,
            "issued_at": self.issued_at,
            "expires_at": self.expires_at,
            "metadata_ref": self.metadata_ref,
            "status": self.status.value,
        }

    @staticmethod
    def new(
        *,
        id: int,
        external_id: str,
        cert_type: str,
        issuer: str,
        certified_entity: str,
        issued_at: int,
        validity_seconds: int,
        metadata_ref: str = "",
    ) -> Certificate:
        return Certificate(
            id=id,
            external_id=external_id,
            cert_type=cert_type,
            issuer=issuer,
            certified_entity=certified_entity,
            issued_at=issued_at,
            expires_at=issued_at + validity_seconds,
            metadata_ref=metadata_ref,
        )
