from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NotificationKind(str, Enum):
    ROLE_GRANTED = "RoleGranted"
    ROLE_REVOKED = "RoleRevoked"
    ADMIN_TRANSFERRED = "AdminTransferred"
    CERTIFICATE_ISSUED = "CertificateIssued"
    CERTIFICATE_REVOKED = "CertificateRevoked"
    BATCH_CREATED = "BatchCreated"
    BATCH_VERIFIED = "BatchVerified"
    BATCH_IN_TRANSIT = "BatchInTransit"
    BATCH_TRANSFERRED = "BatchTransferred"
    BATCH_CANCELLED = "BatchCancelled"
    CERTIFICATE_LINKED = "CertificateLinked"


@dataclass(frozen=True, slots=True)
class Notification:
    """A committed state change, published for indexers and UIs.

    ``seq`` is assigned by the NotificationLog and is gap-free.
    """

    seq: int
    kind: NotificationKind
    timestamp: int
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "seq": self.seq,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
            "data": dict(self.data),
        }
