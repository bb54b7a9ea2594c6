from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BatchStatus(str, Enum):
    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    CANCELLED = "cancelled"


# Directed transition graph; CANCELLED is terminal.
BATCH_TRANSITIONS: dict[BatchStatus, frozenset[BatchStatus]] = {
    BatchStatus.PENDING_VERIFICATION: frozenset(
        {BatchStatus.ACTIVE, BatchStatus.CANCELLED}
    ),
    BatchStatus.ACTIVE: frozenset(
        {BatchStatus.IN_TRANSIT, BatchStatus.RECEIVED, BatchStatus.CANCELLED}
    ),
    BatchStatus.IN_TRANSIT: frozenset({BatchStatus.RECEIVED, BatchStatus.CANCELLED}),
    BatchStatus.RECEIVED: frozenset({BatchStatus.CANCELLED}),
    BatchStatus.CANCELLED: frozenset(),
}


def can_transition(current: BatchStatus, target: BatchStatus) -> bool:
    return target in BATCH_TRANSITIONS[current]


@dataclass(frozen=True, slots=True)
class Batch:
    """A product lot tracked from harvest to final receipt.

    Descriptive fields are fixed at creation.  Only ``status``,
    ``current_owner`` and ``linked_certificate_ids`` (append-only,
    duplicate-free) change afterwards.
    """

    id: int
    external_id: str
    creator: str
    product_type: str
    quantity: int
    unit: str
    created_at: int
    harvested_at: int
    origin: str
    current_owner: str
    metadata_ref: str
    linked_certificate_ids: tuple[int, ...] = ()
    status: BatchStatus = BatchStatus.PENDING_VERIFICATION

    def is_controlled_by(self, principal: str) -> bool:
        return principal in (self.creator, self.current_owner)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "creator": self.creator,
            "product_type": self.product_type,
            "quantity": self.quantity,
            "unit": self.unit,
            "created_at": self.created_at,
            "harvested_at": self.harvested_at,
            "origin": self.origin,
            "current_owner": self.current_owner,
            "metadata_ref": self.metadata_ref,
            "linked_certificate_ids": list(self.linked_certificate_ids),
            "status": self.status.value,
        }
