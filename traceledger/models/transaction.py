from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ReceiptStatus = Literal["admitted", "rejected"]


@dataclass(frozen=True, slots=True)
class Transaction:
    """One submitted operation, stamped by the ledger host.

    The journal of admitted transactions is enough to re-derive the
    full ledger state from genesis.
    """

    seq: int
    sender: str
    operation: str
    timestamp: int
    args: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "seq": self.seq,
            "sender": self.sender,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "args": dict(self.args),
        }


@dataclass(frozen=True, slots=True)
class Receipt:
    tx: Transaction
    status: ReceiptStatus
    result: Any = None
    error_kind: str | None = None
    error: str | None = None

    @property
    def admitted(self) -> bool:
        return self.status == "admitted"
