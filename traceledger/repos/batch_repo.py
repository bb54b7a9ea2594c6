from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from traceledger.models.batch import Batch, BatchStatus


class BatchRepo(Protocol):
    def get(self, batch_id: int) -> Batch | None: ...
    def peek_next_id(self) -> int: ...
    def add(self, batch: Batch) -> None: ...
    def update(self, batch: Batch) -> None: ...
    def list_by_owner(self, owner: str) -> list[Batch]: ...
    def list_pending_ids(self) -> list[int]: ...
    def list_all(self) -> list[Batch]: ...
    def count(self) -> int: ...


class InMemoryBatchRepo:
    """Batches keyed by id, with owner and pending-verification indexes.

    Both indexes are maintained on every write, so listing pending
    batches never scans the full batch history.  ``on_pending_change``
    receives the pending count after each write; the serving ledger wires
    it to the pending-batches gauge.
    """

    def __init__(self, on_pending_change: Callable[[int], None] | None = None) -> None:
        self._on_pending_change = on_pending_change
        self._by_id: dict[int, Batch] = {}
        self._by_owner: dict[str, set[int]] = {}
        self._pending: set[int] = set()
        self._next_id = 1

    def get(self, batch_id: int) -> Batch | None:
        return self._by_id.get(batch_id)

    def peek_next_id(self) -> int:
        return self._next_id

    def add(self, batch: Batch) -> None:
        if batch.id != self._next_id:
            raise ValueError(f"expected batch id {self._next_id}, got {batch.id}")
        self._by_id[batch.id] = batch
        self._by_owner.setdefault(batch.current_owner, set()).add(batch.id)
        self._index_status(batch)
        self._next_id += 1

    def update(self, batch: Batch) -> None:
        existing = self._by_id.get(batch.id)
        if existing is None:
            raise KeyError("batch not found")
        if existing.current_owner != batch.current_owner:
            self._by_owner[existing.current_owner].discard(batch.id)
            self._by_owner.setdefault(batch.current_owner, set()).add(batch.id)
        self._by_id[batch.id] = batch
        self._index_status(batch)

    def _index_status(self, batch: Batch) -> None:
        if batch.status is BatchStatus.PENDING_VERIFICATION:
            self._pending.add(batch.id)
        else:
            self._pending.discard(batch.id)
        if self._on_pending_change is not None:
            self._on_pending_change(len(self._pending))

    def list_by_owner(self, owner: str) -> list[Batch]:
        return [self._by_id[i] for i in sorted(self._by_owner.get(owner, ()))]

    def list_pending_ids(self) -> list[int]:
        return sorted(self._pending)

    def list_all(self) -> list[Batch]:
        return [self._by_id[i] for i in sorted(self._by_id)]

    def count(self) -> int:
        return len(self._by_id)
