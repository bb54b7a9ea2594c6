"""Append-only notification log.

Indexers and UIs reconcile against this log instead of polling asset
state: either by subscribing (callbacks run synchronously once the
operation that produced the notification has committed) or by reading
``since(cursor)``.

While ``Ledger`` executes a transaction the log is *held*: ``emit``
stages notifications instead of appending them.  ``commit`` appends the
staged notifications and delivers them; ``discard`` drops them when the
operation is rejected.  Outside a hold (components driven directly, as
in unit tests) ``emit`` commits immediately.

Delivery is drained from a single queue, so a subscriber that submits a
new operation sees its own notifications delivered after the ones
already queued, in ``seq`` order.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from traceledger.core.metrics import LEDGER_NOTIFICATIONS
from traceledger.models.notification import Notification, NotificationKind
from traceledger.services.clock import Clock

logger = logging.getLogger(__name__)

Subscriber = Callable[[Notification], None]


class NotificationLog:
    def __init__(self, clock: Clock, *, count_metrics: bool = True) -> None:
        self._clock = clock
        self._count_metrics = count_metrics
        self._entries: list[Notification] = []
        self._staged: list[Notification] | None = None
        self._outbox: deque[Notification] = deque()
        self._delivering = False
        self._subscribers: list[Subscriber] = []

    def emit(self, kind: NotificationKind, **data: Any) -> Notification:
        staged = self._staged if self._staged is not None else []
        note = Notification(
            seq=len(self._entries) + len(staged) + 1,
            kind=kind,
            timestamp=self._clock.now(),
            data=data,
        )
        if self._staged is None:
            self._publish([note])
        else:
            self._staged.append(note)
        return note

    # ------------------------------------------------------------------
    # Per-operation buffering
    # ------------------------------------------------------------------

    def hold(self) -> None:
        if self._staged is not None:
            raise RuntimeError("notification log is already held")
        self._staged = []

    def commit(self) -> None:
        staged, self._staged = self._staged or [], None
        self._publish(staged)

    def discard(self) -> None:
        if self._staged:
            logger.debug("Discarded %d staged notification(s)", len(self._staged))
        self._staged = None

    def _publish(self, notes: list[Notification]) -> None:
        for note in notes:
            self._entries.append(note)
            if self._count_metrics:
                LEDGER_NOTIFICATIONS.labels(kind=note.kind.value).inc()
            logger.debug("Notification seq=%d kind=%s", note.seq, note.kind.value)
        self._outbox.extend(notes)

        if self._delivering:
            return
        self._delivering = True
        try:
            while self._outbox:
                self._deliver(self._outbox.popleft())
        finally:
            self._delivering = False

    def _deliver(self, note: Notification) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(note)
            except Exception:
                # The operation has already committed; a broken collaborator
                # must not make it look rejected.
                logger.exception(
                    "Subscriber failed on notification seq=%d kind=%s",
                    note.seq,
                    note.kind.value,
                )

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    def since(self, seq: int = 0, kind: NotificationKind | None = None) -> list[Notification]:
        entries = self._entries[max(seq, 0):]
        if kind is not None:
            entries = [n for n in entries if n.kind is kind]
        return entries

    def __len__(self) -> int:
        return len(self._entries)
