"""Time sources for the ledger.

Components never read the wall clock directly: they ask a ``Clock``
for ``now()`` in unix seconds.  The service uses ``SystemClock``;
tests and replays use ``ManualClock`` so elapsed time is explicit.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class ManualClock:
    def __init__(self, start: int = 1_700_000_000) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("cannot move a ledger clock backwards")
        self._now += seconds
        return self._now
