"""Cancellable timers on a single-threaded, frame-driven clock.

Timers never run on their own. ``Scheduler.advance(now_ms)`` is called from
the frame loop and runs every callback whose deadline has passed, in
deadline order, passing the deadline (not the wall time) so periodic work
stays on its grid even when frames arrive late.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger("flickshot.timers")

TimerCallback = Callable[[float], None]


@dataclass(eq=False)
class TimerHandle:
    name: str
    deadline_ms: float
    callback: TimerCallback
    interval_ms: Optional[float] = None
    cancelled: bool = False

    def cancel(self):
        self.cancelled = True

    @property
    def periodic(self) -> bool:
        return self.interval_ms is not None


@dataclass(order=True)
class _Entry:
    deadline_ms: float
    seq: int
    handle: TimerHandle = field(compare=False)


class Scheduler:
    """Min-heap of pending timers driven by explicit ``advance`` calls."""

    def __init__(self):
        self._heap: list[_Entry] = []
        self._seq = itertools.count()

    def _push(self, handle: TimerHandle):
        heapq.heappush(self._heap, _Entry(handle.deadline_ms, next(self._seq), handle))

    def call_later(self, now_ms: float, delay_ms: float, callback: TimerCallback, name: str = "") -> TimerHandle:
        """Run ``callback`` once, ``delay_ms`` after ``now_ms``."""
        handle = TimerHandle(name=name, deadline_ms=now_ms + delay_ms, callback=callback)
        self._push(handle)
        return handle

    def call_every(self, now_ms: float, interval_ms: float, callback: TimerCallback, name: str = "") -> TimerHandle:
        """Run ``callback`` every ``interval_ms``, first after one interval."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        handle = TimerHandle(
            name=name,
            deadline_ms=now_ms + interval_ms,
            callback=callback,
            interval_ms=interval_ms,
        )
        self._push(handle)
        return handle

    def advance(self, now_ms: float) -> int:
        """Run all callbacks due at or before ``now_ms``. Returns how many ran.

        A callback may cancel other timers (including itself) or schedule
        new ones; cancelled timers are skipped.
        """
        fired = 0
        while self._heap and self._heap[0].deadline_ms <= now_ms:
            entry = heapq.heappop(self._heap)
            handle = entry.handle
            if handle.cancelled:
                continue

            if handle.periodic:
                handle.deadline_ms = entry.deadline_ms + handle.interval_ms
                self._push(handle)

            handle.callback(entry.deadline_ms)
            fired += 1
        return fired

    def cancel_all(self):
        for entry in self._heap:
            entry.handle.cancel()
        self._heap.clear()

    @property
    def pending(self) -> list[TimerHandle]:
        return [e.handle for e in sorted(self._heap) if not e.handle.cancelled]

    def __len__(self) -> int:
        return len(self.pending)
