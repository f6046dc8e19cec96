"""
Scheduled tasks for the node's sampling loop.

Callbacks run from run_due(), on the same thread as the receive loop, so
protocol state never sees two callbacks at once. Delays are seconds on the
queue's clock.
"""
from __future__ import annotations

import heapq
import itertools
import time
from typing import Any, Callable, List, Optional, Tuple


class TimerHandle:
    __slots__ = ("when", "callback", "args", "cancelled")

    def __init__(self, when: float, callback: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class TimerQueue:

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self._clock() + max(0.0, float(delay)), callback, args)
        heapq.heappush(self._heap, (handle.when, next(self._seq), handle))
        return handle

    def run_due(self, now: Optional[float] = None) -> int:
        """Run every timer whose deadline has passed. Returns how many ran."""
        now = self._clock() if now is None else now
        ran = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle.callback(*handle.args)
            ran += 1
        return ran

    def next_deadline(self) -> Optional[float]:
        for when, _, handle in sorted(self._heap):
            if not handle.cancelled:
                return when
        return None

    def __len__(self) -> int:
        return sum(1 for _, _, h in self._heap if not h.cancelled)
