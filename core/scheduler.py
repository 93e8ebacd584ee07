"""Single-threaded cooperative scheduler for deferred callbacks."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List
import heapq
import itertools
import time


@dataclass(order=True)
class ScheduledCall:
    """A callback queued to run at ``due`` on the scheduler clock."""

    due: float
    sequence: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    """Run callbacks at or after their due time, one at a time.

    Callbacks never run concurrently. ``run_until`` is the only place that
    sleeps; everything scheduled through ``call_later`` returns immediately.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._queue: List[ScheduledCall] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        entry = ScheduledCall(self._clock() + max(0.0, delay), next(self._counter), callback)
        heapq.heappush(self._queue, entry)
        return entry

    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry.cancelled)

    def run_pending(self) -> int:
        """Run every callback that is due now. Returns how many ran."""

        ran = 0
        now = self._clock()
        while self._queue and self._queue[0].due <= now:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            entry.callback()
            ran += 1
        return ran

    def run_until(self, predicate: Callable[[], bool]) -> bool:
        """Process callbacks until ``predicate`` holds or nothing is left to run.

        Returns the final value of ``predicate``.
        """

        while not predicate():
            self._discard_cancelled()
            if not self._queue:
                return predicate()
            delay = self._queue[0].due - self._clock()
            if delay > 0:
                self._sleep(delay)
            self.run_pending()
        return True

    def _discard_cancelled(self) -> None:
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)


__all__ = ["ScheduledCall", "Scheduler"]
