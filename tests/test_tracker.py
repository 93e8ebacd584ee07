from __future__ import annotations

import unittest

from docdiff.tracker import AsyncTaskTracker
from tests.helpers import FakeProcess, make_scheduler, quiet_console


class AsyncTaskTrackerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduler, self.clock = make_scheduler()
        self.tracker = AsyncTaskTracker(self.scheduler, quiet_console(), interval=0.5)
        self.fired: list[int] = []

    def _continuation(self) -> None:
        self.fired.append(self.tracker.pending)

    def test_continuation_runs_immediately_when_nothing_is_tracked(self) -> None:
        self.tracker.poll_until_empty(self._continuation)
        self.assertEqual(self.fired, [0])
        self.assertEqual(self.scheduler.pending(), 0)

    def test_continuation_fires_once_after_every_process_exits(self) -> None:
        slow = FakeProcess(polls=4)
        fast = FakeProcess(polls=1)
        self.tracker.track(slow)
        self.tracker.track(fast)

        self.tracker.poll_until_empty(self._continuation)
        self.assertEqual(self.fired, [])
        self.assertEqual(self.scheduler.pending(), 1)

        self.scheduler.run_until(lambda: bool(self.fired))
        self.scheduler.run_until(lambda: False)

        self.assertEqual(self.fired, [0])
        self.assertIsNotNone(slow.returncode)
        self.assertIsNotNone(fast.returncode)
        self.assertTrue(all(delay == 0.5 for delay in self.clock.sleeps))

    def test_order_of_termination_does_not_matter(self) -> None:
        first = FakeProcess(polls=10)
        second = FakeProcess(polls=10)
        self.tracker.track(first)
        self.tracker.track(second)
        self.tracker.poll_until_empty(self._continuation)

        second.finish()
        self.scheduler.run_pending()
        self.scheduler.run_until(lambda: self.clock.now >= 1.0)
        self.assertEqual(self.fired, [])
        self.assertEqual(self.tracker.pending, 1)

        first.finish()
        self.scheduler.run_until(lambda: bool(self.fired))
        self.assertEqual(self.fired, [0])

    def test_failed_processes_count_as_terminated(self) -> None:
        self.tracker.track(FakeProcess(polls=1, returncode=3))
        self.tracker.poll_until_empty(self._continuation)
        self.scheduler.run_until(lambda: bool(self.fired))
        self.assertEqual(self.fired, [0])

    def test_new_epoch_after_continuation(self) -> None:
        self.tracker.track(FakeProcess())
        self.tracker.poll_until_empty(self._continuation)
        self.tracker.track(FakeProcess(polls=2))
        self.tracker.poll_until_empty(self._continuation)
        self.scheduler.run_until(lambda: len(self.fired) == 2)
        self.assertEqual(self.fired, [0, 0])

    def test_abort_with_nothing_tracked_is_a_noop(self) -> None:
        hook_calls: list[str] = []
        self.tracker.add_abort_hook(lambda: hook_calls.append("hook"))

        self.tracker.abort()
        self.tracker.abort()

        self.assertEqual(self.tracker.pending, 0)
        self.assertFalse(self.tracker.waiting)
        self.assertEqual(hook_calls, [])
        self.assertEqual(self.scheduler.pending(), 0)

    def test_abort_kills_processes_and_drops_continuation(self) -> None:
        hook_calls: list[str] = []
        self.tracker.add_abort_hook(lambda: hook_calls.append("hook"))
        running = FakeProcess(polls=100)
        self.tracker.track(running)
        self.tracker.poll_until_empty(self._continuation)

        self.tracker.abort()

        self.assertTrue(running.killed)
        self.assertEqual(self.tracker.pending, 0)
        self.assertEqual(hook_calls, ["hook"])
        self.assertFalse(self.scheduler.run_until(lambda: bool(self.fired)))
        self.assertEqual(self.fired, [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
