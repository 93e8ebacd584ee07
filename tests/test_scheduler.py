from __future__ import annotations

import unittest

from tests.helpers import make_scheduler


class SchedulerTests(unittest.TestCase):
    def test_callbacks_run_in_due_order(self) -> None:
        scheduler, clock = make_scheduler()
        calls: list[str] = []
        scheduler.call_later(1.0, lambda: calls.append("late"))
        scheduler.call_later(0.5, lambda: calls.append("early"))

        self.assertEqual(scheduler.run_pending(), 0)
        scheduler.run_until(lambda: len(calls) == 2)

        self.assertEqual(calls, ["early", "late"])
        self.assertEqual(clock.now, 1.0)

    def test_cancelled_call_is_skipped(self) -> None:
        scheduler, _ = make_scheduler()
        calls: list[str] = []
        handle = scheduler.call_later(0.1, lambda: calls.append("cancelled"))
        handle.cancel()

        self.assertEqual(scheduler.pending(), 0)
        self.assertFalse(scheduler.run_until(lambda: bool(calls)))
        self.assertEqual(calls, [])

    def test_run_until_stops_when_queue_is_empty(self) -> None:
        scheduler, clock = make_scheduler()
        self.assertFalse(scheduler.run_until(lambda: False))
        self.assertEqual(clock.sleeps, [])

    def test_callbacks_may_reschedule_themselves(self) -> None:
        scheduler, clock = make_scheduler()
        ticks: list[float] = []

        def tick() -> None:
            ticks.append(clock.now)
            if len(ticks) < 3:
                scheduler.call_later(0.5, tick)

        scheduler.call_later(0.5, tick)
        scheduler.run_until(lambda: len(ticks) == 3)
        self.assertEqual(ticks, [0.5, 1.0, 1.5])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
