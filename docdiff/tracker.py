"""Poll-based completion gate for background processes."""
from __future__ import annotations

from typing import Callable, List, Protocol

from core.scheduler import ScheduledCall, Scheduler

from .context import Console


class ProcessHandle(Protocol):
    """The subset of :class:`subprocess.Popen` the tracker relies on."""

    def poll(self) -> int | None:
        ...

    def kill(self) -> None:
        ...

    def wait(self, timeout: float | None = None) -> int:
        ...


class AsyncTaskTracker:
    """Track outstanding processes and resume a continuation once all have exited.

    ``poll_until_empty`` never blocks: while processes are still running it
    reschedules itself on the scheduler after ``interval`` seconds. The
    continuation of a tracking epoch runs exactly once.
    """

    def __init__(self, scheduler: Scheduler, console: Console, *, interval: float = 0.5) -> None:
        self._scheduler = scheduler
        self._console = console
        self._interval = interval
        self._handles: List[ProcessHandle] = []
        self._continuation: Callable[[], None] | None = None
        self._scheduled: ScheduledCall | None = None
        self._abort_hooks: List[Callable[[], None]] = []

    @property
    def pending(self) -> int:
        return len(self._handles)

    @property
    def waiting(self) -> bool:
        return self._continuation is not None

    def track(self, handle: ProcessHandle) -> None:
        self._handles.append(handle)

    def add_abort_hook(self, hook: Callable[[], None]) -> None:
        self._abort_hooks.append(hook)

    def poll_until_empty(self, continuation: Callable[[], None]) -> None:
        if self._scheduled is not None:
            self._scheduled.cancel()
        self._continuation = continuation
        self._poll()

    def _poll(self) -> None:
        self._scheduled = None
        if self._continuation is None:
            return

        running: List[ProcessHandle] = []
        for handle in self._handles:
            returncode = handle.poll()
            if returncode is None:
                running.append(handle)
            else:
                self._console.debug(f"Background process exited with status {returncode}")
        self._handles = running

        if self._handles:
            self._scheduled = self._scheduler.call_later(self._interval, self._poll)
            return

        continuation = self._continuation
        self._continuation = None
        continuation()

    def abort(self) -> None:
        if not self._handles and self._continuation is None:
            return

        for handle in self._handles:
            if handle.poll() is None:
                handle.kill()
                handle.wait()
        self._console.info(f"Aborted {len(self._handles)} background process(es)")
        self._handles = []
        self._continuation = None
        if self._scheduled is not None:
            self._scheduled.cancel()
            self._scheduled = None
        for hook in self._abort_hooks:
            hook()
