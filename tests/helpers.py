"""Fakes shared by the test suite: a manual clock, scripted processes and runners."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Sequence
import shlex

from core.command_runner import CommandError, CommandResult, CommandRunner
from core.scheduler import Scheduler
from docdiff.context import Console


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_scheduler() -> tuple[Scheduler, FakeClock]:
    clock = FakeClock()
    return Scheduler(clock=clock, sleep=clock.sleep), clock


def quiet_console() -> Console:
    return Console("none")


class FakeProcess:
    """Stands in for :class:`subprocess.Popen`; exits after ``polls`` polls."""

    def __init__(
        self,
        polls: int = 0,
        returncode: int = 0,
        on_exit: Callable[[], None] | None = None,
    ) -> None:
        self.remaining = polls
        self.returncode: int | None = None
        self._final = returncode
        self._on_exit = on_exit
        self.killed = False
        self.poll_count = 0

    def poll(self) -> int | None:
        self.poll_count += 1
        if self.returncode is not None:
            return self.returncode
        if self.remaining > 0:
            self.remaining -= 1
            return None
        if self._on_exit is not None:
            self._on_exit()
        self.returncode = self._final
        return self.returncode

    def finish(self) -> None:
        self.remaining = 0

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    def wait(self, timeout: float | None = None) -> int:
        return self.returncode if self.returncode is not None else self.poll() or 0


Handler = Callable[[List[str], Path | None], CommandResult | None]


class ScriptedRunner(CommandRunner):
    """Records every command and answers via registered handlers.

    Handlers are matched by command prefix; the first handler that returns a
    result wins. Unmatched commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.history: List[Dict[str, object]] = []
        self.spawned: List[Dict[str, object]] = []
        self._handlers: List[tuple[List[str], Handler]] = []
        self._spawn_handlers: List[tuple[List[str], Callable[[List[str], Path | None], FakeProcess]]] = []

    def on(self, prefix: Sequence[str], handler: Handler) -> None:
        self._handlers.append((list(prefix), handler))

    def on_spawn(self, prefix: Sequence[str], factory: Callable[[List[str], Path | None], FakeProcess]) -> None:
        self._spawn_handlers.append((list(prefix), factory))

    def commands(self) -> List[List[str]]:
        return [entry["command"] for entry in self.history]  # type: ignore[misc]

    def run(self, command, *, cwd=None, env=None, check=True):  # type: ignore[override]
        cmd_list = [str(part) for part in command]
        self.history.append({"command": cmd_list, "cwd": cwd})
        result: CommandResult | None = None
        for prefix, handler in self._handlers:
            if cmd_list[: len(prefix)] == prefix:
                result = handler(cmd_list, cwd)
                if result is not None:
                    break
        if result is None:
            result = CommandResult(command=cmd_list, returncode=0, stdout="", stderr="")
        if check and result.returncode != 0:
            raise CommandError(result)
        return result

    def spawn(self, command, *, cwd=None, env=None):  # type: ignore[override]
        cmd_list = [str(part) for part in command]
        self.spawned.append({"command": cmd_list, "cwd": cwd})
        for prefix, factory in self._spawn_handlers:
            if cmd_list[: len(prefix)] == prefix:
                return factory(cmd_list, cwd)
        return FakeProcess()


def ok(stdout: str = "", command: Sequence[str] = ()) -> CommandResult:
    return CommandResult(command=list(command), returncode=0, stdout=stdout, stderr="")


def failed(returncode: int = 1, stderr: str = "boom", command: Sequence[str] = ()) -> CommandResult:
    return CommandResult(command=list(command), returncode=returncode, stdout="", stderr=stderr)


class FakeGitRepository:
    """Answers the git commands issued by :class:`docdiff.git_manager.GitManager`.

    ``snapshots`` maps a revision to ``{relative path: content}``; extracting
    a revision writes those files under the ``tar -C`` destination.
    """

    def __init__(self, root: Path, snapshots: Dict[str, Dict[str, str]]) -> None:
        self.root = root
        self.snapshots = snapshots
        self.fail_extraction = False
        self.extractions: List[Path] = []

    def install(self, runner: ScriptedRunner) -> None:
        runner.on(["git", "rev-parse", "--show-toplevel"], self._toplevel)
        runner.on(["git", "rev-parse", "--verify"], self._verify)
        runner.on(["bash"], self._extract)

    def _toplevel(self, command: List[str], cwd: Path | None) -> CommandResult:
        if cwd is not None and (Path(cwd) == self.root or self.root in Path(cwd).parents):
            return ok(f"{self.root}\n")
        return failed(128, "not a git repository")

    def _verify(self, command: List[str], cwd: Path | None) -> CommandResult:
        revision = command[-1].split("^", 1)[0]
        if revision in self.snapshots:
            return ok("0123abcd\n")
        return failed(1, "")

    def _extract(self, command: List[str], cwd: Path | None) -> CommandResult:
        pipeline = command[-1]
        archive, _, extract = pipeline.partition("|")
        revision = shlex.split(archive)[-1]
        destination = Path(shlex.split(extract)[-1])
        if self.fail_extraction or revision not in self.snapshots:
            return failed(2, "fatal: not a valid object name")
        for relative, content in self.snapshots[revision].items():
            target = destination / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        self.extractions.append(destination)
        return ok()
