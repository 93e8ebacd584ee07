"""Convert source documents to intermediate LaTeX markup."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List
import shutil
import subprocess

from core.command_runner import CommandError, CommandRunner
from core.template import render_command

from .context import Console
from .errors import ConversionFailed
from .resolver import ResolvedDocument
from .settings import ConvertSettings
from .tracker import AsyncTaskTracker


SCRATCH_INFIX = ".docdiff"


class ConversionMode(str, Enum):
    SYNC = "sync"
    ASYNC = "async"


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class ConversionTask:
    source: ResolvedDocument
    target: Path
    mode: ConversionMode
    process: subprocess.Popen | None = None
    status: TaskStatus = TaskStatus.PENDING
    scratch: bool = False


class ExportBackend:
    """Run the configured export command and remember background jobs.

    Background jobs are kept in :attr:`pending`, keyed by their target file,
    until the caller collects or discards them.
    """

    def __init__(self, runner: CommandRunner, settings: ConvertSettings, console: Console) -> None:
        self._runner = runner
        self._settings = settings
        self._console = console
        self.pending: Dict[Path, subprocess.Popen] = {}

    @property
    def extension(self) -> str:
        return self._settings.extension

    def target_for(self, source: Path) -> Path:
        return source.with_suffix(self._settings.extension)

    def command_for(self, source: Path, target: Path) -> List[str]:
        return render_command(
            self._settings.command,
            source=str(source),
            target=str(target),
            source_dir=str(source.parent),
            stem=source.stem,
        )

    def scratch_copy_for(self, source: Path) -> Path:
        return source.with_name(f"{source.stem}{SCRATCH_INFIX}{self._settings.extension}")

    def copy_intermediate(self, source: Path) -> Path:
        """Copy markup that needs no export so later stages never edit ``source``."""

        target = self.scratch_copy_for(source)
        self._console.debug(f"Copying {source} to {target}")
        try:
            shutil.copy2(source, target)
        except OSError as exc:
            raise ConversionFailed(f"Could not copy {source} to {target}: {exc}") from exc
        return target

    def export(self, source: Path) -> Path:
        target = self.target_for(source)
        command = self.command_for(source, target)
        self._console.debug(f"Running {self._runner.format_command(command)}")
        try:
            self._runner.run(command, cwd=source.parent)
        except CommandError as exc:
            raise ConversionFailed(f"Could not convert {source}") from exc
        except OSError as exc:
            raise ConversionFailed(f"Could not run '{command[0]}': {exc}") from exc
        return target

    def export_async(self, source: Path) -> subprocess.Popen:
        target = self.target_for(source)
        command = self.command_for(source, target)
        self._console.debug(f"Spawning {self._runner.format_command(command)}")
        try:
            process = self._runner.spawn(command, cwd=source.parent)
        except OSError as exc:
            raise ConversionFailed(f"Could not run '{command[0]}': {exc}") from exc
        self.pending[target] = process
        return process

    def collect(self, target: Path) -> None:
        self.pending.pop(target, None)

    def discard_pending(self) -> None:
        """Forget every background export; a no-op when none are pending."""
        if not self.pending:
            return
        for process in self.pending.values():
            if process.poll() is None:
                process.kill()
        self.pending.clear()


class DocumentConverter:
    def __init__(self, backend: ExportBackend, tracker: AsyncTaskTracker, console: Console) -> None:
        self._backend = backend
        self._tracker = tracker
        self._console = console

    def convert(self, document: ResolvedDocument, asynchronous: bool = False) -> ConversionTask:
        mode = ConversionMode.ASYNC if asynchronous else ConversionMode.SYNC
        source = document.path

        if source.suffix == self._backend.extension:
            self._console.debug(f"{source.name} is already {source.suffix}; skipping conversion")
            if document.extracted:
                return ConversionTask(source=document, target=source, mode=mode, status=TaskStatus.DONE)
            target = self._backend.copy_intermediate(source)
            return ConversionTask(source=document, target=target, mode=mode, status=TaskStatus.DONE, scratch=True)

        target = self._backend.target_for(source)
        task = ConversionTask(source=document, target=target, mode=mode)
        self._console.info(f"Converting {source} ({mode.value})")

        if asynchronous:
            task.process = self._backend.export_async(source)
            self._tracker.track(task.process)
            task.status = TaskStatus.RUNNING
            return task

        task.status = TaskStatus.RUNNING
        try:
            self._backend.export(source)
        except ConversionFailed:
            task.status = TaskStatus.FAILED
            raise
        return self.verify(task)

    def discard_scratch(self, tasks: List[ConversionTask]) -> None:
        for task in tasks:
            if task.scratch and task.target.is_file():
                self._console.debug(f"Removing {task.target}")
                task.target.unlink()

    def verify(self, task: ConversionTask) -> ConversionTask:
        self._backend.collect(task.target)
        returncode = task.process.poll() if task.process is not None else 0
        if returncode:
            task.status = TaskStatus.FAILED
            raise ConversionFailed(f"Conversion of {task.source.path} exited with status {returncode}")
        if not task.target.is_file():
            task.status = TaskStatus.FAILED
            raise ConversionFailed(f"Conversion of {task.source.path} did not produce {task.target}")
        task.status = TaskStatus.DONE
        return task
