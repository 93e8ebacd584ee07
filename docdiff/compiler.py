"""Compile the diff artifact with the most capable requested LaTeX engine."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence
import re
import shutil
import subprocess

from core.command_runner import CommandRunner
from core.template import render_command

from .context import Console
from .differ import DiffArtifact
from .errors import ArtifactNotProduced, CompileFailed, ToolNotFound
from .settings import CompileSettings
from .tracker import AsyncTaskTracker


_DIRECTIVE_PATTERNS = (
    re.compile(r"^%+\s*Intended LaTeX compiler:\s*(\S+)", re.IGNORECASE),
    re.compile(r"^%+\s*!TEX\s+(?:TS-)?program\s*=\s*(\S+)", re.IGNORECASE),
)
_DIRECTIVE_SCAN_LINES = 50


@dataclass(slots=True)
class CompileJob:
    artifact: DiffArtifact
    compiler: str
    command: List[str]
    process: subprocess.Popen
    output: Path


def detect_compiler(path: Path) -> str | None:
    """Return the compiler declared near the top of ``path``, if any."""

    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for index, line in enumerate(handle):
            if index >= _DIRECTIVE_SCAN_LINES:
                break
            for pattern in _DIRECTIVE_PATTERNS:
                match = pattern.match(line.strip())
                if match:
                    return match.group(1).lower()
    return None


def select_compiler(first: str | None, second: str | None, priority: Sequence[str]) -> str:
    """Pick between two declared compilers; later entries in ``priority`` win.

    Undeclared or unknown compilers rank as the first entry.
    """

    def rank(name: str | None) -> int:
        if name is None or name not in priority:
            return 0
        return priority.index(name)

    return priority[max(rank(first), rank(second))]


class ArtifactCompiler:
    def __init__(
        self,
        runner: CommandRunner,
        settings: CompileSettings,
        tracker: AsyncTaskTracker,
        console: Console,
    ) -> None:
        self._runner = runner
        self._settings = settings
        self._tracker = tracker
        self._console = console

    @property
    def executable(self) -> str:
        return self._settings.command[0]

    def ensure_available(self) -> None:
        if shutil.which(self.executable) is None:
            raise ToolNotFound(self.executable)

    def choose_compiler(self, first: Path, second: Path) -> str:
        declared = [detect_compiler(path) for path in (first, second)]
        for path, name in zip((first, second), declared):
            if name is not None and name not in self._settings.compilers:
                self._console.error(f"Ignoring unknown compiler '{name}' declared in {path.name}")
        compiler = select_compiler(declared[0], declared[1], self._settings.compilers)
        self._console.debug(f"Declared compilers {declared}; using {compiler}")
        return compiler

    def compile(self, artifact: DiffArtifact, first: Path, second: Path) -> CompileJob:
        self.ensure_available()
        compiler = self.choose_compiler(first, second)
        target = artifact.path.resolve()
        output = target.with_suffix(self._settings.output_extension)
        if output.exists():
            try:
                output.unlink()
            except OSError as exc:
                raise CompileFailed(f"Could not remove stale {output}: {exc}") from exc

        command = render_command(self._settings.command, compiler=compiler, file=str(target))
        self._console.info(f"Compiling {artifact.name} with {compiler}")
        self._console.debug(f"Spawning {self._runner.format_command(command)}")
        try:
            process = self._runner.spawn(command, cwd=target.parent)
        except OSError as exc:
            raise CompileFailed(f"Could not run '{command[0]}': {exc}") from exc
        self._tracker.track(process)
        return CompileJob(artifact=artifact, compiler=compiler, command=command, process=process, output=output)

    def finish(self, job: CompileJob, destination_dir: Path) -> Path:
        returncode = job.process.poll()
        if returncode:
            self._console.error(f"{self.executable} exited with status {returncode}")
        if not job.output.is_file():
            raise ArtifactNotProduced(f"Compilation did not produce {job.output}")

        try:
            if self._settings.clean_auxiliary:
                self.clean_auxiliary(job.output)
            return self.relocate(job.output, destination_dir)
        except OSError as exc:
            raise CompileFailed(f"Could not move {job.output.name} into {destination_dir}: {exc}") from exc

    def clean_auxiliary(self, output: Path) -> List[Path]:
        removed: List[Path] = []
        for extension in self._settings.auxiliary_extensions:
            candidate = output.parent / f"{output.stem}{extension}"
            if candidate.is_file():
                candidate.unlink()
                removed.append(candidate)
        if removed:
            self._console.debug(f"Removed {', '.join(path.name for path in removed)}")
        return removed

    def relocate(self, output: Path, destination_dir: Path) -> Path:
        destination = destination_dir / output.name
        if destination.resolve() == output.resolve():
            return destination
        if destination.exists():
            destination.unlink()
        shutil.move(str(output), str(destination))
        self._console.info(f"Wrote {destination}")
        return destination
