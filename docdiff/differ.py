"""Run the structural diff tool and name its output."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple
import shutil

from core.command_runner import CommandRunner

from .context import Console
from .errors import DiffFailed, ToolNotFound
from .settings import DiffSettings, DiffStyleConfig


CURRENT_LABEL = "current"


@dataclass(frozen=True, slots=True)
class DiffArtifact:
    path: Path
    name: str


def revision_suffix(older: str | None, newer: str | None) -> str:
    if older is None and newer is None:
        return ""
    labels = [(label or CURRENT_LABEL).replace("/", "_") for label in (older, newer)]
    return f"-{labels[0]}:{labels[1]}"


def artifact_name(
    first_base: str,
    second_base: str,
    older: str | None = None,
    newer: str | None = None,
    *,
    extension: str = ".tex",
) -> str:
    """``report`` + ``r1..r2`` gives ``report-r1:r2.tex``; differing bases are joined with ``-diff-``."""

    stem = first_base if first_base == second_base else f"{first_base}-diff-{second_base}"
    return f"{stem}{revision_suffix(older, newer)}{extension}"


class DiffComputer:
    def __init__(self, runner: CommandRunner, settings: DiffSettings, console: Console) -> None:
        self._runner = runner
        self._settings = settings
        self._console = console

    @property
    def executable(self) -> str:
        return self._settings.executable

    def ensure_available(self) -> None:
        if shutil.which(self._settings.executable) is None:
            raise ToolNotFound(self._settings.executable)

    def build_command(self, first: Path, second: Path, style: DiffStyleConfig) -> List[str]:
        return [
            self._settings.executable,
            *style.to_arguments(),
            *self._settings.extra_args,
            str(first),
            str(second),
        ]

    def compute(
        self,
        first: Path,
        second: Path,
        style: DiffStyleConfig | None = None,
        *,
        revisions: Tuple[str | None, str | None] = (None, None),
        bases: Sequence[str] | None = None,
        protected: Sequence[Path] = (),
    ) -> DiffArtifact:
        """Diff ``first`` against ``second`` and write the result beside ``second``.

        A name that would land on one of the ``protected`` files gets a
        ``-diff`` suffix instead.
        """

        self.ensure_available()
        style = style or self._settings.style

        first_base, second_base = bases if bases is not None else (first.stem, second.stem)
        name = artifact_name(first_base, second_base, *revisions, extension=second.suffix or ".tex")
        destination = second.parent / name
        if destination in protected:
            name = f"{destination.stem}-diff{destination.suffix}"
            destination = second.parent / name

        command = self.build_command(first, second, style)
        self._console.info(f"Diffing {first.name} against {second.name}")
        self._console.debug(f"Running {self._runner.format_command(command)}")
        result = self._runner.run(command, cwd=second.parent, check=False)
        if result.returncode != 0:
            raise DiffFailed(
                f"{self._settings.executable} exited with status {result.returncode}: {result.stderr.strip()}"
            )

        try:
            destination.write_text(result.stdout, encoding="utf-8")
        except OSError as exc:
            raise DiffFailed(f"Could not write {destination}: {exc}") from exc
        if not destination.is_file() or destination.stat().st_size == 0:
            raise DiffFailed(f"{self._settings.executable} produced no output for {name}")
        return DiffArtifact(path=destination, name=name)
