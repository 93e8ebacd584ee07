"""Inline cross-file includes of intermediate documents."""
from __future__ import annotations

from pathlib import Path
from typing import List
import shutil

from core.command_runner import CommandRunner
from core.template import render_command

from .context import Console
from .resolver import ResolvedDocument
from .settings import FlattenSettings


def needs_flatten(first: ResolvedDocument, second: ResolvedDocument) -> bool:
    """Relative includes only resolve when both sides share a working-copy directory."""
    if first.extracted or second.extracted:
        return True
    return first.path.parent != second.path.parent


class PreprocessExpander:
    def __init__(self, runner: CommandRunner, settings: FlattenSettings, console: Console) -> None:
        self._runner = runner
        self._settings = settings
        self._console = console

    def maybe_expand(
        self,
        first: ResolvedDocument,
        second: ResolvedDocument,
        flatten: bool,
        *,
        files: List[Path] | None = None,
    ) -> bool:
        """Flatten the intermediate ``files`` of both sides when required.

        ``files`` defaults to the resolved document paths. Returns whether
        flattening ran.
        """

        if needs_flatten(first, second):
            flatten = True
        if not flatten:
            return False

        targets = files if files is not None else [first.path, second.path]
        for target in targets:
            self.expand(target)
        return True

    def expand(self, path: Path) -> bool:
        command = render_command(self._settings.command, file=str(path))
        if shutil.which(command[0]) is None:
            self._console.error(f"Flattening tool '{command[0]}' not found; leaving {path.name} unchanged")
            return False

        self._console.info(f"Flattening {path}")
        self._console.debug(f"Running {self._runner.format_command(command)}")
        result = self._runner.run(command, cwd=path.parent, check=False)
        if result.returncode != 0:
            self._console.error(
                f"Flattening {path.name} failed with exit code {result.returncode}: {result.stderr.strip()}"
            )
            return False
        if not result.stdout.strip():
            self._console.error(f"Flattening {path.name} produced no output; leaving it unchanged")
            return False
        try:
            path.write_text(result.stdout, encoding="utf-8")
        except OSError as exc:
            self._console.error(f"Could not write flattened {path.name}: {exc}")
            return False
        return True
