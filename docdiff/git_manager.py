"""Git operations needed to materialise document revisions."""
from __future__ import annotations

from pathlib import Path
import shlex

from core.command_runner import CommandError, CommandRunner

from .errors import ExtractionFailed, InvalidRevision


class GitManager:
    def __init__(self, runner: CommandRunner, *, executable: str = "git", tar_executable: str = "tar") -> None:
        self._runner = runner
        self._git = executable
        self._tar = tar_executable

    def repository_root(self, path: Path) -> Path | None:
        """Return the top-level directory of the work tree containing ``path``."""

        directory = path if path.is_dir() else path.parent
        if not directory.exists():
            return None
        result = self._runner.run(
            [self._git, "rev-parse", "--show-toplevel"],
            cwd=directory,
            check=False,
        )
        if result.returncode != 0:
            return None
        text = result.stdout.strip()
        if not text:
            return None
        return Path(text).resolve()

    def is_valid_revision(self, repo_root: Path, revision: str) -> bool:
        result = self._runner.run(
            [self._git, "rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"],
            cwd=repo_root,
            check=False,
        )
        return result.returncode == 0

    def ensure_revision(self, repo_root: Path, revision: str) -> None:
        if not self.is_valid_revision(repo_root, revision):
            raise InvalidRevision(f"'{revision}' is not a valid revision in {repo_root}")

    def archive_command(self, revision: str, destination: Path) -> str:
        """Shell pipeline that writes the tree at ``revision`` into ``destination``."""
        archive = [self._git, "archive", "--format=tar", revision]
        extract = [self._tar, "-x", "-C", str(destination)]
        return f"{shlex.join(archive)} | {shlex.join(extract)}"

    def extract_snapshot(self, repo_root: Path, revision: str, destination: Path) -> None:
        """Populate ``destination`` with the full repository tree at ``revision``."""

        pipeline = self.archive_command(revision, destination)
        try:
            self._runner.run(["bash", "-o", "pipefail", "-c", pipeline], cwd=repo_root)
        except CommandError as exc:
            raise ExtractionFailed(
                f"Could not extract revision '{revision}' of {repo_root} into {destination}"
            ) from exc
