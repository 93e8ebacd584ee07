"""Map document references to concrete files, extracting revisions on demand."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple
import shutil
import tempfile

from .context import Console
from .errors import DocumentNotFound, ExtractionFailed
from .git_manager import GitManager


RANGE_SEPARATOR = ".."


@dataclass(frozen=True, slots=True)
class DocumentReference:
    path: Path
    revision_range: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedDocument:
    """A readable file standing for one side of the comparison.

    ``root`` is the temporary extraction directory owning ``path`` or
    ``None`` for the working copy. ``source`` is always the working-copy
    location the reference pointed at.
    """

    path: Path
    root: Path | None
    source: Path
    revision: str | None = None

    @property
    def extracted(self) -> bool:
        return self.root is not None


def parse_revision_range(text: str) -> Tuple[str, str | None]:
    """Split ``"A..B"`` into ``("A", "B")`` and ``"A"`` into ``("A", None)``."""

    value = text.strip()
    if not value:
        raise ValueError("Revision range must not be empty")
    if RANGE_SEPARATOR not in value:
        return value, None
    older, _, newer = value.partition(RANGE_SEPARATOR)
    older = older.strip()
    newer = newer.strip()
    if not older or not newer:
        raise ValueError(f"Revision range '{text}' must look like 'older..newer'")
    return older, newer


class RevisionResolver:
    def __init__(self, git: GitManager, console: Console, *, temp_prefix: str = "docdiff-") -> None:
        self._git = git
        self._console = console
        self._temp_prefix = temp_prefix

    def resolve(
        self,
        left: DocumentReference,
        right: DocumentReference | None = None,
    ) -> Tuple[ResolvedDocument, ResolvedDocument]:
        if right is None:
            right = left

        revision_range = left.revision_range or right.revision_range
        older: str | None = None
        newer: str | None = None
        if revision_range:
            try:
                older, newer = parse_revision_range(revision_range)
            except ValueError as exc:
                raise ExtractionFailed(str(exc)) from exc

        created: List[Path] = []
        try:
            first = self._resolve_side(Path(left.path), older, created)
            second = self._resolve_side(Path(right.path), newer, created)
        except Exception:
            self._remove_roots(created)
            raise
        return first, second

    def cleanup(self, *documents: ResolvedDocument | None) -> None:
        """Delete the extraction roots owned by ``documents``."""
        self._remove_roots(doc.root for doc in documents if doc is not None and doc.root is not None)

    def _resolve_side(self, path: Path, revision: str | None, created: List[Path]) -> ResolvedDocument:
        source = path.expanduser().resolve()
        if revision is None:
            if not source.is_file():
                raise DocumentNotFound(f"Document not found: {source}")
            return ResolvedDocument(path=source, root=None, source=source)

        repo_root = self._git.repository_root(source)
        if repo_root is None:
            raise ExtractionFailed(f"{source} is not inside a git work tree")
        try:
            relative = source.relative_to(repo_root)
        except ValueError as exc:
            raise ExtractionFailed(f"{source} is outside repository {repo_root}") from exc

        self._git.ensure_revision(repo_root, revision)

        try:
            destination = Path(tempfile.mkdtemp(prefix=self._temp_prefix))
        except OSError as exc:
            raise ExtractionFailed(f"Could not create a temporary directory for '{revision}': {exc}") from exc
        created.append(destination)
        self._console.info(f"Extracting {revision} of {repo_root} into {destination}")
        self._git.extract_snapshot(repo_root, revision, destination)

        resolved = destination / relative
        if not resolved.is_file():
            raise DocumentNotFound(f"{relative} does not exist at revision '{revision}'")
        return ResolvedDocument(path=resolved, root=destination, source=source, revision=revision)

    def _remove_roots(self, roots: Iterable[Path]) -> None:
        for root in roots:
            if root.exists():
                self._console.debug(f"Removing temporary tree {root}")
                shutil.rmtree(root, ignore_errors=True)
