"""Exception hierarchy for the diff pipeline."""
from __future__ import annotations


class DocDiffError(RuntimeError):
    """Base class for every pipeline failure surfaced to callers."""


class ExtractionFailed(DocDiffError):
    """A revision snapshot could not be extracted."""


class InvalidRevision(ExtractionFailed):
    """The requested revision does not name a commit."""


class DocumentNotFound(ExtractionFailed):
    """The document does not exist at the requested location."""


class ConversionFailed(DocDiffError):
    """A source document was not converted to intermediate markup."""


class ToolNotFound(DocDiffError):
    """A required executable is not on the execution path."""

    def __init__(self, executable: str):
        super().__init__(f"Executable '{executable}' was not found on PATH")
        self.executable = executable


class DiffFailed(DocDiffError):
    """The structural diff tool failed or produced no output."""


class CompileFailed(DocDiffError):
    """The compile stage could not be started or completed."""


class ArtifactNotProduced(CompileFailed):
    """The compiler finished but the expected output file is missing."""


class AlreadyInProgress(DocDiffError):
    """A pipeline run is already active."""

    def __init__(self) -> None:
        super().__init__("A diff run is already in progress; abort it before starting another")


class ConfigError(DocDiffError, ValueError):
    """Invalid configuration value."""


__all__ = [
    "AlreadyInProgress",
    "ArtifactNotProduced",
    "CompileFailed",
    "ConfigError",
    "ConversionFailed",
    "DiffFailed",
    "DocDiffError",
    "DocumentNotFound",
    "ExtractionFailed",
    "InvalidRevision",
    "ToolNotFound",
]
