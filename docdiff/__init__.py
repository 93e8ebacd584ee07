"""Visual diffs of documents across files and revisions."""

from .errors import (
    AlreadyInProgress,
    ArtifactNotProduced,
    CompileFailed,
    ConfigError,
    ConversionFailed,
    DiffFailed,
    DocDiffError,
    DocumentNotFound,
    ExtractionFailed,
    InvalidRevision,
    ToolNotFound,
)
from .pipeline import DiffRequest, PipelineOrchestrator, PipelineRun, PipelineState
from .resolver import DocumentReference, ResolvedDocument
from .settings import DiffStyleConfig, Settings

__all__ = [
    "AlreadyInProgress",
    "ArtifactNotProduced",
    "CompileFailed",
    "ConfigError",
    "ConversionFailed",
    "DiffFailed",
    "DiffRequest",
    "DiffStyleConfig",
    "DocDiffError",
    "DocumentNotFound",
    "DocumentReference",
    "ExtractionFailed",
    "InvalidRevision",
    "PipelineOrchestrator",
    "PipelineRun",
    "PipelineState",
    "ResolvedDocument",
    "Settings",
    "ToolNotFound",
]
