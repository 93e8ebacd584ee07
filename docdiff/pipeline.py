"""Sequence resolution, conversion, diffing and compilation into one run."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List
import shutil

from .compiler import ArtifactCompiler, CompileJob
from .context import Context
from .converter import ConversionTask, DocumentConverter, ExportBackend, TaskStatus
from .differ import DiffArtifact, DiffComputer
from .errors import AlreadyInProgress, DiffFailed, DocDiffError
from .expander import PreprocessExpander
from .git_manager import GitManager
from .resolver import DocumentReference, ResolvedDocument, RevisionResolver
from .tracker import AsyncTaskTracker


class PipelineState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    CONVERTING = "converting"
    WAITING_CONVERSION = "waiting-conversion"
    EXPANDING = "expanding"
    DIFFING = "diffing"
    READY_DIFF = "ready-diff"
    COMPILING = "compiling"
    WAITING_COMPILE = "waiting-compile"
    READY_ARTIFACT = "ready-artifact"
    FAILED = "failed"


@dataclass(slots=True)
class DiffRequest:
    left: DocumentReference
    right: DocumentReference | None = None
    asynchronous: bool = False
    flatten: bool = False
    compile: bool = True
    open_result: bool = False


@dataclass(slots=True)
class PipelineRun:
    """Mutable state of one diff run."""

    request: DiffRequest
    state: PipelineState = PipelineState.IDLE
    active: bool = True
    left: ResolvedDocument | None = None
    right: ResolvedDocument | None = None
    tasks: List[ConversionTask] = field(default_factory=list)
    artifact: DiffArtifact | None = None
    job: CompileJob | None = None
    result: Path | None = None
    error: Exception | None = None
    open_result: bool = False

    @property
    def finished(self) -> bool:
        if self.state in (PipelineState.READY_ARTIFACT, PipelineState.FAILED):
            return True
        if self.state is PipelineState.READY_DIFF and not self.request.compile:
            return True
        return not self.active


class PipelineOrchestrator:
    """Owns the single active :class:`PipelineRun` and drives it stage by stage.

    Stages up to the first background wait run inside :meth:`start`; the rest
    run from tracker continuations while :meth:`wait` drives the scheduler.
    """

    def __init__(
        self,
        context: Context,
        *,
        tracker: AsyncTaskTracker | None = None,
        resolver: RevisionResolver | None = None,
        backend: ExportBackend | None = None,
        converter: DocumentConverter | None = None,
        expander: PreprocessExpander | None = None,
        differ: DiffComputer | None = None,
        compiler: ArtifactCompiler | None = None,
    ) -> None:
        settings = context.settings
        console = context.console
        runner = context.runner
        self._context = context
        self._console = console
        self._tracker = tracker or AsyncTaskTracker(
            context.scheduler, console, interval=settings.global_.poll_interval
        )
        if resolver is None:
            git = GitManager(
                runner,
                executable=settings.git.executable,
                tar_executable=settings.git.tar_executable,
            )
            resolver = RevisionResolver(git, console)
        self._resolver = resolver
        self._backend = backend or ExportBackend(runner, settings.convert, console)
        self._converter = converter or DocumentConverter(self._backend, self._tracker, console)
        self._expander = expander or PreprocessExpander(runner, settings.flatten, console)
        self._differ = differ or DiffComputer(runner, settings.diff, console)
        self._compiler = compiler or ArtifactCompiler(runner, settings.compile, self._tracker, console)
        self._tracker.add_abort_hook(self._backend.discard_pending)
        self._run: PipelineRun | None = None

    @property
    def current(self) -> PipelineRun | None:
        return self._run

    @property
    def active(self) -> bool:
        return self._run is not None and self._run.active

    @property
    def state(self) -> PipelineState:
        return self._run.state if self._run is not None else PipelineState.IDLE

    def start(self, request: DiffRequest) -> PipelineRun:
        if self.active:
            raise AlreadyInProgress()
        self._differ.ensure_available()
        if request.compile:
            self._compiler.ensure_available()

        run = PipelineRun(request=request)
        self._run = run
        self._advance(run, self._resolve_stage)
        return run

    def wait(self, run: PipelineRun | None = None) -> Path:
        """Drive the scheduler until ``run`` finishes and return its final file."""

        run = run or self._run
        if run is None:
            raise DocDiffError("No diff run has been started")
        self._context.scheduler.run_until(lambda: run.finished)
        if run.state is PipelineState.FAILED and run.error is not None:
            raise run.error
        if run.result is None:
            raise DocDiffError("Diff run was aborted before it completed")
        return run.result

    def abort(self) -> None:
        self._tracker.abort()
        self._backend.discard_pending()
        run = self._run
        if run is None:
            return
        self._release(run)
        run.state = PipelineState.IDLE
        self._run = None
        self._console.info("Diff run aborted")

    def _advance(self, run: PipelineRun, stage: Callable[[PipelineRun], None]) -> None:
        try:
            stage(run)
        except Exception as exc:
            run.state = PipelineState.FAILED
            run.error = exc
            self._console.debug(f"Stage {stage.__name__} failed: {exc}")
            raise

    def _resume(self, run: PipelineRun, stage: Callable[[PipelineRun], None]) -> Callable[[], None]:
        def continuation() -> None:
            if run is not self._run or not run.active:
                return
            try:
                self._advance(run, stage)
            except DocDiffError:
                # Recorded on the run; wait() re-raises it.
                return

        return continuation

    def _resolve_stage(self, run: PipelineRun) -> None:
        run.state = PipelineState.RESOLVING
        run.left, run.right = self._resolver.resolve(run.request.left, run.request.right)
        self._convert_stage(run)

    def _convert_stage(self, run: PipelineRun) -> None:
        run.state = PipelineState.CONVERTING
        assert run.left is not None and run.right is not None
        first = self._converter.convert(run.left, run.request.asynchronous)
        run.tasks = [first]
        if run.right.path == run.left.path:
            second = first
        else:
            second = self._converter.convert(run.right, run.request.asynchronous)
        run.tasks.append(second)

        if any(task.status is TaskStatus.RUNNING for task in run.tasks):
            run.state = PipelineState.WAITING_CONVERSION
            self._tracker.poll_until_empty(self._resume(run, self._after_conversion))
            return
        self._after_conversion(run)

    def _after_conversion(self, run: PipelineRun) -> None:
        for task in run.tasks:
            if task.status is not TaskStatus.DONE:
                self._converter.verify(task)
        self._expand_stage(run)

    def _expand_stage(self, run: PipelineRun) -> None:
        run.state = PipelineState.EXPANDING
        assert run.left is not None and run.right is not None
        files = list(dict.fromkeys(task.target for task in run.tasks))
        self._expander.maybe_expand(run.left, run.right, run.request.flatten, files=files)
        self._diff_stage(run)

    def _diff_stage(self, run: PipelineRun) -> None:
        run.state = PipelineState.DIFFING
        assert run.left is not None and run.right is not None
        first, second = run.tasks
        run.artifact = self._differ.compute(
            first.target,
            second.target,
            self._context.settings.diff.style,
            revisions=(run.left.revision, run.right.revision),
            bases=(run.left.source.stem, run.right.source.stem),
            protected=[run.left.source, run.right.source],
        )
        run.state = PipelineState.READY_DIFF
        self._console.info(f"Diff written to {run.artifact.path}")

        if not run.request.compile:
            self._complete_without_compile(run)
            return
        self._compile_stage(run)

    def _complete_without_compile(self, run: PipelineRun) -> None:
        assert run.left is not None and run.artifact is not None
        artifact = run.artifact.path
        if self._inside_extraction(run, artifact):
            destination = run.left.source.parent / artifact.name
            try:
                shutil.copy2(artifact, destination)
            except OSError as exc:
                raise DiffFailed(f"Could not copy {artifact} to {destination}: {exc}") from exc
            self._console.info(f"Copied diff to {destination}")
            artifact = destination
        run.result = artifact
        self._release(run)

    def _compile_stage(self, run: PipelineRun) -> None:
        run.state = PipelineState.COMPILING
        assert run.artifact is not None
        first, second = run.tasks
        run.job = self._compiler.compile(run.artifact, first.target, second.target)
        run.state = PipelineState.WAITING_COMPILE
        self._tracker.poll_until_empty(self._resume(run, self._after_compile))

    def _after_compile(self, run: PipelineRun) -> None:
        assert run.left is not None and run.job is not None
        run.result = self._compiler.finish(run.job, run.left.source.parent)
        run.state = PipelineState.READY_ARTIFACT
        run.open_result = run.request.open_result
        self._release(run)

    @staticmethod
    def _inside_extraction(run: PipelineRun, path: Path) -> bool:
        for document in (run.left, run.right):
            if document is not None and document.root is not None and document.root in path.parents:
                return True
        return False

    def _release(self, run: PipelineRun) -> None:
        if not self._context.settings.global_.keep_temporary:
            self._converter.discard_scratch(run.tasks)
            self._resolver.cleanup(run.left, run.right)
        run.active = False
