"""Command line interface for docdiff."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence
import os
import sys

from core.command_runner import SubprocessCommandRunner
from core.config_loader import find_config_file, load_merged, merge_mappings
from core.scheduler import Scheduler
from core.template import render_command

from .context import Console, Context
from .errors import ConfigError, DocDiffError
from .pipeline import DiffRequest, PipelineOrchestrator
from .resolver import DocumentReference
from .settings import DiffSubtype, DiffType, FloatHandling, GraphicsMarkup, MathMarkup, Settings


def _split_config_values(values: Iterable[str]) -> List[str]:
    parts: List[str] = []
    for value in values:
        if not value:
            continue
        for segment in value.split(os.pathsep):
            trimmed = segment.strip()
            if trimmed:
                parts.append(trimmed)
    return parts


def _user_config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "docdiff"


def _resolve_config_files(cwd: Path, cli_values: Iterable[str]) -> List[Path]:
    files: List[Path] = []

    for directory, stem in ((_user_config_dir(), "config"), (cwd, "docdiff")):
        found = find_config_file(directory, stem)
        if found is not None:
            files.append(found)

    explicit = _split_config_values([os.environ.get("DOCDIFF_CONFIG", "")])
    explicit.extend(_split_config_values(cli_values))
    for entry in explicit:
        path = Path(entry).expanduser()
        if not path.is_absolute():
            path = cwd / path
        if not path.is_file():
            raise ConfigError(f"Configuration file not found: {path}")
        files.append(path)
    return files


def _cli_overrides(args: Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Dict[str, Any]] = {
        "global": {},
        "convert": {},
        "flatten": {},
        "diff": {},
        "compile": {},
    }
    if args.verbose:
        overrides["global"]["log_level"] = "debug"
    elif args.quiet:
        overrides["global"]["log_level"] = "error"
    if args.keep_temporary:
        overrides["global"]["keep_temporary"] = True
    if args.asynchronous:
        overrides["convert"]["async"] = True
    if args.flatten:
        overrides["flatten"]["enabled"] = True
    for key in ("type", "subtype", "float", "math_markup", "graphics_markup"):
        value = getattr(args, key)
        if value is not None:
            overrides["diff"][key] = value
    if args.allow_spaces:
        overrides["diff"]["allow_spaces"] = True
    if args.no_compile:
        overrides["compile"]["enabled"] = False
    if args.compiler_priority:
        overrides["compile"]["compilers"] = [
            name.strip() for name in args.compiler_priority.split(",") if name.strip()
        ]
    if args.open:
        overrides["compile"]["open"] = True
    return {section: values for section, values in overrides.items() if values}


def load_settings(args: Namespace, *, cwd: Path | None = None) -> Settings:
    cwd = cwd or Path.cwd()
    try:
        data: Mapping[str, Any] = load_merged(_resolve_config_files(cwd, args.config or []))
    except (TypeError, ValueError, OSError) as exc:
        raise ConfigError(str(exc)) from exc
    return Settings.from_mapping(merge_mappings(data, _cli_overrides(args)))


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="docdiff",
        description="Typeset a marked-up diff between two documents or two revisions of one document.",
    )
    parser.add_argument("left", help="First (older) document")
    parser.add_argument("right", nargs="?", help="Second (newer) document; defaults to LEFT")
    parser.add_argument(
        "-r",
        "--revision",
        metavar="RANGE",
        help="Revision range 'OLD..NEW', or a single revision compared against the working copy",
    )
    parser.add_argument("--async", dest="asynchronous", action="store_true", help="Convert both documents in parallel")
    parser.add_argument("--flatten", action="store_true", help="Inline \\input and \\include before diffing")
    parser.add_argument("--no-compile", action="store_true", help="Stop after writing the diff source")
    parser.add_argument("--type", type=str.upper, choices=[item.value for item in DiffType])
    parser.add_argument("--subtype", type=str.upper, choices=[item.value for item in DiffSubtype])
    parser.add_argument("--float", type=str.upper, choices=[item.value for item in FloatHandling])
    parser.add_argument("--math-markup", type=str.lower, choices=[item.value for item in MathMarkup])
    parser.add_argument("--graphics-markup", type=str.lower, choices=[item.value for item in GraphicsMarkup])
    parser.add_argument("--allow-spaces", action="store_true", help="Tolerate spaces in command arguments")
    parser.add_argument(
        "--compiler-priority",
        metavar="LIST",
        help="Comma separated compilers, least capable first (default: pdflatex,xelatex,lualatex)",
    )
    parser.add_argument("--keep-temporary", action="store_true", help="Keep extracted revision trees")
    parser.add_argument("--open", action="store_true", help="Open the compiled document when done")
    parser.add_argument(
        "--config",
        action="append",
        metavar="PATH",
        help="Additional configuration file (repeatable)",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only show errors")
    return parser


def _open_result(context: Context, path: Path) -> None:
    command = render_command(context.settings.compile.open_command, file=str(path))
    try:
        context.runner.spawn(command)
    except OSError as exc:
        context.console.error(f"Could not open {path}: {exc}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])

    try:
        settings = load_settings(args)
        console = Console(settings.global_.log_level)
    except (ConfigError, ValueError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2

    context = Context(
        settings=settings,
        console=console,
        runner=SubprocessCommandRunner(),
        scheduler=Scheduler(),
    )
    orchestrator = PipelineOrchestrator(context)
    left = DocumentReference(Path(args.left), args.revision)
    right = DocumentReference(Path(args.right)) if args.right else None
    request = DiffRequest(
        left=left,
        right=right,
        asynchronous=settings.convert.asynchronous,
        flatten=settings.flatten.enabled,
        compile=settings.compile.enabled,
        open_result=settings.compile.open,
    )

    try:
        run = orchestrator.start(request)
        result = orchestrator.wait(run)
    except KeyboardInterrupt:
        orchestrator.abort()
        console.error("Interrupted")
        return 130
    except DocDiffError as exc:
        console.error(str(exc))
        orchestrator.abort()
        return 1
    except Exception:
        orchestrator.abort()
        raise

    console.info(f"Done: {result}")
    if run.open_result:
        _open_result(context, result)
    return 0
