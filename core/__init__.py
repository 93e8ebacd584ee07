"""Shared core utilities for command execution, templating and scheduling."""

from .template import TemplateError, extract_placeholders, render, render_command, validate_placeholders
from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    SubprocessCommandRunner,
    format_command,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    find_config_file,
    load_config_file,
    load_merged,
    merge_mappings,
    normalize_string_list,
)
from .scheduler import ScheduledCall, Scheduler

__all__ = [
    "TemplateError",
    "render",
    "extract_placeholders",
    "render_command",
    "validate_placeholders",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "SubprocessCommandRunner",
    "format_command",
    "ConfigLoader",
    "FILE_LOADERS",
    "find_config_file",
    "load_config_file",
    "load_merged",
    "merge_mappings",
    "normalize_string_list",
    "ScheduledCall",
    "Scheduler",
]
