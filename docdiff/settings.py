"""Typed configuration for the diff pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Type, TypeVar

from core.config_loader import normalize_string_list
from core.template import TemplateError, validate_placeholders

from .errors import ConfigError


class DiffType(str, Enum):
    UNDERLINE = "UNDERLINE"
    CTRADITIONAL = "CTRADITIONAL"
    TRADITIONAL = "TRADITIONAL"
    CFONT = "CFONT"
    FONTSTRIKE = "FONTSTRIKE"
    INVISIBLE = "INVISIBLE"
    CHANGEBAR = "CHANGEBAR"
    CCHANGEBAR = "CCHANGEBAR"
    CULINECHBAR = "CULINECHBAR"
    CFONTCHBAR = "CFONTCHBAR"
    BOLD = "BOLD"
    PDFCOMMENT = "PDFCOMMENT"


class DiffSubtype(str, Enum):
    SAFE = "SAFE"
    MARGIN = "MARGIN"
    COLOR = "COLOR"
    LABEL = "LABEL"
    ZLABEL = "ZLABEL"
    ONLYCHANGEDPAGE = "ONLYCHANGEDPAGE"


class FloatHandling(str, Enum):
    FLOATSAFE = "FLOATSAFE"
    TRADITIONALSAFE = "TRADITIONALSAFE"
    IDENTICAL = "IDENTICAL"


class MathMarkup(str, Enum):
    OFF = "off"
    WHOLE = "whole"
    COARSE = "coarse"
    FINE = "fine"


class GraphicsMarkup(str, Enum):
    NONE = "none"
    NEW_ONLY = "new-only"
    BOTH = "both"


E = TypeVar("E", bound=Enum)


def parse_choice(enum_cls: Type[E], value: Any, *, field_name: str) -> E:
    """Map a configuration value onto ``enum_cls``, ignoring case."""

    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    for member in enum_cls:
        if member.value.lower() == text.lower() or member.name.lower() == text.lower():
            return member
    choices = ", ".join(member.value for member in enum_cls)
    raise ConfigError(f"Invalid value '{value}' for {field_name}; expected one of {choices}")


@dataclass(frozen=True, slots=True)
class DiffStyleConfig:
    """Markup style handed to the structural diff tool."""

    type: DiffType = DiffType.UNDERLINE
    subtype: DiffSubtype = DiffSubtype.SAFE
    float_handling: FloatHandling = FloatHandling.FLOATSAFE
    math_markup: MathMarkup = MathMarkup.COARSE
    graphics_markup: GraphicsMarkup = GraphicsMarkup.NEW_ONLY
    allow_spaces: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DiffStyleConfig":
        defaults = cls()
        return cls(
            type=parse_choice(DiffType, data.get("type", defaults.type), field_name="diff.type"),
            subtype=parse_choice(DiffSubtype, data.get("subtype", defaults.subtype), field_name="diff.subtype"),
            float_handling=parse_choice(
                FloatHandling, data.get("float", defaults.float_handling), field_name="diff.float"
            ),
            math_markup=parse_choice(
                MathMarkup, data.get("math_markup", defaults.math_markup), field_name="diff.math_markup"
            ),
            graphics_markup=parse_choice(
                GraphicsMarkup,
                data.get("graphics_markup", defaults.graphics_markup),
                field_name="diff.graphics_markup",
            ),
            allow_spaces=_as_bool(data.get("allow_spaces", defaults.allow_spaces), "diff.allow_spaces"),
        )

    def to_arguments(self) -> List[str]:
        args = [
            "--type", self.type.value,
            "--subtype", self.subtype.value,
            "-f", self.float_handling.value,
        ]
        if self.allow_spaces:
            args.append("--allow-spaces")
        args.append(f"--math-markup={self.math_markup.value}")
        args.append(f"--graphics-markup={self.graphics_markup.value}")
        return args


def _as_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "yes", "1", "on"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "no", "0", "off"}:
        return False
    raise ConfigError(f"{field_name} must be a boolean, got {value!r}")


def _as_command(value: Any, field_name: str, allowed: List[str]) -> List[str]:
    try:
        command = normalize_string_list(value, field_name=field_name)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc
    if not command:
        raise ConfigError(f"{field_name} must not be empty")
    try:
        validate_placeholders(command, allowed)
    except TemplateError as exc:
        raise ConfigError(f"{field_name}: {exc}") from exc
    return command


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, Mapping):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _extension(value: Any, field_name: str) -> str:
    text = str(value).strip()
    if not text:
        raise ConfigError(f"{field_name} must not be empty")
    return text if text.startswith(".") else f".{text}"


@dataclass(slots=True)
class GlobalSettings:
    log_level: str = "info"
    poll_interval: float = 0.5
    keep_temporary: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GlobalSettings":
        section = _section(data, "global")
        try:
            interval = float(section.get("poll_interval", 0.5))
        except (TypeError, ValueError) as exc:
            raise ConfigError("global.poll_interval must be a number") from exc
        if interval <= 0:
            raise ConfigError("global.poll_interval must be positive")
        return cls(
            log_level=str(section.get("log_level", "info")),
            poll_interval=interval,
            keep_temporary=_as_bool(section.get("keep_temporary", False), "global.keep_temporary"),
        )


@dataclass(slots=True)
class GitSettings:
    executable: str = "git"
    tar_executable: str = "tar"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GitSettings":
        section = _section(data, "git")
        return cls(
            executable=str(section.get("executable", "git")),
            tar_executable=str(section.get("tar_executable", "tar")),
        )


CONVERT_PLACEHOLDERS = ["source", "target", "source_dir", "stem"]
FLATTEN_PLACEHOLDERS = ["file"]
COMPILE_PLACEHOLDERS = ["compiler", "file"]
OPEN_PLACEHOLDERS = ["file"]


@dataclass(slots=True)
class ConvertSettings:
    command: List[str] = field(
        default_factory=lambda: ["pandoc", "--standalone", "{{source}}", "--output", "{{target}}"]
    )
    asynchronous: bool = False
    extension: str = ".tex"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConvertSettings":
        section = _section(data, "convert")
        defaults = cls()
        return cls(
            command=_as_command(section.get("command", defaults.command), "convert.command", CONVERT_PLACEHOLDERS),
            asynchronous=_as_bool(section.get("async", False), "convert.async"),
            extension=_extension(section.get("extension", defaults.extension), "convert.extension"),
        )


@dataclass(slots=True)
class FlattenSettings:
    enabled: bool = False
    command: List[str] = field(default_factory=lambda: ["latexpand", "{{file}}"])

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FlattenSettings":
        section = _section(data, "flatten")
        defaults = cls()
        return cls(
            enabled=_as_bool(section.get("enabled", False), "flatten.enabled"),
            command=_as_command(section.get("command", defaults.command), "flatten.command", FLATTEN_PLACEHOLDERS),
        )


@dataclass(slots=True)
class DiffSettings:
    executable: str = "latexdiff"
    style: DiffStyleConfig = field(default_factory=DiffStyleConfig)
    extra_args: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DiffSettings":
        section = _section(data, "diff")
        try:
            extra_args = normalize_string_list(section.get("extra_args"), field_name="diff.extra_args")
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc
        return cls(
            executable=str(section.get("executable", "latexdiff")),
            style=DiffStyleConfig.from_mapping(section),
            extra_args=extra_args,
        )


@dataclass(slots=True)
class CompileSettings:
    enabled: bool = True
    command: List[str] = field(
        default_factory=lambda: [
            "latexmk",
            "-pdf",
            "-pdflatex={{compiler}}",
            "-interaction=nonstopmode",
            "{{file}}",
        ]
    )
    compilers: List[str] = field(default_factory=lambda: ["pdflatex", "xelatex", "lualatex"])
    clean_auxiliary: bool = True
    auxiliary_extensions: List[str] = field(
        default_factory=lambda: [
            ".aux", ".log", ".fls", ".fdb_latexmk", ".out", ".toc", ".bbl", ".blg", ".xdv", ".synctex.gz",
        ]
    )
    output_extension: str = ".pdf"
    open: bool = False
    open_command: List[str] = field(default_factory=lambda: ["xdg-open", "{{file}}"])

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CompileSettings":
        section = _section(data, "compile")
        defaults = cls()
        try:
            compilers = normalize_string_list(section.get("compilers", defaults.compilers), field_name="compile.compilers")
            extensions = normalize_string_list(
                section.get("auxiliary_extensions", defaults.auxiliary_extensions),
                field_name="compile.auxiliary_extensions",
            )
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc
        if not compilers:
            raise ConfigError("compile.compilers must list at least one compiler")
        return cls(
            enabled=_as_bool(section.get("enabled", True), "compile.enabled"),
            command=_as_command(section.get("command", defaults.command), "compile.command", COMPILE_PLACEHOLDERS),
            compilers=compilers,
            clean_auxiliary=_as_bool(section.get("clean_auxiliary", True), "compile.clean_auxiliary"),
            auxiliary_extensions=[_extension(ext, "compile.auxiliary_extensions") for ext in extensions],
            output_extension=_extension(
                section.get("output_extension", defaults.output_extension), "compile.output_extension"
            ),
            open=_as_bool(section.get("open", False), "compile.open"),
            open_command=_as_command(
                section.get("open_command", defaults.open_command), "compile.open_command", OPEN_PLACEHOLDERS
            ),
        )


@dataclass(slots=True)
class Settings:
    global_: GlobalSettings = field(default_factory=GlobalSettings)
    git: GitSettings = field(default_factory=GitSettings)
    convert: ConvertSettings = field(default_factory=ConvertSettings)
    flatten: FlattenSettings = field(default_factory=FlattenSettings)
    diff: DiffSettings = field(default_factory=DiffSettings)
    compile: CompileSettings = field(default_factory=CompileSettings)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        if not isinstance(data, Mapping):
            raise ConfigError("Configuration root must be a mapping")
        return cls(
            global_=GlobalSettings.from_mapping(data),
            git=GitSettings.from_mapping(data),
            convert=ConvertSettings.from_mapping(data),
            flatten=FlattenSettings.from_mapping(data),
            diff=DiffSettings.from_mapping(data),
            compile=CompileSettings.from_mapping(data),
        )


__all__ = [
    "COMPILE_PLACEHOLDERS",
    "CONVERT_PLACEHOLDERS",
    "CompileSettings",
    "ConvertSettings",
    "DiffSettings",
    "DiffStyleConfig",
    "DiffSubtype",
    "DiffType",
    "FLATTEN_PLACEHOLDERS",
    "FlattenSettings",
    "FloatHandling",
    "GitSettings",
    "GlobalSettings",
    "GraphicsMarkup",
    "MathMarkup",
    "OPEN_PLACEHOLDERS",
    "Settings",
    "parse_choice",
]
