"""Placeholder substitution for command templates."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence
import re


_PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")


class TemplateError(ValueError):
    """Raised when template rendering fails."""


def render(template: str, values: Mapping[str, Any]) -> str:
    """Replace every ``{{name}}`` in *template* with ``values[name]``.

    Substitution is a single pass: braces inside the substituted values are
    copied verbatim.
    """

    def replacement(match: re.Match[str]) -> str:
        name = match.group(1).strip()
        if name not in values:
            raise TemplateError(f"Cannot resolve placeholder '{name}' in '{template}'")
        return str(values[name])

    return _PLACEHOLDER_PATTERN.sub(replacement, template)


def extract_placeholders(value: Any) -> set[str]:
    """Collect all template placeholder names referenced within *value*."""

    placeholders: set[str] = set()

    def _collect(obj: Any) -> None:
        if isinstance(obj, str):
            for match in _PLACEHOLDER_PATTERN.finditer(obj):
                name = match.group(1).strip()
                if name:
                    placeholders.add(name)
            return
        if isinstance(obj, Mapping):
            for item in obj.values():
                _collect(item)
            return
        if isinstance(obj, (list, tuple)):
            for item in obj:
                _collect(item)

    _collect(value)
    return placeholders


def validate_placeholders(value: Any, allowed: Iterable[str]) -> None:
    """Raise :class:`TemplateError` if *value* references a name outside *allowed*."""

    allowed_set = set(allowed)
    unknown = sorted(extract_placeholders(value) - allowed_set)
    if unknown:
        expected = ", ".join(f"{{{{{name}}}}}" for name in sorted(allowed_set))
        raise TemplateError(
            f"Unknown placeholder(s) {', '.join(unknown)}; expected one of {expected}"
        )


def render_command(template: Sequence[str], **values: Any) -> list[str]:
    """Render each token of a command template against keyword values."""
    return [render(str(token), values) for token in template]


__all__ = [
    "TemplateError",
    "extract_placeholders",
    "render",
    "render_command",
    "validate_placeholders",
]
