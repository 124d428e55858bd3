"""Literal-text template rendering.

The default renderer substitutes ``{{ name }}`` placeholders, where ``name``
is a dotted model key or a locally bound variable. Any object with a
``render(template, lookup)`` method can stand in for it.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any, Protocol

from guardgen.errors import MissingParameterError

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][\w.\-]*)\s*\}\}")


class TemplateRenderer(Protocol):
    def render(self, template: str, lookup: Callable[[str], Any]) -> str: ...


def format_value(value: Any) -> str:
    """Serialize a model value for insertion into source text."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(format_value(v) for v in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}: {format_value(v)}" for k, v in value.items())
    return str(value)


def placeholders(template: str) -> list[str]:
    """Names referenced by a template, in order of first appearance."""
    seen: list[str] = []
    for m in PLACEHOLDER_RE.finditer(template):
        if m.group(1) not in seen:
            seen.append(m.group(1))
    return seen


class PlaceholderRenderer:
    """``{{ key }}`` substitution with :func:`format_value` serialization."""

    def render(self, template: str, lookup: Callable[[str], Any]) -> str:
        def _sub(m: re.Match) -> str:
            name = m.group(1)
            try:
                return format_value(lookup(name))
            except KeyError:
                raise MissingParameterError(f"No value for placeholder '{name}'") from None

        return PLACEHOLDER_RE.sub(_sub, template)
