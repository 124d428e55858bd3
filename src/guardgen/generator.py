"""Compute the fresh body of one managed region.

``ContentGenerator.generate`` is a pure function of a region and a model
snapshot. It dispatches exhaustively on the marker variant and strategy and
delegates literal substitution to a TemplateRenderer. Guard regions are
never passed here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from guardgen.conditions import evaluate
from guardgen.document import Region, body_lines, indent_lines, join_body
from guardgen.errors import (
    ConditionError,
    GenerationError,
    GeneratorFunctionError,
    MissingDataSourceError,
    MissingParameterError,
    NoContentSourceError,
)
from guardgen.markers import Conditional, ContentSource, Generated, Guard, Import, Template
from guardgen.model import ModelSnapshot
from guardgen.render import PlaceholderRenderer, TemplateRenderer, format_value

logger = logging.getLogger(__name__)

GeneratorFunction = Callable[[ModelSnapshot], Any]


def dedupe(lines: list[str]) -> list[str]:
    """Drop repeated non-blank lines, keeping first occurrences in order."""
    seen: set[str] = set()
    out = []
    for line in lines:
        if line.strip():
            if line in seen:
                continue
            seen.add(line)
        out.append(line)
    return out


def _ends_with(lines: list[str], tail: list[str]) -> bool:
    return bool(tail) and len(lines) >= len(tail) and lines[len(lines) - len(tail):] == tail


def _starts_with(lines: list[str], head: list[str]) -> bool:
    return bool(head) and lines[: len(head)] == head


class ContentGenerator:
    """Dispatches marker kinds to their generation rules.

    Args:
        renderer: Literal-text template renderer (defaults to
            PlaceholderRenderer).
        functions: Named generator callables taking a ModelSnapshot and
            returning text or a list of lines. They must be pure.
    """

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        functions: Mapping[str, GeneratorFunction] | None = None,
    ):
        self.renderer = renderer or PlaceholderRenderer()
        self._functions: dict[str, GeneratorFunction] = dict(functions or {})

    def register_function(self, name: str, fn: GeneratorFunction) -> None:
        self._functions[name] = fn

    @property
    def function_names(self) -> list[str]:
        return sorted(self._functions)

    def generate(self, region: Region, model: ModelSnapshot, newline: str = "\n") -> str:
        """Compute the new body for ``region``.

        Returns:
            The body text, indented to the marker's column, each line
            terminated with ``newline`` ('' for an empty body).

        Raises:
            GenerationError: If content cannot be produced for this marker.
        """
        marker = region.marker
        try:
            if isinstance(marker, Generated):
                lines = self._generated(marker, region, model)
            elif isinstance(marker, Conditional):
                lines = self._conditional(marker, region, model)
            elif isinstance(marker, Import):
                lines = self._imports(marker, region, model)
            elif isinstance(marker, Template):
                lines = self._template(marker, region, model)
            elif isinstance(marker, Guard):
                raise TypeError(f"guard '{marker.id}' cannot be generated")
            else:
                raise TypeError(f"unhandled marker type {type(marker).__name__}")
        except GenerationError as e:
            if e.marker_id is None:
                e.marker_id = marker.id
            raise
        return join_body(lines, newline)

    # ── Sources ───────────────────────────────────────────────────

    def _call(self, name: str, model: ModelSnapshot) -> Any:
        fn = self._functions.get(name)
        if fn is None:
            raise GeneratorFunctionError(f"No generator function registered as '{name}'")
        try:
            return fn(model)
        except GenerationError:
            raise
        except Exception as e:
            logger.debug("generator function %s failed", name, exc_info=True)
            raise GeneratorFunctionError(f"Generator function '{name}' failed: {e}") from e

    def _source_text(self, source: ContentSource, model: ModelSnapshot, marker_id: str) -> str:
        if source.static is not None:
            return source.static
        if source.template is not None:
            return self.renderer.render(source.template, model.get)
        if source.function is not None:
            result = self._call(source.function, model)
            if isinstance(result, (list, tuple)):
                return "\n".join(str(r) for r in result)
            return "" if result is None else str(result)
        if source.key is not None:
            try:
                return format_value(model.get(source.key))
            except KeyError:
                raise MissingParameterError(f"Model has no key '{source.key}'") from None
        raise NoContentSourceError(f"Marker '{marker_id}' declares no content source")

    def _fresh_lines(self, source: ContentSource, region: Region, model: ModelSnapshot) -> list[str]:
        text = self._source_text(source, model, region.id)
        return indent_lines(text.splitlines(), region.indent)

    # ── Generated ─────────────────────────────────────────────────

    def _generated(self, marker: Generated, region: Region, model: ModelSnapshot) -> list[str]:
        new = self._fresh_lines(marker.source, region, model)
        old = body_lines(region.raw_content)
        strategy = marker.strategy

        if strategy == "replace":
            return new
        if strategy == "merge":
            return dedupe(old + new)
        if strategy == "if_empty":
            blank = not region.raw_content.strip()
            untouched = region.recorded and not region.is_modified
            return new if blank or untouched else old
        if strategy == "append":
            return old if _ends_with(old, new) else old + new
        if strategy == "prepend":
            return old if _starts_with(old, new) else new + old
        raise GenerationError(f"Unknown generation strategy '{strategy}'")

    # ── Conditional ───────────────────────────────────────────────

    def _conditional(self, marker: Conditional, region: Region, model: ModelSnapshot) -> list[str]:
        value = evaluate(marker.condition, model)
        strategy = marker.strategy

        if strategy == "include":
            return self._fresh_lines(marker.source, region, model) if value else []
        if strategy == "exclude":
            return [] if value else self._fresh_lines(marker.source, region, model)
        if strategy == "switch":
            choice = format_value(value)
            alt = marker.alternatives.get(choice, marker.alternatives.get("default"))
            if alt is None:
                raise ConditionError(
                    f"Condition '{marker.condition}' selected '{choice}' but no such alternative "
                    f"(have: {', '.join(sorted(marker.alternatives))})"
                )
            text = self.renderer.render(alt, model.get)
            return indent_lines(text.splitlines(), region.indent)
        raise GenerationError(f"Unknown conditional strategy '{strategy}'")

    # ── Import ────────────────────────────────────────────────────

    def _required_imports(self, marker: Import, model: ModelSnapshot) -> list[str]:
        source = marker.source
        required: list[str] = list(source.items or ())
        if source.key is not None:
            try:
                value = model.get(source.key)
            except KeyError:
                raise MissingDataSourceError(f"Model has no import list '{source.key}'") from None
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, (list, tuple)):
                raise MissingDataSourceError(f"Import source '{source.key}' is not a list")
            required.extend(str(v) for v in value)
        if source.static is not None or source.template is not None or source.function is not None:
            required.extend(self._source_text(source, model, marker.id).splitlines())
        if source.is_empty:
            raise NoContentSourceError(f"Import marker '{marker.id}' declares no imports")
        return [r.strip() for r in required if r.strip()]

    def _imports(self, marker: Import, region: Region, model: ModelSnapshot) -> list[str]:
        required = dedupe(self._required_imports(marker, model))
        existing = dedupe([l.strip() for l in body_lines(region.raw_content) if l.strip()])
        strategy = marker.merge_strategy

        if strategy == "keep_existing":
            merged = existing + [r for r in required if r not in existing]
        elif strategy == "replace":
            merged = required
        elif strategy == "merge":
            merged = sorted(set(existing) | set(required))
        else:
            raise GenerationError(f"Unknown import strategy '{strategy}'")
        return indent_lines(merged, region.indent)

    # ── Template ──────────────────────────────────────────────────

    def _bind_parameters(self, marker: Template, model: ModelSnapshot) -> dict[str, Any]:
        bound: dict[str, Any] = {}
        for name, param in marker.parameters.items():
            if param.key is not None and model.has(param.key):
                bound[name] = model.get(param.key)
            elif param.value is not None:
                bound[name] = param.value
            elif param.default is not None:
                bound[name] = param.default
            elif param.required:
                where = f" (model key '{param.key}')" if param.key else ""
                raise MissingParameterError(f"Template parameter '{name}' has no value{where}")
            else:
                bound[name] = ""
        return bound

    def _template(self, marker: Template, region: Region, model: ModelSnapshot) -> list[str]:
        scope = model.with_bindings(self._bind_parameters(marker, model))
        iteration = marker.iteration

        if iteration is None:
            text = self.renderer.render(marker.body, scope.get)
        else:
            try:
                items = scope.get(iteration.data_source)
            except KeyError:
                raise MissingDataSourceError(
                    f"Iteration data source '{iteration.data_source}' not in model"
                ) from None
            if isinstance(items, Mapping):
                items = [{"key": k, "value": v} for k, v in items.items()]
            if not isinstance(items, (list, tuple)):
                raise MissingDataSourceError(
                    f"Iteration data source '{iteration.data_source}' is not a list"
                )
            instances = []
            for index, item in enumerate(items):
                bindings = {iteration.item_var: item}
                if iteration.index_var:
                    bindings[iteration.index_var] = index
                instances.append(self.renderer.render(marker.body, scope.with_bindings(bindings).get))
            text = iteration.separator.join(instances)

        return indent_lines(text.splitlines(), region.indent)
