"""Marker kinds as a closed set of frozen variants.

Delimiters carry only ``kind`` and ``id``; every other attribute (strategy,
dependencies, condition, template parameters, ...) is supplied out-of-band
by the manifest and bound here with :func:`build_marker`.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from guardgen.conditions import referenced_keys
from guardgen.errors import ConditionError, MarkerSpecError
from guardgen.render import format_value, placeholders

# Strategy vocabularies (canonical snake_case spellings)
GENERATION_STRATEGIES = ("replace", "merge", "if_empty", "append", "prepend")
CONDITIONAL_STRATEGIES = ("include", "exclude", "switch")
IMPORT_STRATEGIES = ("keep_existing", "replace", "merge")
IMPORT_TYPES = ("module", "dependency", "local", "namespace")

# Strategies that take the existing body as input and so never destroy edits
MERGING_STRATEGIES = {
    "generated": {"merge", "if_empty", "append", "prepend"},
    "import": {"keep_existing", "merge"},
}


@dataclass(frozen=True)
class ContentSource:
    """Where a marker's fresh content comes from. At most one field is set
    except ``items`` and ``key`` which import markers may combine."""

    static: str | None = None
    template: str | None = None
    function: str | None = None
    key: str | None = None
    items: tuple[str, ...] | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.static is None and self.template is None and self.function is None
            and self.key is None and self.items is None
        )

    def model_keys(self) -> set[str]:
        keys = set(placeholders(self.template)) if self.template else set()
        if self.key:
            keys.add(self.key)
        return keys


@dataclass(frozen=True)
class TemplateParameter:
    name: str
    key: str | None = None
    value: Any = None
    default: Any = None
    required: bool = True


@dataclass(frozen=True)
class IterationSettings:
    data_source: str
    item_var: str = "item"
    index_var: str | None = None
    separator: str = "\n"


@dataclass(frozen=True)
class Guard:
    id: str
    preserve_indent: bool = True
    default_content: str | None = None

    kind: ClassVar[str] = "guard"


@dataclass(frozen=True)
class Generated:
    id: str
    strategy: str = "replace"
    dependency_keys: tuple[str, ...] = ()
    source: ContentSource = field(default_factory=ContentSource)

    kind: ClassVar[str] = "generated"


@dataclass(frozen=True)
class Conditional:
    id: str
    condition: str = "true"
    strategy: str = "include"
    alternatives: Mapping[str, str] = field(default_factory=dict)
    source: ContentSource = field(default_factory=ContentSource)
    dependency_keys: tuple[str, ...] = ()

    kind: ClassVar[str] = "conditional"


@dataclass(frozen=True)
class Import:
    id: str
    import_type: str = "module"
    merge_strategy: str = "merge"
    source: ContentSource = field(default_factory=ContentSource)
    dependency_keys: tuple[str, ...] = ()

    kind: ClassVar[str] = "import"


@dataclass(frozen=True)
class Template:
    id: str
    body: str = ""
    parameters: Mapping[str, TemplateParameter] = field(default_factory=dict)
    iteration: IterationSettings | None = None
    dependency_keys: tuple[str, ...] = ()

    kind: ClassVar[str] = "template"


Marker = Union[Guard, Generated, Conditional, Import, Template]

MARKER_CLASSES: dict[str, type] = {
    cls.kind: cls for cls in (Guard, Generated, Conditional, Import, Template)
}


def overwrites_existing(marker: Marker) -> bool:
    """True if regenerating this marker discards its current body."""
    if isinstance(marker, Guard):
        return False
    if isinstance(marker, Generated):
        return marker.strategy not in MERGING_STRATEGIES["generated"]
    if isinstance(marker, Import):
        return marker.merge_strategy not in MERGING_STRATEGIES["import"]
    return True


def dependency_keys(marker: Marker) -> tuple[str, ...]:
    """All model keys a marker's content is derived from.

    Declared keys come first, followed by keys inferred from the marker's
    sources (template placeholders, condition names, parameter keys,
    iteration data source). Template-local variables are excluded.
    """
    if isinstance(marker, Guard):
        return ()

    keys: list[str] = list(marker.dependency_keys)
    inferred: set[str] = set()

    if isinstance(marker, (Generated, Import)):
        inferred |= marker.source.model_keys()
    elif isinstance(marker, Conditional):
        inferred |= marker.source.model_keys()
        try:
            inferred |= referenced_keys(marker.condition)
        except ConditionError:
            pass
        for alt in marker.alternatives.values():
            inferred |= set(placeholders(alt))
    elif isinstance(marker, Template):
        local = set(marker.parameters)
        if marker.iteration:
            inferred.add(marker.iteration.data_source)
            local.add(marker.iteration.item_var)
            if marker.iteration.index_var:
                local.add(marker.iteration.index_var)
        for p in marker.parameters.values():
            if p.key:
                inferred.add(p.key)
        for name in placeholders(marker.body):
            if name.split(".")[0] not in local:
                inferred.add(name)

    for k in sorted(inferred):
        if k not in keys:
            keys.append(k)
    return tuple(keys)


# ── Binding out-of-band attributes ────────────────────────────────


def normalize_name(value: str) -> str:
    """'IfEmpty', 'if-empty' and 'if_empty' all become 'if_empty'."""
    value = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", value.strip())
    return value.replace("-", "_").replace(" ", "_").lower()


def _choice(marker_id: str, attr: str, value: Any, allowed: tuple[str, ...]) -> str:
    name = normalize_name(str(value))
    if name not in allowed:
        raise MarkerSpecError(
            f"invalid {attr} '{value}' (valid: {', '.join(allowed)})", marker_id=marker_id,
        )
    return name


def _keys(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def _source(marker_id: str, attrs: Mapping[str, Any]) -> ContentSource:
    present = [k for k in ("static", "template", "function") if attrs.get(k) is not None]
    if len(present) > 1:
        raise MarkerSpecError(
            f"only one of static/template/function may be given (got {', '.join(present)})",
            marker_id=marker_id,
        )
    items = attrs.get("imports")
    return ContentSource(
        static=attrs.get("static"),
        template=attrs.get("template"),
        function=attrs.get("function"),
        key=attrs.get("key"),
        items=tuple(str(i) for i in items) if items is not None else None,
    )


def _parameters(marker_id: str, raw: Any) -> dict[str, TemplateParameter]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise MarkerSpecError("parameters must be a mapping", marker_id=marker_id)
    params = {}
    for name, spec in raw.items():
        if isinstance(spec, str):
            params[name] = TemplateParameter(name=name, key=spec)
        elif isinstance(spec, Mapping):
            params[name] = TemplateParameter(
                name=name,
                key=spec.get("key"),
                value=spec.get("value"),
                default=spec.get("default"),
                required=bool(spec.get("required", True)),
            )
        else:
            params[name] = TemplateParameter(name=name, value=spec)
    return params


def _iteration(marker_id: str, raw: Any) -> IterationSettings | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return IterationSettings(data_source=raw)
    if not isinstance(raw, Mapping):
        raise MarkerSpecError("iterate must be a key or a mapping", marker_id=marker_id)
    source = raw.get("over", raw.get("data_source"))
    if not source:
        raise MarkerSpecError("iterate requires 'over'", marker_id=marker_id)
    return IterationSettings(
        data_source=str(source),
        item_var=str(raw.get("as", raw.get("item_var", "item"))),
        index_var=raw.get("index", raw.get("index_var")),
        separator=str(raw.get("separator", "\n")),
    )


def build_marker(kind: str, marker_id: str, attrs: Mapping[str, Any] | None = None) -> Marker:
    """Bind a delimiter's kind and id to its out-of-band attributes.

    Args:
        kind: Delimiter kind (one of guardgen.KINDS).
        marker_id: Delimiter id.
        attrs: Manifest entry for this id, or None for defaults.

    Raises:
        MarkerSpecError: If the attributes name another kind or hold
            invalid values.
    """
    attrs = attrs or {}
    declared = attrs.get("kind")
    if declared is not None and normalize_name(str(declared)) != kind:
        raise MarkerSpecError(
            f"manifest declares kind '{declared}' but delimiter is '{kind}'", marker_id=marker_id,
        )
    depends = _keys(attrs.get("depends", attrs.get("dependencies")))
    strategy = attrs.get("strategy")

    if kind == "guard":
        default = attrs.get("default", attrs.get("default_content"))
        return Guard(
            id=marker_id,
            preserve_indent=bool(attrs.get("preserve_indent", True)),
            default_content=None if default is None else str(default),
        )

    if kind == "generated":
        return Generated(
            id=marker_id,
            strategy=_choice(marker_id, "strategy", strategy or "replace", GENERATION_STRATEGIES),
            dependency_keys=depends,
            source=_source(marker_id, attrs),
        )

    if kind == "conditional":
        alternatives = attrs.get("alternatives") or {}
        if not isinstance(alternatives, Mapping):
            raise MarkerSpecError("alternatives must be a mapping", marker_id=marker_id)
        resolved = _choice(marker_id, "strategy", strategy or "include", CONDITIONAL_STRATEGIES)
        if resolved == "switch" and not alternatives:
            raise MarkerSpecError("switch strategy requires alternatives", marker_id=marker_id)
        return Conditional(
            id=marker_id,
            condition=str(attrs.get("condition", "true")),
            strategy=resolved,
            alternatives={format_value(k): "" if v is None else str(v) for k, v in alternatives.items()},
            source=_source(marker_id, attrs),
            dependency_keys=depends,
        )

    if kind == "import":
        return Import(
            id=marker_id,
            import_type=_choice(marker_id, "import_type", attrs.get("import_type", "module"), IMPORT_TYPES),
            merge_strategy=_choice(
                marker_id, "strategy", strategy or attrs.get("merge_strategy") or "merge", IMPORT_STRATEGIES,
            ),
            source=_source(marker_id, attrs),
            dependency_keys=depends,
        )

    if kind == "template":
        return Template(
            id=marker_id,
            body=str(attrs.get("body", attrs.get("template", ""))),
            parameters=_parameters(marker_id, attrs.get("parameters")),
            iteration=_iteration(marker_id, attrs.get("iterate", attrs.get("iteration"))),
            dependency_keys=depends,
        )

    raise MarkerSpecError(f"unknown marker kind '{kind}'", marker_id=marker_id)
