"""Model snapshots: the key-value environment that drives generation.

A snapshot wraps an arbitrary nested mapping loaded from YAML or JSON.
Keys are dotted paths ("schema.fields", "screens.0.title"); a flat key that
literally contains dots takes precedence over traversal.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

_MISSING = object()


class ModelSnapshot:
    """Read-only view of the upstream model with optional local bindings."""

    def __init__(self, data: Mapping[str, Any] | None = None, bindings: Mapping[str, Any] | None = None):
        self._data: Mapping[str, Any] = data or {}
        self._bindings: dict[str, Any] = dict(bindings or {})

    @property
    def data(self) -> Mapping[str, Any]:
        return self._data

    def with_bindings(self, bindings: Mapping[str, Any]) -> ModelSnapshot:
        """Return a child snapshot where ``bindings`` shadow model keys."""
        merged = dict(self._bindings)
        merged.update(bindings)
        return ModelSnapshot(self._data, merged)

    def get(self, key: str, default: Any = _MISSING) -> Any:
        """Resolve a dotted key.

        Raises:
            KeyError: If the key is absent and no default was given.
        """
        head, _, rest = key.partition(".")
        if head in self._bindings:
            value = _traverse(self._bindings[head], rest) if rest else self._bindings[head]
        elif key in self._data:
            value = self._data[key]
        else:
            value = _traverse(self._data, key)
        if value is _MISSING:
            if default is _MISSING:
                raise KeyError(key)
            return default
        return value

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __repr__(self) -> str:
        return f"ModelSnapshot(keys={sorted(self._data)!r})"


def _traverse(node: Any, path: str) -> Any:
    if not path:
        return node
    for part in path.split("."):
        if isinstance(node, Mapping):
            if part not in node:
                return _MISSING
            node = node[part]
        elif isinstance(node, (list, tuple)) and part.lstrip("-").isdigit():
            idx = int(part)
            if not -len(node) <= idx < len(node):
                return _MISSING
            node = node[idx]
        else:
            return _MISSING
    return node


def load_model(path: Path | str) -> ModelSnapshot:
    """Load a model snapshot from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the document is not a mapping.
    """
    model_path = Path(path)
    with open(model_path) as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Model at {model_path} is not a mapping")

    return ModelSnapshot(data)


def keys_overlap(a: str, b: str) -> bool:
    """True if one dotted key equals or contains the other."""
    return a == b or a.startswith(b + ".") or b.startswith(a + ".")


def diff_models(old: ModelSnapshot | Mapping, new: ModelSnapshot | Mapping) -> set[str]:
    """Compute the changed-keys delta between two models.

    Reports the shallowest differing path: a list whose length changed is
    reported as a whole, a nested mapping is descended into.
    """
    old_data = old.data if isinstance(old, ModelSnapshot) else old
    new_data = new.data if isinstance(new, ModelSnapshot) else new
    changed: set[str] = set()
    _diff(old_data, new_data, "", changed)
    return changed


def _diff(a: Any, b: Any, prefix: str, out: set[str]) -> None:
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        for k in set(a) | set(b):
            path = f"{prefix}.{k}" if prefix else str(k)
            if k not in a or k not in b:
                out.add(path)
            else:
                _diff(a[k], b[k], path, out)
        return
    if a != b:
        out.add(prefix)
