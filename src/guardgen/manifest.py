"""Marker manifest: the out-of-band attribute table.

Delimiters in source files carry only ``kind`` and ``id``. Everything else
a marker needs is declared per file in ``guardgen.yaml``:

    files:
      src/Panel.tsx:
        markers:
          props:
            kind: generated
            strategy: replace
            depends: [schema.fields]
            template: "{{schema.fields}}"
          logic:
            kind: guard
            default: "// placeholder"
    functions:
      render_routes: myproject.codegen:render_routes
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from guardgen import KINDS
from guardgen.errors import ManifestError, MarkerSpecError
from guardgen.markers import build_marker


def load_manifest(path: Path | str) -> dict:
    """Read and parse a manifest file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ManifestError: If the YAML is malformed or not a mapping.
    """
    manifest_file = Path(path)
    with open(manifest_file) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ManifestError(f"Cannot parse {manifest_file}: {e}") from e

    if data is None:
        return {"files": {}}
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest at {manifest_file} is not a YAML mapping")
    return data


def get_files(manifest: dict) -> dict[str, dict]:
    """Extract the per-file entries of a manifest."""
    return manifest.get("files", {}) or {}


def file_specs(manifest: dict, file: str) -> dict[str, dict]:
    """Marker attributes for one file, keyed by marker id."""
    entry = get_files(manifest).get(file) or {}
    return entry.get("markers", {}) or {}


def get_functions(manifest: dict) -> dict[str, str]:
    """Extract generator function references (name → 'module:attr')."""
    return manifest.get("functions", {}) or {}


def resolve_functions(manifest: dict) -> dict[str, Callable]:
    """Import every generator function a manifest references.

    Raises:
        ManifestError: If a reference is malformed or cannot be imported.
    """
    resolved = {}
    for name, ref in get_functions(manifest).items():
        module_name, _, attr = str(ref).partition(":")
        if not module_name or not attr:
            raise ManifestError(f"Function '{name}' must be 'module:attr', got '{ref}'")
        try:
            module = importlib.import_module(module_name)
            fn = getattr(module, attr)
        except (ImportError, AttributeError) as e:
            raise ManifestError(f"Cannot import function '{name}' from '{ref}': {e}") from e
        if not callable(fn):
            raise ManifestError(f"Function '{name}' ({ref}) is not callable")
        resolved[name] = fn
    return resolved


@dataclass
class ValidationResult:
    """Result of a manifest validation run."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    total_markers: int = 0

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        lines = [f"Manifest Validation: {self.total_markers} markers checked"]
        if self.errors:
            lines.append(f"ERRORS ({len(self.errors)}):")
            for e in self.errors:
                lines.append(f"  {e}")
        if self.warnings:
            lines.append(f"WARNINGS ({len(self.warnings)}):")
            for w in self.warnings:
                lines.append(f"  {w}")
        if self.passed and not self.warnings:
            lines.append("All checks passed.")
        return "\n".join(lines)


def validate_manifest(manifest: dict) -> ValidationResult:
    """Check every marker entry binds cleanly.

    Checks:
    - Each entry declares a known kind
    - Strategy, import type, parameters and iteration values are valid
    - Generated/conditional/import markers have a content source
    - Function sources reference a declared function
    """
    result = ValidationResult()
    functions = get_functions(manifest)

    for file, entry in get_files(manifest).items():
        if not isinstance(entry, dict):
            result.errors.append(f"{file}: entry must be a mapping")
            continue
        for marker_id, attrs in (entry.get("markers") or {}).items():
            result.total_markers += 1
            where = f"{file} [{marker_id}]"
            if not isinstance(attrs, dict):
                result.errors.append(f"{where}: attributes must be a mapping")
                continue
            kind = attrs.get("kind")
            if kind not in KINDS:
                result.errors.append(f"{where}: invalid kind '{kind}' (valid: {', '.join(KINDS)})")
                continue
            try:
                marker = build_marker(kind, str(marker_id), attrs)
            except MarkerSpecError as e:
                result.errors.append(f"{where}: {e}")
                continue

            source = getattr(marker, "source", None)
            if source is not None and source.is_empty and getattr(marker, "strategy", None) != "switch":
                result.errors.append(f"{where}: no content source (static, template, function, key)")
            if source is not None and source.function and source.function not in functions:
                result.warnings.append(
                    f"{where}: function '{source.function}' is not declared under 'functions'"
                )
            if kind == "template" and not attrs.get("body", attrs.get("template")):
                result.warnings.append(f"{where}: template body is empty")
            if kind != "guard" and not attrs.get("depends", attrs.get("dependencies")):
                result.warnings.append(f"{where}: no declared dependencies; only inferred keys apply")

    return result

