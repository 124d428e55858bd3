"""Project path resolution.

Resolves the manifest and state file locations. Uses environment
variables when available, falls back to conventional defaults relative to
the project root.

Environment variables:
    GUARDGEN_ROOT — project root (default: current directory)
    GUARDGEN_MANIFEST — marker manifest (default: <root>/guardgen.yaml)
    GUARDGEN_STATE — generation state file (default: <root>/.guardgen/state.json)
"""

from __future__ import annotations

import os
from pathlib import Path

_DEFAULT_MANIFEST = "guardgen.yaml"
_DEFAULT_STATE = Path(".guardgen") / "state.json"


def project_root() -> Path:
    """Return the project root directory."""
    return Path(os.environ.get("GUARDGEN_ROOT", os.getcwd()))


def manifest_path() -> Path:
    """Return the path to the marker manifest."""
    env = os.environ.get("GUARDGEN_MANIFEST")
    if env:
        return Path(env)
    return project_root() / _DEFAULT_MANIFEST


def state_path() -> Path:
    """Return the path to the persisted generation state."""
    env = os.environ.get("GUARDGEN_STATE")
    if env:
        return Path(env)
    return project_root() / _DEFAULT_STATE


def relative_key(path: Path | str, root: Path | str | None = None) -> str:
    """Stable file identity used in manifests, state and the dependency index.

    Absolute paths under ``root`` become POSIX-style relative paths;
    relative paths are already keys and anything else is kept as given.
    """
    p = Path(path)
    if not p.is_absolute():
        return p.as_posix()
    base = Path(root) if root is not None else project_root()
    try:
        return p.resolve().relative_to(base.resolve()).as_posix()
    except ValueError:
        return p.as_posix()
