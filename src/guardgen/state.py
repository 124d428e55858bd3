"""Load and save the persisted generation state.

The state file lets a new process pick up where the last one stopped: the
baseline content of every managed region, and the (model key, file, marker
id) triples of the dependency index.

    {
      "version": 1,
      "dependencies": [["schema.fields", "src/Panel.tsx", "props"]],
      "baselines": {"src/Panel.tsx": {"props": "a, b\\n"}}
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from guardgen.dependencies import DependencyTracker
from guardgen.errors import StateError

STATE_VERSION = 1


@dataclass
class GenerationState:
    """Baselines per file plus the dependency index."""

    baselines: dict[str, dict[str, str]] = field(default_factory=dict)
    tracker: DependencyTracker = field(default_factory=DependencyTracker)

    def baselines_for(self, file: str) -> dict[str, str]:
        return dict(self.baselines.get(file, {}))

    def set_baselines(self, file: str, baselines: dict[str, str]) -> None:
        self.baselines[file] = dict(baselines)

    def set_baseline(self, file: str, marker_id: str, content: str) -> None:
        self.baselines.setdefault(file, {})[marker_id] = content

    def forget(self, file: str) -> None:
        self.baselines.pop(file, None)
        self.tracker.forget(file)

    def to_dict(self) -> dict:
        return {
            "version": STATE_VERSION,
            "dependencies": [list(t) for t in self.tracker.triples()],
            "baselines": {f: dict(sorted(b.items())) for f, b in sorted(self.baselines.items())},
        }

    @classmethod
    def from_dict(cls, data: dict) -> GenerationState:
        version = data.get("version", STATE_VERSION)
        if version != STATE_VERSION:
            raise StateError(f"Unsupported state version {version} (expected {STATE_VERSION})")
        triples = data.get("dependencies", []) or []
        for t in triples:
            if not isinstance(t, (list, tuple)) or len(t) != 3:
                raise StateError(f"Malformed dependency triple: {t!r}")
        baselines = data.get("baselines", {}) or {}
        if not isinstance(baselines, dict):
            raise StateError("'baselines' must be a mapping")
        return cls(
            baselines={str(f): {str(k): str(v) for k, v in b.items()} for f, b in baselines.items()},
            tracker=DependencyTracker.from_triples(triples),
        )


def load_state(path: Path | str) -> GenerationState:
    """Load state from disk; a missing file yields an empty state.

    Raises:
        StateError: If the file exists but cannot be decoded.
    """
    state_file = Path(path)
    if not state_file.exists():
        return GenerationState()
    try:
        with open(state_file) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise StateError(f"Cannot read state file {state_file}: {e}") from e
    if not isinstance(data, dict):
        raise StateError(f"State file {state_file} is not a JSON object")
    return GenerationState.from_dict(data)


def save_state(state: GenerationState, path: Path | str) -> None:
    """Write state to disk with consistent formatting."""
    state_file = Path(path)
    state_file.parent.mkdir(parents=True, exist_ok=True)
    with open(state_file, "w") as f:
        json.dump(state.to_dict(), f, indent=2)
        f.write("\n")
