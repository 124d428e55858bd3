"""Conflict reporting.

Collects divergences between a marker's existing and proposed content, and
marker-level generation failures, for resolution by the caller. Nothing
here resolves anything.
"""

from __future__ import annotations

import difflib
from dataclasses import asdict, dataclass, field
from typing import Any

DIVERGED = "content diverged from last generated baseline"


@dataclass(frozen=True)
class Conflict:
    """A managed region that was edited out-of-band and is due for regeneration."""

    file: str
    marker_id: str
    existing: str
    proposed: str
    reason: str = DIVERGED

    def diff(self) -> str:
        """Unified diff from existing to proposed content."""
        return "".join(difflib.unified_diff(
            self.existing.splitlines(keepends=True),
            self.proposed.splitlines(keepends=True),
            fromfile=f"{self.file}:{self.marker_id} (existing)",
            tofile=f"{self.file}:{self.marker_id} (proposed)",
        ))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MarkerFailure:
    """Generation failed for one marker; its previous content was kept."""

    file: str
    marker_id: str
    error: str
    error_type: str = "GenerationError"

    @classmethod
    def from_error(cls, file: str, marker_id: str, error: Exception) -> MarkerFailure:
        return cls(file=file, marker_id=marker_id, error=str(error), error_type=type(error).__name__)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ConflictReporter:
    """Accumulates conflicts, marker failures and file-level parse errors."""

    conflicts: list[Conflict] = field(default_factory=list)
    marker_failures: list[MarkerFailure] = field(default_factory=list)
    parse_errors: list[dict[str, str]] = field(default_factory=list)

    def add_conflict(self, conflict: Conflict) -> None:
        self.conflicts.append(conflict)

    def add_failure(self, failure: MarkerFailure) -> None:
        self.marker_failures.append(failure)

    def add_parse_error(self, path: str, error: Exception) -> None:
        self.parse_errors.append({"path": path, "error": str(error), "type": type(error).__name__})

    def report(self) -> list[Conflict]:
        return list(self.conflicts)

    def failures(self) -> list[MarkerFailure]:
        return list(self.marker_failures)

    def for_file(self, path: str) -> list[Conflict]:
        return [c for c in self.conflicts if c.file == path]

    @property
    def clean(self) -> bool:
        return not (self.conflicts or self.marker_failures or self.parse_errors)

    def summary(self, show_diffs: bool = False) -> str:
        lines = []
        if self.parse_errors:
            lines.append(f"PARSE ERRORS ({len(self.parse_errors)}), files left untouched:")
            for e in self.parse_errors:
                lines.append(f"  {e['path']}: {e['error']}")
        if self.conflicts:
            lines.append(f"CONFLICTS ({len(self.conflicts)}), existing content kept:")
            for c in self.conflicts:
                lines.append(f"  {c.file} [{c.marker_id}]: {c.reason}")
                if show_diffs:
                    lines.extend("    " + l for l in c.diff().splitlines())
        if self.marker_failures:
            lines.append(f"GENERATION FAILURES ({len(self.marker_failures)}), previous content kept:")
            for f in self.marker_failures:
                lines.append(f"  {f.file} [{f.marker_id}]: {f.error_type}: {f.error}")
        if not lines:
            lines.append("No conflicts.")
        return "\n".join(lines)
