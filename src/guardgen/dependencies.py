"""Dependency tracking: which markers must be regenerated for a change.

A bidirectional index between model keys and (file, marker id) pairs.
Lookups are dotted-prefix aware: a change to ``schema`` affects markers that
depend on ``schema.fields``, and a change to ``schema.fields.0`` affects
markers that depend on ``schema.fields``.

The tracker is an explicitly owned service. Writers (``record``,
``refresh_file``, ``forget``) are serialised by a lock; readers that need a
stable view across many lookups take a ``snapshot()``.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Iterable, Mapping

from guardgen.model import keys_overlap

MarkerRef = tuple[str, str]  # (file, marker id)


class DependencyTracker:
    """Model key ↔ (file, marker id) index."""

    def __init__(self) -> None:
        self._by_key: dict[str, set[MarkerRef]] = defaultdict(set)
        self._by_marker: dict[MarkerRef, set[str]] = {}
        self._lock = threading.Lock()

    # ── Writers ───────────────────────────────────────────────────

    def record(self, file: str, marker_id: str, dependency_keys: Iterable[str]) -> None:
        """Replace the dependency keys recorded for one marker."""
        with self._lock:
            self._record(file, marker_id, set(dependency_keys))

    def refresh_file(self, file: str, markers: Mapping[str, Iterable[str]]) -> None:
        """Replace everything known about ``file`` with a fresh parse.

        Markers no longer present in the file are dropped from the index.
        """
        with self._lock:
            for ref in [r for r in self._by_marker if r[0] == file and r[1] not in markers]:
                self._drop(ref)
            for marker_id, keys in markers.items():
                self._record(file, marker_id, set(keys))

    def forget(self, file: str) -> None:
        with self._lock:
            for ref in [r for r in self._by_marker if r[0] == file]:
                self._drop(ref)

    def _record(self, file: str, marker_id: str, keys: set[str]) -> None:
        ref = (file, marker_id)
        self._drop(ref)
        self._by_marker[ref] = keys
        for key in keys:
            self._by_key[key].add(ref)

    def _drop(self, ref: MarkerRef) -> None:
        for key in self._by_marker.pop(ref, set()):
            refs = self._by_key.get(key)
            if refs is not None:
                refs.discard(ref)
                if not refs:
                    del self._by_key[key]

    # ── Readers ───────────────────────────────────────────────────

    def affected(self, changed_keys: Iterable[str]) -> set[MarkerRef]:
        """All (file, marker id) pairs depending on any changed key."""
        changed = set(changed_keys)
        result: set[MarkerRef] = set()
        if not changed:
            return result
        for key, refs in list(self._by_key.items()):
            if any(keys_overlap(key, c) for c in changed):
                result |= refs
        return result

    def affected_files(self, changed_keys: Iterable[str]) -> dict[str, set[str]]:
        """Affected markers partitioned by file."""
        by_file: dict[str, set[str]] = defaultdict(set)
        for file, marker_id in self.affected(changed_keys):
            by_file[file].add(marker_id)
        return dict(by_file)

    def keys_for(self, file: str, marker_id: str) -> set[str]:
        return set(self._by_marker.get((file, marker_id), set()))

    def markers_for(self, key: str) -> set[MarkerRef]:
        return set(self._by_key.get(key, set()))

    def files(self) -> set[str]:
        return {f for f, _ in self._by_marker}

    def __len__(self) -> int:
        return len(self._by_marker)

    def snapshot(self) -> DependencyTracker:
        """A consistent, independent copy for readers."""
        copy = DependencyTracker()
        with self._lock:
            for ref, keys in self._by_marker.items():
                copy._record(ref[0], ref[1], set(keys))
        return copy

    # ── Persistence ───────────────────────────────────────────────

    def triples(self) -> list[tuple[str, str, str]]:
        """(model key, file, marker id) triples, sorted for stable output."""
        return sorted(
            (key, file, marker_id)
            for (file, marker_id), keys in self._by_marker.items()
            for key in keys
        )

    @classmethod
    def from_triples(cls, triples: Iterable[Iterable[str]]) -> DependencyTracker:
        tracker = cls()
        grouped: dict[MarkerRef, set[str]] = defaultdict(set)
        for key, file, marker_id in triples:
            grouped[(file, marker_id)].add(key)
        for (file, marker_id), keys in grouped.items():
            tracker._record(file, marker_id, keys)
        return tracker
