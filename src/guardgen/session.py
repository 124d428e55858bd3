"""Regeneration sessions orchestrate the rewrite cycle across files.

The sync process:
1. Read and parse every candidate file (parse errors skip the file)
2. Record each file's marker dependencies in the tracker (single writer)
3. Select the files whose markers intersect the changed keys
4. Rewrite the selected files in parallel against a consistent snapshot
5. Write changed files, then commit their baselines (skipped on dry-run)

A session owns the dependency tracker and baseline store for its lifetime;
both can be persisted with ``save()`` for restart continuity.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from guardgen.conflicts import Conflict, ConflictReporter
from guardgen.document import ParsedDocument, replace_bodies
from guardgen.errors import GuardgenError, ParseError, UnknownLanguageError
from guardgen.generator import ContentGenerator
from guardgen.languages import profile_for_path
from guardgen.manifest import file_specs
from guardgen.markers import dependency_keys
from guardgen.model import ModelSnapshot, diff_models
from guardgen.parser import parse
from guardgen.paths import project_root, relative_key
from guardgen.rewriter import Rewriter, RewriteResult
from guardgen.state import GenerationState, save_state

logger = logging.getLogger(__name__)


def read_source(path: Path | str) -> str:
    """Read a file without newline translation."""
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_source(path: Path | str, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


@dataclass
class SessionReport:
    """Result of one regeneration pass over a set of files."""

    results: dict[str, RewriteResult] = field(default_factory=dict)
    reporter: ConflictReporter = field(default_factory=ConflictReporter)
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def passed(self) -> bool:
        return not (self.reporter.parse_errors or self.reporter.conflicts)

    def summary(self, show_diffs: bool = False) -> str:
        lines = [
            "Regeneration Results",
            "─" * 40,
            f"  Updated:   {len(self.updated)}",
            f"  Unchanged: {len(self.unchanged)}",
            f"  Skipped:   {len(self.skipped)}",
        ]
        if self.cancelled:
            lines.append(f"  Cancelled: {len(self.cancelled)}")
        lines.append("")
        lines.append(self.reporter.summary(show_diffs=show_diffs))
        if self.dry_run:
            lines.append("\n[DRY RUN] No files were modified.")
        return "\n".join(lines)


class Session:
    """One orchestration lifetime: model, manifest, tracker and baselines.

    Args:
        model: Current model snapshot.
        manifest: Parsed manifest (see guardgen.manifest).
        root: Project root; file identities are paths relative to it.
        generator: Content generator (holds renderer and functions).
        state: Previously persisted state, or None to start empty.
        max_workers: Thread pool size for multi-file rewrites.
    """

    def __init__(
        self,
        model: ModelSnapshot | None = None,
        *,
        manifest: dict | None = None,
        root: Path | str | None = None,
        generator: ContentGenerator | None = None,
        state: GenerationState | None = None,
        max_workers: int = 4,
    ):
        self.model = model or ModelSnapshot()
        self.manifest = manifest or {"files": {}}
        self.root = Path(root) if root is not None else project_root()
        self.generator = generator or ContentGenerator()
        self.rewriter = Rewriter(self.generator)
        self.state = state or GenerationState()
        self.max_workers = max(1, max_workers)
        self._lock = threading.Lock()
        self._cancel = threading.Event()

    @property
    def tracker(self):
        return self.state.tracker

    def file_key(self, path: Path | str) -> str:
        return relative_key(path, self.root)

    # ── Single-file cycle ─────────────────────────────────────────

    def parse(self, path: Path | str, text: str) -> ParsedDocument:
        """Parse ``text`` as the contents of ``path`` with its manifest
        attributes and recorded baselines bound.

        Raises:
            UnknownLanguageError: If the extension has no profile.
            ParseError: If the markers are malformed.
        """
        key = self.file_key(path)
        return parse(
            text,
            profile_for_path(path),
            path=key,
            specs=file_specs(self.manifest, key),
            baselines=self.state.baselines_for(key),
        )

    def record(self, doc: ParsedDocument) -> None:
        """Refresh the dependency index from a freshly parsed document."""
        self.tracker.refresh_file(doc.path, {r.id: dependency_keys(r.marker) for r in doc.regions})

    def commit(self, result: RewriteResult) -> None:
        """Make a rewrite's baselines the reference for the next cycle."""
        with self._lock:
            self.state.set_baselines(result.path, result.baselines)

    def rewrite_text(
        self,
        path: Path | str,
        text: str,
        changed_keys: Iterable[str] | None = None,
    ) -> RewriteResult:
        """Run one full cycle for in-memory text (no file I/O).

        Raises:
            ParseError: The text is left untouched and nothing is recorded.
        """
        doc = self.parse(path, text)
        self.record(doc)
        result = self.rewriter.rewrite(doc, self.model, changed_keys)
        self.commit(result)
        return result

    # ── Model updates ─────────────────────────────────────────────

    def update_model(self, model: ModelSnapshot) -> set[str]:
        """Swap in a new model and return the changed-keys delta."""
        changed = diff_models(self.model, model)
        self.model = model
        return changed

    def apply_model(
        self,
        model: ModelSnapshot,
        paths: Iterable[Path | str],
        *,
        dry_run: bool = False,
    ) -> SessionReport:
        """Update the model and regenerate only what the change touches."""
        changed = self.update_model(model)
        logger.info("model change touches %d key(s): %s", len(changed), ", ".join(sorted(changed)))
        return self.regenerate(paths, changed, dry_run=dry_run)

    # ── Multi-file pass ───────────────────────────────────────────

    def cancel(self) -> None:
        """Stop starting new file tasks; running ones complete."""
        self._cancel.set()

    def regenerate(
        self,
        paths: Iterable[Path | str],
        changed_keys: Iterable[str] | None = None,
        *,
        dry_run: bool = False,
    ) -> SessionReport:
        """Regenerate a set of files.

        Args:
            paths: Files to consider.
            changed_keys: Keys changed since last generation; None for a
                full regeneration of every file.
            dry_run: Compute everything but write nothing.
        """
        self._cancel.clear()
        report = SessionReport(dry_run=dry_run)
        changed = None if changed_keys is None else set(changed_keys)

        # 1. Parse
        docs: list[ParsedDocument] = []
        sources: dict[str, Path] = {}
        for path in paths:
            key = self.file_key(path)
            try:
                doc = self.parse(path, read_source(path))
                docs.append(doc)
                sources[key] = Path(path)
            except (ParseError, UnknownLanguageError, OSError, UnicodeDecodeError) as e:
                logger.error("%s: %s", key, e)
                report.reporter.add_parse_error(key, e)
                report.skipped.append(key)

        # 2. Record
        with self._lock:
            for doc in docs:
                self.record(doc)
            view = self.tracker.snapshot()

        # 3. Select
        if changed is None:
            selected = docs
        else:
            affected = view.affected_files(changed)
            selected = [d for d in docs if d.path in affected]
            for d in docs:
                if d.path not in affected:
                    report.unchanged.append(d.path)

        # 4. Rewrite
        def task(doc: ParsedDocument) -> RewriteResult | None:
            if self._cancel.is_set():
                return None
            return self.rewriter.rewrite(doc, self.model, changed)

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            outcomes = list(pool.map(task, selected))

        # 5. Commit (baselines only for text that reached disk)
        for doc, result in zip(selected, outcomes):
            if result is None:
                report.cancelled.append(doc.path)
                continue
            report.results[doc.path] = result
            for c in result.conflicts:
                report.reporter.add_conflict(c)
            for f in result.failures:
                report.reporter.add_failure(f)
            if dry_run:
                (report.updated if result.changed else report.unchanged).append(doc.path)
                continue
            if result.changed:
                try:
                    write_source(sources[doc.path], result.text)
                except OSError as e:
                    logger.error("%s: %s", doc.path, e)
                    report.reporter.add_parse_error(doc.path, e)
                    report.skipped.append(doc.path)
                    continue
                logger.info("%s: updated", doc.path)
                report.updated.append(doc.path)
            else:
                report.unchanged.append(doc.path)
            self.commit(result)

        return report

    # ── Conflict resolution (caller decisions) ────────────────────

    def accept_proposed(self, text: str, conflict: Conflict) -> str:
        """Overwrite a conflicting region with the proposed content.

        Returns:
            The new file text; the proposed content becomes the baseline.

        Raises:
            GuardgenError: If the region no longer holds the conflicting text.
        """
        doc = self.parse(conflict.file, text)
        region = doc.region(conflict.marker_id)
        if region is None or region.raw_content != conflict.existing:
            raise GuardgenError(f"Conflict for {conflict.file} [{conflict.marker_id}] is stale")
        with self._lock:
            self.state.set_baseline(conflict.file, conflict.marker_id, conflict.proposed)
        return replace_bodies(doc, {conflict.marker_id: conflict.proposed})

    def adopt_existing(self, conflict: Conflict) -> None:
        """Take the manual edit as the new baseline.

        The region then counts as unmodified, so the next change to its
        dependencies will regenerate it.
        """
        with self._lock:
            self.state.set_baseline(conflict.file, conflict.marker_id, conflict.existing)

    # ── Persistence ───────────────────────────────────────────────

    def save(self, path: Path | str) -> None:
        with self._lock:
            save_state(self.state, path)
