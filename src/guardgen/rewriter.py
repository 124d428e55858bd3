"""Merge parsed regions with fresh content and reserialize.

Per region, in document order:

1. Guard: seeded with its default content the first time it is seen
   empty, otherwise copied verbatim (re-indented when ``preserve_indent``
   is set and the text sits left of the marker's column). Seeding and
   re-indentation only happen when the document is touched at all: a full
   regeneration, or a change affecting at least one of its regions.
2. Non-guard, affected by the change: regenerated. If the strategy would
   overwrite the body and the body diverged from its baseline, the
   existing text is kept and a Conflict is reported.
3. Non-guard, not affected: passed through; the generator is not called.
4. Verbatim text between regions: passed through.

Delimiter lines are re-emitted exactly as parsed, so untouched regions
round-trip byte-for-byte.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from guardgen.conflicts import Conflict, MarkerFailure
from guardgen.document import ParsedDocument, Region, body_lines, indent_lines, join_body, reindent_lines
from guardgen.errors import DelimiterInContentError, GenerationError
from guardgen.generator import ContentGenerator
from guardgen.languages import LanguageProfile
from guardgen.markers import Guard, dependency_keys, overwrites_existing
from guardgen.model import ModelSnapshot, keys_overlap
from guardgen.parser import match_delimiter

logger = logging.getLogger(__name__)


@dataclass
class RewriteResult:
    """Outcome of rewriting one document.

    ``baselines`` holds the content every marker should be compared against
    on the next cycle; ``dependencies`` the keys each marker depends on.
    Both are applied to shared state by an explicit record step, never by
    the rewriter itself.
    """

    path: str | None
    original: str
    text: str
    conflicts: list[Conflict] = field(default_factory=list)
    failures: list[MarkerFailure] = field(default_factory=list)
    baselines: dict[str, str] = field(default_factory=dict)
    dependencies: dict[str, tuple[str, ...]] = field(default_factory=dict)
    regenerated: list[str] = field(default_factory=list)
    seeded: list[str] = field(default_factory=list)
    generator_calls: int = 0

    @property
    def changed(self) -> bool:
        return self.text != self.original

    @property
    def status(self) -> str:
        return "updated" if self.changed else "unchanged"


def is_affected(region: Region, changed_keys: Iterable[str] | None) -> bool:
    """True if a non-guard region must be regenerated for this change.

    ``changed_keys=None`` requests a full regeneration.
    """
    if isinstance(region.marker, Guard):
        return False
    if changed_keys is None:
        return True
    deps = dependency_keys(region.marker)
    return any(keys_overlap(d, c) for d in deps for c in changed_keys)


def _check_delimiters(body: str, profile: LanguageProfile, marker_id: str) -> None:
    """Reject content that the next parse would read as a marker delimiter."""
    for line_no, line in enumerate(body.splitlines(), start=1):
        if match_delimiter(line, profile):
            raise DelimiterInContentError(
                f"generated line {line_no} looks like a marker delimiter: {line.strip()!r}",
                marker_id=marker_id,
            )


class Rewriter:
    """Applies fresh content to a ParsedDocument without ever destroying edits."""

    def __init__(self, generator: ContentGenerator | None = None):
        self.generator = generator or ContentGenerator()

    def rewrite(
        self,
        doc: ParsedDocument,
        model: ModelSnapshot,
        changed_keys: Iterable[str] | None = None,
    ) -> RewriteResult:
        """Rewrite ``doc`` for a model change.

        Args:
            doc: Freshly parsed document (not mutated).
            model: Current model snapshot.
            changed_keys: Keys changed since the last generation, or None
                to regenerate every non-guard marker.

        Returns:
            RewriteResult with the new text, conflicts and failures.
        """
        changed = None if changed_keys is None else set(changed_keys)
        file = doc.path or "<memory>"
        touched = changed is None or any(is_affected(r, changed) for r in doc.regions)
        original = doc.render()
        result = RewriteResult(path=doc.path, original=original, text=original)
        out: list[str] = []

        for part in doc.parts:
            if isinstance(part, str):
                out.append(part)
                continue

            region = part
            result.dependencies[region.id] = dependency_keys(region.marker)

            if isinstance(region.marker, Guard):
                body = self._guard_body(region, doc.newline, result) if touched else region.raw_content
                result.baselines[region.id] = body
                out.append(region.render(body))
                continue

            if changed is not None and not is_affected(region, changed):
                result.baselines[region.id] = region.baseline_content
                out.append(region.render())
                continue

            body = self._regenerate(region, model, doc, file, result)
            out.append(region.render(body))

        result.text = "".join(out)
        if result.conflicts or result.failures:
            logger.info(
                "%s: %d conflict(s), %d failure(s)", file, len(result.conflicts), len(result.failures),
            )
        return result

    def _guard_body(self, region: Region, newline: str, result: RewriteResult) -> str:
        marker = region.marker
        if not region.raw_content.strip() and not region.recorded and marker.default_content is not None:
            result.seeded.append(region.id)
            lines = indent_lines(marker.default_content.splitlines(), region.indent)
            return join_body(lines, newline)
        if marker.preserve_indent:
            lines = body_lines(region.raw_content)
            reindented = reindent_lines(lines, region.indent)
            if reindented != lines:
                return join_body(reindented, newline)
        return region.raw_content

    def _regenerate(
        self,
        region: Region,
        model: ModelSnapshot,
        doc: ParsedDocument,
        file: str,
        result: RewriteResult,
    ) -> str:
        result.generator_calls += 1
        try:
            proposed = self.generator.generate(region, model, doc.newline)
            _check_delimiters(proposed, doc.profile, region.id)
        except GenerationError as e:
            logger.warning("%s [%s]: %s", file, region.id, e)
            result.failures.append(MarkerFailure.from_error(file, region.id, e))
            result.baselines[region.id] = region.baseline_content
            return region.raw_content

        if proposed == region.raw_content:
            result.baselines[region.id] = proposed
            return proposed

        if region.is_modified and overwrites_existing(region.marker):
            logger.debug("%s [%s]: diverged from baseline, keeping existing", file, region.id)
            result.conflicts.append(Conflict(
                file=file,
                marker_id=region.id,
                existing=region.raw_content,
                proposed=proposed,
            ))
            result.baselines[region.id] = region.baseline_content
            return region.raw_content

        result.regenerated.append(region.id)
        result.baselines[region.id] = proposed
        return proposed


def rewrite(
    doc: ParsedDocument,
    model: ModelSnapshot,
    changed_keys: Iterable[str] | None = None,
    generator: ContentGenerator | None = None,
) -> RewriteResult:
    """Rewrite a document with a one-off Rewriter."""
    return Rewriter(generator).rewrite(doc, model, changed_keys)
