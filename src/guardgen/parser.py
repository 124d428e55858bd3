"""Scan source text into a ParsedDocument.

A delimiter occupies a line of its own:

    <indent><comment-open> <kind:id:start|end> [<comment-close>]

Start and end tokens are matched with a LIFO stack. Any imbalance,
duplicate id, unknown kind or nested marker fails the whole parse so that
no partially understood file is ever rewritten.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from guardgen import END_TOKEN, KINDS, START_TOKEN
from guardgen.document import ParsedDocument, Region, Span, leading_ws
from guardgen.errors import (
    DuplicateMarkerError,
    MarkerSpecError,
    NestedMarkerError,
    UnbalancedMarkerError,
    UnknownKindError,
)
from guardgen.languages import LanguageProfile
from guardgen.markers import build_marker

_TOKEN = r"<(?P<kind>[A-Za-z_]+):(?P<id>[A-Za-z0-9_.\-]+):(?P<edge>start|end)>"


@lru_cache(maxsize=None)
def delimiter_patterns(profile: LanguageProfile) -> tuple[re.Pattern, ...]:
    """Compiled delimiter-line patterns for a profile (line form first)."""
    patterns = []
    if profile.line_comment:
        patterns.append(re.compile(
            rf"^(?P<indent>[ \t]*){re.escape(profile.line_comment)}[ \t]*{_TOKEN}[ \t]*$"
        ))
    if profile.has_block_comments:
        patterns.append(re.compile(
            rf"^(?P<indent>[ \t]*){re.escape(profile.block_open)}[ \t]*{_TOKEN}"
            rf"[ \t]*{re.escape(profile.block_close)}[ \t]*$"
        ))
    return tuple(patterns)


def match_delimiter(line: str, profile: LanguageProfile) -> re.Match | None:
    """Match one source line (terminator allowed) against delimiter syntax."""
    stripped = line.rstrip("\r\n")
    for pattern in delimiter_patterns(profile):
        m = pattern.match(stripped)
        if m:
            return m
    return None


@dataclass
class _OpenMarker:
    kind: str
    id: str
    line_no: int
    offset: int
    line: str
    indent: str
    body: list[str] = field(default_factory=list)


def _detect_newline(text: str) -> str:
    idx = text.find("\n")
    if idx > 0 and text[idx - 1] == "\r":
        return "\r\n"
    return "\n"


def parse(
    text: str,
    profile: LanguageProfile,
    *,
    path: str | None = None,
    specs: Mapping[str, Mapping[str, Any]] | None = None,
    baselines: Mapping[str, str] | None = None,
) -> ParsedDocument:
    """Parse source text into regions and verbatim gaps.

    Args:
        text: Full file contents.
        profile: Comment syntax of the file's language.
        path: File identity recorded on the document.
        specs: Out-of-band marker attributes keyed by marker id.
        baselines: Last generated content keyed by marker id.

    Returns:
        ParsedDocument whose render() reproduces ``text`` exactly.

    Raises:
        ParseError: UnbalancedMarkerError, DuplicateMarkerError,
            UnknownKindError, NestedMarkerError or MarkerSpecError.
    """
    specs = specs or {}
    baselines = baselines or {}
    doc = ParsedDocument(profile=profile, path=path, newline=_detect_newline(text))

    stack: list[_OpenMarker] = []
    seen: set[str] = set()
    verbatim: list[str] = []
    offset = 0

    for line_no, line in enumerate(text.splitlines(keepends=True), start=1):
        m = match_delimiter(line, profile)
        if m is None:
            if stack:
                stack[-1].body.append(line)
            else:
                verbatim.append(line)
            offset += len(line)
            continue

        kind, marker_id, edge = m.group("kind"), m.group("id"), m.group("edge")
        if kind not in KINDS:
            raise UnknownKindError(f"unknown marker kind '{kind}'", line=line_no, marker_id=marker_id)

        if edge == "start":
            if stack:
                top = stack[-1]
                raise NestedMarkerError(
                    f"'{kind}:{marker_id}' opened inside '{top.kind}:{top.id}' "
                    f"(started line {top.line_no}); nested markers are not supported",
                    line=line_no, marker_id=marker_id,
                )
            if marker_id in seen:
                raise DuplicateMarkerError(f"duplicate marker id '{marker_id}'", line=line_no, marker_id=marker_id)
            seen.add(marker_id)
            if verbatim:
                doc.parts.append("".join(verbatim))
                verbatim = []
            stack.append(_OpenMarker(kind, marker_id, line_no, offset, line, leading_ws(line)))
        else:
            if not stack:
                raise UnbalancedMarkerError(
                    f"end of '{kind}:{marker_id}' without a matching start", line=line_no, marker_id=marker_id,
                )
            top = stack[-1]
            if (top.kind, top.id) != (kind, marker_id):
                raise UnbalancedMarkerError(
                    f"end of '{kind}:{marker_id}' does not match open '{top.kind}:{top.id}' "
                    f"(started line {top.line_no})",
                    line=line_no, marker_id=marker_id,
                )
            stack.pop()
            doc.parts.append(_close(top, line, line_no, offset, specs, baselines))

        offset += len(line)

    if stack:
        top = stack[-1]
        raise UnbalancedMarkerError(
            f"'{top.kind}:{top.id}' is never closed", line=top.line_no, marker_id=top.id,
        )

    if verbatim:
        doc.parts.append("".join(verbatim))
    return doc


def _close(
    top: _OpenMarker,
    end_line: str,
    line_no: int,
    offset: int,
    specs: Mapping[str, Mapping[str, Any]],
    baselines: Mapping[str, str],
) -> Region:
    try:
        marker = build_marker(top.kind, top.id, specs.get(top.id))
    except MarkerSpecError as e:
        raise MarkerSpecError(str(e), line=top.line_no, marker_id=top.id) from None

    raw = "".join(top.body)
    recorded = top.id in baselines
    return Region(
        marker=marker,
        span=Span(
            start_line=top.line_no,
            end_line=line_no,
            start_offset=top.offset,
            end_offset=offset + len(end_line),
        ),
        raw_content=raw,
        baseline_content=baselines[top.id] if recorded else raw,
        start_line=top.line,
        end_line=end_line,
        indent=top.indent,
        recorded=recorded,
    )


def scaffold(profile: LanguageProfile, kind: str, marker_id: str, content: str = "", indent: str = "") -> str:
    """Emit a new marked block in a profile's comment syntax."""
    start = indent + profile.comment(START_TOKEN.format(kind=kind, id=marker_id))
    end = indent + profile.comment(END_TOKEN.format(kind=kind, id=marker_id))
    body = content if not content or content.endswith("\n") else content + "\n"
    return f"{start}\n{body}{end}\n"
