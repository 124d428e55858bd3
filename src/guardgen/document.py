"""Parsed documents: managed regions interleaved with verbatim text."""

from __future__ import annotations

from dataclasses import dataclass, field

from guardgen.languages import LanguageProfile
from guardgen.markers import Marker


@dataclass(frozen=True)
class Span:
    """Location of a whole marked block, delimiters included.

    Lines are 1-based; offsets are character offsets into the source, with
    ``end_offset`` pointing just past the end delimiter line.
    """

    start_line: int
    end_line: int
    start_offset: int
    end_offset: int


@dataclass
class Region:
    """One managed region of a document.

    ``raw_content`` is the text between the delimiter lines exactly as found
    (line terminators included). ``baseline_content`` is the last content
    the engine produced for this marker, or ``raw_content`` when the marker
    has never been generated. ``recorded`` tells the two cases apart.
    """

    marker: Marker
    span: Span
    raw_content: str
    baseline_content: str
    start_line: str
    end_line: str
    indent: str = ""
    recorded: bool = False

    @property
    def id(self) -> str:
        return self.marker.id

    @property
    def kind(self) -> str:
        return self.marker.kind

    @property
    def is_modified(self) -> bool:
        return self.raw_content != self.baseline_content

    def render(self, content: str | None = None) -> str:
        body = self.raw_content if content is None else content
        return self.start_line + body + self.end_line


@dataclass
class ParsedDocument:
    """Ordered parts of one file: verbatim ``str`` chunks and Regions."""

    profile: LanguageProfile
    parts: list[str | Region] = field(default_factory=list)
    path: str | None = None
    newline: str = "\n"

    @property
    def regions(self) -> list[Region]:
        return [p for p in self.parts if isinstance(p, Region)]

    @property
    def marker_ids(self) -> list[str]:
        return [r.id for r in self.regions]

    def region(self, marker_id: str) -> Region | None:
        for r in self.regions:
            if r.id == marker_id:
                return r
        return None

    def render(self) -> str:
        """Reserialize the document unchanged."""
        return "".join(p if isinstance(p, str) else p.render() for p in self.parts)


# ── Body helpers ──────────────────────────────────────────────────


def body_lines(body: str) -> list[str]:
    """Split a region body into lines without terminators."""
    return body.splitlines()


def join_body(lines: list[str], newline: str = "\n") -> str:
    """Inverse of body_lines: every line terminated, empty list → ''."""
    if not lines:
        return ""
    return newline.join(lines) + newline


def leading_ws(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def indent_lines(lines: list[str], indent: str) -> list[str]:
    """Prefix non-blank lines with ``indent``."""
    if not indent:
        return list(lines)
    return [indent + line if line.strip() else line for line in lines]


def reindent_lines(lines: list[str], indent: str) -> list[str]:
    """Shift a block that sits left of ``indent`` so it starts at ``indent``.

    Blocks already at or right of the column are returned unchanged.
    """
    widths = [len(leading_ws(l)) for l in lines if l.strip()]
    if not widths or min(widths) >= len(indent):
        return list(lines)
    cut = min(widths)
    return [indent + l[cut:] if l.strip() else l for l in lines]


def replace_bodies(doc: ParsedDocument, bodies: dict[str, str]) -> str:
    """Render ``doc`` with the bodies of selected regions replaced."""
    out = []
    for p in doc.parts:
        if isinstance(p, str):
            out.append(p)
        else:
            out.append(p.render(bodies.get(p.id)))
    return "".join(out)
