"""Exception hierarchy.

Parse errors are fatal for a whole file, generation errors for a single
marker. Conflicts are values, not exceptions (see guardgen.conflicts).
"""

from __future__ import annotations


class GuardgenError(Exception):
    """Base class for all guardgen errors."""


class UnknownLanguageError(GuardgenError, LookupError):
    """No language profile is registered for an extension."""


class ManifestError(GuardgenError):
    """A marker manifest could not be loaded or is malformed."""


class StateError(GuardgenError):
    """The persisted generation state could not be read."""


# ── Parse errors ──────────────────────────────────────────────────


class ParseError(GuardgenError):
    """A document's markers could not be parsed. Fatal for the file."""

    def __init__(self, message: str, line: int | None = None, marker_id: str | None = None):
        self.line = line
        self.marker_id = marker_id
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class UnbalancedMarkerError(ParseError):
    """An end token without a matching start, or a start left open."""


class DuplicateMarkerError(ParseError):
    """The same marker id appears more than once in a document."""


class UnknownKindError(ParseError):
    """A delimiter names a kind outside the closed set."""


class NestedMarkerError(ParseError):
    """A start token appeared while another marker was still open."""


class MarkerSpecError(ParseError):
    """Out-of-band marker attributes disagree with the delimiter."""


# ── Generation errors ─────────────────────────────────────────────


class GenerationError(GuardgenError):
    """Content for one marker could not be generated.

    The previous content of the marker is retained and the error is
    collected alongside the rewrite result.
    """

    def __init__(self, message: str, marker_id: str | None = None):
        self.marker_id = marker_id
        super().__init__(message)


class MissingParameterError(GenerationError):
    """A template parameter or placeholder has no value."""


class MissingDataSourceError(GenerationError):
    """The data source named by an iteration is absent or not a list."""


class ConditionError(GenerationError):
    """A condition expression could not be evaluated."""


class GeneratorFunctionError(GenerationError):
    """A registered generator function is missing or raised."""


class NoContentSourceError(GenerationError):
    """A marker declares no static, template, or function source."""


class DelimiterInContentError(GenerationError):
    """Generated content contains a line that would parse as a delimiter."""
