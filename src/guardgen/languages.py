"""Language profiles: single source of truth for comment syntax.

Each profile names the comment tokens the marker parser uses to recognise
delimiter lines. Adding a language is an edit to PROFILES only; nothing
else in the package branches on language.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from guardgen.errors import UnknownLanguageError


@dataclass(frozen=True)
class LanguageProfile:
    """Comment syntax for one target language."""

    id: str
    extensions: tuple[str, ...]
    line_comment: str | None = None
    block_open: str | None = None
    block_close: str | None = None

    @property
    def has_block_comments(self) -> bool:
        return self.block_open is not None and self.block_close is not None

    def comment(self, token: str) -> str:
        """Wrap a delimiter token in this language's preferred comment form."""
        if self.line_comment:
            return f"{self.line_comment} {token}"
        return f"{self.block_open} {token} {self.block_close}"


def _p(id: str, exts: str, line: str | None = None, block: tuple[str, str] | None = None) -> LanguageProfile:
    return LanguageProfile(
        id=id,
        extensions=tuple(exts.split()),
        line_comment=line,
        block_open=block[0] if block else None,
        block_close=block[1] if block else None,
    )


_C_BLOCK = ("/*", "*/")

PROFILES: tuple[LanguageProfile, ...] = (
    _p("rust",       "rs",                        "//", _C_BLOCK),
    _p("javascript", "js mjs cjs jsx",            "//", _C_BLOCK),
    _p("typescript", "ts tsx mts cts",            "//", _C_BLOCK),
    _p("python",     "py pyi",                    "#"),
    _p("java",       "java",                      "//", _C_BLOCK),
    _p("kotlin",     "kt kts",                    "//", _C_BLOCK),
    _p("swift",      "swift",                     "//", _C_BLOCK),
    _p("csharp",     "cs",                        "//", _C_BLOCK),
    _p("cpp",        "c h cpp cc cxx hpp hh hxx", "//", _C_BLOCK),
    _p("go",         "go",                        "//", _C_BLOCK),
    _p("ruby",       "rb",                        "#"),
    _p("shell",      "sh bash zsh",               "#"),
    _p("lua",        "lua",                       "--"),
    _p("sql",        "sql",                       "--", _C_BLOCK),
    _p("html",       "html htm vue svelte",       None, ("<!--", "-->")),
    _p("xml",        "xml xaml svg",              None, ("<!--", "-->")),
    _p("css",        "css",                       None, _C_BLOCK),
    _p("scss",       "scss less",                 "//", _C_BLOCK),
    _p("json",       "json jsonc json5",          "//", _C_BLOCK),
    _p("yaml",       "yaml yml",                  "#"),
    _p("toml",       "toml",                      "#"),
)


def extension_map() -> dict[str, LanguageProfile]:
    """Map lower-case extensions (no dot) → profile."""
    return {ext: p for p in PROFILES for ext in p.extensions}


def profile_for(extension: str) -> LanguageProfile | None:
    """Look up a profile by extension ("ts", ".ts" and "TS" all work).

    Returns:
        The profile, or None if the extension is not registered.
    """
    return extension_map().get(extension.lower().lstrip("."))


def profile_by_id(language_id: str) -> LanguageProfile | None:
    """Look up a profile by its id ("python", "typescript", ...)."""
    for p in PROFILES:
        if p.id == language_id:
            return p
    return None


def profile_for_path(path: Path | str) -> LanguageProfile:
    """Resolve the profile for a file path.

    Raises:
        UnknownLanguageError: If the file's extension is not registered.
    """
    suffix = Path(path).suffix
    profile = profile_for(suffix) if suffix else None
    if profile is None:
        raise UnknownLanguageError(f"No language profile for '{path}'")
    return profile
