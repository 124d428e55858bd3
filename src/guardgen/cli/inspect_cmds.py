"""Inspection CLI commands."""

import argparse
import sys
from pathlib import Path


def cmd_languages(args: argparse.Namespace) -> int:
    from guardgen.languages import PROFILES

    print(f"  {'Language':<12} {'Line':<6} {'Block':<12} Extensions")
    print(f"  {'─' * 60}")
    for p in PROFILES:
        block = f"{p.block_open} {p.block_close}" if p.has_block_comments else "-"
        print(f"  {p.id:<12} {p.line_comment or '-':<6} {block:<12} {', '.join(p.extensions)}")
    return 0


def cmd_parse(args: argparse.Namespace) -> int:
    from guardgen.cli.regen import build_session
    from guardgen.errors import GuardgenError
    from guardgen.markers import dependency_keys
    from guardgen.session import read_source

    try:
        session = build_session(args)
        path = Path(args.file).resolve()
        doc = session.parse(path, read_source(path))
    except (GuardgenError, OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(f"{doc.path} ({doc.profile.id}): {len(doc.regions)} managed regions")
    for r in doc.regions:
        flag = "MODIFIED" if r.is_modified else "clean"
        deps = ", ".join(dependency_keys(r.marker)) or "-"
        print(
            f"  {r.kind:<12} {r.id:<24} lines {r.span.start_line}-{r.span.end_line:<6} "
            f"{flag:<9} depends: {deps}"
        )
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    from guardgen.cli.regen import load_manifest_or_empty
    from guardgen.errors import ManifestError
    from guardgen.manifest import validate_manifest

    try:
        manifest = load_manifest_or_empty(args)
    except ManifestError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    result = validate_manifest(manifest)
    print(result.summary())
    return 0 if result.passed else 1
