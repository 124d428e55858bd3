"""Command-line interface for guardgen.

Usage:
    guardgen languages
    guardgen parse <file>
    guardgen validate
    guardgen regen [<file> ...] [--changed KEY ...] [--previous-model M] [--dry-run] [--workers N]
    guardgen conflicts [<file> ...] [--changed KEY ...]
    guardgen affected --changed KEY [KEY ...]

Global options select the project root, manifest, model and state file;
each defaults from the environment (see guardgen.paths).
"""

import argparse
import logging
import sys

from guardgen import __version__
from guardgen.cli.inspect_cmds import cmd_languages, cmd_parse, cmd_validate
from guardgen.cli.regen import cmd_affected, cmd_conflicts, cmd_regen


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guardgen",
        description="Regenerate marked regions of source files without losing manual edits",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--root", default=None,
        help="Project root (default: $GUARDGEN_ROOT or cwd)",
    )
    parser.add_argument(
        "--manifest", default=None,
        help="Path to guardgen.yaml (default: <root>/guardgen.yaml)",
    )
    parser.add_argument(
        "--state", default=None,
        help="Path to state file (default: <root>/.guardgen/state.json)",
    )
    parser.add_argument(
        "--model", default=None,
        help="Path to the model snapshot (YAML or JSON)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("languages", help="List supported languages and comment syntax")

    p_parse = sub.add_parser("parse", help="Show the managed regions of a file")
    p_parse.add_argument("file")

    sub.add_parser("validate", help="Validate the marker manifest")

    regen = sub.add_parser("regen", help="Regenerate managed regions")
    regen.add_argument("files", nargs="*", help="Files (default: every file in the manifest)")
    regen.add_argument(
        "--changed", action="append", default=None, metavar="KEY",
        help="Model key changed since last generation (repeatable)",
    )
    regen.add_argument(
        "--previous-model", default=None,
        help="Previous model snapshot; changed keys are computed from the diff",
    )
    regen.add_argument(
        "--dry-run", action="store_true",
        help="Report changes without writing",
    )
    regen.add_argument(
        "--workers", type=int, default=4,
        help="Parallel file rewrites (default 4)",
    )
    regen.add_argument(
        "--diff", action="store_true",
        help="Show diffs for conflicts",
    )

    conf = sub.add_parser("conflicts", help="Report conflicts without writing")
    conf.add_argument("files", nargs="*")
    conf.add_argument("--changed", action="append", default=None, metavar="KEY")
    conf.add_argument("--previous-model", default=None)

    aff = sub.add_parser("affected", help="List markers depending on changed keys")
    aff.add_argument("--changed", action="append", required=True, metavar="KEY")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    dispatch = {
        "languages": cmd_languages,
        "parse": cmd_parse,
        "validate": cmd_validate,
        "regen": cmd_regen,
        "conflicts": cmd_conflicts,
        "affected": cmd_affected,
    }
    return dispatch[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
