"""Regeneration CLI commands."""

import argparse
import sys
from pathlib import Path


def load_manifest_or_empty(args: argparse.Namespace) -> dict:
    from guardgen.manifest import load_manifest
    from guardgen.paths import manifest_path

    path = Path(args.manifest) if args.manifest else manifest_path()
    if not path.exists():
        return {"files": {}}
    return load_manifest(path)


def state_file(args: argparse.Namespace) -> Path:
    from guardgen.paths import state_path

    return Path(args.state) if args.state else state_path()


def build_session(args: argparse.Namespace, workers: int = 4):
    from guardgen.generator import ContentGenerator
    from guardgen.manifest import resolve_functions
    from guardgen.model import ModelSnapshot, load_model
    from guardgen.paths import project_root
    from guardgen.session import Session
    from guardgen.state import load_state

    root = (Path(args.root) if args.root else project_root()).resolve()
    manifest = load_manifest_or_empty(args)
    model = load_model(args.model) if args.model else ModelSnapshot()
    return Session(
        model,
        manifest=manifest,
        root=root,
        generator=ContentGenerator(functions=resolve_functions(manifest)),
        state=load_state(state_file(args)),
        max_workers=workers,
    )


def _target_files(args: argparse.Namespace, session) -> list[Path]:
    from guardgen.manifest import get_files

    if args.files:
        return [Path(f).resolve() for f in args.files]
    return [session.root / f for f in sorted(get_files(session.manifest))]


def _changed_keys(args: argparse.Namespace, session) -> set[str] | None:
    from guardgen.model import diff_models, load_model

    changed = set(args.changed) if args.changed else None
    if args.previous_model:
        delta = diff_models(load_model(args.previous_model), session.model)
        changed = delta | (changed or set())
    return changed


def _run(args: argparse.Namespace, dry_run: bool, show_diffs: bool) -> int:
    from guardgen.errors import GuardgenError

    try:
        session = build_session(args, workers=getattr(args, "workers", 4))
        changed = _changed_keys(args, session)
        report = session.regenerate(_target_files(args, session), changed, dry_run=dry_run)
    except (GuardgenError, OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(report.summary(show_diffs=show_diffs))
    if not dry_run:
        session.save(state_file(args))
    return 0 if report.passed else 1


def cmd_regen(args: argparse.Namespace) -> int:
    return _run(args, dry_run=args.dry_run, show_diffs=args.diff)


def cmd_conflicts(args: argparse.Namespace) -> int:
    return _run(args, dry_run=True, show_diffs=True)


def cmd_affected(args: argparse.Namespace) -> int:
    from guardgen.errors import StateError
    from guardgen.state import load_state

    try:
        state = load_state(state_file(args))
    except StateError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if not state.tracker.files():
        print("  No dependency state recorded; run 'guardgen regen' first.")
        return 0

    affected = state.tracker.affected_files(args.changed)
    if not affected:
        print("  No recorded markers depend on the changed keys.")
        return 0
    for file in sorted(affected):
        print(f"  {file}")
        for marker_id in sorted(affected[file]):
            print(f"    - {marker_id}")
    return 0
