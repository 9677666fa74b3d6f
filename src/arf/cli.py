"""arf CLI: record agent reasoning and view it alongside git history."""

import argparse
import logging
import os
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Dict, List, Optional

from arf.codes import ExitCode
from arf.errors import ArfError, ValidationError

AGENT_ENV_VAR = "ARF_AGENT"


def _parse_context(pairs: Optional[List[str]]) -> Optional[Dict[str, str]]:
    """Turn repeated --context key=value options into a mapping."""
    if not pairs:
        return None
    context: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValidationError(["context"], f"Invalid --context '{pair}': expected key=value")
        context[key.strip()] = value
    return context


def _load(args, **overrides):
    """Discover the repository from the current directory and build the config."""
    from pydantic import ValidationError as PydanticValidationError
    from .api import open_repository

    agent = os.environ.get(AGENT_ENV_VAR)
    if agent:
        overrides.setdefault("agent_id", agent)
    try:
        return open_repository(Path.cwd(), **overrides)
    except PydanticValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise ValidationError(fields, f"Invalid configuration: {e.errors()[0]['msg']}")


def _print_warnings(warnings: List[str], quiet: bool) -> None:
    if quiet:
        return
    for warning in warnings:
        print(f"Warning: {warning}", file=sys.stderr)


def main():
    """Main CLI entry point for arf commands."""
    try:
        arf_version = get_version("arf")
    except PackageNotFoundError:
        arf_version = "dev"

    parser = argparse.ArgumentParser(
        prog="arf",
        description="Agent Reasoning Format: track AI reasoning alongside git"
    )
    parser.add_argument("--version", action="version", version=f"arf {arf_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log git invocations and skipped files to stderr."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    subparsers.add_parser(
        "init",
        help="Initialize ARF tracking (orphan branch mounted at .arf/)",
        parents=[parent_parser]
    )

    # record command
    record_parser = subparsers.add_parser(
        "record",
        help="Record a reasoning entry for a commit",
        parents=[parent_parser]
    )
    record_parser.add_argument("--what", help="What action is being taken (required)")
    record_parser.add_argument("--why", help="Why this approach (required)")
    record_parser.add_argument("--how", default=None, help="How it will be implemented")
    record_parser.add_argument("-b", "--backup", default=None, help="Backup/rollback plan")
    record_parser.add_argument(
        "--outcome",
        choices=["success", "failure", "partial"],
        default=None,
        help="Result of the action"
    )
    record_parser.add_argument(
        "--outcome-detail",
        dest="outcome_detail",
        default=None,
        help="Detail text for --outcome"
    )
    record_parser.add_argument(
        "--context",
        action="append",
        metavar="KEY=VALUE",
        default=None,
        help="Extra context entry (repeatable)"
    )
    record_parser.add_argument(
        "-c", "--commit",
        default=None,
        help="Commit to attach the record to (defaults to HEAD)"
    )
    record_parser.add_argument(
        "--agent",
        default=None,
        help=f"Agent identifier (defaults to ${AGENT_ENV_VAR}, then 'unknown')"
    )
    record_parser.add_argument(
        "--no-commit",
        dest="no_commit",
        action="store_true",
        help="Write the record without committing it to the ARF branch"
    )

    # log command
    log_parser = subparsers.add_parser(
        "log",
        help="Show reasoning records, newest commit first",
        parents=[parent_parser]
    )
    log_parser.add_argument("-n", "--limit", type=int, default=10, help="Maximum number of records")
    log_parser.add_argument("-c", "--commit", default=None, help="Only records for this commit")
    log_parser.add_argument("--range", dest="rev_range", default=None, help="Commit range, e.g. main..HEAD")
    log_parser.add_argument("--json", action="store_true", help="Emit canonical JSON")

    # graph command
    graph_parser = subparsers.add_parser(
        "graph",
        help="Show git commits with ARF reasoning",
        parents=[parent_parser]
    )
    graph_parser.add_argument("-n", "--limit", type=int, default=10, help="Number of commits to show")

    # diff command
    diff_parser = subparsers.add_parser(
        "diff",
        help="Show a commit's reasoning followed by its changes",
        parents=[parent_parser]
    )
    diff_parser.add_argument("ref", nargs="?", default="HEAD", help="Commit to show (defaults to HEAD)")
    diff_parser.add_argument("--full", action="store_true", help="Show full diff instead of stat summary")

    # browse command
    browse_parser = subparsers.add_parser(
        "browse",
        help="Interactively browse commits, reasoning and changes",
        parents=[parent_parser]
    )
    browse_parser.add_argument("-n", "--limit", type=int, default=50, help="Number of commits to load")

    # orphans command
    orphans_parser = subparsers.add_parser(
        "orphans",
        help="List record directories that match no commit (e.g. after a rebase)",
        parents=[parent_parser]
    )
    orphans_parser.add_argument("--range", dest="rev_range", default=None, help="Commit range to match against")
    orphans_parser.add_argument("--json", action="store_true", help="Emit canonical JSON")

    # sync command
    sync_parser = subparsers.add_parser(
        "sync",
        help="Sync ARF branch with remote",
        parents=[parent_parser]
    )
    sync_parser.add_argument("--push", action="store_true", help="Push local records to remote")
    sync_parser.add_argument("--pull", action="store_true", help="Pull remote records")

    # spec command group
    spec_parser = subparsers.add_parser(
        "spec",
        help="Manage specs (task definitions)"
    )
    spec_subparsers = spec_parser.add_subparsers(dest="spec_command", help="Available spec commands")
    spec_subparsers.add_parser(
        "list",
        help="List all specs",
        parents=[parent_parser]
    )
    spec_show_parser = spec_subparsers.add_parser(
        "show",
        help="Show a specific spec",
        parents=[parent_parser]
    )
    spec_show_parser.add_argument("name", help="Spec name (without .arf extension)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)
    if args.command == "spec" and not args.spec_command:
        spec_parser.print_help()
        sys.exit(1)

    if getattr(args, "verbose", False):
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        _dispatch(args)
    except ArfError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(int(e.exit_code))
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(int(ExitCode.UNEXPECTED_ERROR))


def _dispatch(args) -> None:
    from . import api
    from ._internal.canonical_json import canonical_dumps

    quiet = args.quiet

    if args.command == "init":
        config, _ = _load(args)
        created = api.init(config)
        if not quiet:
            if created:
                print(f"[OK] Created ARF branch '{config.branch}'")
                print(f"  Mounted at {config.worktree_dir}/")
                print()
                print("Next: arf record --what 'action' --why 'reason'")
            else:
                print(f"[OK] ARF already initialized at {config.worktree_path}")

    elif args.command == "record":
        config, history = _load(args)
        if args.outcome_detail is not None and args.outcome is None:
            raise ValidationError(["outcome"], "--outcome-detail requires --outcome")
        outcome = None
        if args.outcome is not None:
            outcome = {"status": args.outcome, "detail": args.outcome_detail}

        result = api.record(
            config,
            history,
            what=args.what,
            why=args.why,
            how=args.how,
            backup=args.backup,
            outcome=outcome,
            context=_parse_context(args.context),
            commit=args.commit,
            agent_id=args.agent,
            commit_storage=not args.no_commit,
        )
        if not quiet:
            print(f"[OK] Recorded: {result.record.what}")
            print(f"  Commit: {result.record.commit_ref}")
            print(f"  File: {result.path}")
            if result.committed:
                print(f"  Committed to '{config.branch}'")

    elif args.command == "log":
        config, history = _load(args)
        result = api.log(config, history, limit=args.limit, commit=args.commit, rev_range=args.rev_range)
        _print_warnings(result.warnings, quiet)
        if args.json:
            print(canonical_dumps(result.to_json()))
        elif not quiet:
            print(result.text)

    elif args.command == "graph":
        config, history = _load(args)
        result = api.graph(config, history, limit=args.limit)
        _print_warnings(result.warnings, quiet)
        if not quiet:
            print(result.text)

    elif args.command == "diff":
        config, history = _load(args)
        view = api.diff(config, history, ref=args.ref, full=args.full)
        if not quiet:
            print(view.text)

    elif args.command == "browse":
        config, history = _load(args)
        session = api.browse(config, history, limit=args.limit)
        _print_warnings(session.warnings, quiet)
        if not session.state.commits:
            if not quiet:
                print("No commits found.")
            return
        from ._internal.io.browse_app import run_browser
        run_browser(session.state)

    elif args.command == "orphans":
        config, history = _load(args)
        report = api.orphans(config, history, rev_range=args.rev_range)
        _print_warnings(report.warnings, quiet)
        if args.json:
            print(canonical_dumps(report.to_json()))
        elif not quiet:
            print(report.text)

    elif args.command == "sync":
        config, _ = _load(args)
        outcome = api.sync(config, push=args.push, pull=args.pull)
        if not quiet:
            for message in outcome.messages:
                print(f"  {message}")

    elif args.command == "spec" and args.spec_command == "list":
        config, _ = _load(args)
        names = api.list_specs(config)
        if not quiet:
            if not names:
                print(f"No specs found in {config.worktree_dir}/{config.specs_dir}/")
                return
            print(f"Specs ({len(names)}):\n")
            for name in names:
                print(f"  {name}")
            print()
            print("Show details: arf spec show <name>")

    elif args.command == "spec" and args.spec_command == "show":
        config, _ = _load(args)
        content = api.show_spec(config, args.name)
        if not quiet:
            print("═" * 63)
            print(f"Spec: {args.name}")
            print("═" * 63)
            print()
            print(content, end="" if content.endswith("\n") else "\n")


if __name__ == "__main__":
    main()
