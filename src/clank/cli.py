"""Command-line interface."""

import argparse
import sys
from pathlib import Path

from . import __version__, git
from .check import check_overlay
from .config import ConfigError, load_config
from .files import FilesOptions, build_output, collect_entries, format_listing, parse_depth, resolve_scan_root
from .manage import add_files, move_files, remove_files
from .output import Output, set_output
from .overlay import OverlayError, commit_overlay, init_overlay, link_overlay, make_context, unlink_overlay
from .scope import REQUIRE, ScopeError, resolve_scope_from_flags
from .validation import ValidationError, validate_scope_flags

# Errors a command reports as "Error: ..." with exit code 1
COMMAND_ERRORS = (ConfigError, git.GitError, OverlayError, ValidationError, ScopeError, OSError)

STRUCTURE_HELP = """\
Overlay repository layout:

  overlay/
    global/                      shared by every project
      clank/                     misc files      -> <target>/clank/
      claude/                    tool files      -> <target>/.claude/
      gemini/                    tool files      -> <target>/.gemini/
      prompts/                   prompts         -> <target>/.claude/prompts/ and .gemini/prompts/
      agents.md                  instructions    -> <target>/AGENTS.md, CLAUDE.md, GEMINI.md
      init/                      templates copied into each new worktree
    targets/<project>/           shared by every worktree of one project
      (same layout as global/)
      packages/foo/agents.md     -> <target>/packages/foo/CLAUDE.md ...
      packages/foo/clank/x.md    -> <target>/packages/foo/clank/x.md
      worktrees/<branch>/        private to one worktree
        (same layout as global/)

When the same file exists in several scopes, each link gets a scope
suffix: clank/notes.md (global), clank/notes-project.md,
clank/notes-worktree.md.

Scopes are chosen with --global, --project (default) or --worktree.
"""

HELP_TOPICS = {"structure": STRUCTURE_HELP}


def _add_scope_flags(parser: argparse.ArgumentParser, required: bool = False) -> None:
    group = parser.add_mutually_exclusive_group(required=required)
    group.add_argument("--global", "-g", dest="global_", action="store_true", help="Global scope")
    group.add_argument("--project", "-p", action="store_true", help="Project scope")
    group.add_argument("--worktree", "-w", action="store_true", help="Worktree scope")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for every subcommand."""
    parser = argparse.ArgumentParser(
        prog="clank",
        description="Keep AI agent files in an overlay repository and symlink them into projects",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Global flags
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Path to config file",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress informational output",
    )

    subparsers = parser.add_subparsers(dest="command")

    init_parser = subparsers.add_parser("init", help="Create a new overlay repository")
    init_parser.add_argument("overlay_path", nargs="?", type=Path, help="Overlay location (default ~/clankover)")

    link_parser = subparsers.add_parser("link", help="Link overlay files into the current project")
    link_parser.add_argument("target", nargs="?", type=Path, help="Directory in the target repository")

    unlink_parser = subparsers.add_parser("unlink", help="Remove overlay symlinks from the current project")
    unlink_parser.add_argument("target", nargs="?", type=Path, help="Directory in the target repository")

    add_parser = subparsers.add_parser("add", help="Add files to the overlay and link them")
    add_parser.add_argument("files", nargs="+", help="Files or directories to add")
    _add_scope_flags(add_parser)

    rm_parser = subparsers.add_parser("rm", aliases=["remove"], help="Remove files from the overlay")
    rm_parser.add_argument("files", nargs="+", help="Files to remove")
    _add_scope_flags(rm_parser)

    mv_parser = subparsers.add_parser("mv", aliases=["move"], help="Move files to another scope")
    mv_parser.add_argument("files", nargs="+", help="Files to move")
    _add_scope_flags(mv_parser, required=True)

    commit_parser = subparsers.add_parser("commit", help="Commit every change in the overlay")
    commit_parser.add_argument("-m", "--message", help="Commit message (prefixed with [clank])")

    subparsers.add_parser("check", aliases=["status"], help="Show overlay status and problems")

    files_parser = subparsers.add_parser("files", aliases=["list"], help="List clank-managed files")
    files_parser.add_argument("path", nargs="?", help="Only list files under this directory")
    files_parser.add_argument("--hidden", action="store_true", help="Include .claude/ and .gemini/ files")
    files_parser.add_argument("--depth", help="Max depth below clank/ directories")
    files_parser.add_argument("-0", "--null", action="store_true", help="Separate paths with NUL")
    files_parser.add_argument(
        "--no-dedupe",
        dest="dedupe",
        action="store_false",
        help="Show every instruction alias and prompt copy",
    )
    files_parser.add_argument("--linked-only", action="store_true", help="Only symlinks into the overlay")
    files_parser.add_argument("--unlinked-only", action="store_true", help="Only files not linked to the overlay")
    _add_scope_flags(files_parser)

    help_parser = subparsers.add_parser("help", help="Show help on a topic")
    help_parser.add_argument("topic", nargs="?", help="Help topic (structure)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error, 2 for partial success).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up output handler
    output = Output(no_color=args.no_color, quiet=args.quiet)
    set_output(output)

    if args.command is None:
        parser.print_help()
        return 0

    # Route to command handler
    handlers = {
        "init": cmd_init,
        "link": cmd_link,
        "unlink": cmd_unlink,
        "add": cmd_add,
        "rm": cmd_rm,
        "remove": cmd_rm,
        "mv": cmd_mv,
        "move": cmd_mv,
        "commit": cmd_commit,
        "check": cmd_check,
        "status": cmd_check,
        "files": cmd_files,
        "list": cmd_files,
    }

    if args.command == "help":
        return cmd_help(args, output, parser)

    handler = handlers.get(args.command)
    if handler is None:
        return 0

    try:
        return handler(args, output)
    except COMMAND_ERRORS as e:
        output.error(str(e))
        return 1


def _scope_flags(args) -> dict[str, bool]:
    return {
        "global_": args.global_,
        "project": args.project,
        "worktree": args.worktree,
    }


def cmd_init(args, output: Output) -> int:
    """Create the overlay repository and default config."""
    init_overlay(args.overlay_path, args.config, output=output)
    return 0


def cmd_link(args, output: Output) -> int:
    """Link overlay files into the target."""
    config = load_config(args.config)
    return link_overlay(config, args.target, output=output)


def cmd_unlink(args, output: Output) -> int:
    """Remove overlay symlinks from the target."""
    config = load_config(args.config)
    unlink_overlay(config, args.target, output=output)
    return 0


def cmd_add(args, output: Output) -> int:
    """Add files to the overlay at the selected scope (default project)."""
    flags = _scope_flags(args)
    validate_scope_flags(**flags)
    scope = resolve_scope_from_flags(**flags, default="project")

    config = load_config(args.config)
    context = make_context(config)
    add_files(context, args.files, scope, config["agents"], output=output)
    return 0


def cmd_rm(args, output: Output) -> int:
    """Remove files from the overlay."""
    flags = _scope_flags(args)
    validate_scope_flags(**flags)
    scope = resolve_scope_from_flags(**flags, default=None) if any(flags.values()) else None

    config = load_config(args.config)
    context = make_context(config)
    remove_files(context, args.files, scope, config["agents"], output=output)
    return 0


def cmd_mv(args, output: Output) -> int:
    """Move files to another scope."""
    flags = _scope_flags(args)
    validate_scope_flags(**flags)
    scope = resolve_scope_from_flags(**flags, default=REQUIRE)

    config = load_config(args.config)
    context = make_context(config)
    move_files(context, args.files, scope, config["agents"], output=output)
    return 0


def cmd_commit(args, output: Output) -> int:
    """Commit every change in the overlay."""
    config = load_config(args.config)
    commit_overlay(config, args.message, output=output)
    return 0


def cmd_check(args, output: Output) -> int:
    """Report overlay status and problems. Problems are advisory."""
    config = load_config(args.config)
    context = make_context(config)
    check_overlay(context, config["ignore"], Path.cwd(), output=output)
    return 0


def cmd_files(args, output: Output) -> int:
    """List clank-managed files in the target."""
    flags = _scope_flags(args)
    validate_scope_flags(**flags)
    if args.linked_only and args.unlinked_only:
        raise ValidationError("--linked-only and --unlinked-only cannot be combined")
    scope_filter = resolve_scope_from_flags(**flags, default=None) if any(flags.values()) else None

    opts = FilesOptions(
        hidden=args.hidden,
        depth=parse_depth(args.depth),
        null=args.null,
        dedupe=args.dedupe,
        linked_only=args.linked_only,
        unlinked_only=args.unlinked_only,
        scope_filter=scope_filter,
    )

    config = load_config(args.config)
    context = make_context(config)
    cwd = Path.cwd()
    scan_root = resolve_scan_root(context.target_root, cwd, args.path)

    entries = collect_entries(context, scan_root, cwd, opts)
    listing = format_listing(build_output(entries, opts.dedupe, config["agents"]), opts.null)
    sys.stdout.write(listing)
    return 0


def cmd_help(args, output: Output, parser: argparse.ArgumentParser) -> int:
    """Show general help or a help topic."""
    if args.topic is None:
        parser.print_help()
        return 0

    text = HELP_TOPICS.get(args.topic)
    if text is None:
        output.error(f"Unknown help topic: {args.topic}\nAvailable topics: {', '.join(HELP_TOPICS)}")
        return 1
    output.line(text.rstrip())
    return 0


if __name__ == "__main__":
    sys.exit(main())
