"""Consistency checks between the overlay and a checkout."""

from dataclasses import dataclass
from pathlib import Path

from . import git
from .agents import INSTRUCTIONS_FILE, MANAGED_DIRS, TARGET_MANAGED_DIRS
from .classify import agent_file_problems, classify_agent_files, format_agent_file_problems
from .fsutil import relative_path, walk_directory
from .ignore import filter_status_lines, should_ignore
from .links import ManagedFileState, OutsideOverlay, Unadded, WrongMapping, verify_managed
from .mapper import WORKTREES_DIR, MappingContext, overlay_project_dir
from .output import Output, get_output

# Files that stay local to a checkout and are never moved to the overlay
LOCAL_ONLY_FILES = ["settings.local.json"]

RULE = "─" * 50


@dataclass(frozen=True)
class OrphanedPath:
    """Overlay file whose target directory no longer exists."""

    overlay_path: Path
    expected_target_dir: str
    file_name: str
    scope: str


@dataclass(frozen=True)
class UnaddedFile:
    """File in a managed target directory that is not a valid overlay link."""

    target_path: Path
    relative_path: str
    state: ManagedFileState


def is_in_managed_dir(rel_path: str) -> bool:
    """True if any directory component is clank, .claude or .gemini."""
    return any(part in TARGET_MANAGED_DIRS for part in rel_path.split("/")[:-1])


def find_unadded_files(context: MappingContext) -> list[UnaddedFile]:
    """Find files in managed directories that are not valid overlay links."""
    unadded = []
    for entry in walk_directory(context.target_root):
        if entry.is_directory:
            continue
        rel_path = entry.path.relative_to(context.target_root).as_posix()
        if not is_in_managed_dir(rel_path):
            continue
        if entry.path.name in LOCAL_ONLY_FILES:
            continue

        state = verify_managed(entry.path, context)
        if state.kind != "valid":
            unadded.append(UnaddedFile(entry.path, rel_path, state))
    return unadded


def extract_target_subdir(rel_path: str) -> str | None:
    """Target subdirectory implied by a project-relative overlay path.

    packages/foo/clank/notes.md -> packages/foo
    packages/foo/agents.md -> packages/foo

    Returns None for paths that imply no subdirectory.
    """
    parts = rel_path.split("/")
    for managed in MANAGED_DIRS:
        if managed in parts[1:-1]:
            return "/".join(parts[: parts.index(managed, 1)])
    if len(parts) > 1 and parts[-1] == INSTRUCTIONS_FILE:
        return "/".join(parts[:-1])
    return None


def find_orphans(
    overlay_root: Path,
    target_root: Path,
    project_name: str,
    ignore_patterns: list[str] | None = None,
) -> list[OrphanedPath]:
    """Find project overlay files whose target directory is gone.

    Worktree files and files in top-level managed directories are not
    checked. Never modifies anything.
    """
    project_dir = overlay_project_dir(overlay_root, project_name)
    if not project_dir.is_dir():
        return []

    patterns = ignore_patterns or []
    orphans = []
    for entry in walk_directory(
        project_dir,
        skip_dirs=(".git", "node_modules", WORKTREES_DIR),
        skip=lambda rel: should_ignore(rel, patterns),
    ):
        if entry.is_directory:
            continue

        rel_path = entry.path.relative_to(project_dir).as_posix()
        if "/" not in rel_path:
            continue
        if rel_path.split("/", 1)[0] in MANAGED_DIRS:
            continue

        target_subdir = extract_target_subdir(rel_path)
        if not target_subdir:
            continue

        if not (Path(target_root) / target_subdir).exists():
            orphans.append(
                OrphanedPath(
                    overlay_path=entry.path,
                    expected_target_dir=target_subdir,
                    file_name=entry.path.name,
                    scope=project_name,
                )
            )
    return orphans


def format_status_code(code: str) -> str:
    """Collapse a porcelain XY code to one letter."""
    c = code.strip()
    if c == "??":
        return "A"
    for letter in ("D", "M", "A", "R"):
        if letter in c:
            return letter
    return "?"


def _parse_scoped_path(file_path: str) -> tuple[str, list[str]]:
    """Split an overlay-relative path into a scope label and the path below it."""
    segments = file_path.split("/")
    if segments[0] == "global":
        return "global", segments[1:]
    if segments[0] == "targets":
        project = segments[1] if len(segments) > 1 else ""
        if len(segments) > 2 and segments[2] == WORKTREES_DIR:
            after = segments[3:]
            # Branch names take at most two segments (main, feat/foo)
            branch_len = min(2, max(0, len(after) - 1))
            if branch_len == 2 and after[1] in MANAGED_DIRS:
                branch_len = 1
            branch = "/".join(after[:branch_len])
            return f"{project}/{branch}", after[branch_len:]
        return project or "unknown", segments[2:]
    return "unknown", segments


def _short_path(parts: list[str]) -> str:
    """Last two segments, or three when the parent is a managed directory."""
    if len(parts) <= 2:
        return "/".join(parts)
    if parts[-2] in MANAGED_DIRS:
        return "/".join(parts[-3:])
    return "/".join(parts[-2:])


def format_status_lines(lines: list[str]) -> list[str]:
    """Format porcelain lines as '<code> <short path> (<scope>)'."""
    formatted = []
    for line in lines:
        code = format_status_code(line[:2])
        scope, parts = _parse_scoped_path(line[3:])
        formatted.append(f"{code} {_short_path(parts)} ({scope})")
    return formatted


def generate_agent_prompt(orphans: list[OrphanedPath], target_root: Path, overlay_root: Path) -> str:
    """Prompt a coding agent can follow to repair orphaned overlay paths."""
    dirs = list(dict.fromkeys(o.expected_target_dir for o in orphans))
    dir_list = "\n".join(f"  - {d}" for d in dirs)
    return f"""\
Clank stores agent files (CLAUDE.md, etc.) in a separate overlay repository and symlinks them into target projects. The overlay directory structure mirrors the target project structure.

The following overlay files no longer match the target project structure.
These directories no longer exist in the target:
{dir_list}

Target project: {target_root}
Overlay repository: {overlay_root}

First, run 'clank status' to see the current state.

Investigate where these directories moved to in the target project,
then update the overlay paths to match the new structure.

Run 'clank help structure' to see how the overlay maps to targets.

When finished, run 'clank status' to verify the fix."""


def check_overlay(
    context: MappingContext,
    ignore_patterns: list[str],
    cwd: Path,
    *,
    output: Output | None = None,
) -> bool:
    """Show overlay status and report every problem found.

    Args:
        context: Mapping context for the checkout
        ignore_patterns: Config ignore patterns
        cwd: Directory paths are displayed relative to
        output: Output handler

    Returns:
        True if any problem was reported.
    """
    if output is None:
        output = get_output()

    _show_overlay_status(context.overlay_root, ignore_patterns, output)

    has_problems = False

    unadded = find_unadded_files(context)
    if unadded:
        has_problems = True
        _show_unadded_files(unadded, cwd, context.git_context, output)

    classification = classify_agent_files(context.target_root, context.overlay_root, context)
    if agent_file_problems(classification):
        has_problems = True
        output.line(format_agent_file_problems(classification, cwd))
        output.line("")

    orphans = find_orphans(
        context.overlay_root,
        context.target_root,
        context.git_context.project_name,
        ignore_patterns,
    )
    if orphans:
        has_problems = True
        _show_orphans(orphans, context, output)

    if not has_problems:
        output.success("No issues found. Overlay matches target structure.")
    return has_problems


def _show_overlay_status(overlay_root: Path, ignore_patterns: list[str], output: Output) -> None:
    if not overlay_root.exists():
        output.warning("Overlay repository not found")
        return

    lines = filter_status_lines(git.status_porcelain(overlay_root), ignore_patterns)
    output.line(f"Overlay: {output.path(str(overlay_root))}")
    if not lines:
        output.line("Status: clean")
        output.line("")
        return

    output.line(f"Status: {len(lines)} uncommitted change(s)")
    output.line("")
    for formatted in format_status_lines(lines):
        output.line(f"  {formatted}")
    output.line("")


def _show_unadded_files(
    unadded: list[UnaddedFile],
    cwd: Path,
    git_context: git.GitContext,
    output: Output,
) -> None:
    target_name = git_context.project_name
    if git_context.is_worktree:
        target_name = f"{git_context.project_name}/{git_context.worktree_name}"

    outside = [f for f in unadded if isinstance(f.state, OutsideOverlay)]
    wrong = [f for f in unadded if isinstance(f.state, WrongMapping)]
    regular = [f for f in unadded if isinstance(f.state, Unadded)]

    if outside:
        output.line(f"Found {len(outside)} stale symlink(s) in {target_name}:")
        output.line("These symlinks point outside the clank overlay.")
        output.line("Remove them, then run `clank link` to recreate:")
        output.line("")
        for f in outside:
            output.line(f"  rm {relative_path(cwd, f.target_path)}")
        output.line("")

    if wrong:
        output.line(f"Found {len(wrong)} mislinked symlink(s) in {target_name}:")
        output.line("These symlinks point to the wrong overlay location.")
        output.line("Remove them, then run `clank link` to recreate:")
        output.line("")
        for f in wrong:
            output.line(f"  rm {relative_path(cwd, f.target_path)}")
            output.line(f"    points to: {f.state.current_target}")
            expected = f.state.expected_target or "(no valid mapping)"
            output.line(f"    expected:  {expected}")
        output.line("")

    if regular:
        output.line(f"Found {len(regular)} unadded file(s) in {target_name}:")
        output.line("")
        for f in regular:
            output.line(f"  clank add {relative_path(cwd, f.target_path)}")
        output.line("")


def _show_orphans(orphans: list[OrphanedPath], context: MappingContext, output: Output) -> None:
    output.line(f"Found {len(orphans)} orphaned overlay path(s):")
    output.line("")
    for orphan in orphans:
        output.line(f"  {orphan.file_name} ({orphan.scope})")
        output.line(f"    Overlay: {orphan.overlay_path}")
        output.line(f"    Expected dir: {orphan.expected_target_dir}")
        output.line("")

    output.line(f"Target project: {context.target_root}")
    output.line(f"Overlay: {context.overlay_root}")
    output.line("")
    output.line("To fix with an agent, copy this prompt:")
    output.line(RULE)
    output.line(generate_agent_prompt(orphans, context.target_root, context.overlay_root))
    output.line(RULE)
