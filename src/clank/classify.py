"""Find instruction alias files (AGENTS.md, CLAUDE.md, GEMINI.md) that block linking."""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from . import git
from .agents import AGENT_FILES, INSTRUCTIONS_FILE
from .fsutil import relative_path, resolve_symlink_target, walk_directory
from .mapper import MappingContext, overlay_to_target, target_to_overlay


@dataclass(frozen=True)
class OutdatedSymlink:
    """Alias pointing into the overlay, but not at its own agents.md."""

    symlink_path: Path
    current_target: Path
    expected_target: Path


@dataclass
class AgentFileClassification:
    """Alias files grouped by problem type. All paths are absolute."""

    # Tracked in git: git rm --cached, then clank add
    tracked: list[Path] = field(default_factory=list)
    # Real files git does not know about: clank add
    untracked: list[Path] = field(default_factory=list)
    # Symlinks pointing outside the overlay: remove
    stale_symlinks: list[Path] = field(default_factory=list)
    # Symlinks to the wrong overlay path, e.g. after a directory rename
    outdated_symlinks: list[OutdatedSymlink] = field(default_factory=list)


def find_agent_files(target_root: Path) -> list[Path]:
    """Every alias file (real or symlink) in the target."""
    names = set(AGENT_FILES)
    return [
        entry.path
        for entry in walk_directory(target_root)
        if not entry.is_directory and entry.path.name in names
    ]


def classify_agent_files(
    target_root: Path,
    overlay_root: Path,
    context: MappingContext | None = None,
    *,
    is_tracked: Callable[[Path, Path], bool] = git.is_tracked,
) -> AgentFileClassification:
    """Find all alias files in the target and classify them.

    Args:
        target_root: Root of the checkout
        overlay_root: Root of the overlay
        context: When given, symlinks into the overlay are also checked
            against the agents.md they should point at
        is_tracked: Tracked-by-git oracle, called as is_tracked(path, root)

    Returns:
        AgentFileClassification of the problem files.
    """
    result = AgentFileClassification()

    for path in find_agent_files(target_root):
        if path.is_symlink():
            _classify_symlink(path, Path(overlay_root), context, result)
        elif path.is_file():
            if is_tracked(path, target_root):
                result.tracked.append(path)
            else:
                result.untracked.append(path)

    return result


def _classify_symlink(
    path: Path,
    overlay_root: Path,
    context: MappingContext | None,
    result: AgentFileClassification,
) -> None:
    try:
        current = resolve_symlink_target(path)
    except OSError:
        result.stale_symlinks.append(path)
        return

    if not current.is_relative_to(overlay_root):
        result.stale_symlinks.append(path)
        return

    if context is None:
        return

    mapping = overlay_to_target(current, context)
    scope = mapping.scope if mapping else "project"
    expected = target_to_overlay(path.parent / INSTRUCTIONS_FILE, scope, context)
    if current != expected:
        result.outdated_symlinks.append(OutdatedSymlink(path, current, expected))


def agent_file_problems(classification: AgentFileClassification) -> bool:
    """True if the classification has any problems."""
    return bool(
        classification.tracked
        or classification.untracked
        or classification.stale_symlinks
        or classification.outdated_symlinks
    )


def format_agent_file_problems(classification: AgentFileClassification, cwd: Path) -> str:
    """Format every problem as one message with copy-paste fix commands.

    Paths are shown relative to cwd.
    """
    def rel(p: Path) -> str:
        return relative_path(cwd, p)

    sections = []

    if classification.tracked:
        commands = [f"  git rm --cached {rel(p)}" for p in classification.tracked]
        commands += [f"  clank add {rel(p)}" for p in classification.tracked]
        sections.append(
            "Found tracked agent files. Clank manages agent files via symlinks.\n\n"
            "To convert to clank management:\n" + "\n".join(commands)
        )

    if classification.untracked:
        commands = [f"  clank add {rel(p)}" for p in classification.untracked]
        sections.append(
            "Found untracked agent files.\n\n"
            "Add them to clank:\n" + "\n".join(commands)
        )

    if classification.stale_symlinks:
        commands = [f"  rm {rel(p)}" for p in classification.stale_symlinks]
        sections.append(
            "Found stale agent symlinks (not pointing to clank overlay).\n\n"
            "Remove them, then run `clank link` to recreate:\n" + "\n".join(commands)
        )

    if classification.outdated_symlinks:
        details = [
            f"  {rel(s.symlink_path)}\n"
            f"    points to: {s.current_target}\n"
            f"    expected:  {s.expected_target}"
            for s in classification.outdated_symlinks
        ]
        paths = " ".join(rel(s.symlink_path) for s in classification.outdated_symlinks)
        sections.append(
            "Found outdated agent symlinks (pointing to wrong overlay path).\n\n"
            "This typically happens after a directory rename. "
            "Remove symlinks and run `clank link`:\n"
            + "\n\n".join(details)
            + f"\n\nTo fix:\n  rm {paths}\n  clank link"
        )

    return "\n\n".join(sections)
