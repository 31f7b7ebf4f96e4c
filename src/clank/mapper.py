"""Bidirectional mapping between target paths and overlay paths.

Overlay layout::

    overlay/global/clank/notes.md                       -> target/clank/notes.md
    overlay/global/claude/commands/build.md             -> target/.claude/commands/build.md
    overlay/targets/<project>/prompts/review.md         -> target/.claude/prompts/review.md
    overlay/targets/<project>/pkg/agents.md             -> target/pkg/agents.md
    overlay/targets/<project>/worktrees/<branch>/...    -> same, worktree scope

Everything here is pure path arithmetic: nothing touches the filesystem.
"""

import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from .agents import (
    AGENT_DIR_NAMES,
    AGENT_FILES,
    CLANK_DIR,
    INSTRUCTIONS_FILE,
    MANAGED_AGENT_DIRS,
    PRIMARY_AGENT_DIR,
    PROMPTS_DIR,
)
from .git import GitContext
from .scope import Scope

GLOBAL_DIR = "global"
TARGETS_DIR = "targets"
WORKTREES_DIR = "worktrees"
INIT_DIR = "init"


@dataclass(frozen=True)
class MappingContext:
    """Per-invocation mapping parameters."""

    overlay_root: Path
    target_root: Path
    git_context: GitContext


@dataclass(frozen=True)
class TargetMapping:
    """Result of mapping an overlay path into the target."""

    target_path: Path
    scope: Scope


def overlay_global_dir(overlay_root: Path) -> Path:
    """overlay/global"""
    return Path(overlay_root) / GLOBAL_DIR


def overlay_project_dir(overlay_root: Path, project_name: str) -> Path:
    """overlay/targets/<project>"""
    return Path(overlay_root) / TARGETS_DIR / project_name


def overlay_worktree_dir(overlay_root: Path, git_context: GitContext) -> Path:
    """overlay/targets/<project>/worktrees/<branch>"""
    return (
        overlay_project_dir(overlay_root, git_context.project_name)
        / WORKTREES_DIR
        / git_context.worktree_name
    )


def scope_base_dir(scope: Scope, context: MappingContext) -> Path:
    """Root of the overlay subtree that stores files for a scope."""
    if scope == "global":
        return overlay_global_dir(context.overlay_root)
    if scope == "worktree":
        return overlay_worktree_dir(context.overlay_root, context.git_context)
    return overlay_project_dir(context.overlay_root, context.git_context.project_name)


def overlay_to_target(overlay_path: Path, context: MappingContext) -> TargetMapping | None:
    """Map an overlay file to the target path it should be linked from.

    Args:
        overlay_path: Absolute path inside the overlay
        context: Mapping context for the current checkout

    Returns:
        TargetMapping, or None for paths that do not map into this target
        (template files, other projects, other worktrees, unknown layout).
    """
    overlay_path = Path(overlay_path)
    global_dir = overlay_global_dir(context.overlay_root)
    project_dir = overlay_project_dir(context.overlay_root, context.git_context.project_name)

    if overlay_path.is_relative_to(global_dir):
        rel = overlay_path.relative_to(global_dir)
        if rel.parts and rel.parts[0] == INIT_DIR:
            return None
        return _decode_overlay_path(rel, context.target_root, "global")

    if overlay_path.is_relative_to(project_dir):
        rel = overlay_path.relative_to(project_dir)
        if rel.parts and rel.parts[0] == WORKTREES_DIR:
            worktree_rel = Path(WORKTREES_DIR, context.git_context.worktree_name)
            if rel.is_relative_to(worktree_rel) and rel != worktree_rel:
                return _decode_overlay_path(
                    rel.relative_to(worktree_rel), context.target_root, "worktree"
                )
            return None
        return _decode_overlay_path(rel, context.target_root, "project")

    return None


def _decode_overlay_path(rel: Path, target_root: Path, scope: Scope) -> TargetMapping | None:
    """Decode a scope-relative overlay path into a target path."""
    parts = rel.parts
    if not parts:
        return None

    if parts[-1] == INSTRUCTIONS_FILE:
        return TargetMapping(Path(target_root) / rel, scope)

    if parts[0] == PROMPTS_DIR and len(parts) > 1:
        return TargetMapping(
            Path(target_root) / PRIMARY_AGENT_DIR / PROMPTS_DIR / Path(*parts[1:]), scope
        )

    if parts[0] in AGENT_DIR_NAMES and len(parts) > 1:
        return TargetMapping(Path(target_root) / f".{parts[0]}" / Path(*parts[1:]), scope)

    if CLANK_DIR in parts[:-1]:
        return TargetMapping(Path(target_root) / rel, scope)

    return None


def target_to_overlay(target_path: Path, scope: Scope, context: MappingContext) -> Path:
    """Map a target path to where its content is stored in the overlay.

    Total: every target path gets an overlay location. Plain files with no
    managed directory are placed under clank/.
    """
    base = scope_base_dir(scope, context)
    rel = Path(os.path.relpath(target_path, context.target_root))
    parts = rel.parts

    if parts and parts[-1] == INSTRUCTIONS_FILE:
        return base / rel

    if len(parts) > 2 and parts[0] in MANAGED_AGENT_DIRS and parts[1] == PROMPTS_DIR:
        return base / PROMPTS_DIR / Path(*parts[2:])

    if len(parts) > 1 and parts[0] in MANAGED_AGENT_DIRS:
        return base / parts[0][1:] / Path(*parts[1:])

    if CLANK_DIR in parts[:-1]:
        return base / rel

    return base / CLANK_DIR / rel


def normalize_add_path(input_path: str, cwd: Path, git_root: Path) -> Path:
    """Canonical absolute target path for a path typed by the user.

    Args:
        input_path: Path as given on the command line
        cwd: Directory the command runs in
        git_root: Root of the target checkout

    Returns:
        Absolute target path. Instruction aliases become agents.md, tool
        directory paths are anchored at git_root, and everything else lands
        in a clank/ directory next to the file.
    """
    cwd = Path(cwd)
    git_root = Path(git_root)

    normalized = input_path[2:] if input_path.startswith("./") else input_path
    normalized = PurePosixPath(normalized).as_posix()

    if is_agent_file(normalized):
        return _normalized(cwd / os.path.dirname(normalized) / INSTRUCTIONS_FILE)

    for agent_dir in MANAGED_AGENT_DIRS:
        if normalized.startswith(f"{agent_dir}/"):
            return _normalized(git_root / normalized)

    # Typing clank/x.md from inside a clank directory names the same directory
    prefix = f"{CLANK_DIR}/"
    rel_cwd = Path(os.path.relpath(cwd, git_root))
    if normalized.startswith(prefix) and CLANK_DIR in rel_cwd.parts:
        normalized = normalized[len(prefix):]

    resolved = _normalized(cwd / normalized)
    rel_parts = Path(os.path.relpath(resolved, git_root)).parts

    if rel_parts and rel_parts[0] in MANAGED_AGENT_DIRS:
        return resolved

    # Relative to git_root, so a checkout directory named clank is not a clank dir
    if CLANK_DIR in rel_parts[:-1]:
        return resolved
    return resolved.parent / CLANK_DIR / resolved.name


def _normalized(path: Path) -> Path:
    return Path(os.path.normpath(path))


def is_agent_file(filename: str | Path) -> bool:
    """True for agents.md and its aliases, case-insensitively."""
    name = PurePosixPath(filename).name.lower()
    return name in {n.lower() for n in AGENT_FILES} or name == INSTRUCTIONS_FILE


def is_prompt_file(path: str | Path) -> bool:
    """True if path lies in a tool directory's prompts/ subdirectory."""
    return get_prompt_rel_path(path) is not None


def get_prompt_rel_path(path: str | Path) -> str | None:
    """Path below <tool dir>/prompts/, or None if path is not a prompt."""
    parts = PurePosixPath(Path(path).as_posix()).parts
    for i in range(len(parts) - 2):
        if parts[i] in MANAGED_AGENT_DIRS and parts[i + 1] == PROMPTS_DIR:
            return PurePosixPath(*parts[i + 2:]).as_posix()
    return None


def add_scope_suffix(filename: str, scope: Scope) -> str:
    """Tag a filename with its scope: notes.md -> notes-worktree.md.

    Global files are never suffixed.
    """
    if scope == "global":
        return filename
    base, dot, ext = filename.rpartition(".")
    if not dot:
        return f"{filename}-{scope}"
    return f"{base}-{scope}.{ext}"


def is_clank_path(rel_path: str | Path) -> bool:
    """True if a relative path has a clank directory component."""
    parts = PurePosixPath(Path(rel_path).as_posix()).parts
    return CLANK_DIR in parts[:-1]


def infer_scope(overlay_path: Path, context: MappingContext) -> Scope | None:
    """Scope of an overlay path judged by its location only."""
    overlay_path = Path(overlay_path)
    if overlay_path.is_relative_to(overlay_global_dir(context.overlay_root)):
        return "global"
    if overlay_path.is_relative_to(overlay_worktree_dir(context.overlay_root, context.git_context)):
        return "worktree"
    project_dir = overlay_project_dir(context.overlay_root, context.git_context.project_name)
    if overlay_path.is_relative_to(project_dir):
        if overlay_path.relative_to(project_dir).parts[:1] == (WORKTREES_DIR,):
            return None
        return "project"
    return None
