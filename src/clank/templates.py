"""Worktree notes and plans created from templates in global/init/."""

import re
from pathlib import Path

from .fsutil import walk_directory
from .git import GitContext
from .mapper import INIT_DIR, overlay_global_dir, overlay_worktree_dir


def template_dir(overlay_root: Path) -> Path:
    """overlay/global/init"""
    return overlay_global_dir(overlay_root) / INIT_DIR


def is_worktree_initialized(overlay_root: Path, git_context: GitContext) -> bool:
    """True once the worktree's overlay directory exists."""
    return overlay_worktree_dir(overlay_root, git_context).exists()


def generate_template_vars(git_context: GitContext) -> dict[str, str]:
    """Variables available to templates as {{name}}."""
    return {
        "worktree_message": (
            f"This is git worktree {git_context.worktree_name} "
            f"of project {git_context.project_name}."
        ),
        "project_name": git_context.project_name,
        "branch_name": git_context.worktree_name,
    }


def apply_template(content: str, variables: dict[str, str]) -> str:
    """Replace {{name}} placeholders. Unknown names are left as is."""
    def replace(match: re.Match) -> str:
        return variables.get(match.group(1), match.group(0))

    return re.sub(r"\{\{(\w+)\}\}", replace, content)


def initialize_worktree_overlay(overlay_root: Path, git_context: GitContext) -> list[Path]:
    """Create the worktree's overlay directory from the template area.

    Each file under global/init/ is copied to the same relative path in
    targets/<project>/worktrees/<branch>/ with variables substituted.

    Returns:
        Overlay files created.
    """
    templates = template_dir(overlay_root)
    worktree_dir = overlay_worktree_dir(overlay_root, git_context)
    worktree_dir.mkdir(parents=True, exist_ok=True)

    if not templates.is_dir():
        return []

    variables = generate_template_vars(git_context)
    created = []
    for entry in walk_directory(templates):
        if entry.is_directory:
            continue
        dest = worktree_dir / entry.path.relative_to(templates)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(apply_template(entry.path.read_text(), variables))
        created.append(dest)
    return created
