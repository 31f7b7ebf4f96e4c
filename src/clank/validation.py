"""Argument and path validation for clank commands."""

from pathlib import Path

from .git import GitContext


class ValidationError(Exception):
    """Raised when command arguments fail validation."""
    pass


def validate_scope_flags(*, global_: bool = False, project: bool = False, worktree: bool = False) -> None:
    """Reject more than one scope flag.

    Raises:
        ValidationError: If several flags are set.
    """
    selected = [
        name
        for name, flag in (("--global", global_), ("--project", project), ("--worktree", worktree))
        if flag
    ]
    if len(selected) > 1:
        raise ValidationError(f"Conflicting scope flags: {', '.join(selected)}")


def validate_within_root(path: Path, root: Path) -> None:
    """Ensure path lies inside the repository.

    Raises:
        ValidationError: If path escapes root.
    """
    if not Path(path).is_relative_to(root):
        raise ValidationError(f"Path is outside the repository: {path}")


def validate_worktree_scope(scope: str, git_context: GitContext) -> None:
    """Worktree scope only makes sense inside a linked worktree.

    Raises:
        ValidationError: If scope is worktree and the checkout is the main one.
    """
    if scope == "worktree" and not git_context.is_worktree:
        raise ValidationError(
            "--worktree requires a git worktree\n"
            "Use --project to share the file with every checkout of this project"
        )
