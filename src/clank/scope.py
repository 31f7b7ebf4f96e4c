"""Overlay scopes: global, project and worktree."""

from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .mapper import MappingContext

Scope = Literal["global", "project", "worktree"]

SCOPES: tuple[Scope, ...] = ("global", "project", "worktree")

# Passed as the default to make a scope flag mandatory
REQUIRE = "require"


class ScopeError(Exception):
    """Raised when a scope is required but none was given."""
    pass


def resolve_scope_from_flags(
    *,
    global_: bool = False,
    project: bool = False,
    worktree: bool = False,
    default: Scope | str = "project",
) -> Scope:
    """Resolve the scope selected by command-line flags.

    At most one flag may be set; callers reject combinations first
    (see validation.validate_scope_flags).

    Args:
        global_: --global was given
        project: --project was given
        worktree: --worktree was given
        default: Scope to use when no flag is set, or REQUIRE to fail

    Returns:
        The selected scope.

    Raises:
        ScopeError: If no flag is set and default is REQUIRE.
    """
    if global_:
        return "global"
    if project:
        return "project"
    if worktree:
        return "worktree"

    if default == REQUIRE:
        raise ScopeError("Must specify target scope: --global, --project, or --worktree")
    return default


def scope_from_symlink(target_path: Path, context: "MappingContext") -> Scope | None:
    """Infer the scope of a target path from the overlay file it links to.

    Returns None when the path is not a symlink, points outside the overlay,
    or points at an overlay path with no mapping in this context.
    """
    from .fsutil import resolve_symlink_target
    from .mapper import overlay_to_target

    target_path = Path(target_path)
    if not target_path.is_symlink():
        return None

    try:
        overlay_path = resolve_symlink_target(target_path)
    except OSError:
        return None
    if not overlay_path.is_relative_to(context.overlay_root):
        return None

    mapping = overlay_to_target(overlay_path, context)
    return mapping.scope if mapping else None


def scope_label(scope: Scope, project_name: str) -> str:
    """Human readable overlay label, e.g. 'my-project worktree'."""
    if scope == "global":
        return "global"
    return f"{project_name} {scope}"
