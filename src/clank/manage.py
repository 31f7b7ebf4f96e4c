"""Add, remove and move files between the target and overlay scopes."""

import filecmp
import os
import shutil
from collections.abc import Callable
from pathlib import Path

from . import git
from .agents import INSTRUCTIONS_FILE, MANAGED_AGENT_DIRS, PROMPTS_DIR, agent_paths
from .config import validate_overlay_exists
from .fsutil import create_symlink, ensure_dir, file_exists, is_symlink, relative_path, resolve_symlink_target, walk_directory
from .links import create_agent_links, create_prompt_links, is_symlink_to_overlay, is_tracked_file
from .mapper import (
    MappingContext,
    add_scope_suffix,
    get_prompt_rel_path,
    is_agent_file,
    is_prompt_file,
    normalize_add_path,
    overlay_to_target,
    target_to_overlay,
)
from .output import Output, get_output
from .overlay import OverlayError
from .scope import Scope, scope_from_symlink, scope_label
from .validation import validate_within_root, validate_worktree_scope


def _bare_path(file_path: str, cwd: Path) -> Path:
    """The path exactly as the user typed it, made absolute."""
    return Path(os.path.normpath(Path(cwd) / file_path))


def _overlay_link(paths: list[Path], overlay_root: Path) -> Path | None:
    """First of paths that is a symlink into the overlay."""
    for path in paths:
        if is_symlink_to_overlay(path, overlay_root):
            return path
    return None


def _copy_into_overlay(source: Path, dest: Path) -> None:
    """Copy a file or symlink to dest, keeping symlinks as symlinks."""
    ensure_dir(dest.parent)
    if is_symlink(source):
        os.symlink(os.readlink(source), dest)
    else:
        shutil.copy2(source, dest)


def _same_content(a: Path, b: Path) -> bool:
    if is_symlink(a) or is_symlink(b):
        return is_symlink(a) and is_symlink(b) and os.readlink(a) == os.readlink(b)
    return filecmp.cmp(a, b, shallow=False)


def _link_path_for(target_path: Path, overlay_path: Path, scope: Scope, context: MappingContext) -> Path:
    """Where to link a regular file, suffixed when another scope owns the name."""
    if is_symlink_to_overlay(target_path, context.overlay_root):
        owner = scope_from_symlink(target_path, context)
        current = resolve_symlink_target(target_path)
        if owner and owner != scope and current != overlay_path:
            return target_path.parent / add_scope_suffix(target_path.name, scope)
    return target_path


def add_files(
    context: MappingContext,
    file_paths: list[str],
    scope: Scope,
    agents: list[str],
    *,
    cwd: Path | None = None,
    output: Output | None = None,
    is_tracked: Callable[[Path, Path], bool] = git.is_tracked,
) -> None:
    """Copy files into the overlay at scope and link them back.

    Directories are added file by file. Files that do not exist yet are
    created empty in the overlay.

    Raises:
        ValidationError: If scope is worktree outside a worktree, or a
            path is outside the repository.
        OverlayError: If a file is already linked from another scope.
    """
    if output is None:
        output = get_output()
    if cwd is None:
        cwd = Path.cwd()

    validate_overlay_exists(context.overlay_root)
    validate_worktree_scope(scope, context.git_context)

    for file_path in file_paths:
        input_path = _bare_path(file_path, cwd)
        if input_path.is_dir() and not input_path.is_symlink():
            for entry in walk_directory(input_path):
                if not entry.is_directory:
                    _add_single_file(
                        os.path.relpath(entry.path, cwd), context, scope, agents, cwd, output, is_tracked
                    )
        else:
            _add_single_file(file_path, context, scope, agents, cwd, output, is_tracked)


def _add_single_file(
    file_path: str,
    context: MappingContext,
    scope: Scope,
    agents: list[str],
    cwd: Path,
    output: Output,
    is_tracked: Callable[[Path, Path], bool],
) -> None:
    git_root = context.target_root
    normalized = normalize_add_path(file_path, cwd, git_root)
    validate_within_root(normalized, git_root)

    overlay_path = target_to_overlay(normalized, scope, context)
    bare_path = _bare_path(file_path, cwd)
    label = scope_label(scope, context.git_context.project_name)

    current_scope = scope_from_symlink(bare_path, context)
    if current_scope and current_scope != scope:
        name = relative_path(cwd, bare_path)
        raise OverlayError(
            f"{name} is already in {current_scope} overlay\n"
            f"To move it to {scope} scope, use: clank mv {name} --{scope}"
        )

    link_path = None
    if not is_agent_file(file_path) and not is_prompt_file(normalized):
        link_path = _link_path_for(normalized, overlay_path, scope, context)
        if is_tracked_file(link_path, git_root, is_tracked):
            name = relative_path(cwd, link_path)
            raise OverlayError(
                f"{name} is tracked by git\n"
                f"Untrack it first with: git rm --cached {name}"
            )

    if file_exists(overlay_path):
        output.info(f"{overlay_path.name} already exists in {label} overlay")
    elif is_symlink(bare_path) and not is_symlink_to_overlay(bare_path, context.overlay_root):
        _copy_into_overlay(bare_path, overlay_path)
        output.info(f"Copied symlink {bare_path.name} to {label} overlay")
    else:
        source = next(
            (p for p in (normalized, bare_path) if p.is_file() and not p.is_symlink()),
            None,
        )
        if source:
            _copy_into_overlay(source, overlay_path)
            output.info(f"Copied {overlay_path.name} to {label} overlay")
        else:
            ensure_dir(overlay_path.parent)
            overlay_path.write_text("")
            output.info(f"Created empty {overlay_path.name} in {label} overlay")

    if is_agent_file(file_path):
        created, skipped = create_agent_links(
            overlay_path, normalized.parent, agents, git_root, is_tracked
        )
        for path in created:
            output.created(relative_path(cwd, path))
        if skipped:
            names = ", ".join(p.name for p in skipped)
            output.info(f"Skipped (already tracked in git): {names}")
    elif is_prompt_file(normalized):
        for path in create_prompt_links(overlay_path, get_prompt_rel_path(normalized), git_root):
            output.created(relative_path(cwd, path))
    else:
        if is_symlink(normalized) and resolve_symlink_target(normalized) == overlay_path:
            output.info(f"Symlink already exists: {relative_path(cwd, normalized)}")
            return
        create_symlink(overlay_path, link_path)
        output.created(relative_path(cwd, link_path))


def _find_in_scopes(target_path: Path, context: MappingContext) -> list[Scope]:
    """Scopes whose overlay holds target_path."""
    return [
        scope
        for scope in ("worktree", "project", "global")
        if file_exists(target_to_overlay(target_path, scope, context))
    ]


def _resolve_removal(
    file_path: str,
    scope: Scope | None,
    context: MappingContext,
    cwd: Path,
) -> tuple[Path, Path, Path | None]:
    """Work out (target path, overlay path, existing link) for `clank rm`."""
    normalized = normalize_add_path(file_path, cwd, context.target_root)
    link = _overlay_link([_bare_path(file_path, cwd), normalized], context.overlay_root)

    if link is not None and (scope is None or scope_from_symlink(link, context) == scope):
        return normalized, resolve_symlink_target(link), link

    if scope is None:
        found = _find_in_scopes(normalized, context)
        if not found:
            raise OverlayError(
                f"Not found in overlay: {normalized.name}\n"
                "File does not exist in any scope (global, project, worktree)"
            )
        if len(found) > 1:
            raise OverlayError(
                f"File exists in multiple scopes: {', '.join(found)}\n"
                "Specify --global, --project, or --worktree"
            )
        scope = found[0]

    return normalized, target_to_overlay(normalized, scope, context), None


def remove_files(
    context: MappingContext,
    file_paths: list[str],
    scope: Scope | None,
    agents: list[str],
    *,
    cwd: Path | None = None,
    output: Output | None = None,
) -> None:
    """Remove files from the overlay along with their target links.

    Args:
        context: Mapping context for the checkout
        file_paths: Paths as typed by the user
        scope: Scope to remove from; None infers it from the link or from
            the single scope holding the file
        agents: Configured instruction aliases
        cwd: Directory the paths are relative to
        output: Output handler

    Raises:
        OverlayError: If a file is not in the overlay, is in several scopes,
            or a real file sits where its link should be.
    """
    if output is None:
        output = get_output()
    if cwd is None:
        cwd = Path.cwd()

    validate_overlay_exists(context.overlay_root)

    overlay_root = context.overlay_root
    for file_path in file_paths:
        normalized, overlay_path, link = _resolve_removal(file_path, scope, context, cwd)

        if not file_exists(overlay_path):
            raise OverlayError(f"Not found in overlay: {relative_path(cwd, normalized)}")

        if overlay_path.name == INSTRUCTIONS_FILE:
            links = [
                p for p in agent_paths(normalized.parent, agents)
                if is_symlink_to_overlay(p, overlay_root)
            ]
        elif is_prompt_file(normalized):
            prompt_rel = get_prompt_rel_path(normalized)
            links = [
                p for p in (context.target_root / d / PROMPTS_DIR / prompt_rel for d in MANAGED_AGENT_DIRS)
                if is_symlink_to_overlay(p, overlay_root)
            ]
        else:
            link_path = link or normalized
            if file_exists(link_path) and not is_symlink_to_overlay(link_path, overlay_root):
                raise OverlayError(
                    f"File exists but is not managed by clank: {relative_path(cwd, link_path)}\n"
                    "Cannot remove a file that is not a symlink to the overlay"
                )
            links = [link_path] if file_exists(link_path) else []

        for path in links:
            path.unlink()
            output.removed(relative_path(cwd, path))

        overlay_path.unlink()
        output.info(f"Removed from overlay: {overlay_path.relative_to(overlay_root)}")


def move_files(
    context: MappingContext,
    file_paths: list[str],
    target_scope: Scope,
    agents: list[str],
    *,
    cwd: Path | None = None,
    output: Output | None = None,
    is_tracked: Callable[[Path, Path], bool] = git.is_tracked,
) -> None:
    """Move linked files to another scope.

    Each file is copied to the new scope, verified, relinked, and only then
    deleted from the old scope.

    Raises:
        OverlayError: If a file is not linked into the overlay or the
            destination already exists.
    """
    if output is None:
        output = get_output()
    if cwd is None:
        cwd = Path.cwd()

    validate_overlay_exists(context.overlay_root)
    validate_worktree_scope(target_scope, context.git_context)
    for file_path in file_paths:
        _move_single_file(file_path, context, target_scope, agents, cwd, output, is_tracked)


def _move_single_file(
    file_path: str,
    context: MappingContext,
    target_scope: Scope,
    agents: list[str],
    cwd: Path,
    output: Output,
    is_tracked: Callable[[Path, Path], bool],
) -> None:
    overlay_root = context.overlay_root
    bare_path = _bare_path(file_path, cwd)
    normalized = normalize_add_path(file_path, cwd, context.target_root)
    name = relative_path(cwd, bare_path)

    link = _overlay_link([bare_path, normalized], overlay_root)
    mapping = overlay_to_target(resolve_symlink_target(link), context) if link else None
    if link is None or mapping is None:
        raise OverlayError(
            f"{name} is not managed by clank\n"
            "Use 'clank add' to add it to the overlay first"
        )

    if mapping.scope == target_scope:
        output.info(f"{bare_path.name} is already in {target_scope} scope, nothing to do.")
        return

    current_overlay = resolve_symlink_target(link)
    new_overlay = target_to_overlay(mapping.target_path, target_scope, context)
    if file_exists(new_overlay):
        label = scope_label(target_scope, context.git_context.project_name)
        raise OverlayError(
            f"{name} already exists in {label} overlay\n"
            f"Remove it first with: clank rm {name} --{target_scope}"
        )

    _copy_into_overlay(current_overlay, new_overlay)
    if not _same_content(current_overlay, new_overlay):
        new_overlay.unlink()
        raise OverlayError(f"Copy of {name} to {target_scope} overlay did not match, nothing moved")

    target_path = mapping.target_path
    if target_path.name == INSTRUCTIONS_FILE:
        updated, _ = create_agent_links(
            new_overlay, target_path.parent, agents, context.target_root, is_tracked
        )
    elif is_prompt_file(target_path):
        updated = create_prompt_links(new_overlay, get_prompt_rel_path(target_path), context.target_root)
    else:
        link.unlink()
        link_path = _link_path_for(target_path, new_overlay, target_scope, context)
        create_symlink(new_overlay, link_path)
        updated = [link_path]

    current_overlay.unlink()

    for path in updated:
        output.created(relative_path(cwd, path))
    output.info(f"Moved {name} from {mapping.scope} to {target_scope} overlay")
