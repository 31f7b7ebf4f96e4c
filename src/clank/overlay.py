"""Overlay repository setup and symlink reconciliation."""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from . import git
from .agents import CLANK_DIR, INSTRUCTIONS_FILE, PRIMARY_AGENT_DIR, PROMPTS_DIR
from .check import find_orphans, format_status_lines
from .classify import agent_file_problems, classify_agent_files, format_agent_file_problems
from .config import (
    DEFAULT_OVERLAY_REPO,
    create_default_config,
    find_config,
    get_config_dir,
    get_overlay_path,
    validate_overlay_exists,
)
from .exclude import add_git_excludes, remove_git_excludes
from .fsutil import create_symlink, ensure_dir, walk_directory
from .links import (
    create_agent_links,
    create_prompt_links,
    is_symlink_to_overlay,
    is_tracked_file,
    walk_overlay_files,
)
from .mapper import (
    INIT_DIR,
    MappingContext,
    add_scope_suffix,
    get_prompt_rel_path,
    overlay_global_dir,
    overlay_project_dir,
    overlay_to_target,
)
from .output import Output, get_output
from .scope import Scope
from .templates import initialize_worktree_overlay, is_worktree_initialized


class OverlayError(Exception):
    """Raised when overlay operations fail."""
    pass


@dataclass(frozen=True)
class FileMapping:
    """An overlay file and the target path it maps to."""

    overlay_path: Path
    target_path: Path
    scope: Scope


@dataclass
class LinkResult:
    """What one reconciliation pass did."""

    linked: list[tuple[Path, Scope]] = field(default_factory=list)
    agent_links: list[Path] = field(default_factory=list)
    skipped_tracked: list[Path] = field(default_factory=list)
    prompt_links: list[Path] = field(default_factory=list)
    missing_parent: list[FileMapping] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)


def make_context(config: dict[str, Any], cwd: Path | None = None) -> MappingContext:
    """Build the mapping context for the checkout containing cwd.

    Raises:
        git.GitError: If cwd is not inside a git repository.
    """
    git_context = git.get_git_context(cwd)
    return MappingContext(
        overlay_root=get_overlay_path(config),
        target_root=git_context.git_root,
        git_context=git_context,
    )


def collect_mappings(context: MappingContext, ignore_patterns: list[str]) -> list[FileMapping]:
    """Map every linkable file in global/ and targets/<project>/.

    The template area and other worktrees are left out.
    """
    global_dir = overlay_global_dir(context.overlay_root)
    project_dir = overlay_project_dir(context.overlay_root, context.git_context.project_name)

    mappings = []
    for directory, exclude_top in ((global_dir, (INIT_DIR,)), (project_dir, ())):
        if not directory.is_dir():
            continue
        for overlay_path in walk_overlay_files(directory, ignore_patterns, exclude_top=exclude_top):
            mapping = overlay_to_target(overlay_path, context)
            if mapping:
                mappings.append(FileMapping(overlay_path, mapping.target_path, mapping.scope))
    return mappings


def _is_agents_mapping(mapping: FileMapping) -> bool:
    return mapping.target_path.name == INSTRUCTIONS_FILE


def _is_prompt_mapping(mapping: FileMapping, target_root: Path) -> bool:
    return mapping.target_path.is_relative_to(Path(target_root) / PRIMARY_AGENT_DIR / PROMPTS_DIR)


def _required_parent(mapping: FileMapping, target_root: Path) -> Path | None:
    """Target directory that must already exist for a mapping to be linked.

    packages/foo/clank/notes.md needs packages/foo; packages/foo/agents.md
    needs packages/foo. Root level files need nothing.
    """
    parts = mapping.target_path.relative_to(target_root).parts
    if parts[-1] == INSTRUCTIONS_FILE:
        parents = parts[:-1]
    elif CLANK_DIR in parts[1:-1]:
        parents = parts[: parts.index(CLANK_DIR, 1)]
    else:
        return None
    return Path(target_root, *parents) if parents else None


def _resolve_links(target_path: Path, files: list[FileMapping]) -> list[tuple[FileMapping, Path]]:
    """Pick link paths, scope-suffixing every link when several scopes share a target."""
    if len(files) == 1:
        return [(files[0], target_path)]
    return [
        (m, target_path.parent / add_scope_suffix(target_path.name, m.scope))
        for m in files
    ]


def reconcile_links(
    context: MappingContext,
    agents: list[str],
    ignore_patterns: list[str],
    *,
    is_tracked: Callable[[Path, Path], bool] = git.is_tracked,
) -> LinkResult:
    """Create or repair every target symlink for the overlay.

    Only the target is modified. Existing untracked files and links at a
    link path are replaced; git-tracked files are left alone. A link that
    cannot be created is recorded in failed and the pass continues.

    Args:
        context: Mapping context for the checkout
        agents: Configured instruction aliases, e.g. ["agents", "claude"]
        ignore_patterns: Overlay paths to leave unlinked
        is_tracked: Tracked-by-git oracle

    Returns:
        LinkResult describing the links created and mappings skipped.
    """
    target_root = context.target_root
    result = LinkResult()

    usable = []
    for mapping in collect_mappings(context, ignore_patterns):
        parent = _required_parent(mapping, target_root)
        if parent is not None and not parent.is_dir():
            result.missing_parent.append(mapping)
        else:
            usable.append(mapping)

    by_target: dict[Path, list[FileMapping]] = {}
    for mapping in usable:
        if _is_agents_mapping(mapping):
            try:
                created, skipped = create_agent_links(
                    mapping.overlay_path,
                    mapping.target_path.parent,
                    agents,
                    target_root,
                    is_tracked,
                )
            except OSError as e:
                result.failed.append((mapping.target_path, e.strerror or str(e)))
                continue
            result.agent_links.extend(created)
            result.skipped_tracked.extend(skipped)
        elif _is_prompt_mapping(mapping, target_root):
            prompt_rel = get_prompt_rel_path(mapping.target_path)
            try:
                created = create_prompt_links(mapping.overlay_path, prompt_rel, target_root)
            except OSError as e:
                result.failed.append((mapping.target_path, e.strerror or str(e)))
                continue
            result.prompt_links.extend(created)
        else:
            by_target.setdefault(mapping.target_path, []).append(mapping)

    for target_path, files in by_target.items():
        for mapping, link_path in _resolve_links(target_path, files):
            if is_tracked_file(link_path, target_root, is_tracked):
                result.skipped_tracked.append(link_path)
                continue
            try:
                create_symlink(mapping.overlay_path, link_path)
            except OSError as e:
                result.failed.append((link_path, e.strerror or str(e)))
                continue
            result.linked.append((link_path, mapping.scope))

    return result


def link_overlay(
    config: dict[str, Any],
    target_dir: Path | None = None,
    *,
    cwd: Path | None = None,
    output: Output | None = None,
) -> int:
    """Link the overlay into a checkout.

    Args:
        config: Validated config dict.
        target_dir: Any directory in the checkout (default: cwd)
        cwd: Directory paths are displayed relative to
        output: Output handler

    Returns:
        Exit code (0 success, 2 linked with advisories)

    Raises:
        OverlayError: If instruction alias files block linking.
    """
    if output is None:
        output = get_output()
    if cwd is None:
        cwd = Path.cwd()

    context = make_context(config, target_dir or cwd)
    target_root = context.target_root
    git_context = context.git_context
    validate_overlay_exists(context.overlay_root)

    output.info(f"Linking clank overlay to: {output.path(str(target_root))}")
    suffix = " (worktree)" if git_context.is_worktree else ""
    output.info(f"Project: {git_context.project_name}")
    output.info(f"Branch: {git_context.worktree_name}{suffix}")

    classification = classify_agent_files(target_root, context.overlay_root)
    if agent_file_problems(classification):
        raise OverlayError(
            "Instruction files must be managed by clank before linking\n"
            + format_agent_file_problems(classification, cwd)
        )

    ensure_dir(overlay_project_dir(context.overlay_root, git_context.project_name))
    if not is_worktree_initialized(context.overlay_root, git_context):
        output.info(f"Initializing worktree {git_context.worktree_name} from templates...")
        initialize_worktree_overlay(context.overlay_root, git_context)

    ignore_patterns = config["ignore"]
    result = reconcile_links(context, config["agents"], ignore_patterns)
    _report_links(result, target_root, output)

    if add_git_excludes(target_root):
        output.info("Updated clank entries in .git/info/exclude")

    exit_code = 0
    if result.failed:
        output.warning(f"{len(result.failed)} link(s) could not be created:")
        for path, reason in result.failed:
            output.info(f"    {os.path.relpath(path, target_root)}: {reason}")
        exit_code = 2

    if result.missing_parent:
        output.warning(
            f"{len(result.missing_parent)} overlay file(s) skipped, target directory missing:"
        )
        for mapping in result.missing_parent:
            output.info(f"    {os.path.relpath(mapping.target_path, target_root)}")
        exit_code = 2

    orphans = find_orphans(
        context.overlay_root, target_root, git_context.project_name, ignore_patterns
    )
    if orphans:
        output.warning(f"{len(orphans)} orphaned overlay path(s) found.")
        exit_code = 2

    if exit_code:
        output.hint("Run 'clank check' for details.")
    else:
        output.success("Overlay linked.")
    return exit_code


def _report_links(result: LinkResult, target_root: Path, output: Output) -> None:
    def rel(p: Path) -> str:
        return os.path.relpath(p, target_root)

    if result.linked:
        output.header(f"Linked {len(result.linked)} file(s):")
        for path, scope in result.linked:
            label = "" if scope == "project" else f" ({scope})"
            output.created(f"{rel(path)}{label}")

    output.section("Created agent symlinks:", [rel(p) for p in result.agent_links])
    output.section("Skipped (already tracked in git):", [rel(p) for p in result.skipped_tracked])
    output.section("Created prompt symlinks:", [rel(p) for p in result.prompt_links])


def unlink_overlay(
    config: dict[str, Any],
    target_dir: Path | None = None,
    *,
    output: Output | None = None,
) -> int:
    """Remove every symlink into the overlay from a checkout.

    Returns:
        Number of symlinks removed.
    """
    if output is None:
        output = get_output()

    target_root = git.detect_git_root(target_dir or Path.cwd())
    overlay_root = get_overlay_path(config)

    output.info(f"Removing clank symlinks from: {output.path(str(target_root))}")
    if not overlay_root.exists():
        output.warning(f"Overlay repository not found at {overlay_root}")

    removed = 0
    for entry in walk_directory(target_root):
        if entry.is_directory:
            continue
        if is_symlink_to_overlay(entry.path, overlay_root):
            entry.path.unlink()
            output.removed(os.path.relpath(entry.path, target_root))
            removed += 1

    if remove_git_excludes(target_root):
        output.info("Removed clank entries from .git/info/exclude")

    if removed == 0:
        output.info("No clank symlinks found.")
    else:
        output.success(f"Removed {removed} symlink(s).")
    return removed


PLAN_TEMPLATE = "{{worktree_message}}\n\n# Goals\n"
NOTES_TEMPLATE = "# Notes\n\n"


def init_overlay(
    overlay_path: Path | None = None,
    config_path: Path | None = None,
    *,
    output: Output | None = None,
) -> bool:
    """Create a new overlay repository and default config.

    Args:
        overlay_path: Where to create the overlay (default ~/clankover)
        config_path: Config file to write when none exists yet
        output: Output handler

    Returns:
        False if an overlay already existed there.

    Raises:
        git.GitError: If the initial commit fails.
    """
    if output is None:
        output = get_output()

    overlay_repo = str(overlay_path) if overlay_path else DEFAULT_OVERLAY_REPO
    root = Path(os.path.expanduser(overlay_repo)).absolute()

    if (root / "global").is_dir() and (root / "targets").is_dir():
        output.info(f"Overlay repository already exists at {output.path(str(root))}")
        return False

    output.info(f"Initializing clank overlay repository at: {output.path(str(root))}")

    global_dir = overlay_global_dir(root)
    for directory in (
        global_dir / CLANK_DIR,
        global_dir / "claude" / "commands",
        global_dir / "claude" / "agents",
        root / "targets",
    ):
        ensure_dir(directory)

    init_clank = global_dir / INIT_DIR / CLANK_DIR
    ensure_dir(init_clank)
    (init_clank / "plan.md").write_text(PLAN_TEMPLATE)
    (init_clank / "notes.md").write_text(NOTES_TEMPLATE)
    output.created("global/init/clank/plan.md")
    output.created("global/init/clank/notes.md")

    if config_path is None:
        config_path = find_config() or get_config_dir() / "config.yaml"
    if not Path(config_path).exists():
        create_default_config(config_path, str(root) if overlay_path else DEFAULT_OVERLAY_REPO)
        output.info(f"Created config: {output.path(str(config_path))}")

    git.init(root)
    git.add_all(root)
    git.commit(root, "[clank] init")

    output.success("Overlay repository initialized.")
    output.info("")
    output.info("Next steps:")
    output.info("  1. cd to your project directory")
    output.info("  2. Run 'clank link' to connect your project")
    output.info("  3. Use 'clank add <file>' to add files")
    return True


def commit_overlay(
    config: dict[str, Any],
    message: str | None = None,
    *,
    output: Output | None = None,
) -> bool:
    """Stage and commit every change in the overlay.

    Returns:
        False if there was nothing to commit.

    Raises:
        git.GitError: If git fails.
    """
    if output is None:
        output = get_output()

    overlay_root = get_overlay_path(config)
    validate_overlay_exists(overlay_root)

    lines = git.status_porcelain(overlay_root)
    if not lines:
        output.info("Nothing to commit")
        return False

    full_message = f"[clank] {message or 'update'}"
    git.add_all(overlay_root)
    git.commit(overlay_root, full_message)

    output.success(f"Committed: {full_message}")
    for line in format_status_lines(lines):
        output.info(f"  {line}")
    return True
