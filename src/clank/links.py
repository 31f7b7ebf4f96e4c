"""Symlink inspection and creation between the target and the overlay."""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from .agents import AGENT_FILES, INSTRUCTIONS_FILE, MANAGED_AGENT_DIRS, PROMPTS_DIR, agent_paths
from .fsutil import create_symlink, file_exists, is_symlink, resolve_symlink_target, walk_directory
from .ignore import should_ignore
from .mapper import MappingContext, add_scope_suffix, get_prompt_rel_path, overlay_to_target


@dataclass(frozen=True)
class Valid:
    """Symlink into the overlay at the expected place."""

    kind = "valid"


@dataclass(frozen=True)
class Unadded:
    """Real file (or nothing) where a link is expected."""

    kind = "unadded"


@dataclass(frozen=True)
class OutsideOverlay:
    """Symlink pointing somewhere other than the overlay."""

    current_target: Path
    kind = "outside-overlay"


@dataclass(frozen=True)
class WrongMapping:
    """Symlink into the overlay whose target maps to a different path."""

    current_target: Path
    expected_target: Path | None
    kind = "wrong-mapping"


ManagedFileState = Valid | Unadded | OutsideOverlay | WrongMapping


def verify_managed(link_path: Path, context: MappingContext) -> ManagedFileState:
    """Classify a target path that clank should be managing.

    A link is valid when the overlay file it points to maps back to the
    link itself. The mapped path may also differ from the link by the
    prompt tool directory, by a scope suffix, or (for instruction aliases)
    by naming agents.md in the same directory.
    """
    link_path = Path(link_path)
    if not is_symlink(link_path):
        return Unadded()

    try:
        current = resolve_symlink_target(link_path)
    except OSError:
        return Unadded()

    if not current.is_relative_to(context.overlay_root):
        return OutsideOverlay(current)

    mapping = overlay_to_target(current, context)
    if mapping is None:
        return WrongMapping(current, None)

    expected = mapping.target_path
    if expected == link_path:
        return Valid()
    if _matching_prompt_path(expected, link_path):
        return Valid()
    if expected.parent == link_path.parent:
        if link_path.name == add_scope_suffix(expected.name, mapping.scope):
            return Valid()
        if expected.name == INSTRUCTIONS_FILE and link_path.name in AGENT_FILES:
            return Valid()

    return WrongMapping(current, expected)


def _matching_prompt_path(canonical: Path, actual: Path) -> bool:
    """True if both paths are the same prompt under different tool directories."""
    canonical_rel = get_prompt_rel_path(canonical)
    return canonical_rel is not None and canonical_rel == get_prompt_rel_path(actual)


def is_symlink_to_overlay(link_path: Path, overlay_root: Path) -> bool:
    """Check if a path is a symlink pointing into the overlay."""
    if not is_symlink(link_path):
        return False
    try:
        return resolve_symlink_target(link_path).is_relative_to(overlay_root)
    except OSError:
        return False


def walk_overlay_files(
    directory: Path,
    ignore_patterns: list[str] | None = None,
    *,
    exclude_top: tuple[str, ...] = (),
) -> Iterator[Path]:
    """Yield every overlay file below directory that may be linked.

    Args:
        directory: Overlay subtree to walk
        ignore_patterns: Config ignore patterns, matched against the path
            relative to directory
        exclude_top: Top-level directory names to leave out entirely
    """
    patterns = ignore_patterns or []

    def skip(rel: str) -> bool:
        if rel.split("/", 1)[0] in exclude_top:
            return True
        return should_ignore(rel, patterns)

    for entry in walk_directory(directory, skip=skip):
        if not entry.is_directory:
            yield entry.path


def create_prompt_links(overlay_path: Path, prompt_rel_path: str, target_root: Path) -> list[Path]:
    """Link one overlay prompt into every tool's prompts directory.

    Returns:
        The created link paths.
    """
    created = []
    for agent_dir in MANAGED_AGENT_DIRS:
        link_path = Path(target_root) / agent_dir / PROMPTS_DIR / prompt_rel_path
        create_symlink(overlay_path, link_path)
        created.append(link_path)
    return created


def is_tracked_file(path: Path, git_root: Path, is_tracked: Callable[[Path, Path], bool]) -> bool:
    """A real file (not a symlink) that git tracks."""
    if not file_exists(path) or is_symlink(path):
        return False
    return is_tracked(path, git_root)


def create_agent_links(
    overlay_path: Path,
    target_dir: Path,
    agents: list[str],
    git_root: Path,
    is_tracked: Callable[[Path, Path], bool],
) -> tuple[list[Path], list[Path]]:
    """Link each configured instruction alias in target_dir to an agents.md.

    Aliases that are real files tracked by git are left alone.

    Returns:
        (created, skipped) link paths.
    """
    created = []
    skipped = []
    for alias in agent_paths(Path(target_dir), agents):
        if is_tracked_file(alias, git_root, is_tracked):
            skipped.append(alias)
            continue
        create_symlink(overlay_path, alias)
        created.append(alias)
    return created, skipped
