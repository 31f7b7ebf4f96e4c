"""List clank-managed files in a checkout."""

import os
from dataclasses import dataclass
from pathlib import Path

from .agents import AGENT_DIR_NAMES, AGENT_FILE_BY_NAME, AGENT_FILES, CLANK_DIR, MANAGED_AGENT_DIRS, PROMPTS_DIR
from .fsutil import is_symlink, resolve_symlink_target, walk_directory
from .mapper import MappingContext, get_prompt_rel_path, infer_scope, is_clank_path
from .scope import Scope
from .validation import ValidationError


@dataclass(frozen=True)
class FilesOptions:
    """Filters for `clank files`."""

    hidden: bool = False
    depth: int | None = None
    null: bool = False
    dedupe: bool = True
    linked_only: bool = False
    unlinked_only: bool = False
    scope_filter: Scope | None = None


@dataclass(frozen=True)
class Linked:
    """Entry is a symlink into the overlay."""

    overlay_path: Path
    scope: Scope
    kind = "linked"


@dataclass(frozen=True)
class Unlinked:
    """Entry is a real file or points elsewhere."""

    kind = "unlinked"


LinkState = Linked | Unlinked


@dataclass(frozen=True)
class FileEntry:
    absolute_path: Path
    cwd_relative_path: str
    target_relative_path: str
    link: LinkState


def parse_depth(raw: str | int | None) -> int | None:
    """Parse a --depth value.

    Raises:
        ValidationError: If the value is not a non-negative integer.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        depth = int(raw)
    except ValueError:
        raise ValidationError(f"Invalid --depth value: {raw}")
    if depth < 0:
        raise ValidationError(f"Invalid --depth value: {raw}")
    return depth


def resolve_scan_root(target_root: Path, cwd: Path, input_path: str | None = None) -> Path:
    """Directory to list, rejecting paths outside the checkout.

    Raises:
        ValidationError: If input_path escapes target_root.
    """
    if not input_path:
        return Path(target_root)
    resolved = Path(os.path.normpath(Path(cwd) / input_path))
    if not resolved.is_relative_to(target_root):
        raise ValidationError(f"Path is outside the git repository: {input_path}")
    return resolved


def is_agent_file_path(rel_path: str) -> bool:
    """True if the basename is an instruction alias (case-insensitive)."""
    base = rel_path.split("/")[-1].lower()
    return any(f.lower() == base for f in AGENT_FILES)


def is_in_directory(rel_path: str, dir_name: str) -> bool:
    """True if rel_path lies under a dir_name component (which may contain /)."""
    return rel_path.startswith(f"{dir_name}/") or f"/{dir_name}/" in rel_path


def _is_managed_target_path(rel_path: str, include_hidden: bool) -> bool:
    if is_agent_file_path(rel_path):
        return True
    if is_clank_path(rel_path):
        return True
    if include_hidden and any(is_in_directory(rel_path, d) for d in MANAGED_AGENT_DIRS):
        return True
    return False


def _passes_clank_depth(rel_path: str, depth: int | None) -> bool:
    """Limit the number of segments below the nearest clank component."""
    if depth is None or not is_clank_path(rel_path):
        return True
    parts = rel_path.split("/")
    last_clank = len(parts) - 1 - parts[::-1].index(CLANK_DIR, 1)
    return len(parts) - last_clank - 1 <= depth


def classify_link(path: Path, context: MappingContext) -> LinkState:
    """Linked (with scope) when path is a symlink into this checkout's overlay."""
    if not is_symlink(path):
        return Unlinked()
    try:
        overlay_path = resolve_symlink_target(path)
    except OSError:
        return Unlinked()
    if not overlay_path.is_relative_to(context.overlay_root):
        return Unlinked()
    scope = infer_scope(overlay_path, context)
    if scope is None:
        return Unlinked()
    return Linked(overlay_path, scope)


def _passes_link_filter(link: LinkState, opts: FilesOptions) -> bool:
    linked_only = opts.linked_only or opts.scope_filter is not None
    if linked_only and not isinstance(link, Linked):
        return False
    if opts.unlinked_only and not isinstance(link, Unlinked):
        return False
    if opts.scope_filter is None:
        return True
    return isinstance(link, Linked) and link.scope == opts.scope_filter


def collect_entries(
    context: MappingContext,
    scan_root: Path,
    cwd: Path,
    opts: FilesOptions,
) -> list[FileEntry]:
    """Walk scan_root and keep managed files that pass every filter."""
    entries = []
    for walk_entry in walk_directory(scan_root, include_hidden_dirs=opts.hidden):
        if walk_entry.is_directory:
            continue
        path = walk_entry.path
        target_rel = path.relative_to(context.target_root).as_posix()
        if not _is_managed_target_path(target_rel, opts.hidden):
            continue
        if not _passes_clank_depth(target_rel, opts.depth):
            continue

        link = classify_link(path, context)
        if not _passes_link_filter(link, opts):
            continue

        entries.append(
            FileEntry(
                absolute_path=path,
                cwd_relative_path=Path(os.path.relpath(path, cwd)).as_posix(),
                target_relative_path=target_rel,
                link=link,
            )
        )
    return entries


def _preference(preference: list[str], mapping: dict[str, str], defaults: list[str]) -> list[str]:
    order = [mapping[p.lower()] for p in preference if p.lower() in mapping]
    return order or defaults


def _first_by_path(entries: list[FileEntry]) -> FileEntry:
    return min(entries, key=lambda e: e.cwd_relative_path)


def _choose_agent_file(entries: list[FileEntry], preferred: list[str]) -> FileEntry:
    by_base = {e.target_relative_path.split("/")[-1].upper(): e for e in entries}
    for base in preferred:
        found = by_base.get(base.upper())
        if found:
            return found
    return _first_by_path(entries)


def _choose_prompt(entries: list[FileEntry], preferred_dirs: list[str]) -> FileEntry:
    by_dir = {}
    for e in entries:
        for agent_dir in MANAGED_AGENT_DIRS:
            if is_in_directory(e.target_relative_path, f"{agent_dir}/{PROMPTS_DIR}"):
                by_dir[agent_dir] = e
    for agent_dir in preferred_dirs:
        if agent_dir in by_dir:
            return by_dir[agent_dir]
    return _first_by_path(entries)


def dedupe_entries(entries: list[FileEntry], agents_preference: list[str]) -> list[FileEntry]:
    """Collapse fanned-out duplicates.

    Each directory keeps one instruction alias, by configured preference
    and then alphabetically. Each prompt keeps one tool directory copy the
    same way.
    """
    preferred_files = _preference(agents_preference, AGENT_FILE_BY_NAME, list(AGENT_FILES))
    agent_groups: dict[str, list[FileEntry]] = {}
    result = []
    for e in entries:
        if is_agent_file_path(e.target_relative_path):
            agent_groups.setdefault(os.path.dirname(e.target_relative_path), []).append(e)
        else:
            result.append(e)
    result.extend(_choose_agent_file(group, preferred_files) for group in agent_groups.values())

    dot_dirs = {name: f".{name}" for name in AGENT_DIR_NAMES}
    preferred_dirs = _preference(agents_preference, dot_dirs, list(MANAGED_AGENT_DIRS))
    prompt_groups: dict[str, list[FileEntry]] = {}
    deduped = []
    for e in result:
        prompt_rel = get_prompt_rel_path(e.target_relative_path)
        if prompt_rel is None:
            deduped.append(e)
        else:
            prompt_groups.setdefault(prompt_rel, []).append(e)
    deduped.extend(_choose_prompt(group, preferred_dirs) for group in prompt_groups.values())
    return deduped


def build_output(entries: list[FileEntry], dedupe: bool, agents_preference: list[str]) -> list[str]:
    """Sorted cwd-relative paths for the final listing."""
    if dedupe:
        entries = dedupe_entries(entries, agents_preference)
    return sorted(e.cwd_relative_path for e in entries)


def format_listing(paths: list[str], null: bool = False) -> str:
    """Join paths for stdout, NUL-separated for xargs -0."""
    if not paths:
        return ""
    sep = "\0" if null else "\n"
    return sep.join(paths) + sep
