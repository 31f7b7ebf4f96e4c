"""Filesystem helpers: walking, symlinks and existence checks."""

import os
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import NamedTuple

DEFAULT_SKIP_DIRS = (".git", "node_modules")


class WalkEntry(NamedTuple):
    """A file or directory yielded by walk_directory."""

    path: Path
    is_directory: bool


def walk_directory(
    directory: Path,
    *,
    skip_dirs: tuple[str, ...] | list[str] = DEFAULT_SKIP_DIRS,
    include_hidden_dirs: bool = True,
    skip: Callable[[str], bool] | None = None,
) -> Iterator[WalkEntry]:
    """Walk a directory depth-first, yielding files and directories lazily.

    Symlinks are yielded as files and never followed. Directories that
    cannot be read are treated as empty.

    Args:
        directory: Directory to walk
        skip_dirs: Directory names never descended into
        include_hidden_dirs: Descend into dot-prefixed directories
        skip: Optional predicate on the posix path relative to directory;
            matching entries are neither yielded nor descended into

    Yields:
        WalkEntry for each file and directory, parents before children.
    """
    root = Path(directory)
    yield from _walk(root, root, tuple(skip_dirs), include_hidden_dirs, skip)


def _walk(
    root: Path,
    current: Path,
    skip_dirs: tuple[str, ...],
    include_hidden_dirs: bool,
    skip: Callable[[str], bool] | None,
) -> Iterator[WalkEntry]:
    try:
        with os.scandir(current) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError:
        return

    for entry in entries:
        if entry.name in skip_dirs:
            continue

        path = current / entry.name
        if skip and skip(path.relative_to(root).as_posix()):
            continue

        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue

        if is_dir:
            if not include_hidden_dirs and entry.name.startswith("."):
                continue
            yield WalkEntry(path, True)
            yield from _walk(root, path, skip_dirs, include_hidden_dirs, skip)
        else:
            yield WalkEntry(path, False)


def file_exists(path: Path) -> bool:
    """True if anything exists at path, including a dangling symlink."""
    return os.path.lexists(path)


def is_symlink(path: Path) -> bool:
    """True if path is a symlink (dangling or not)."""
    return Path(path).is_symlink()


def resolve_symlink_target(link_path: Path) -> Path:
    """Resolve a symlink's target to an absolute path, one level deep.

    Relative targets are joined to the link's directory and normalized.
    The target itself is not required to exist.

    Raises:
        OSError: If link_path is not a symlink.
    """
    link_path = Path(link_path)
    target = os.readlink(link_path)
    if not os.path.isabs(target):
        target = os.path.join(link_path.parent, target)
    return Path(os.path.normpath(target))


def ensure_dir(path: Path) -> None:
    """Create a directory and its parents if missing."""
    Path(path).mkdir(parents=True, exist_ok=True)


def create_symlink(target: Path, link_path: Path) -> None:
    """Create a symlink at link_path pointing to target.

    Parent directories are created as needed. An existing file or symlink
    at link_path is replaced.

    Args:
        target: Absolute path the link points to
        link_path: Location of the link itself
    """
    link_path = Path(link_path)
    ensure_dir(link_path.parent)
    if link_path.is_symlink() or link_path.is_file():
        link_path.unlink()
    link_path.symlink_to(target)


def relative_path(cwd: Path, path: Path) -> str:
    """Path relative to cwd for display, or '.' for cwd itself."""
    return os.path.relpath(path, cwd)
