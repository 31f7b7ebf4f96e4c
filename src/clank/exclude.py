"""Git exclude file management for clank.

Entries live in the common git dir's info/exclude, so one section covers
the main checkout and every linked worktree.
"""

from pathlib import Path

from .agents import AGENT_FILES, TARGET_MANAGED_DIRS
from .git import get_git_common_dir, get_git_dir, has_tracked_files, is_tracked

BEGIN_MARKER = "# Added by clank"
END_MARKER = "# End clank"


def get_exclude_path(root_dir: Path) -> Path | None:
    """Get path to the shared info/exclude file, or None outside git."""
    git_dir = get_git_common_dir(root_dir)
    if git_dir is None:
        return None
    return git_dir / "info" / "exclude"


def build_exclude_entries(target_root: Path) -> list[str]:
    """Entries clank should exclude in a checkout.

    Managed directories and root instruction files are excluded unless the
    repository already tracks them.
    """
    entries = []
    for directory in TARGET_MANAGED_DIRS:
        if not has_tracked_files(directory, target_root):
            entries.append(f"{directory}/")
    for agent_file in AGENT_FILES:
        if not is_tracked(target_root / agent_file, target_root):
            entries.append(agent_file)
    return entries


def add_git_excludes(target_root: Path) -> bool:
    """Rebuild the clank section of info/exclude.

    Args:
        target_root: Root of the checkout

    Returns:
        True if the exclude file was written.
    """
    exclude_path = get_exclude_path(target_root)
    if exclude_path is None:
        return False

    exclude_path.parent.mkdir(parents=True, exist_ok=True)

    existing_content = ""
    if exclude_path.exists():
        existing_content = exclude_path.read_text()

    new_content = _remove_managed_section(existing_content).rstrip()
    if new_content:
        new_content += "\n\n"
    new_content += _build_managed_section(build_exclude_entries(target_root))

    exclude_path.write_text(new_content)
    return True


def remove_git_excludes(target_root: Path) -> bool:
    """Remove the clank section from info/exclude.

    Linked worktrees share the main checkout's excludes, so nothing is
    removed from inside one.

    Returns:
        True if a section was removed.
    """
    git_dir = get_git_dir(target_root)
    common_dir = get_git_common_dir(target_root)
    if git_dir is None or common_dir is None:
        return False
    if git_dir.resolve() != common_dir.resolve():
        return False

    exclude_path = common_dir / "info" / "exclude"
    if not exclude_path.exists():
        return False

    existing_content = exclude_path.read_text()
    if BEGIN_MARKER not in existing_content:
        return False

    new_content = _remove_managed_section(existing_content).rstrip()
    if new_content:
        new_content += "\n"

    exclude_path.write_text(new_content)
    return True


def _remove_managed_section(content: str) -> str:
    lines = content.split("\n")
    result = []
    in_managed = False

    for line in lines:
        if line.strip() == BEGIN_MARKER:
            in_managed = True
            continue
        if line.strip() == END_MARKER:
            in_managed = False
            continue
        if not in_managed:
            result.append(line)

    return "\n".join(result)


def _build_managed_section(entries: list[str]) -> str:
    lines = [BEGIN_MARKER]
    lines.extend(entries)
    lines.append(END_MARKER)
    return "\n".join(lines) + "\n"
