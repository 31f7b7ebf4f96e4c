"""Git command wrapper."""

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path


class GitError(Exception):
    """Raised when git command fails."""
    pass


@dataclass(frozen=True)
class GitContext:
    """Project and worktree metadata for the current checkout."""

    project_name: str
    worktree_name: str
    is_worktree: bool
    git_root: Path


def run_git(repo_dir: Path, args: list[str]) -> subprocess.CompletedProcess:
    """Run a git command in a repository.

    Args:
        repo_dir: Path to the repository.
        args: Git command arguments (without 'git' prefix)

    Returns:
        CompletedProcess result

    Raises:
        GitError: If command fails
    """
    result = subprocess.run(
        ["git"] + args,
        cwd=repo_dir,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise GitError(result.stderr.strip() or f"Git command failed: {' '.join(args)}")
    return result


def _git_output(repo_dir: Path, args: list[str]) -> str | None:
    """Run a git query, returning stripped stdout or None on failure."""
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=repo_dir,
            capture_output=True,
            text=True,
        )
    except OSError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def get_git_context(cwd: Path | None = None) -> GitContext:
    """Collect project and worktree metadata for a checkout.

    Args:
        cwd: Any directory inside the checkout. Defaults to cwd.

    Returns:
        GitContext for the checkout.

    Raises:
        GitError: If cwd is not inside a git repository.
    """
    if cwd is None:
        cwd = Path.cwd()

    return GitContext(
        project_name=detect_project_name(cwd),
        worktree_name=detect_worktree_name(cwd),
        is_worktree=is_git_worktree(cwd),
        git_root=detect_git_root(cwd),
    )


def detect_git_root(cwd: Path) -> Path:
    """Get the top-level directory of the checkout.

    Raises:
        GitError: If not in a git repository.
    """
    toplevel = _git_output(cwd, ["rev-parse", "--show-toplevel"])
    if toplevel:
        return Path(toplevel)
    raise GitError("Not in a git repository")


def detect_project_name(cwd: Path) -> str:
    """Detect the project name from the origin remote or the repository directory.

    The remote is preferred since it is shared by every worktree of a clone.

    Raises:
        GitError: If not in a git repository.
    """
    remote_url = _git_output(cwd, ["config", "--get", "remote.origin.url"])
    if remote_url:
        repo_name = parse_repo_name(remote_url)
        if repo_name:
            return repo_name

    toplevel = _git_output(cwd, ["rev-parse", "--show-toplevel"])
    if toplevel:
        return Path(toplevel).name

    raise GitError("Not in a git repository")


def detect_worktree_name(cwd: Path) -> str:
    """Detect the branch name, or detached-<sha> for a detached HEAD.

    Raises:
        GitError: If neither can be determined.
    """
    branch = _git_output(cwd, ["branch", "--show-current"])
    if branch:
        return branch

    rev = _git_output(cwd, ["rev-parse", "--short", "HEAD"])
    if rev:
        return f"detached-{rev}"

    raise GitError("Could not determine branch/worktree name")


def is_git_worktree(cwd: Path) -> bool:
    """Check if cwd is in a linked worktree rather than the main checkout."""
    git_dir = _git_output(cwd, ["rev-parse", "--git-dir"])
    if not git_dir:
        return False
    return "/worktrees/" in Path(git_dir).as_posix()


def parse_repo_name(url: str) -> str | None:
    """Parse the repository name from a remote URL.

    Handles https://host/user/repo(.git), git@host:user/repo(.git) and
    plain paths.

    Args:
        url: Remote URL

    Returns:
        Repository name, or None for an empty URL.
    """
    url = url.strip()
    if url.endswith(".git"):
        url = url[:-4]
    url = url.rstrip("/")
    if not url:
        return None

    match = re.search(r"https?://[^/]+/(?:[^/]+/)?([\w.-]+)$", url)
    if match:
        return match.group(1)

    match = re.search(r":(?:[^/]+/)?([\w.-]+)$", url)
    if match:
        return match.group(1)

    return url.split("/")[-1] or None


def get_git_dir(cwd: Path) -> Path | None:
    """Get the .git directory of the current worktree."""
    git_dir = _git_output(cwd, ["rev-parse", "--git-dir"])
    if not git_dir:
        return None
    path = Path(git_dir)
    return path if path.is_absolute() else Path(cwd) / path


def get_git_common_dir(cwd: Path) -> Path | None:
    """Get the .git directory shared by all worktrees."""
    git_dir = _git_output(cwd, ["rev-parse", "--git-common-dir"])
    if not git_dir:
        return None
    path = Path(git_dir)
    return path if path.is_absolute() else Path(cwd) / path


def is_tracked(file_path: Path, repo_root: Path) -> bool:
    """Check if a file is tracked by git.

    Args:
        file_path: Absolute path to the file.
        repo_root: Root of the repository containing it.

    Returns:
        True if git knows the path.
    """
    try:
        rel_path = Path(file_path).relative_to(repo_root)
    except ValueError:
        return False
    result = subprocess.run(
        ["git", "ls-files", "--error-unmatch", "--", str(rel_path)],
        cwd=repo_root,
        capture_output=True,
        text=True,
    )
    return result.returncode == 0


def has_tracked_files(dir_path: str, repo_root: Path) -> bool:
    """Check if any tracked file lives under dir_path (relative to repo_root)."""
    output = _git_output(repo_root, ["ls-files", "--", dir_path])
    return bool(output)


def status_porcelain(repo_dir: Path) -> list[str]:
    """Get `git status --porcelain -uall` lines.

    Args:
        repo_dir: Path to the repository.

    Returns:
        Status lines in "XY path" form, empty when clean.

    Raises:
        GitError: If status fails.
    """
    result = run_git(repo_dir, ["status", "--porcelain", "-uall"])
    output = result.stdout.rstrip()
    if not output:
        return []
    return [line for line in output.split("\n") if line]


def add_all(repo_dir: Path) -> None:
    """Stage every change in the repository.

    Raises:
        GitError: If add fails.
    """
    run_git(repo_dir, ["add", "."])


def commit(repo_dir: Path, message: str) -> None:
    """Create a commit with the given message.

    Raises:
        GitError: If commit fails.
    """
    run_git(repo_dir, ["commit", "-m", message])


def init(repo_dir: Path) -> None:
    """Initialize a new repository.

    Raises:
        GitError: If init fails.
    """
    run_git(repo_dir, ["init"])
