"""Test fixtures for clank."""

import subprocess

import pytest
import yaml

from clank.config import validate_config
from clank.git import GitContext
from clank.mapper import MappingContext

PROJECT = "my-project"


def git(cwd, *args):
    """Run git in cwd, failing the test on error."""
    return subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep config lookups and commit identities inside the test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@test.com")
    monkeypatch.delenv("NO_COLOR", raising=False)


@pytest.fixture
def target_repo(tmp_path):
    """Git repo acting as the target project, on branch main."""
    repo = tmp_path / PROJECT
    repo.mkdir()
    git(repo, "init", "-b", "main")
    git(repo, "remote", "add", "origin", f"https://github.com/test/{PROJECT}.git")
    (repo / "README.md").write_text("# My project\n")
    git(repo, "add", ".")
    git(repo, "commit", "-m", "initial")
    return repo


@pytest.fixture
def worktree_repo(target_repo, tmp_path):
    """Linked worktree of target_repo on branch feature."""
    path = tmp_path / "my-project-feature"
    git(target_repo, "worktree", "add", "-b", "feature", str(path))
    return path


@pytest.fixture
def overlay(tmp_path):
    """Empty overlay repository with global/ and targets/."""
    root = tmp_path / "overlay"
    (root / "global").mkdir(parents=True)
    (root / "targets").mkdir()
    git(root, "init", "-b", "main")
    return root


@pytest.fixture
def config(overlay):
    """Validated config pointing at the overlay fixture."""
    return validate_config({"version": 1, "overlay_repo": str(overlay)})


@pytest.fixture
def config_file(tmp_path, overlay):
    """Config file on disk pointing at the overlay fixture."""
    path = tmp_path / "clank.yaml"
    path.write_text(yaml.safe_dump({"version": 1, "overlay_repo": str(overlay)}))
    return path


@pytest.fixture
def context(target_repo, overlay):
    """Mapping context for the main checkout of target_repo."""
    return MappingContext(
        overlay_root=overlay,
        target_root=target_repo,
        git_context=GitContext(
            project_name=PROJECT,
            worktree_name="main",
            is_worktree=False,
            git_root=target_repo,
        ),
    )


@pytest.fixture
def worktree_context(worktree_repo, overlay):
    """Mapping context for the feature worktree."""
    return MappingContext(
        overlay_root=overlay,
        target_root=worktree_repo,
        git_context=GitContext(
            project_name=PROJECT,
            worktree_name="feature",
            is_worktree=True,
            git_root=worktree_repo,
        ),
    )


def write(path, content=""):
    """Create a file and its parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path
