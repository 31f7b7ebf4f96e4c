"""Tests for validation module."""

from pathlib import Path

import pytest

from clank.git import GitContext
from clank.validation import (
    ValidationError,
    validate_scope_flags,
    validate_within_root,
    validate_worktree_scope,
)


class TestValidateScopeFlags:
    """Tests for validate_scope_flags function."""

    def test_single_flag(self):
        validate_scope_flags(global_=True)
        validate_scope_flags(worktree=True)
        validate_scope_flags()

    def test_conflicting_flags(self):
        with pytest.raises(ValidationError, match="Conflicting scope flags: --global, --project"):
            validate_scope_flags(global_=True, project=True)


class TestValidateWithinRoot:
    """Tests for validate_within_root function."""

    def test_inside(self):
        validate_within_root(Path("/repo/clank/notes.md"), Path("/repo"))

    def test_outside(self):
        with pytest.raises(ValidationError, match="outside the repository"):
            validate_within_root(Path("/other/notes.md"), Path("/repo"))


class TestValidateWorktreeScope:
    """Tests for validate_worktree_scope function."""

    def test_worktree_in_main_checkout(self):
        context = GitContext("proj", "main", False, Path("/repo"))
        with pytest.raises(ValidationError, match="--worktree requires a git worktree"):
            validate_worktree_scope("worktree", context)

    def test_worktree_in_linked_worktree(self):
        validate_worktree_scope("worktree", GitContext("proj", "feat", True, Path("/wt")))

    def test_other_scopes_always_allowed(self):
        context = GitContext("proj", "main", False, Path("/repo"))
        validate_worktree_scope("project", context)
        validate_worktree_scope("global", context)
