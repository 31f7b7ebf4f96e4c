"""Tests for worktree templates."""

from clank.templates import (
    apply_template,
    generate_template_vars,
    initialize_worktree_overlay,
    is_worktree_initialized,
)

from conftest import write


class TestApplyTemplate:
    """Tests for apply_template function."""

    def test_substitutes_known_names(self):
        assert apply_template("on {{branch_name}}", {"branch_name": "feature"}) == "on feature"

    def test_leaves_unknown_names(self):
        assert apply_template("{{nope}} {{branch_name}}", {"branch_name": "b"}) == "{{nope}} b"


class TestGenerateTemplateVars:
    """Tests for generate_template_vars function."""

    def test_vars(self, worktree_context):
        variables = generate_template_vars(worktree_context.git_context)

        assert variables["project_name"] == "my-project"
        assert variables["branch_name"] == "feature"
        assert variables["worktree_message"] == "This is git worktree feature of project my-project."


class TestInitializeWorktreeOverlay:
    """Tests for initialize_worktree_overlay function."""

    def test_copies_templates_with_substitution(self, overlay, worktree_context):
        write(overlay / "global" / "init" / "clank" / "notes.md", "# {{branch_name}}\n{{worktree_message}}\n")
        write(overlay / "global" / "init" / "clank" / "plan.md", "plan for {{project_name}}\n")
        git_context = worktree_context.git_context

        assert not is_worktree_initialized(overlay, git_context)
        created = initialize_worktree_overlay(overlay, git_context)

        worktree_dir = overlay / "targets" / "my-project" / "worktrees" / "feature"
        assert sorted(created) == [worktree_dir / "clank" / "notes.md", worktree_dir / "clank" / "plan.md"]
        assert (worktree_dir / "clank" / "notes.md").read_text() == (
            "# feature\nThis is git worktree feature of project my-project.\n"
        )
        assert (worktree_dir / "clank" / "plan.md").read_text() == "plan for my-project\n"
        assert is_worktree_initialized(overlay, git_context)

    def test_without_templates_creates_empty_dir(self, overlay, context):
        created = initialize_worktree_overlay(overlay, context.git_context)

        assert created == []
        assert (overlay / "targets" / "my-project" / "worktrees" / "main").is_dir()
