"""Tests for link verification and creation."""

from clank.links import (
    OutsideOverlay,
    Unadded,
    Valid,
    WrongMapping,
    create_agent_links,
    create_prompt_links,
    is_symlink_to_overlay,
    verify_managed,
    walk_overlay_files,
)

from conftest import write


def never_tracked(path, root):
    return False


def link(link_path, target):
    link_path.parent.mkdir(parents=True, exist_ok=True)
    link_path.symlink_to(target)
    return link_path


class TestVerifyManaged:
    """Tests for verify_managed."""

    def test_real_file_is_unadded(self, context):
        path = write(context.target_root / "clank" / "notes.md")
        assert verify_managed(path, context) == Unadded()

    def test_link_outside_overlay(self, context, tmp_path):
        other = write(tmp_path / "elsewhere.md")
        path = link(context.target_root / "clank" / "notes.md", other)

        state = verify_managed(path, context)
        assert isinstance(state, OutsideOverlay)
        assert state.current_target == other
        assert state.kind == "outside-overlay"

    def test_valid_link(self, context):
        overlay_file = write(context.overlay_root / "global" / "clank" / "notes.md")
        path = link(context.target_root / "clank" / "notes.md", overlay_file)

        assert verify_managed(path, context) == Valid()

    def test_scope_suffixed_link_is_valid(self, context):
        overlay_file = write(
            context.overlay_root / "targets" / "my-project" / "worktrees" / "main" / "clank" / "notes.md"
        )
        path = link(context.target_root / "clank" / "notes-worktree.md", overlay_file)

        assert verify_managed(path, context) == Valid()

    def test_wrong_mapping(self, context):
        overlay_file = write(context.overlay_root / "global" / "clank" / "notes.md")
        path = link(context.target_root / "clank" / "other.md", overlay_file)

        state = verify_managed(path, context)
        assert state == WrongMapping(overlay_file, context.target_root / "clank" / "notes.md")

    def test_alias_of_agents_md_is_valid(self, context):
        overlay_file = write(context.overlay_root / "targets" / "my-project" / "agents.md")
        path = link(context.target_root / "CLAUDE.md", overlay_file)

        assert verify_managed(path, context) == Valid()

    def test_prompt_in_other_tool_dir_is_valid(self, context):
        overlay_file = write(context.overlay_root / "global" / "prompts" / "review.md")
        path = link(context.target_root / ".gemini" / "prompts" / "review.md", overlay_file)

        assert verify_managed(path, context) == Valid()

    def test_link_to_template_has_no_mapping(self, context):
        overlay_file = write(context.overlay_root / "global" / "init" / "clank" / "plan.md")
        path = link(context.target_root / "clank" / "plan.md", overlay_file)

        assert verify_managed(path, context) == WrongMapping(overlay_file, None)


class TestIsSymlinkToOverlay:
    """Tests for is_symlink_to_overlay."""

    def test_link_into_overlay(self, context):
        overlay_file = write(context.overlay_root / "global" / "clank" / "notes.md")
        path = link(context.target_root / "notes.md", overlay_file)
        assert is_symlink_to_overlay(path, context.overlay_root)

    def test_real_file(self, context):
        assert not is_symlink_to_overlay(context.target_root / "README.md", context.overlay_root)


class TestCreateLinks:
    """Tests for agent and prompt fan-out."""

    def test_agent_links_for_each_alias(self, context):
        overlay_file = write(context.overlay_root / "targets" / "my-project" / "agents.md", "rules")

        created, skipped = create_agent_links(
            overlay_file, context.target_root, ["agents", "claude", "gemini"], context.target_root, never_tracked
        )

        assert [p.name for p in created] == ["AGENTS.md", "CLAUDE.md", "GEMINI.md"]
        assert skipped == []
        assert (context.target_root / "GEMINI.md").read_text() == "rules"

    def test_agent_links_follow_config(self, context):
        overlay_file = write(context.overlay_root / "targets" / "my-project" / "agents.md")

        created, _ = create_agent_links(
            overlay_file, context.target_root, ["claude"], context.target_root, never_tracked
        )

        assert created == [context.target_root / "CLAUDE.md"]
        assert not (context.target_root / "AGENTS.md").exists()

    def test_tracked_alias_skipped(self, context):
        """A real alias file tracked by git is left alone."""
        overlay_file = write(context.overlay_root / "targets" / "my-project" / "agents.md")
        tracked = write(context.target_root / "CLAUDE.md", "tracked")

        created, skipped = create_agent_links(
            overlay_file,
            context.target_root,
            ["agents", "claude"],
            context.target_root,
            lambda path, root: path.name == "CLAUDE.md",
        )

        assert created == [context.target_root / "AGENTS.md"]
        assert skipped == [tracked]
        assert not tracked.is_symlink()

    def test_prompt_links_each_tool(self, context):
        overlay_file = write(context.overlay_root / "global" / "prompts" / "sub" / "review.md")

        created = create_prompt_links(overlay_file, "sub/review.md", context.target_root)

        assert created == [
            context.target_root / ".claude" / "prompts" / "sub" / "review.md",
            context.target_root / ".gemini" / "prompts" / "sub" / "review.md",
        ]
        assert all(p.is_symlink() for p in created)


class TestWalkOverlayFiles:
    """Tests for walk_overlay_files."""

    def test_excludes_top_dir_and_ignored(self, overlay):
        global_dir = overlay / "global"
        write(global_dir / "init" / "clank" / "plan.md")
        write(global_dir / "clank" / "notes.md")
        write(global_dir / "clank" / ".DS_Store")

        files = list(walk_overlay_files(global_dir, [".DS_Store"], exclude_top=("init",)))

        assert files == [global_dir / "clank" / "notes.md"]
