"""Tests for instruction alias classification."""

from clank.classify import (
    OutdatedSymlink,
    agent_file_problems,
    classify_agent_files,
    find_agent_files,
    format_agent_file_problems,
)

from conftest import git, write


class TestFindAgentFiles:
    """Tests for find_agent_files."""

    def test_finds_aliases_at_any_depth(self, target_repo):
        write(target_repo / "CLAUDE.md")
        write(target_repo / "pkg" / "GEMINI.md")
        write(target_repo / "pkg" / "agents.md")

        found = sorted(p.relative_to(target_repo).as_posix() for p in find_agent_files(target_repo))
        assert found == ["CLAUDE.md", "pkg/GEMINI.md"]


class TestClassifyAgentFiles:
    """Tests for classify_agent_files."""

    def test_clean_target(self, target_repo, overlay):
        result = classify_agent_files(target_repo, overlay)
        assert not agent_file_problems(result)

    def test_tracked_and_untracked(self, target_repo, overlay):
        tracked = write(target_repo / "CLAUDE.md", "tracked")
        git(target_repo, "add", "CLAUDE.md")
        git(target_repo, "commit", "-m", "add claude")
        untracked = write(target_repo / "AGENTS.md", "local")

        result = classify_agent_files(target_repo, overlay)

        assert result.tracked == [tracked]
        assert result.untracked == [untracked]
        assert agent_file_problems(result)

    def test_stale_symlink(self, target_repo, overlay, tmp_path):
        other = write(tmp_path / "elsewhere.md")
        stale = target_repo / "GEMINI.md"
        stale.symlink_to(other)

        result = classify_agent_files(target_repo, overlay)
        assert result.stale_symlinks == [stale]

    def test_link_into_overlay_is_fine(self, context):
        overlay_file = write(context.overlay_root / "targets" / "my-project" / "agents.md")
        (context.target_root / "CLAUDE.md").symlink_to(overlay_file)

        result = classify_agent_files(context.target_root, context.overlay_root, context)
        assert not agent_file_problems(result)

    def test_outdated_symlink_with_context(self, context):
        """An alias in pkg/ pointing at the root agents.md is outdated."""
        root_agents = write(context.overlay_root / "targets" / "my-project" / "agents.md")
        alias = context.target_root / "pkg" / "CLAUDE.md"
        alias.parent.mkdir()
        alias.symlink_to(root_agents)

        result = classify_agent_files(context.target_root, context.overlay_root, context)

        assert result.outdated_symlinks == [
            OutdatedSymlink(
                alias,
                root_agents,
                context.overlay_root / "targets" / "my-project" / "pkg" / "agents.md",
            )
        ]

    def test_outdated_not_checked_without_context(self, context):
        root_agents = write(context.overlay_root / "targets" / "my-project" / "agents.md")
        alias = context.target_root / "pkg" / "CLAUDE.md"
        alias.parent.mkdir()
        alias.symlink_to(root_agents)

        result = classify_agent_files(context.target_root, context.overlay_root)
        assert not agent_file_problems(result)


class TestFormatAgentFileProblems:
    """Tests for format_agent_file_problems."""

    def test_remediation_commands(self, target_repo, overlay):
        write(target_repo / "pkg" / "CLAUDE.md")
        write(target_repo / "AGENTS.md")

        result = classify_agent_files(
            target_repo, overlay, is_tracked=lambda path, root: path.name == "CLAUDE.md"
        )
        message = format_agent_file_problems(result, target_repo)

        assert "git rm --cached pkg/CLAUDE.md" in message
        assert "clank add pkg/CLAUDE.md" in message
        assert "Found untracked agent files" in message
        assert "clank add AGENTS.md" in message

    def test_paths_relative_to_cwd(self, target_repo, overlay):
        write(target_repo / "AGENTS.md")

        result = classify_agent_files(target_repo, overlay)
        message = format_agent_file_problems(result, target_repo / "pkg")

        assert "clank add ../AGENTS.md" in message
