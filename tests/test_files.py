"""Tests for listing managed files."""

from pathlib import Path

import pytest

from clank.files import (
    FileEntry,
    FilesOptions,
    Linked,
    Unlinked,
    build_output,
    collect_entries,
    dedupe_entries,
    format_listing,
    parse_depth,
    resolve_scan_root,
)
from clank.validation import ValidationError

from conftest import write

AGENTS = ["agents", "claude", "gemini"]


def entry(rel, link=None):
    return FileEntry(Path("/repo", rel), rel, rel, link or Unlinked())


def link_to(path, target):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.symlink_to(target)


@pytest.fixture
def populated(context, tmp_path):
    """Target with linked, unlinked and unmanaged files."""
    root = context.target_root
    project = context.overlay_root / "targets" / "my-project"

    agents = write(project / "agents.md")
    for name in ("AGENTS.md", "CLAUDE.md", "GEMINI.md"):
        link_to(root / name, agents)
    link_to(root / "clank" / "notes.md", write(context.overlay_root / "global" / "clank" / "notes.md"))
    link_to(root / "clank" / "plan.md", write(project / "worktrees" / "main" / "clank" / "plan.md"))
    write(root / "clank" / "local.md")
    write(root / "clank" / "deep" / "er" / "x.md")
    prompt = write(project / "prompts" / "review.md")
    link_to(root / ".claude" / "prompts" / "review.md", prompt)
    link_to(root / ".gemini" / "prompts" / "review.md", prompt)
    write(root / "docs" / "guide.md")
    return context


def listing(context, cwd=None, **kwargs):
    opts = FilesOptions(**kwargs)
    cwd = cwd or context.target_root
    entries = collect_entries(context, context.target_root, cwd, opts)
    return build_output(entries, opts.dedupe, AGENTS)


class TestCollectEntries:
    """Tests for collect_entries and filtering."""

    def test_default_listing(self, populated):
        """Instruction aliases collapse to AGENTS.md, hidden dirs are skipped."""
        assert listing(populated) == [
            "AGENTS.md",
            "clank/deep/er/x.md",
            "clank/local.md",
            "clank/notes.md",
            "clank/plan.md",
        ]

    def test_hidden_includes_one_prompt_copy(self, populated):
        result = listing(populated, hidden=True)
        assert ".claude/prompts/review.md" in result
        assert ".gemini/prompts/review.md" not in result

    def test_no_dedupe(self, populated):
        result = listing(populated, hidden=True, dedupe=False)
        assert {"AGENTS.md", "CLAUDE.md", "GEMINI.md"} <= set(result)
        assert ".gemini/prompts/review.md" in result

    def test_depth(self, populated):
        result = listing(populated, depth=1)
        assert "clank/deep/er/x.md" not in result
        assert "clank/local.md" in result

    def test_linked_only(self, populated):
        assert listing(populated, linked_only=True) == ["AGENTS.md", "clank/notes.md", "clank/plan.md"]

    def test_unlinked_only(self, populated):
        assert listing(populated, unlinked_only=True) == ["clank/deep/er/x.md", "clank/local.md"]

    def test_scope_filter(self, populated):
        """A scope filter implies linked-only."""
        assert listing(populated, scope_filter="worktree") == ["clank/plan.md"]
        assert listing(populated, scope_filter="global") == ["clank/notes.md"]

    def test_paths_relative_to_cwd(self, populated):
        result = listing(populated, cwd=populated.target_root / "clank")
        assert "notes.md" in result
        assert "../AGENTS.md" in result

    def test_link_state(self, populated):
        entries = collect_entries(populated, populated.target_root, populated.target_root, FilesOptions())
        states = {e.target_relative_path: e.link for e in entries}

        assert states["clank/notes.md"] == Linked(
            populated.overlay_root / "global" / "clank" / "notes.md", "global"
        )
        assert states["clank/local.md"] == Unlinked()


class TestDedupe:
    """Tests for dedupe_entries."""

    def test_agent_preference(self):
        entries = [entry("AGENTS.md"), entry("CLAUDE.md"), entry("GEMINI.md")]
        result = dedupe_entries(entries, ["gemini", "claude"])
        assert [e.cwd_relative_path for e in result] == ["GEMINI.md"]

    def test_agent_fallback_is_lexicographic(self):
        entries = [entry("pkg/GEMINI.md"), entry("pkg/CLAUDE.md")]
        result = dedupe_entries(entries, ["agents"])
        assert [e.cwd_relative_path for e in result] == ["pkg/CLAUDE.md"]

    def test_one_per_directory(self):
        entries = [entry("CLAUDE.md"), entry("pkg/CLAUDE.md"), entry("pkg/AGENTS.md")]
        result = dedupe_entries(entries, AGENTS)
        assert sorted(e.cwd_relative_path for e in result) == ["CLAUDE.md", "pkg/AGENTS.md"]

    def test_prompt_preference(self):
        entries = [entry(".claude/prompts/a.md"), entry(".gemini/prompts/a.md")]
        result = dedupe_entries(entries, ["gemini"])
        assert [e.cwd_relative_path for e in result] == [".gemini/prompts/a.md"]

    def test_prompt_fallback_is_lexicographic(self):
        entries = [entry(".gemini/prompts/a.md"), entry(".claude/prompts/a.md")]
        result = dedupe_entries(entries, ["agents"])
        assert [e.cwd_relative_path for e in result] == [".claude/prompts/a.md"]


class TestHelpers:
    """Tests for option parsing and output."""

    def test_parse_depth(self):
        assert parse_depth(None) is None
        assert parse_depth("") is None
        assert parse_depth("2") == 2

    @pytest.mark.parametrize("raw", ["-1", "abc"])
    def test_parse_depth_invalid(self, raw):
        with pytest.raises(ValidationError, match="Invalid --depth"):
            parse_depth(raw)

    def test_scan_root_default(self, tmp_path):
        assert resolve_scan_root(tmp_path, tmp_path / "sub") == tmp_path

    def test_scan_root_relative(self, tmp_path):
        assert resolve_scan_root(tmp_path, tmp_path / "sub", "pkg") == tmp_path / "sub" / "pkg"

    def test_scan_root_outside(self, tmp_path):
        with pytest.raises(ValidationError, match="outside the git repository"):
            resolve_scan_root(tmp_path / "repo", tmp_path / "repo", "../other")

    def test_format_listing(self):
        assert format_listing(["a", "b"]) == "a\nb\n"
        assert format_listing(["a", "b"], null=True) == "a\0b\0"
        assert format_listing([]) == ""
