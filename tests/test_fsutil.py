"""Tests for filesystem helpers."""

import os

from clank.fsutil import (
    create_symlink,
    file_exists,
    is_symlink,
    relative_path,
    resolve_symlink_target,
    walk_directory,
)

from conftest import write


class TestWalkDirectory:
    """Tests for walk_directory."""

    def test_depth_first_sorted(self, tmp_path):
        """Directories come before their children, siblings sorted by name."""
        write(tmp_path / "b.txt")
        write(tmp_path / "a" / "x.txt")

        entries = [(e.path.relative_to(tmp_path).as_posix(), e.is_directory) for e in walk_directory(tmp_path)]
        assert entries == [("a", True), ("a/x.txt", False), ("b.txt", False)]

    def test_skips_git_and_node_modules(self, tmp_path):
        write(tmp_path / ".git" / "config")
        write(tmp_path / "node_modules" / "pkg" / "index.js")
        write(tmp_path / "keep.md")

        paths = [e.path.name for e in walk_directory(tmp_path)]
        assert paths == ["keep.md"]

    def test_hidden_dirs_optional(self, tmp_path):
        write(tmp_path / ".claude" / "settings.json")
        write(tmp_path / "clank" / "notes.md")

        with_hidden = [e.path.name for e in walk_directory(tmp_path) if not e.is_directory]
        without = [e.path.name for e in walk_directory(tmp_path, include_hidden_dirs=False) if not e.is_directory]
        assert with_hidden == ["settings.json", "notes.md"]
        assert without == ["notes.md"]

    def test_skip_predicate(self, tmp_path):
        """Skipped directories are not descended into."""
        write(tmp_path / "init" / "plan.md")
        write(tmp_path / "clank" / "notes.md")

        files = [
            e.path.relative_to(tmp_path).as_posix()
            for e in walk_directory(tmp_path, skip=lambda rel: rel == "init")
            if not e.is_directory
        ]
        assert files == ["clank/notes.md"]

    def test_symlinked_dir_not_followed(self, tmp_path):
        write(tmp_path / "real" / "file.md")
        (tmp_path / "walk").mkdir()
        (tmp_path / "walk" / "link").symlink_to(tmp_path / "real")

        entries = list(walk_directory(tmp_path / "walk"))
        assert [(e.path.name, e.is_directory) for e in entries] == [("link", False)]

    def test_missing_directory_is_empty(self, tmp_path):
        assert list(walk_directory(tmp_path / "missing")) == []


class TestSymlinks:
    """Tests for symlink helpers."""

    def test_create_symlink_makes_parents(self, tmp_path):
        target = write(tmp_path / "target.md", "hello")
        link = tmp_path / "a" / "b" / "link.md"

        create_symlink(target, link)

        assert link.is_symlink()
        assert link.read_text() == "hello"

    def test_create_symlink_replaces_file(self, tmp_path):
        target = write(tmp_path / "target.md", "new")
        link = write(tmp_path / "link.md", "old")

        create_symlink(target, link)

        assert link.is_symlink()
        assert link.read_text() == "new"

    def test_create_symlink_replaces_link(self, tmp_path):
        first = write(tmp_path / "first.md")
        second = write(tmp_path / "second.md")
        link = tmp_path / "link.md"
        link.symlink_to(first)

        create_symlink(second, link)

        assert resolve_symlink_target(link) == second

    def test_resolve_relative_target(self, tmp_path):
        """Relative targets resolve against the link's directory."""
        write(tmp_path / "dir" / "target.md")
        link = tmp_path / "dir" / "sub" / "link.md"
        link.parent.mkdir()
        os.symlink("../target.md", link)

        assert resolve_symlink_target(link) == tmp_path / "dir" / "target.md"

    def test_dangling_link_exists(self, tmp_path):
        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "missing")

        assert file_exists(link)
        assert is_symlink(link)
        assert not link.exists()

    def test_file_exists_false(self, tmp_path):
        assert not file_exists(tmp_path / "nothing")


def test_relative_path(tmp_path):
    assert relative_path(tmp_path / "a", tmp_path / "b" / "c.md") == os.path.join("..", "b", "c.md")
