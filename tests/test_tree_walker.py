"""Tests for directory traversal."""

from snapkeep.services.ignore import IgnoreRules, load_ignore_patterns
from snapkeep.services.tree_walker import directory_size, remove_empty_dirs, walk_tree


def test_walk_collects_files_and_empty_dirs(workspace, write):
    write(workspace, "a.txt", "a")
    write(workspace, "sub/b.txt", "b")
    (workspace / "empty").mkdir()
    (workspace / "nested/deeper").mkdir(parents=True)
    write(workspace, "node_modules/lib/index.js", "x")

    result = walk_tree(workspace, load_ignore_patterns(workspace))

    assert result.files == [workspace / "a.txt", workspace / "sub/b.txt"]
    assert sorted(result.empty_dirs) == [workspace / "empty", workspace / "nested/deeper"]


def test_directory_with_only_ignored_entries_is_empty(workspace, write):
    write(workspace, "logs/app.log", "x")

    result = walk_tree(workspace, IgnoreRules(["*.log"]))

    assert result.files == []
    assert result.empty_dirs == [workspace / "logs"]


def test_root_is_never_reported_empty(workspace):
    result = walk_tree(workspace, IgnoreRules())
    assert result.files == []
    assert result.empty_dirs == []


def test_ignored_directory_is_not_entered(workspace, write):
    write(workspace, "build/out/app.js", "x")
    (workspace / "build/empty").mkdir()

    result = walk_tree(workspace, IgnoreRules(["build"]))

    assert result.files == []
    assert result.empty_dirs == []


def test_remove_empty_dirs_post_order(workspace, write):
    (workspace / "a/b/c").mkdir(parents=True)
    write(workspace, "keep/file.txt", "x")
    (workspace / "node_modules/cache").mkdir(parents=True)

    removed = remove_empty_dirs(workspace, load_ignore_patterns(workspace))

    assert removed == 3
    assert not (workspace / "a").exists()
    assert (workspace / "keep/file.txt").exists()
    assert (workspace / "node_modules/cache").is_dir()
    assert workspace.is_dir()


def test_directory_size(tmp_path, write):
    write(tmp_path, "p/a.txt", "abc")
    write(tmp_path, "p/sub/b.txt", "hello")

    assert directory_size(tmp_path / "p") == 8
    assert directory_size(tmp_path / "missing") == 0
