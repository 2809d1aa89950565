"""Tests for gitignore-style pattern discovery and matching."""

import pathspec
import pytest
from pathspec.patterns.gitwildmatch import GitWildMatchPatternError

from snapkeep.services.ignore import (
    IgnoreRules,
    _compile,
    load_ignore_patterns,
    match_pattern,
    parse_ignore_file,
    rebase_pattern,
)


def test_parse_ignore_file_drops_comments_and_blanks():
    text = "# build output\n\n  dist/  \n!keep.log\n*.log\n"
    assert parse_ignore_file(text) == ["dist/", "!keep.log", "*.log"]


@pytest.mark.parametrize(
    "path,expected",
    [
        ("debug.log", True),
        ("src/deep/debug.log", True),
        ("debug.logs", False),
        ("log/readme.md", False),
    ],
)
def test_segment_pattern_matches_at_any_depth(path, expected):
    assert IgnoreRules(["*.log"]).matches(path) is expected


def test_directory_pattern_covers_descendants():
    rules = IgnoreRules(["build/"])
    assert rules.matches("build")
    assert rules.matches("build/out/app.js")
    assert rules.matches("packages/web/build/index.html")
    assert not rules.matches("builder/x")


def test_leading_slash_anchors_to_root():
    rules = IgnoreRules(["/dist"])
    assert rules.matches("dist")
    assert rules.matches("dist/a.js")
    assert not rules.matches("src/dist/a.js")


def test_pattern_with_separator_matches_full_path():
    rules = IgnoreRules(["docs/*.md"])
    assert rules.matches("docs/intro.md")
    assert rules.matches("site/docs/intro.md")
    assert not rules.matches("docs/guide/intro.md")


def test_double_star_crosses_directories():
    rules = IgnoreRules(["**/temp"])
    assert rules.matches("temp")
    assert rules.matches("a/b/temp/file.txt")

    trailing = IgnoreRules(["cache/**"])
    assert trailing.matches("cache/a/b/c")


def test_question_mark_and_character_classes():
    assert IgnoreRules(["file?.txt"]).matches("file1.txt")
    assert not IgnoreRules(["file?.txt"]).matches("file10.txt")
    assert IgnoreRules(["[abc].txt"]).matches("b.txt")
    assert not IgnoreRules(["[abc].txt"]).matches("d.txt")
    assert IgnoreRules(["[!abc].txt"]).matches("d.txt")
    assert not IgnoreRules(["[!abc].txt"]).matches("a.txt")


def test_negated_patterns_are_recorded_but_not_applied():
    rules = IgnoreRules(["*.log", "!keep.log"])
    assert rules.matches("keep.log")
    assert rules.negated == ["!keep.log"]
    assert len(rules) == 2


def test_unterminated_class_matches_literally():
    assert match_pattern("[abc", "[abc")
    assert match_pattern("src/[abc", "[abc")
    assert not match_pattern("abc", "[abc")


def test_rejected_pattern_falls_back_to_string_comparison(monkeypatch):
    def reject(cls, pattern_factory, lines):
        raise GitWildMatchPatternError(f"Invalid git pattern: {lines!r}")

    _compile.cache_clear()
    monkeypatch.setattr(pathspec.PathSpec, "from_lines", classmethod(reject))
    try:
        assert match_pattern("weird**", "weird**")
        assert match_pattern("src/weird**", "weird**")
        assert not match_pattern("weirdness", "weird**")
    finally:
        _compile.cache_clear()


def test_separator_pattern_is_rooted_only_with_leading_slash():
    rules = IgnoreRules(["generated/*.py", "/out/bin"])
    assert rules.matches("pkg/generated/models.py")
    assert rules.matches("out/bin/tool")
    assert not rules.matches("pkg/out/bin/tool")


def test_empty_path_never_matches():
    assert not IgnoreRules(["*"]).matches("")


@pytest.mark.parametrize(
    "pattern,relative_dir,expected",
    [
        ("/build", "pkg", "/pkg/build"),
        ("docs/out", "pkg", "/pkg/docs/out"),
        ("*.tmp", "pkg", "*.tmp"),
        ("cache/", "pkg", "cache/"),
        ("!/keep", "pkg", "!/pkg/keep"),
        ("/build", "", "/build"),
    ],
)
def test_rebase_pattern(pattern, relative_dir, expected):
    assert rebase_pattern(pattern, relative_dir) == expected


def test_load_includes_hard_excludes(workspace, write):
    rules = load_ignore_patterns(workspace)
    assert rules.patterns[:2] == [".git", "node_modules"]
    assert rules.matches(".git/config")
    assert rules.matches("web/node_modules/react/index.js")


def test_load_rebases_nested_ignore_files(workspace, write):
    write(workspace, ".gitignore", "*.log\n")
    write(workspace, "pkg/.gitignore", "/build\n*.tmp\ndocs/out\n")

    rules = load_ignore_patterns(workspace)

    assert "/pkg/build" in rules.patterns
    assert "/pkg/docs/out" in rules.patterns
    assert "*.tmp" in rules.patterns
    assert rules.matches("pkg/build/a.o")
    assert not rules.matches("build/a.o")
    assert rules.matches("other/x.tmp")
    assert rules.matches("pkg/docs/out/index.html")


def test_load_skips_ignore_files_in_excluded_directories(workspace, write):
    write(workspace, ".gitignore", "vendor/\n")
    write(workspace, "vendor/.gitignore", "*.py\n")
    write(workspace, "node_modules/pkg/.gitignore", "*.md\n")

    rules = load_ignore_patterns(workspace)

    assert "*.py" not in rules.patterns
    assert "*.md" not in rules.patterns


def test_custom_patterns_are_appended_last(workspace, write):
    write(workspace, ".gitignore", "*.log\n")
    rules = load_ignore_patterns(workspace, ["secret.txt"])
    assert rules.patterns[-1] == "secret.txt"
    assert rules.matches("config/secret.txt")
