"""Gitignore-style exclusion rules for snapshot traversals.

Rules are collected from three sources, in order:

1. HARD_EXCLUDES (.git, node_modules), always present.
2. Every .gitignore found below the workspace root. Discovery does not enter
   directories already excluded by the rules gathered so far. Patterns from a
   nested .gitignore are rebased onto the workspace root:
   - ``/build`` in ``pkg/.gitignore`` becomes ``/pkg/build``
   - ``docs/out`` in ``pkg/.gitignore`` becomes ``/pkg/docs/out``
   - ``*.log`` in ``pkg/.gitignore`` stays ``*.log`` and applies at any depth
3. User-configured custom patterns.

Matching uses pathspec's gitwildmatch patterns:
- a pattern containing ``/`` is matched against the whole relative path
  (rooted when it starts with ``/``, otherwise after any separator);
- a pattern without ``/`` is matched against each path segment;
- a trailing ``/`` marks a directory pattern and is stripped before matching;
- ``**`` crosses separators, ``*`` and ``?`` stay within one segment;
- a match covers the matched path and everything below it.

Negated patterns (``!keep.log``) are recognized but NOT applied: a file
excluded by an earlier pattern stays excluded.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path

import pathspec
from pathspec.patterns.gitwildmatch import GitWildMatchPatternError

from snapkeep.config.constants import HARD_EXCLUDES, IGNORE_FILE_NAME
from snapkeep.utils.logger import get_logger

logger = get_logger("snapshots.ignore")


def parse_ignore_file(text: str) -> list[str]:
    """Return the usable patterns of an ignore file (no blanks, no comments)."""
    patterns = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        patterns.append(line)
    return patterns


@lru_cache(maxsize=4096)
def _compile(pattern: str) -> pathspec.PathSpec | None:
    try:
        return pathspec.PathSpec.from_lines("gitwildmatch", [pattern])
    except GitWildMatchPatternError:
        return None


def match_pattern(candidate: str, pattern: str) -> bool:
    """Match one candidate (full path or single segment) against a glob.

    Patterns gitwildmatch rejects fall back to a literal comparison.
    """
    spec = _compile(pattern)
    if spec is None:
        return candidate == pattern or candidate.endswith("/" + pattern)
    return spec.match_file(candidate)


def _unanchored(pattern: str) -> str:
    # gitwildmatch roots any pattern holding a "/"; ours float unless led by "/"
    if pattern.startswith(("/", "**/")):
        return pattern
    return "**/" + pattern


class IgnoreRules:
    """Ordered exclusion patterns evaluated against workspace-relative paths."""

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self.patterns: list[str] = []
        self._rules: list[tuple[str, bool]] = []
        for pattern in patterns:
            self.add(pattern)

    def add(self, pattern: str) -> None:
        self.patterns.append(pattern)
        if pattern.startswith("!"):
            # Negation is not supported; kept in patterns for visibility only
            return
        clean = pattern.rstrip("/")
        if not clean:
            return
        if "/" in clean:
            self._rules.append((_unanchored(clean), True))
        else:
            self._rules.append((clean, False))

    @property
    def negated(self) -> list[str]:
        return [p for p in self.patterns if p.startswith("!")]

    def matches(self, relative_path: str) -> bool:
        """True when relative_path (or one of its parents) is excluded."""
        rel = relative_path.replace(os.sep, "/").strip("/")
        if not rel:
            return False
        segments = rel.split("/")
        for clean, has_separator in self._rules:
            if has_separator:
                if match_pattern(rel, clean):
                    return True
            elif any(match_pattern(segment, clean) for segment in segments):
                return True
        return False

    def __len__(self) -> int:
        return len(self.patterns)

    def __repr__(self) -> str:
        return f"IgnoreRules({self.patterns!r})"


def rebase_pattern(pattern: str, relative_dir: str) -> str:
    """Rewrite a pattern from ``<relative_dir>/.gitignore`` to be root-relative."""
    if not relative_dir:
        return pattern
    negated = pattern.startswith("!")
    body = pattern[1:] if negated else pattern
    if body.startswith("/"):
        body = f"/{relative_dir}{body}"
    elif "/" in body.rstrip("/"):
        body = f"/{relative_dir}/{body}"
    return f"!{body}" if negated else body


def load_ignore_patterns(
    root: Path, custom_patterns: Iterable[str] = ()
) -> IgnoreRules:
    """Collect hard excludes, every discovered .gitignore, then custom patterns."""
    rules = IgnoreRules(HARD_EXCLUDES)
    # Depth-first, children visited in name order
    stack: list[Path] = [root]
    while stack:
        current = stack.pop()
        relative_dir = "" if current == root else current.relative_to(root).as_posix()
        if relative_dir and rules.matches(relative_dir):
            continue

        ignore_file = current / IGNORE_FILE_NAME
        try:
            content = ignore_file.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(
                "Failed to read ignore file", path=str(ignore_file), error=str(e)
            )
        else:
            for pattern in parse_ignore_file(content):
                rules.add(rebase_pattern(pattern, relative_dir))

        try:
            with os.scandir(current) as it:
                subdirs = sorted(
                    entry.name
                    for entry in it
                    if entry.is_dir(follow_symlinks=False)
                )
        except OSError as e:
            logger.debug("Skipping unreadable directory", path=str(current), error=str(e))
            continue
        stack.extend(current / name for name in reversed(subdirs))

    for pattern in custom_patterns:
        rules.add(pattern)

    if rules.negated:
        logger.debug(
            "Negated ignore patterns are not applied", patterns=rules.negated
        )
    return rules
