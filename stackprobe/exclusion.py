"""Scoped ignore patterns applied while walking a directory tree."""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Iterable, List, Sequence, Tuple

IGNORE_FILENAME = ".gitignore"


def parse_ignore_patterns(text: str) -> List[str]:
    """Extract patterns from gitignore-style text.

    Blank lines and comments are skipped. A trailing ``/`` is kept and limits
    the pattern to directories. Negated (``!pattern``) re-inclusions are not
    supported and are ignored.
    """
    patterns: List[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or line.startswith("!"):
            continue
        if line.endswith("/"):
            line = line.rstrip("/") + "/"
        if line.strip("/") and line not in patterns:
            patterns.append(line)
    return patterns


@dataclass(frozen=True)
class PatternScope:
    """Patterns declared by one directory, relative to the scan root."""

    directory: str
    patterns: Tuple[str, ...]
    source: str = ""

    def matches(self, name: str, relative_path: str, is_dir: bool = False) -> bool:
        scoped = relative_path
        if self.directory and relative_path.startswith(f"{self.directory}/"):
            scoped = relative_path[len(self.directory) + 1 :]
        return any(
            _glob_match(pattern, name, relative_path, scoped, is_dir) for pattern in self.patterns
        )


def _glob_match(pattern: str, name: str, relative_path: str, scoped: str, is_dir: bool) -> bool:
    if pattern.endswith("/"):
        if not is_dir:
            return False
        pattern = pattern.rstrip("/")
    anchored = pattern.startswith("/")
    pattern = pattern.lstrip("/")
    if not pattern:
        return False
    candidates = (scoped,) if anchored else (relative_path, scoped, name)
    variants = [pattern]
    if pattern.startswith("**/"):
        variants.append(pattern[3:])
    return any(fnmatchcase(candidate, variant) for candidate in candidates for variant in variants)


class ExclusionStack:
    """LIFO stack of per-directory scopes over two always-active base layers.

    The base layers are the caller/config excludes and the repository's
    ``.git/info/exclude`` file. A directory scope is pushed only when the
    directory declares patterns and must be popped when its subtree is left.
    """

    def __init__(self) -> None:
        self._base: List[PatternScope] = []
        self._scopes: List[PatternScope] = []

    def initialize(
        self, global_patterns: Iterable[str] = (), local_exclude_patterns: Iterable[str] = ()
    ) -> None:
        self._base = []
        self._scopes = []
        patterns = tuple(p for p in global_patterns if p and p.strip())
        if patterns:
            self._base.append(PatternScope("", patterns, "global"))
        local = tuple(p for p in local_exclude_patterns if p and p.strip())
        if local:
            self._base.append(PatternScope("", local, "info/exclude"))

    @property
    def depth(self) -> int:
        return len(self._scopes)

    @property
    def active_scopes(self) -> Tuple[PatternScope, ...]:
        return tuple(self._base) + tuple(self._scopes)

    def push(self, directory: str, patterns: Sequence[str], source: str = IGNORE_FILENAME) -> bool:
        """Activate ``patterns`` for ``directory``; returns False when nothing was pushed."""
        if not patterns:
            return False
        self._scopes.append(PatternScope(directory.strip("/"), tuple(patterns), source))
        return True

    def pop(self) -> PatternScope:
        if not self._scopes:
            raise IndexError("pop from an empty exclusion stack")
        return self._scopes.pop()

    def should_exclude(self, name: str, relative_path: str, is_dir: bool = False) -> bool:
        relative_path = relative_path.replace("\\", "/").strip("/")
        # The local exclude file has the highest precedence, so check it first.
        for scope in reversed(self._base):
            if scope.matches(name, relative_path, is_dir):
                return True
        return any(scope.matches(name, relative_path, is_dir) for scope in reversed(self._scopes))


__all__ = ["ExclusionStack", "IGNORE_FILENAME", "PatternScope", "parse_ignore_patterns"]
