"""Filename and glob matching against rule ``files`` entries."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..rules.models import Rule

_GLOB_CHARS = frozenset("*?[")


class FileMatcher:
    """Matches literal names, globs and ``dir/sub`` directory suffixes."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        # Content-required rules only fire through the content matcher.
        self._patterns: List[Tuple[str, str]] = [
            (rule.tech, pattern)
            for rule in rules
            if not rule.content_required
            for pattern in rule.files
        ]

    def match(self, file_names: Sequence[str], relative_dir: str = "") -> Dict[str, List[str]]:
        """Return ``tech -> [reason]`` for the files of one directory."""
        names = sorted(file_names)
        present = set(names)
        results: Dict[str, List[str]] = {}
        for tech, pattern in self._patterns:
            if tech in results:
                continue
            matched = _match_pattern(pattern, names, present, relative_dir)
            if matched is not None:
                results[tech] = [f"matched file: {matched}"]
        return results


def _match_pattern(
    pattern: str, names: Sequence[str], present: set, relative_dir: str
) -> Optional[str]:
    if "/" in pattern:
        suffix = pattern.strip("/")
        current = relative_dir.strip("/")
        if current == suffix or current.endswith(f"/{suffix}"):
            return suffix
        return None
    if _GLOB_CHARS.intersection(pattern):
        return next((name for name in names if fnmatchcase(name, pattern)), None)
    return pattern if pattern in present else None


__all__ = ["FileMatcher"]
