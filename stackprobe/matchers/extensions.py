"""Extension matching for rules that do not require content evidence."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from ..rules.models import Rule


def file_extension(name: str) -> str:
    """Lower-cased last suffix of ``name`` including the dot, or ``""``."""
    base = name.rsplit("/", 1)[-1]
    if "." not in base.lstrip("."):
        return ""
    return "." + base.rsplit(".", 1)[1].lower()


class ExtensionMatcher:
    def __init__(self, rules: Iterable[Rule]) -> None:
        self._techs_by_extension: Dict[str, List[str]] = {}
        for rule in rules:
            if rule.content_required:
                continue
            for extension in rule.extensions:
                techs = self._techs_by_extension.setdefault(extension, [])
                if rule.tech not in techs:
                    techs.append(rule.tech)

    def match(self, file_names: Sequence[str]) -> Dict[str, List[str]]:
        results: Dict[str, List[str]] = {}
        for name in sorted(file_names):
            extension = file_extension(name)
            for tech in self._techs_by_extension.get(extension, ()):
                if tech not in results:
                    results[tech] = [f"matched extension: {extension}"]
        return results


__all__ = ["ExtensionMatcher", "file_extension"]
