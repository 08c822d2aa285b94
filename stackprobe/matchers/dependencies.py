"""Dependency-name and environment-variable matching handed to detectors."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Pattern, Sequence, Tuple

from ..payload import Payload
from ..rules.catalog import RuleCatalog


class DependencyMatcher:
    """Maps manifest dependency names and env variable names to techs.

    Patterns are grouped per ecosystem type (``npm``, ``python``, ``maven``...)
    so a package name only ever matches rules written for its ecosystem.
    """

    def __init__(self, catalog: RuleCatalog) -> None:
        self._catalog = catalog
        self._patterns: Dict[str, List[Tuple[str, Pattern[str]]]] = {}
        self._env_prefixes: List[Tuple[str, str]] = []
        for rule in catalog:
            for dependency in rule.dependencies:
                self._patterns.setdefault(dependency.type, []).append(
                    (rule.tech, dependency.compile())
                )
            for prefix in rule.dotenv:
                self._env_prefixes.append((rule.tech, prefix.upper()))

    def match_dependencies(self, names: Iterable[str], ecosystem: str) -> Dict[str, List[str]]:
        """Return ``tech -> [reason]`` for the package ``names`` of one ecosystem."""
        patterns = self._patterns.get(ecosystem, ())
        results: Dict[str, List[str]] = {}
        if not patterns:
            return results
        for name in sorted(set(names)):
            lowered = name.lower()
            for tech, pattern in patterns:
                if not (pattern.search(name) or pattern.search(lowered)):
                    continue
                reasons = results.setdefault(tech, [])
                reason = f"dependency {name} matched"
                if reason not in reasons:
                    reasons.append(reason)
        return results

    def match_env_variables(self, names: Iterable[str]) -> Dict[str, List[str]]:
        """Match variable names case-insensitively against rule ``dotenv`` prefixes."""
        results: Dict[str, List[str]] = {}
        for name in sorted(set(names)):
            upper = name.upper()
            for tech, prefix in self._env_prefixes:
                if upper.startswith(prefix):
                    reasons = results.setdefault(tech, [])
                    reason = f"{tech} matched env: {name}"
                    if reason not in reasons:
                        reasons.append(reason)
        return results

    def add_primary_tech_if_needed(self, node: Payload, tech: str) -> None:
        """Promote ``tech`` to a headline tech when its rule asks for it.

        Component-worthy techs are headline techs of their implicit child
        instead, so they are never promoted on the node itself.
        """
        rule = self._catalog.get(tech)
        if rule is None:
            return
        if self._catalog.should_add_primary_tech(rule) and not self._catalog.should_create_component(rule):
            node.add_primary_tech(tech)

    def apply(self, node: Payload, matches: Mapping[str, Sequence[str]]) -> None:
        """Record ``matches`` on ``node`` and promote primary techs."""
        node.add_techs(matches)
        for tech in matches:
            self.add_primary_tech_if_needed(node, tech)


__all__ = ["DependencyMatcher"]
