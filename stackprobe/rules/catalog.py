"""Immutable rule catalog and flag resolution."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from ..errors import RuleLoadError
from .models import Category, Rule


class RuleCatalog:
    """Read-only set of rules keyed by tech, in load order."""

    def __init__(
        self,
        rules: Iterable[Rule],
        categories: Optional[Mapping[str, Category]] = None,
        errors: Sequence[RuleLoadError] = (),
    ) -> None:
        by_tech: Dict[str, Rule] = {}
        for rule in rules:
            by_tech[rule.tech] = rule
        self._rules = MappingProxyType(by_tech)
        self._ordered: Tuple[Rule, ...] = tuple(by_tech.values())
        self._categories = MappingProxyType(dict(categories or {}))
        self.errors: Tuple[RuleLoadError, ...] = tuple(errors)

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._ordered)

    def __contains__(self, tech: object) -> bool:
        return tech in self._rules

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._ordered

    @property
    def categories(self) -> Mapping[str, Category]:
        return self._categories

    def get(self, tech: str) -> Optional[Rule]:
        return self._rules.get(tech)

    def by_category(self, category: str) -> List[Rule]:
        return [rule for rule in self._ordered if rule.category == category]

    def category(self, name: str) -> Optional[Category]:
        return self._categories.get(name)

    def should_create_component(self, rule: Rule) -> bool:
        """Rule flag first, then its category, otherwise no component."""
        if rule.is_component is not None:
            return rule.is_component
        category = self.category(rule.category)
        return category.is_component if category else False

    def should_add_primary_tech(self, rule: Rule) -> bool:
        if rule.is_primary_tech is not None:
            return rule.is_primary_tech
        return self.should_create_component(rule)

    def should_create_edge(self, rule: Rule) -> bool:
        if rule.creates_edge is not None:
            return rule.creates_edge
        category = self.category(rule.category)
        return category.creates_edge if category else False


__all__ = ["RuleCatalog"]
