"""Typed rule records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Pattern, Tuple

CONTENT_TYPES = ("regex", "json-path", "yaml-path")


@dataclass(frozen=True)
class RuleDependency:
    """Dependency-name pattern scoped to one ecosystem.

    A name wrapped in slashes (``/^@aws-sdk\\//``) is a regular expression,
    anything else must match the package name exactly.
    """

    type: str
    name: str

    @property
    def is_regex(self) -> bool:
        return len(self.name) > 2 and self.name.startswith("/") and self.name.endswith("/")

    def compile(self) -> Pattern[str]:
        if self.is_regex:
            return re.compile(self.name[1:-1])
        return re.compile(f"^{re.escape(self.name)}$")


@dataclass(frozen=True)
class ContentRule:
    """Content check applied to files selected by extension or filename."""

    type: str = "regex"
    pattern: str = ""
    path: str = ""
    value: Optional[str] = None
    extensions: Tuple[str, ...] = ()
    files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Category:
    name: str
    is_component: bool = False
    creates_edge: bool = False
    description: str = ""


@dataclass(frozen=True)
class Rule:
    """Declarative technology detection rule."""

    tech: str
    name: str
    category: str
    description: str = ""
    files: Tuple[str, ...] = ()
    extensions: Tuple[str, ...] = ()
    content: Tuple[ContentRule, ...] = ()
    dependencies: Tuple[RuleDependency, ...] = ()
    dotenv: Tuple[str, ...] = ()
    is_component: Optional[bool] = None
    is_primary_tech: Optional[bool] = None
    creates_edge: Optional[bool] = None
    content_required: bool = False
    properties: Mapping[str, Any] = field(default_factory=dict)
    source: str = ""


__all__ = ["CONTENT_TYPES", "Category", "ContentRule", "Rule", "RuleDependency"]
