"""Content checks for files selected by extension or filename."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Pattern

import yaml

from ..logging import get_logger
from ..rules.models import ContentRule, Rule
from .extensions import file_extension

_LOGGER = get_logger("matchers.content")
_MISSING = object()


@dataclass(frozen=True)
class _ContentCheck:
    tech: str
    rule: ContentRule
    regex: Optional[Pattern[str]]

    def evaluate(self, text: str, parsed: Dict[str, Any]) -> Optional[str]:
        if self.rule.type == "regex":
            if self.regex is not None and self.regex.search(text):
                return f"content matched: {self.rule.pattern}"
            return None

        fmt = "json" if self.rule.type == "json-path" else "yaml"
        document = parsed.get(fmt, _MISSING)
        if document is _MISSING:
            document = _parse_document(fmt, text)
            parsed[fmt] = document
        if document is None:
            return None
        value = _resolve_path(document, self.rule.path)
        if value is _MISSING:
            return None
        if self.rule.value is None:
            return f"{fmt} path exists: {self.rule.path}"
        if _stringify(value) == self.rule.value:
            return f"{fmt} path {self.rule.path} matched: {self.rule.value}"
        return None


class ContentMatcher:
    """Indexes content checks by extension and filename."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        self._by_extension: Dict[str, List[_ContentCheck]] = {}
        self._by_filename: Dict[str, List[_ContentCheck]] = {}
        for rule in rules:
            for content in rule.content:
                regex = re.compile(content.pattern) if content.type == "regex" else None
                check = _ContentCheck(rule.tech, content, regex)
                for extension in content.extensions:
                    self._by_extension.setdefault(extension, []).append(check)
                for name in content.files:
                    self._by_filename.setdefault(name, []).append(check)

    def has_candidates(self, file_name: str) -> bool:
        return bool(self._checks_for(file_name))

    def match(self, file_name: str, text: str) -> Dict[str, List[str]]:
        """Return ``tech -> [reason]`` for every check that passes on ``text``."""
        results: Dict[str, List[str]] = {}
        parsed: Dict[str, Any] = {}
        for check in self._checks_for(file_name):
            reason = check.evaluate(text, parsed)
            if reason is None:
                continue
            reasons = results.setdefault(check.tech, [])
            if reason not in reasons:
                reasons.append(reason)
        return results

    def _checks_for(self, file_name: str) -> List[_ContentCheck]:
        checks = list(self._by_filename.get(file_name, ()))
        for check in self._by_extension.get(file_extension(file_name), ()):
            if check not in checks:
                checks.append(check)
        return checks


def _parse_document(fmt: str, text: str) -> Any:
    try:
        if fmt == "json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        _LOGGER.debug("Skipping unparsable %s document: %s", fmt, exc)
        return None


def _resolve_path(document: Any, path: str) -> Any:
    """Walk a ``$.a.b[0]`` style path; returns ``_MISSING`` when absent."""
    path = path.strip()
    if path.startswith("$"):
        path = path[1:]
    current = document
    for segment in filter(None, re.split(r"\.(?![^\[]*\])", path.lstrip("."))):
        key, _, index = segment.partition("[")
        if key:
            if not isinstance(current, dict) or key not in current:
                return _MISSING
            current = current[key]
        if index:
            position = index.rstrip("]")
            if not position.isdigit() or not isinstance(current, list):
                return _MISSING
            if int(position) >= len(current):
                return _MISSING
            current = current[int(position)]
    return current


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


__all__ = ["ContentMatcher"]
