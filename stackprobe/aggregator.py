"""Flat, deduplicated summary of a component tree."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .models import Dependency, GitInfo, ScanMetadata
from .payload import ComponentNode

AGGREGATE_FIELDS = ("git", "tech", "techs", "reason", "languages", "licenses", "dependencies")


@dataclass(frozen=True)
class AggregateSummary:
    """Deduplicated union of everything detected anywhere in a tree."""

    metadata: Optional[ScanMetadata]
    git: Tuple[GitInfo, ...] = ()
    tech: Tuple[str, ...] = ()
    techs: Tuple[str, ...] = ()
    reason: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    languages: Mapping[str, int] = field(default_factory=dict)
    licenses: Tuple[str, ...] = ()
    dependencies: Tuple[Dependency, ...] = ()

    def to_dict(self, fields: Sequence[str] = AGGREGATE_FIELDS) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        for name in fields:
            if name == "git":
                data["git"] = [info.to_dict() for info in self.git]
            elif name == "tech":
                data["tech"] = list(self.tech)
            elif name == "techs":
                data["techs"] = list(self.techs)
            elif name == "reason":
                data["reason"] = {tech: list(reasons) for tech, reasons in self.reason.items()}
            elif name == "languages":
                data["languages"] = dict(self.languages)
            elif name == "licenses":
                data["licenses"] = list(self.licenses)
            elif name == "dependencies":
                data["dependencies"] = [dependency.to_list() for dependency in self.dependencies]
        return data


class Aggregator:
    """Read-only fold over a frozen tree; the tree itself is never modified."""

    def __init__(self, fields: Iterable[str] | None = None) -> None:
        selected = list(fields) if fields is not None else list(AGGREGATE_FIELDS)
        unknown = [name for name in selected if name not in AGGREGATE_FIELDS]
        if unknown:
            raise ValueError(
                f"Unknown aggregate field(s): {', '.join(unknown)}; "
                f"choose from {', '.join(AGGREGATE_FIELDS)}"
            )
        self.fields: Tuple[str, ...] = tuple(dict.fromkeys(selected))

    def aggregate(self, root: ComponentNode) -> AggregateSummary:
        git: Dict[Tuple[str, str, str], GitInfo] = {}
        primary: Set[str] = set()
        techs: Set[str] = set()
        reasons: Dict[str, Set[str]] = {}
        languages: Dict[str, int] = {}
        licenses: Set[str] = set()
        dependencies: Dict[Tuple[str, str, str], Dependency] = {}

        for node in root.iter_nodes():
            if node.git is not None:
                git.setdefault(node.git.key(), node.git)
            primary.update(node.primary_techs)
            for tech, tech_reasons in node.techs.items():
                techs.add(tech)
                reasons.setdefault(tech, set()).update(tech_reasons)
            for key, notes in node.notes.items():
                reasons.setdefault(key, set()).update(notes)
            for language, count in node.languages.items():
                languages[language] = languages.get(language, 0) + count
            licenses.update(license_.name for license_ in node.licenses)
            for dependency in node.dependencies:
                dependencies.setdefault(dependency.key(), dependency)

        metadata = None
        if root.metadata is not None:
            metadata = dataclasses.replace(
                root.metadata,
                format="aggregated",
                properties=dict(root.metadata.properties),
            )

        return AggregateSummary(
            metadata=metadata,
            git=tuple(git[key] for key in sorted(git)),
            tech=tuple(sorted(primary)),
            techs=tuple(sorted(techs)),
            reason={tech: tuple(sorted(values)) for tech, values in sorted(reasons.items())},
            languages=dict(sorted(languages.items())),
            licenses=tuple(sorted(licenses)),
            dependencies=tuple(dependencies[key] for key in sorted(dependencies)),
        )

    def to_dict(self, root: ComponentNode) -> Dict[str, Any]:
        return self.aggregate(root).to_dict(self.fields)


def parse_fields(value: str | None) -> List[str] | None:
    """Parse a comma separated ``--aggregate`` value; empty means every field."""
    if value is None:
        return None
    names = [part.strip() for part in value.split(",") if part.strip()]
    return names or None


__all__ = ["AGGREGATE_FIELDS", "AggregateSummary", "Aggregator", "parse_fields"]
