"""Component tree: the mutable builder used during a scan and its frozen view."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .models import ComponentRef, Dependency, GitInfo, License, ScanMetadata

GLOBAL_NOTE = "_"
LICENSE_NOTE = "_license"

# Property namespaces whose values are lists of records appended across merges.
_APPENDED_PROPERTIES = frozenset({"docker", "terraform"})


class Payload:
    """Mutable component node owned by the scanner while a tree is being built.

    A payload is either *named* (it becomes an independent child when merged)
    or *virtual* (a transient fragment whose data is folded into the node that
    requested it). Every tech carries at least one reason and every primary
    tech is also present in ``techs``.
    """

    def __init__(
        self,
        name: str,
        paths: Sequence[str] | None = None,
        *,
        virtual: bool = False,
        component_type: Optional[str] = None,
    ) -> None:
        self.name = name
        self.paths: List[str] = []
        for path in paths or ():
            self.add_path(path)
        self.virtual = virtual
        self.implicit = False
        self.component_type = component_type
        self.primary_techs: List[str] = []
        self.techs: Dict[str, List[str]] = {}
        self.notes: Dict[str, List[str]] = {}
        self.dependencies: List[Dependency] = []
        self.languages: Dict[str, int] = {}
        self.licenses: List[License] = []
        self.git: Optional[GitInfo] = None
        self.properties: Dict[str, Any] = {}
        self.children: List[Payload] = []
        self.edges: List[Payload] = []
        self.metadata: Optional[ScanMetadata] = None

    @classmethod
    def fragment(cls, path: str = "") -> "Payload":
        """Create a virtual fragment anchored at ``path``."""
        return cls("virtual", [path] if path else None, virtual=True)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        kind = "virtual" if self.virtual else "named"
        return f"Payload({self.name!r}, {kind}, paths={self.paths!r})"

    # Evidence

    def add_path(self, path: str) -> None:
        if path and path not in self.paths:
            self.paths.append(path)

    def add_tech(self, tech: str, reason: str | None = None) -> None:
        reasons = self.techs.setdefault(tech, [])
        if reason and reason not in reasons:
            reasons.append(reason)
        if not reasons:
            reasons.append(f"{tech} detected")

    def add_techs(self, matches: Mapping[str, Sequence[str]]) -> None:
        for tech, reasons in matches.items():
            for reason in reasons or (None,):
                self.add_tech(tech, reason)

    def add_primary_tech(self, tech: str, reason: str | None = None) -> None:
        if tech not in self.primary_techs:
            self.primary_techs.append(tech)
        self.add_tech(tech, reason)

    def add_note(self, reason: str, key: str = GLOBAL_NOTE) -> None:
        notes = self.notes.setdefault(key, [])
        if reason not in notes:
            notes.append(reason)

    def add_dependency(self, dependency: Dependency) -> None:
        if all(existing.key() != dependency.key() for existing in self.dependencies):
            self.dependencies.append(dependency)

    def add_language(self, language: str, count: int = 1) -> None:
        self.languages[language] = self.languages.get(language, 0) + count

    def add_license(self, license_: License) -> None:
        if all(existing.name != license_.name for existing in self.licenses):
            self.licenses.append(license_)
            self.add_note(
                f"license detected: {license_.name} (from {license_.source_file})",
                LICENSE_NOTE,
            )

    def set_property(self, namespace: str, key: str, value: Any) -> None:
        bucket = self.properties.setdefault(namespace, {})
        if isinstance(bucket, dict):
            bucket[key] = value

    # Structure

    def add_child(self, child: "Payload") -> "Payload":
        """Attach ``child``, merging it into an existing sibling that matches.

        Two siblings are the same component when they share a name and at least
        one path. The node that ends up in the tree is returned.
        """
        for existing in self.children:
            if existing.name == child.name and _paths_overlap(existing.paths, child.paths):
                existing._absorb(child)
                return existing
        self.children.append(child)
        return child

    def add_edge(self, target: "Payload") -> None:
        if all(existing is not target for existing in self.edges):
            self.edges.append(target)

    def combine(self, other: "Payload") -> None:
        """Fold ``other``'s evidence into this node. Children are not touched."""
        for path in other.paths:
            self.add_path(path)
        if self.component_type is None:
            self.component_type = other.component_type
        for tech, reasons in other.techs.items():
            for reason in reasons:
                self.add_tech(tech, reason)
        for tech in other.primary_techs:
            self.add_primary_tech(tech)
        for key, notes in other.notes.items():
            for note in notes:
                self.add_note(note, key)
        for dependency in other.dependencies:
            self.add_dependency(dependency)
        for language, count in other.languages.items():
            self.add_language(language, count)
        for license_ in other.licenses:
            if all(existing.name != license_.name for existing in self.licenses):
                self.licenses.append(license_)
        if self.git is None:
            self.git = other.git
        _merge_properties(self.properties, other.properties)

    def merge(self, fragment: "Payload") -> None:
        """Fold a fragment into this node, adopting its children and edges."""
        self.combine(fragment)
        moved: Dict[int, Payload] = {}
        for child in fragment.children:
            moved[id(child)] = self.add_child(child)
        for target in fragment.edges:
            self.add_edge(moved.get(id(target), target))

    def _absorb(self, other: "Payload") -> None:
        self.merge(other)
        self.implicit = self.implicit and other.implicit

    def iter_nodes(self) -> Iterator["Payload"]:
        stack: List[Payload] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def freeze(
        self,
        ids: Mapping["Payload", str],
        refs: Mapping["Payload", Sequence[ComponentRef]] | None = None,
    ) -> "ComponentNode":
        """Return the immutable view of this subtree using pre-assigned IDs."""
        refs = refs or {}
        children = tuple(child.freeze(ids, refs) for child in self.children)
        reasons = {tech: tuple(values) for tech, values in self.techs.items()}
        notes = {key: tuple(values) for key, values in self.notes.items()}
        return ComponentNode(
            id=ids[self],
            name=self.name,
            paths=tuple(self.paths),
            component_type=self.component_type,
            primary_techs=tuple(self.primary_techs),
            techs=MappingProxyType(reasons),
            notes=MappingProxyType(notes),
            dependencies=tuple(self.dependencies),
            languages=MappingProxyType(dict(self.languages)),
            licenses=tuple(self.licenses),
            git=self.git,
            properties=MappingProxyType(copy.deepcopy(self.properties)),
            children=children,
            edges=tuple(ids[target] for target in self.edges if target in ids),
            refs=tuple(refs.get(self, ())),
            metadata=copy.copy(self.metadata),
        )


def _paths_overlap(left: Sequence[str], right: Sequence[str]) -> bool:
    if not left and not right:
        return True
    return bool(set(left) & set(right))


def _merge_properties(target: Dict[str, Any], incoming: Mapping[str, Any]) -> None:
    for key, value in incoming.items():
        current = target.get(key)
        if key not in target:
            target[key] = copy.deepcopy(value)
        elif key in _APPENDED_PROPERTIES and isinstance(current, list) and isinstance(value, list):
            for item in value:
                if item not in current:
                    current.append(copy.deepcopy(item))
        elif isinstance(current, dict) and isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                current.setdefault(sub_key, copy.deepcopy(sub_value))


@dataclass(frozen=True)
class ComponentNode:
    """Read-only component produced once identities have been assigned."""

    id: str
    name: str
    paths: Tuple[str, ...] = ()
    component_type: Optional[str] = None
    primary_techs: Tuple[str, ...] = ()
    techs: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    notes: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    dependencies: Tuple[Dependency, ...] = ()
    languages: Mapping[str, int] = field(default_factory=dict)
    licenses: Tuple[License, ...] = ()
    git: Optional[GitInfo] = None
    properties: Mapping[str, Any] = field(default_factory=dict)
    children: Tuple["ComponentNode", ...] = ()
    edges: Tuple[str, ...] = ()
    refs: Tuple[ComponentRef, ...] = ()
    metadata: Optional[ScanMetadata] = None

    def iter_nodes(self) -> Iterator["ComponentNode"]:
        """Yield this node and its descendants in pre-order."""
        stack: List[ComponentNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, name: str) -> Optional["ComponentNode"]:
        return next((node for node in self.iter_nodes() if node.name == name), None)

    def to_dict(self) -> Dict[str, Any]:
        reasons: Dict[str, List[str]] = {tech: list(values) for tech, values in self.techs.items()}
        for key, values in self.notes.items():
            reasons[key] = list(values)

        data: Dict[str, Any] = {"id": self.id, "name": self.name, "path": list(self.paths)}
        if self.component_type:
            data["type"] = self.component_type
        data["tech"] = list(self.primary_techs)
        data["techs"] = sorted(self.techs)
        data["languages"] = dict(sorted(self.languages.items()))
        data["licenses"] = [license_.to_dict() for license_ in self.licenses]
        data["reason"] = reasons
        data["dependencies"] = [dependency.to_list() for dependency in self.dependencies]
        data["properties"] = copy.deepcopy(dict(self.properties))
        data["edges"] = [{"target": target} for target in self.edges]
        if self.refs:
            data["component_refs"] = [ref.to_dict() for ref in self.refs]
        if self.git is not None:
            data["git"] = self.git.to_dict()
        data["children"] = [child.to_dict() for child in self.children]
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data


__all__ = ["ComponentNode", "GLOBAL_NOTE", "LICENSE_NOTE", "Payload"]
