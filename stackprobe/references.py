"""Cross-component references resolved from published package names."""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Tuple

from .models import ComponentRef
from .payload import Payload

PACKAGE_NAME_KEY = "package_name"


def normalize_package_name(ecosystem: str, name: str) -> str:
    name = name.strip()
    if ecosystem == "python":
        return re.sub(r"[-_.]+", "-", name).lower()
    return name.lower()


def resolve_component_refs(
    root: Payload, ids: Mapping[Payload, str]
) -> Dict[Payload, List[ComponentRef]]:
    """Link dependencies to components in the same tree that publish them.

    A component publishes a package by storing ``package_name`` under a
    property namespace named after the dependency type (``npm``, ``python``...).
    """
    published: Dict[Tuple[str, str], Payload] = {}
    for node in root.iter_nodes():
        for ecosystem, props in node.properties.items():
            if not isinstance(props, dict):
                continue
            package = props.get(PACKAGE_NAME_KEY)
            if isinstance(package, str) and package:
                published.setdefault((ecosystem, normalize_package_name(ecosystem, package)), node)

    refs: Dict[Payload, List[ComponentRef]] = {}
    if not published:
        return refs
    for node in root.iter_nodes():
        for dependency in node.dependencies:
            key = (dependency.type, normalize_package_name(dependency.type, dependency.name))
            target = published.get(key)
            if target is None or target is node or target not in ids:
                continue
            ref = ComponentRef(target_id=ids[target], name=dependency.name, type=dependency.type)
            bucket = refs.setdefault(node, [])
            if ref not in bucket:
                bucket.append(ref)
    return refs


__all__ = ["PACKAGE_NAME_KEY", "normalize_package_name", "resolve_component_refs"]
