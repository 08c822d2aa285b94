"""Deterministic identifiers for scan roots and component nodes."""

from __future__ import annotations

import hashlib
import os
import posixpath
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .git.repo import normalize_remote_url
from .payload import ComponentNode, Payload
from .references import resolve_component_refs

ID_LENGTH = 20


def hash_id(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:ID_LENGTH]


def normalize_relative_path(path: str) -> str:
    """Return ``path`` with forward slashes and no leading ``./`` or ``/``."""
    path = (path or "").strip().replace("\\", "/")
    if not path:
        return ""
    path = posixpath.normpath(path)
    if path in (".", "/"):
        return ""
    return path.lstrip("/")


def clean_absolute_path(path: str) -> str:
    return os.path.abspath(os.path.normpath(path)).replace(os.sep, "/")


def root_id(remote_url: str, relative_path: str = "") -> str:
    """ID for a scan root inside a repository with a known remote.

    Credentials and the transport form of the URL do not affect the result.
    """
    content = normalize_remote_url(remote_url)
    relative = normalize_relative_path(relative_path)
    if relative:
        content = f"{content}:{relative}"
    return hash_id(content)


def path_root_id(path: str) -> str:
    """ID for a scan root outside any repository with a remote."""
    return hash_id(clean_absolute_path(path))


def resolve_root_id(
    scan_root: str,
    *,
    override: Optional[str] = None,
    remote_url: Optional[str] = None,
    relative_path: str = "",
) -> str:
    """Pick the root ID by priority: override, remote URL, absolute path."""
    if override:
        return override
    if remote_url:
        return root_id(remote_url, relative_path)
    return path_root_id(scan_root)


def multi_root_id(
    common_root: str,
    subfolders: Iterable[str],
    *,
    remote_url: Optional[str] = None,
    relative_path: str = "",
) -> str:
    """ID for a scan restricted to ``subfolders`` of ``common_root``.

    Subfolders are normalized and sorted, so argument order is irrelevant.
    """
    if remote_url:
        base = normalize_remote_url(remote_url)
        relative = normalize_relative_path(relative_path)
        if relative:
            base = f"{base}:{relative}"
    else:
        base = clean_absolute_path(common_root)
    names = sorted({normalize_relative_path(sub) for sub in subfolders} - {""})
    parts = [base] + names
    return hash_id(":".join(parts))


def child_id(parent_id: str, name: str, path: str = "", ordinal: int = 0) -> str:
    content = f"{parent_id}:{name}:{path}"
    if ordinal:
        content = f"{content}:{ordinal}"
    return hash_id(content)


def assign_ids(root: Payload, root_node_id: str) -> ComponentNode:
    """Give every node of a finished builder tree an ID and freeze it."""
    ids: Dict[Payload, str] = {root: root_node_id}
    pending: List[Tuple[Payload, str]] = [(root, root_node_id)]
    while pending:
        node, node_id = pending.pop()
        taken: Set[str] = set()
        for child in node.children:
            first_path = child.paths[0] if child.paths else ""
            ordinal = 0
            candidate = child_id(node_id, child.name, first_path)
            while candidate in taken:
                ordinal += 1
                candidate = child_id(node_id, child.name, first_path, ordinal)
            taken.add(candidate)
            ids[child] = candidate
            pending.append((child, candidate))

    refs = resolve_component_refs(root, ids)
    return root.freeze(ids, refs)


__all__ = [
    "ID_LENGTH",
    "assign_ids",
    "child_id",
    "hash_id",
    "multi_root_id",
    "normalize_relative_path",
    "path_root_id",
    "resolve_root_id",
    "root_id",
]
