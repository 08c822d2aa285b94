"""Rust crates (Cargo.toml)."""

from __future__ import annotations

from typing import List, Sequence

from ..matchers.dependencies import DependencyMatcher
from ..models import FileEntry
from ..payload import Payload
from ..providers import StorageProvider
from .base import (
    Detector,
    add_manifest_license,
    file_names,
    manifest_path,
    read_manifest,
    record_dependencies,
)
from .parsers import parse_cargo_toml

MANIFEST = "Cargo.toml"


class RustDetector(Detector):
    """A ``[package]`` is a component; a workspace-only manifest is merged."""

    name = "rust"

    def detect(
        self,
        files: Sequence[FileEntry],
        current_path: str,
        root_path: str,
        provider: StorageProvider,
        matcher: DependencyMatcher,
    ) -> List[Payload]:
        if MANIFEST not in file_names(files):
            return []
        text = read_manifest(provider, current_path, MANIFEST)
        info = parse_cargo_toml(text) if text is not None else None
        if info is None:
            return []

        path = manifest_path(provider, current_path, MANIFEST)
        if info.name:
            payload = Payload(info.name, [path], component_type="rust")
            payload.set_property("rust", "package_name", info.name)
        else:
            payload = Payload.fragment(path)
        payload.add_primary_tech("rust", f"matched file: {MANIFEST}")
        record_dependencies(payload, "rust", info.dependencies, matcher)
        add_manifest_license(payload, info.license, path.lstrip("/"))
        return [payload]


__all__ = ["RustDetector"]
