"""Go modules (go.mod)."""

from __future__ import annotations

from typing import List, Sequence

from ..matchers.dependencies import DependencyMatcher
from ..models import FileEntry
from ..payload import Payload
from ..providers import StorageProvider
from .base import Detector, file_names, manifest_path, read_manifest, record_dependencies
from .parsers import parse_go_mod

MANIFEST = "go.mod"


class GoDetector(Detector):
    name = "golang"

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
        info = parse_go_mod(text) if text is not None else None
        if info is None or not info.name:
            return []

        payload = Payload(info.name, [manifest_path(provider, current_path, MANIFEST)], component_type="golang")
        payload.add_primary_tech("golang", f"matched file: {MANIFEST}")
        payload.set_property("golang", "package_name", info.name)
        record_dependencies(payload, "golang", info.dependencies, matcher)
        return [payload]


__all__ = ["GoDetector"]
