"""Detector plugin interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..logging import get_logger
from ..matchers.dependencies import DependencyMatcher
from ..models import Dependency, FileEntry, License
from ..payload import Payload
from ..providers import StorageProvider

_LOGGER = get_logger("detectors")


class Detector(ABC):
    """Recognizes one ecosystem by its manifest files.

    Detectors return fragments: virtual ones are folded into the node for the
    current directory, named ones become new children. A detector that cannot
    parse its manifest returns no fragments.
    """

    name: str = ""

    @abstractmethod
    def detect(
        self,
        files: Sequence[FileEntry],
        current_path: str,
        root_path: str,
        provider: StorageProvider,
        matcher: DependencyMatcher,
    ) -> List[Payload]:
        """Return fragments for the filtered listing of ``current_path``."""


def file_names(files: Iterable[FileEntry]) -> Set[str]:
    return {entry.name for entry in files if not entry.is_dir}


def manifest_path(provider: StorageProvider, current_path: str, file_name: str) -> str:
    """Scan-root relative path of a manifest, always starting with ``/``."""
    relative = provider.relative(provider.join(current_path, file_name))
    return "/" + relative


def record_dependencies(
    payload: Payload,
    ecosystem: str,
    dependencies: Iterable[Tuple[str, str]],
    matcher: DependencyMatcher,
) -> None:
    """Attach manifest dependencies to ``payload`` and the techs they imply."""
    names: List[str] = []
    for name, version in dependencies:
        payload.add_dependency(Dependency(ecosystem, name, version))
        names.append(name)
    matcher.apply(payload, matcher.match_dependencies(names, ecosystem))


def add_manifest_license(payload: Payload, license_name: Optional[str], source_file: str) -> None:
    if license_name:
        payload.add_license(License(license_name, "manifest", source_file))


def read_manifest(provider: StorageProvider, current_path: str, file_name: str) -> Optional[str]:
    path = provider.join(current_path, file_name)
    try:
        return provider.read_text(path)
    except OSError as exc:
        _LOGGER.warning("Could not read %s: %s", path, exc)
        return None


__all__ = [
    "Detector",
    "add_manifest_license",
    "file_names",
    "manifest_path",
    "read_manifest",
    "record_dependencies",
]
