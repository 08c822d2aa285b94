"""Python projects (pyproject.toml, requirements files)."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

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
from .parsers import ManifestInfo, parse_pyproject, parse_requirements

PYPROJECT = "pyproject.toml"
REQUIREMENTS_FILES = ("requirements.txt", "requirements-dev.txt")


class PythonDetector(Detector):
    """``pyproject.toml`` with a project name yields a named component.

    Requirements files alone only contribute dependencies to the directory
    node; next to a named project they are folded into that project.
    """

    name = "python"

    def detect(
        self,
        files: Sequence[FileEntry],
        current_path: str,
        root_path: str,
        provider: StorageProvider,
        matcher: DependencyMatcher,
    ) -> List[Payload]:
        names = file_names(files)
        project: Optional[ManifestInfo] = None
        if PYPROJECT in names:
            text = read_manifest(provider, current_path, PYPROJECT)
            project = parse_pyproject(text) if text is not None else None

        requirements: List[Tuple[str, List[Tuple[str, str]]]] = []
        for file_name in REQUIREMENTS_FILES:
            if file_name in names:
                text = read_manifest(provider, current_path, file_name)
                if text is not None:
                    requirements.append((file_name, parse_requirements(text)))

        if project is None and not requirements:
            return []

        if project is not None and project.name:
            path = manifest_path(provider, current_path, PYPROJECT)
            payload = Payload(project.name, [path], component_type="python")
            payload.add_primary_tech("python", f"matched file: {PYPROJECT}")
            payload.set_property("python", "package_name", project.name)
            add_manifest_license(payload, project.license, path.lstrip("/"))
        else:
            first = PYPROJECT if project is not None else requirements[0][0]
            payload = Payload.fragment(manifest_path(provider, current_path, first))

        if project is not None:
            record_dependencies(payload, "python", project.dependencies, matcher)
        for file_name, packages in requirements:
            payload.add_path(manifest_path(provider, current_path, file_name))
            record_dependencies(payload, "python", packages, matcher)
        return [payload]


__all__ = ["PythonDetector"]
