"""JVM builds: Maven (pom.xml) and Gradle (build.gradle[.kts])."""

from __future__ import annotations

import os
import posixpath
from typing import List, Sequence

from ..matchers.dependencies import DependencyMatcher
from ..models import FileEntry
from ..payload import Payload
from ..providers import StorageProvider
from .base import Detector, file_names, manifest_path, read_manifest, record_dependencies
from .parsers import parse_gradle_dependencies, parse_gradle_project_name, parse_pom

POM = "pom.xml"
GRADLE_BUILD_FILES = ("build.gradle", "build.gradle.kts")
GRADLE_SETTINGS_FILES = ("settings.gradle", "settings.gradle.kts")


class MavenDetector(Detector):
    name = "maven"

    def detect(
        self,
        files: Sequence[FileEntry],
        current_path: str,
        root_path: str,
        provider: StorageProvider,
        matcher: DependencyMatcher,
    ) -> List[Payload]:
        if POM not in file_names(files):
            return []
        text = read_manifest(provider, current_path, POM)
        info = parse_pom(text) if text is not None else None
        if info is None or not info.name:
            return []

        display = info.name.split(":", 1)[-1]
        payload = Payload(display, [manifest_path(provider, current_path, POM)], component_type="maven")
        payload.add_primary_tech("java", f"matched file: {POM}")
        payload.set_property("maven", "package_name", info.name)
        record_dependencies(payload, "maven", info.dependencies, matcher)
        return [payload]


class GradleDetector(Detector):
    """One component spanning the build script and its settings companion."""

    name = "gradle"

    def detect(
        self,
        files: Sequence[FileEntry],
        current_path: str,
        root_path: str,
        provider: StorageProvider,
        matcher: DependencyMatcher,
    ) -> List[Payload]:
        names = file_names(files)
        build_files = [name for name in GRADLE_BUILD_FILES if name in names]
        if not build_files:
            return []

        project_name = None
        settings_files = [name for name in GRADLE_SETTINGS_FILES if name in names]
        for settings in settings_files:
            text = read_manifest(provider, current_path, settings)
            if text is not None:
                project_name = parse_gradle_project_name(text) or project_name
        if not project_name:
            project_name = posixpath.basename(provider.relative(current_path)) or os.path.basename(
                os.path.normpath(root_path)
            )

        payload = Payload(
            project_name or "gradle",
            [manifest_path(provider, current_path, name) for name in build_files + settings_files],
            component_type="gradle",
        )
        primary = "kotlin" if build_files[0].endswith(".kts") else "java"
        payload.add_primary_tech(primary, f"matched file: {build_files[0]}")
        for build_file in build_files:
            text = read_manifest(provider, current_path, build_file)
            if text is not None:
                record_dependencies(payload, "gradle", parse_gradle_dependencies(text), matcher)
        return [payload]


__all__ = ["GradleDetector", "MavenDetector"]
