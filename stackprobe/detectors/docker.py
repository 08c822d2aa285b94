"""Container definitions: Dockerfiles and compose files."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Any, Dict, List, Sequence

from ..matchers.dependencies import DependencyMatcher
from ..models import FileEntry
from ..payload import Payload
from ..providers import StorageProvider
from .base import Detector, file_names, manifest_path, read_manifest, record_dependencies
from .parsers import parse_compose_services, parse_dockerfile_images, split_image

COMPOSE_FILES = ("docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml")
DOCKERFILE_PATTERNS = ("Dockerfile", "Dockerfile.*", "*.Dockerfile")


class DockerDetector(Detector):
    """Base images and compose service images become ``docker`` dependencies.

    Everything is merged into the directory node; each file adds one record to
    the ``docker`` property list.
    """

    name = "docker"

    def detect(
        self,
        files: Sequence[FileEntry],
        current_path: str,
        root_path: str,
        provider: StorageProvider,
        matcher: DependencyMatcher,
    ) -> List[Payload]:
        names = sorted(file_names(files))
        dockerfiles = [n for n in names if any(fnmatchcase(n, p) for p in DOCKERFILE_PATTERNS)]
        compose_files = [n for n in names if n in COMPOSE_FILES]
        if not dockerfiles and not compose_files:
            return []

        fragment = Payload.fragment(manifest_path(provider, current_path, (dockerfiles + compose_files)[0]))
        records: List[Dict[str, Any]] = []

        for file_name in dockerfiles:
            text = read_manifest(provider, current_path, file_name)
            if text is None:
                continue
            images = parse_dockerfile_images(text)
            path = manifest_path(provider, current_path, file_name)
            fragment.add_path(path)
            fragment.add_tech("docker", f"matched file: {file_name}")
            record_dependencies(fragment, "docker", images, matcher)
            records.append({"file": path, "base_images": [f"{name}:{tag}" for name, tag in images]})

        for file_name in compose_files:
            text = read_manifest(provider, current_path, file_name)
            services = parse_compose_services(text) if text is not None else None
            if services is None:
                continue
            images = [split_image(image) for image in services.values() if image]
            path = manifest_path(provider, current_path, file_name)
            fragment.add_path(path)
            fragment.add_tech("docker", f"matched file: {file_name}")
            record_dependencies(fragment, "docker", images, matcher)
            records.append({"file": path, "services": sorted(services)})

        if not records:
            return []
        fragment.properties["docker"] = records
        return [fragment]


__all__ = ["DockerDetector"]
