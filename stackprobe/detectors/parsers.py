"""Manifest parsers shared by the built-in detectors.

Every parser takes the manifest text and returns ``None`` (or an empty
result) when the document is malformed; none of them raise.
"""

from __future__ import annotations

import json
import re
import tomllib
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import yaml

_REQUIREMENT_NAME = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*)")


@dataclass
class ManifestInfo:
    """What a detector needs from one manifest."""

    name: Optional[str] = None
    version: Optional[str] = None
    license: Optional[str] = None
    dependencies: List[Tuple[str, str]] = field(default_factory=list)


# Python


def parse_requirement(spec: str) -> Optional[Tuple[str, str]]:
    """Split a PEP 508 requirement into ``(name, version)``."""
    spec = spec.split(";", 1)[0].split("#", 1)[0].strip()
    match = _REQUIREMENT_NAME.match(spec)
    if not match:
        return None
    name = match.group(1)
    rest = spec[match.end():].strip()
    rest = re.sub(r"^\[[^\]]*\]", "", rest).strip()
    if rest.startswith("==") and "," not in rest:
        return name, rest[2:].strip() or "latest"
    return name, rest or "latest"


def parse_requirements(text: str) -> List[Tuple[str, str]]:
    packages: List[Tuple[str, str]] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", "-", "git+", "http://", "https://")):
            continue
        parsed = parse_requirement(stripped)
        if parsed and parsed not in packages:
            packages.append(parsed)
    return packages


def parse_pyproject(text: str) -> Optional[ManifestInfo]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return None

    info = ManifestInfo()
    specs: List[str] = []
    project = data.get("project")
    if isinstance(project, dict):
        info.name = _as_text(project.get("name"))
        info.version = _as_text(project.get("version"))
        license_value = project.get("license")
        if isinstance(license_value, dict):
            license_value = license_value.get("text")
        info.license = _as_text(license_value)
        specs.extend(item for item in project.get("dependencies", []) or [] if isinstance(item, str))
        optional = project.get("optional-dependencies", {}) or {}
        if isinstance(optional, dict):
            for values in optional.values():
                specs.extend(item for item in values or [] if isinstance(item, str))

    for spec in specs:
        parsed = parse_requirement(spec)
        if parsed and parsed not in info.dependencies:
            info.dependencies.append(parsed)

    tool = data.get("tool")
    poetry = tool.get("poetry") if isinstance(tool, dict) else None
    if isinstance(poetry, dict):
        info.name = info.name or _as_text(poetry.get("name"))
        info.version = info.version or _as_text(poetry.get("version"))
        info.license = info.license or _as_text(poetry.get("license"))
        poetry_deps = poetry.get("dependencies", {}) or {}
        if isinstance(poetry_deps, dict):
            for name, constraint in poetry_deps.items():
                if name.lower() == "python":
                    continue
                version = constraint.get("version") if isinstance(constraint, dict) else constraint
                entry = (name, _as_text(version) or "latest")
                if entry not in info.dependencies:
                    info.dependencies.append(entry)
    return info


# Node.js


def parse_package_json(text: str) -> Optional[ManifestInfo]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    info = ManifestInfo(
        name=_as_text(data.get("name")),
        version=_as_text(data.get("version")),
    )
    license_value = data.get("license")
    if isinstance(license_value, dict):
        license_value = license_value.get("type")
    info.license = _as_text(license_value)
    for key in ("dependencies", "devDependencies", "peerDependencies"):
        deps = data.get(key, {})
        if not isinstance(deps, dict):
            continue
        for name, version in deps.items():
            if name not in {dep for dep, _ in info.dependencies}:
                info.dependencies.append((name, _as_text(version) or "latest"))
    return info


# Go


def parse_go_mod(text: str) -> Optional[ManifestInfo]:
    info = ManifestInfo()
    in_require = False
    for raw_line in text.splitlines():
        line = raw_line.split("//", 1)[0].strip()
        if not line:
            continue
        if line.startswith("module "):
            info.name = line.split(None, 1)[1].strip().strip('"')
        elif line.startswith("require ("):
            in_require = True
        elif in_require and line == ")":
            in_require = False
        elif in_require or line.startswith("require "):
            parts = line.replace("require ", "", 1).split()
            if len(parts) >= 2:
                info.dependencies.append((parts[0], parts[1]))
    if info.name is None:
        return None
    return info


# Rust


def parse_cargo_toml(text: str) -> Optional[ManifestInfo]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return None

    info = ManifestInfo()
    package = data.get("package")
    if isinstance(package, dict):
        info.name = _as_text(package.get("name"))
        info.version = _as_text(package.get("version"))
        info.license = _as_text(package.get("license"))
    for section in ("dependencies", "dev-dependencies", "build-dependencies"):
        deps = data.get(section, {})
        if not isinstance(deps, dict):
            continue
        for name, spec in deps.items():
            version = spec.get("version") if isinstance(spec, dict) else spec
            entry = (name, _as_text(version) or "latest")
            if entry not in info.dependencies:
                info.dependencies.append(entry)
    return info


# Java


def parse_pom(text: str) -> Optional[ManifestInfo]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return None

    namespace = _detect_xml_namespace(root)

    def _tag(name: str) -> str:
        return f"{{{namespace}}}{name}" if namespace else name

    group = root.findtext(_tag("groupId")) or root.findtext(f"{_tag('parent')}/{_tag('groupId')}") or ""
    artifact = root.findtext(_tag("artifactId")) or ""
    info = ManifestInfo(
        name=f"{group}:{artifact}" if group and artifact else artifact or None,
        version=root.findtext(_tag("version")),
    )
    for dep in root.iter(_tag("dependency")):
        dep_group = (dep.findtext(_tag("groupId")) or "").strip()
        dep_artifact = (dep.findtext(_tag("artifactId")) or "").strip()
        if dep_group and dep_artifact:
            version = (dep.findtext(_tag("version")) or "latest").strip()
            entry = (f"{dep_group}:{dep_artifact}", version)
            if entry not in info.dependencies:
                info.dependencies.append(entry)
    return info


def _detect_xml_namespace(element: ET.Element) -> Optional[str]:
    match = re.match(r"\{(.+)}", element.tag)
    return match.group(1) if match else None


_GRADLE_CONFIGURATIONS = (
    "implementation",
    "api",
    "compile",
    "compileOnly",
    "runtimeOnly",
    "testImplementation",
    "annotationProcessor",
)
_GRADLE_COORDINATE = re.compile(r"['\"]([\w\-.]+):([\w\-.]+)(?::([\w\-.+]+))?['\"]")


def parse_gradle_dependencies(text: str) -> List[Tuple[str, str]]:
    deps: List[Tuple[str, str]] = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("//"):
            continue
        if not any(line.startswith(token) for token in _GRADLE_CONFIGURATIONS):
            continue
        match = _GRADLE_COORDINATE.search(line)
        if match:
            entry = (f"{match.group(1)}:{match.group(2)}", match.group(3) or "latest")
            if entry not in deps:
                deps.append(entry)
    return deps


def parse_gradle_project_name(settings_text: str) -> Optional[str]:
    match = re.search(r"rootProject\.name\s*=\s*['\"]([^'\"]+)['\"]", settings_text)
    return match.group(1) if match else None


# Containers


def split_image(reference: str) -> Tuple[str, str]:
    """Split ``registry/name:tag@digest`` into ``(name, tag)``."""
    reference = reference.strip()
    if "@" in reference:
        reference = reference.split("@", 1)[0]
    name, tag = reference, "latest"
    last = reference.rsplit("/", 1)[-1]
    if ":" in last:
        name, tag = reference.rsplit(":", 1)
    return name.lower(), tag


def parse_dockerfile_images(text: str) -> List[Tuple[str, str]]:
    images: List[Tuple[str, str]] = []
    stages: set = set()
    for raw_line in text.splitlines():
        parts = raw_line.strip().split()
        if len(parts) < 2 or parts[0].upper() != "FROM":
            continue
        args = [part for part in parts[1:] if not part.startswith("--")]
        if not args:
            continue
        if len(args) >= 3 and args[1].upper() == "AS":
            stages.add(args[2].lower())
        if args[0].lower() in stages or args[0].lower() == "scratch" or "$" in args[0]:
            continue
        image = split_image(args[0])
        if image not in images:
            images.append(image)
    return images


def parse_compose_services(text: str) -> Optional[Dict[str, Optional[str]]]:
    """Return ``service -> image`` (``None`` for build-only services)."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        return None
    if not isinstance(data, dict):
        return None
    services = data.get("services")
    if not isinstance(services, dict):
        return {}
    result: Dict[str, Optional[str]] = {}
    for name, spec in services.items():
        image = spec.get("image") if isinstance(spec, dict) else None
        result[str(name)] = image if isinstance(image, str) else None
    return result


# Environment files


def parse_env_names(text: str) -> List[str]:
    """Variable names declared in a dotenv file; values are never kept."""
    names: List[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        name = line.split("=", 1)[0].strip()
        if re.fullmatch(r"[A-Za-z_][A-Za-z0-9_.]*", name) and name not in names:
            names.append(name)
    return names


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


__all__ = [
    "ManifestInfo",
    "parse_cargo_toml",
    "parse_compose_services",
    "parse_dockerfile_images",
    "parse_env_names",
    "parse_go_mod",
    "parse_gradle_dependencies",
    "parse_gradle_project_name",
    "parse_package_json",
    "parse_pom",
    "parse_pyproject",
    "parse_requirement",
    "parse_requirements",
    "split_image",
]
