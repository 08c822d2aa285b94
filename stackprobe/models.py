"""Value records shared across stackprobe components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Tuple

from . import SPEC_VERSION


@dataclass(frozen=True)
class Dependency:
    """A declared dependency from an ecosystem manifest."""

    type: str
    name: str
    version: str = "latest"

    def key(self) -> Tuple[str, str, str]:
        return (self.type, self.name, self.version)

    def to_list(self) -> List[str]:
        return [self.type, self.name, self.version]


@dataclass(frozen=True)
class License:
    """License evidence with provenance."""

    name: str
    detection_type: str
    source_file: str
    confidence: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "license_name": self.name,
            "detection_type": self.detection_type,
            "source_file": self.source_file,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class GitInfo:
    """Repository identity for the directory a node was found in."""

    branch: str
    commit: str
    remote_url: str

    def key(self) -> Tuple[str, str, str]:
        return (self.remote_url, self.branch, self.commit)

    def to_dict(self) -> Dict[str, str]:
        return {"branch": self.branch, "commit": self.commit, "remote_url": self.remote_url}


@dataclass(frozen=True)
class FileEntry:
    """One entry of a directory listing returned by a storage provider."""

    name: str
    kind: str
    size: int = 0
    mod_time: float = 0.0

    @property
    def is_dir(self) -> bool:
        return self.kind == "dir"


@dataclass(frozen=True)
class ComponentRef:
    """Link from a node to another component it depends on by package name."""

    target_id: str
    name: str
    type: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.target_id, "name": self.name, "type": self.type}


@dataclass
class ScanMetadata:
    """Root-level bookkeeping for a scan."""

    scan_path: str
    format: str = "full"
    timestamp: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat(timespec="seconds")
    )
    spec_version: str = SPEC_VERSION
    duration_ms: int = 0
    file_count: int = 0
    component_count: int = 0
    language_count: int = 0
    tech_count: int = 0
    techs_count: int = 0
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "format": self.format,
            "timestamp": self.timestamp,
            "scan_path": self.scan_path,
            "specVersion": self.spec_version,
            "duration_ms": self.duration_ms,
            "file_count": self.file_count,
            "component_count": self.component_count,
            "language_count": self.language_count,
            "tech_count": self.tech_count,
            "techs_count": self.techs_count,
        }
        if self.properties:
            data["properties"] = dict(self.properties)
        return data


__all__ = [
    "ComponentRef",
    "Dependency",
    "FileEntry",
    "GitInfo",
    "License",
    "ScanMetadata",
]
