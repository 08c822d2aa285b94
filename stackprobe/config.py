"""Configuration loading for stackprobe (.stackprobe.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".stackprobe.yml"
DEFAULT_TECH_REASON = f"configured in {CONFIG_FILENAME}"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ConfiguredTech:
    """A technology declared by hand rather than detected."""

    tech: str
    reason: str = DEFAULT_TECH_REASON


@dataclass
class ScanConfig:
    """Settings read from .stackprobe.yml."""

    root: Path
    exclude: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)
    techs: List[ConfiguredTech] = field(default_factory=list)
    root_id: Optional[str] = None
    rules_dirs: List[Path] = field(default_factory=list)

    def merged_excludes(self, extra: Sequence[str] = ()) -> List[str]:
        """Config excludes followed by ``extra`` without duplicates."""
        merged: List[str] = []
        for pattern in [*self.exclude, *extra]:
            if pattern and pattern not in merged:
                merged.append(pattern)
        return merged


def load_config(config_path: Path, *, required: bool = False) -> ScanConfig:
    """Load configuration from a directory or an explicit file.

    A missing file yields defaults unless ``required`` is set.
    """
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        if required:
            raise ConfigError(f"Config file not found: {config_file}")
        return ScanConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    properties = data.get("properties") or {}
    if not isinstance(properties, dict):
        raise ConfigError("'properties' must be a mapping")

    techs: List[ConfiguredTech] = []
    for entry in _as_list(data.get("techs")):
        if isinstance(entry, str) and entry.strip():
            techs.append(ConfiguredTech(tech=entry.strip()))
        elif isinstance(entry, dict) and _as_str(entry.get("tech")):
            techs.append(
                ConfiguredTech(
                    tech=_as_str(entry.get("tech")),  # type: ignore[arg-type]
                    reason=_as_str(entry.get("reason")) or DEFAULT_TECH_REASON,
                )
            )
        else:
            raise ConfigError(f"Invalid entry in 'techs': {entry!r}")

    rules_dirs = [root / Path(item).expanduser() for item in _as_str_list(data.get("rules_dirs"))]

    return ScanConfig(
        root=root,
        exclude=_as_str_list(data.get("exclude")),
        properties=dict(properties),
        techs=techs,
        root_id=_as_str(data.get("root_id")),
        rules_dirs=rules_dirs,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_str_list(value: Any) -> List[str]:
    return [item.strip() for item in _as_list(value) if isinstance(item, str) and item.strip()]


__all__ = ["CONFIG_FILENAME", "ConfigError", "ConfiguredTech", "ScanConfig", "load_config"]
