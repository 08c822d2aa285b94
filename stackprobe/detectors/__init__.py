"""Component detectors and the ordered detector registry."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List, Sequence, Set

from .base import Detector
from .docker import DockerDetector
from .dotenv import DotenvDetector
from .golang import GoDetector
from .java import GradleDetector, MavenDetector
from .nodejs import NodeDetector
from .python import PythonDetector
from .rust import RustDetector

ENTRY_POINT_GROUP = "stackprobe.detectors"

# Registration order is the tie-break when two detectors claim one directory.
_BUILTIN_FACTORIES: Dict[str, Callable[[], Detector]] = {
    "nodejs": NodeDetector,
    "python": PythonDetector,
    "golang": GoDetector,
    "rust": RustDetector,
    "maven": MavenDetector,
    "gradle": GradleDetector,
    "docker": DockerDetector,
    "dotenv": DotenvDetector,
}


def default_detectors(enabled: Sequence[str] | None = None) -> List[Detector]:
    """Return detectors in registration order: built-ins first, then plugins.

    ``enabled`` restricts the result to the given names; unknown names raise
    ``ValueError``.
    """
    wanted: Set[str] | None = None
    if enabled is not None:
        wanted = {name.lower() for name in enabled}

    detectors: List[Detector] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[], Detector]) -> None:
        key = name.lower()
        if key in seen or (wanted is not None and key not in wanted):
            return
        instance = factory()
        if not isinstance(instance, Detector):
            raise TypeError(f"Detector factory for '{name}' did not return a Detector instance")
        detectors.append(instance)
        seen.add(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - depends on installed plugins
            raise RuntimeError(f"Failed to load detector entry point '{entry.name}': {exc}") from exc

        def _factory(obj: object = loaded) -> Detector:
            return _coerce_detector(obj)

        _add(entry.name, _factory)

    if wanted is not None:
        missing = wanted - seen
        if missing:
            raise ValueError(f"Unknown detectors requested: {', '.join(sorted(missing))}")

    return detectors


def _coerce_detector(obj: object) -> Detector:
    if isinstance(obj, Detector):
        return obj
    if isinstance(obj, type) and issubclass(obj, Detector):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Detector):
            return instance
    raise TypeError("Detector entry point must be a Detector subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=ENTRY_POINT_GROUP)


__all__ = ["Detector", "ENTRY_POINT_GROUP", "default_detectors"]
