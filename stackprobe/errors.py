"""Exception types raised by stackprobe."""

from __future__ import annotations


class StackProbeError(RuntimeError):
    """Base class for errors surfaced to callers."""


class ScanError(StackProbeError):
    """Raised when a scan cannot start, e.g. the root is not a readable directory."""


class CatalogLoadError(StackProbeError):
    """Raised when the rule catalog as a whole cannot be loaded."""


class RuleLoadError(StackProbeError):
    """A single rule failed validation; scoped to the file it came from."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


__all__ = ["CatalogLoadError", "RuleLoadError", "ScanError", "StackProbeError"]
