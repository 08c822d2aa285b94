"""Scan lifecycle events for observers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .logging import get_logger


class EventType(str, Enum):
    SCAN_START = "scan_start"
    SCAN_COMPLETE = "scan_complete"
    ENTER_DIRECTORY = "enter_directory"
    LEAVE_DIRECTORY = "leave_directory"
    COMPONENT_DETECTED = "component_detected"
    RULE_MATCHED = "rule_matched"
    FILE_SKIPPED = "file_skipped"


@dataclass(frozen=True)
class Event:
    type: EventType
    path: str = ""
    name: Optional[str] = None
    tech: Optional[str] = None
    reason: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class EventSink:
    """Receives events; must not affect the scan it observes."""

    def emit(self, event: Event) -> None:
        raise NotImplementedError


class NullSink(EventSink):
    def emit(self, event: Event) -> None:
        return None


class LoggingSink(EventSink):
    """Writes every event to the ``stackprobe.events`` logger at DEBUG."""

    def __init__(self) -> None:
        self._logger = get_logger("events")

    def emit(self, event: Event) -> None:
        parts = [event.type.value, event.path or "/"]
        for label, value in (("name", event.name), ("tech", event.tech), ("reason", event.reason)):
            if value:
                parts.append(f"{label}={value}")
        self._logger.debug(" ".join(parts))


class RecordingSink(EventSink):
    """Keeps events in memory, mostly for tests."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[Event]:
        return [event for event in self.events if event.type is event_type]


__all__ = ["Event", "EventSink", "EventType", "LoggingSink", "NullSink", "RecordingSink"]
