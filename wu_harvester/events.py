"""Event recorders for operational run events.

Each harvester run reports its outcome to an append-only event sink keyed by
source name, numeric event id and severity. On Windows that sink is the
Windows event log (through pywin32); elsewhere, and in tests, events go to
the standard logging module.
"""

from __future__ import annotations

import logging
import platform
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .exceptions import EventRecorderError

logger = logging.getLogger(__name__)

EVENT_RUN_SUMMARY = 11660
EVENT_INVALID_WATERMARK = 11666
EVENT_MISSING_WATERMARK = 11667
EVENT_FATAL_ERROR = 11668

EVENTLOG_REGISTRY_ROOT = r"SYSTEM\CurrentControlSet\Services\EventLog"

RECORDER_KINDS = ("auto", "windows", "logging")


class EventSeverity(Enum):
    """Severity of a recorded event."""

    INFORMATION = "information"
    WARNING = "warning"
    ERROR = "error"


_LOGGING_LEVELS = {
    EventSeverity.INFORMATION: logging.INFO,
    EventSeverity.WARNING: logging.WARNING,
    EventSeverity.ERROR: logging.ERROR,
}


@dataclass
class RecordedEvent:
    """An event appended to a LoggingEventRecorder."""

    source: str
    event_id: int
    severity: EventSeverity
    message: str


class EventRecorder(ABC):
    """Base class for event sinks."""

    @abstractmethod
    def ensure_source_registered(self, name: str) -> None:
        """Make sure the event source exists.

        Idempotent and best effort: implementations log failures at debug
        level and never raise.
        """
        pass

    @abstractmethod
    def append(
        self, name: str, event_id: int, severity: EventSeverity, message: str
    ) -> None:
        """Append one event under the given source."""
        pass

    def info(self, name: str, event_id: int, message: str) -> None:
        self.append(name, event_id, EventSeverity.INFORMATION, message)

    def warning(self, name: str, event_id: int, message: str) -> None:
        self.append(name, event_id, EventSeverity.WARNING, message)

    def error(self, name: str, event_id: int, message: str) -> None:
        self.append(name, event_id, EventSeverity.ERROR, message)


class LoggingEventRecorder(EventRecorder):
    """Event recorder backed by the logging module.

    Events are logged as ``[source:event_id] message`` at the level matching
    their severity and kept in :attr:`records`.
    """

    def __init__(self, target: Optional[logging.Logger] = None):
        """Initialize the recorder.

        Args:
            target: Logger to write to (defaults to this module's logger).
        """
        self.logger = target or logger
        self.registered: List[str] = []
        self.records: List[RecordedEvent] = []

    def ensure_source_registered(self, name: str) -> None:
        if name not in self.registered:
            self.registered.append(name)

    def append(
        self, name: str, event_id: int, severity: EventSeverity, message: str
    ) -> None:
        self.records.append(RecordedEvent(name, event_id, severity, message))
        self.logger.log(
            _LOGGING_LEVELS[severity], "[%s:%d] %s", name, event_id, message
        )


class WindowsEventRecorder(EventRecorder):
    """Event recorder writing to the Windows event log via pywin32."""

    def __init__(self, log_type: str = "Application"):
        """Initialize the recorder.

        Args:
            log_type: Event log the sources live in.
        """
        self.log_type = log_type

    def source_exists(self, name: str) -> bool:
        """Check the registry for the event source.

        Returns False when the key is absent or cannot be opened, which
        includes lacking the privilege to query it.
        """
        import win32api
        import win32con

        key = f"{EVENTLOG_REGISTRY_ROOT}\\{self.log_type}\\{name}"
        try:
            handle = win32api.RegOpenKeyEx(
                win32con.HKEY_LOCAL_MACHINE, key, 0, win32con.KEY_READ
            )
        except Exception as e:
            logger.debug("Event source lookup for %s failed: %s", name, e)
            return False
        win32api.RegCloseKey(handle)
        return True

    def ensure_source_registered(self, name: str) -> None:
        try:
            if self.source_exists(name):
                return
            import win32evtlogutil

            win32evtlogutil.AddSourceToRegistry(name, eventLogType=self.log_type)
            logger.debug("Registered event source %s in %s", name, self.log_type)
        except Exception as e:
            logger.debug("Could not register event source %s: %s", name, e)

    def append(
        self, name: str, event_id: int, severity: EventSeverity, message: str
    ) -> None:
        import win32evtlog
        import win32evtlogutil

        event_types = {
            EventSeverity.INFORMATION: win32evtlog.EVENTLOG_INFORMATION_TYPE,
            EventSeverity.WARNING: win32evtlog.EVENTLOG_WARNING_TYPE,
            EventSeverity.ERROR: win32evtlog.EVENTLOG_ERROR_TYPE,
        }

        try:
            win32evtlogutil.ReportEvent(
                name,
                event_id,
                eventType=event_types[severity],
                strings=[message],
            )
        except Exception as e:
            raise EventRecorderError(name, event_id, str(e)) from e


def get_recorder(
    kind: str = "auto", log_type: str = "Application"
) -> EventRecorder:
    """Get an event recorder instance by name.

    Args:
        kind: One of 'auto', 'windows', 'logging'. 'auto' selects the Windows
              event log on Windows and the logging recorder elsewhere.
        log_type: Event log used by the Windows recorder.

    Returns:
        EventRecorder instance.

    Raises:
        ValueError: If kind is not recognized.
    """
    kind_lower = kind.lower()
    if kind_lower == "auto":
        kind_lower = "windows" if platform.system() == "Windows" else "logging"

    if kind_lower == "windows":
        return WindowsEventRecorder(log_type=log_type)
    if kind_lower == "logging":
        return LoggingEventRecorder()

    raise ValueError(
        f"Unknown recorder: {kind}. Available: {list(RECORDER_KINDS)}"
    )
