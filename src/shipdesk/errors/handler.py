import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Protocol

from shipdesk.events.bus import EventBus
from shipdesk.events.sync_events import DiagnosticRecordedEvent


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class DiagnosticKind(str, Enum):
    DECODE_FAILURE = "decode_failure"
    FETCH_FAILURE = "fetch_failure"
    PERSISTENCE_FAILURE = "persistence_failure"
    SUBSCRIPTION_FAILURE = "subscription_failure"
    STREAM_ERROR = "stream_error"
    UNSUBSCRIBED = "unsubscribed"


DEFAULT_SEVERITY: dict[DiagnosticKind, ErrorSeverity] = {
    DiagnosticKind.DECODE_FAILURE: ErrorSeverity.WARNING,
    DiagnosticKind.FETCH_FAILURE: ErrorSeverity.ERROR,
    DiagnosticKind.PERSISTENCE_FAILURE: ErrorSeverity.ERROR,
    DiagnosticKind.SUBSCRIPTION_FAILURE: ErrorSeverity.ERROR,
    DiagnosticKind.STREAM_ERROR: ErrorSeverity.ERROR,
    DiagnosticKind.UNSUBSCRIBED: ErrorSeverity.INFO,
}


class DiagnosticsSink(Protocol):
    """Structured destination for everything the sync core reports."""

    def record(self, kind: DiagnosticKind, context: Mapping[str, Any]) -> None: ...


class DiagnosticsHandler:
    """Default sink: log, publish on the bus, and notify the UI for errors."""

    def __init__(self, logger: logging.Logger, event_bus: Optional[EventBus] = None):
        self._logger = logger
        self._events = event_bus
        self._ui_callback: Optional[Callable[[str, ErrorSeverity], None]] = None

    def register_ui_callback(self, callback: Callable[[str, ErrorSeverity], None]):
        self._ui_callback = callback

    def record(self, kind: DiagnosticKind, context: Mapping[str, Any]) -> None:
        severity = DEFAULT_SEVERITY.get(kind, ErrorSeverity.ERROR)
        payload = dict(context)
        message = _describe(kind, payload)

        log_method = getattr(self._logger, severity.value, self._logger.error)
        log_method(message, extra={"diagnostic": kind.value, "context": payload})

        if self._events is not None:
            self._events.publish(DiagnosticRecordedEvent(
                kind=kind.value,
                severity=severity.value,
                context=payload,
            ))

        if self._ui_callback and severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            self._ui_callback(message, severity)

    def handle(self, error: Exception, kind: DiagnosticKind, **context: Any) -> None:
        """Record *error* under *kind*; convenience for ``except`` blocks."""
        context.setdefault("error", f"{error.__class__.__name__}: {error}")
        self.record(kind, context)


def _describe(kind: DiagnosticKind, context: dict) -> str:
    error = context.get("error")
    if error:
        return f"{kind.value}: {error}"
    return kind.value
