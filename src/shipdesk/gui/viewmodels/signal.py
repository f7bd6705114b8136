"""Observer primitives for view-models, usable with or without Qt.

``Signal`` fans a call out to connected callbacks; ``ObservableProperty``
wraps a value and announces replacements so a table widget can re-render.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

_logger = logging.getLogger(__name__)


class Signal:
    """Callback list with Qt-like ``connect``/``emit``.

    A handler that raises is logged and skipped; the remaining handlers still
    run, matching ``EventBus.publish``.
    """

    def __init__(self) -> None:
        self._handlers: list[Callable] = []
        self._lock = threading.Lock()

    def connect(self, handler: Callable) -> Callable:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)
        return handler

    def disconnect(self, handler: Callable) -> bool:
        """Remove *handler*; return ``False`` when it was not connected."""
        with self._lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                return False
        return True

    def disconnect_all(self) -> None:
        with self._lock:
            self._handlers.clear()

    def emit(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(*args, **kwargs)
            except Exception as exc:
                _logger.error("Signal handler %r failed: %s", handler, exc)

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)


class ObservableProperty:
    """Value holder emitting ``changed(new_value, old_value)`` on replacement.

    Row sets are immutable, so an identity check is enough to detect a swap
    and equal-but-new snapshots still notify.
    """

    def __init__(self, initial_value: Any = None) -> None:
        self._value = initial_value
        self.changed = Signal()

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        if new_value is self._value:
            return
        old_value = self._value
        self._value = new_value
        self.changed.emit(new_value, old_value)
