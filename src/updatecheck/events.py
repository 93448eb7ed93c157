"""
Mod Update Checker - Events
Observer hooks for registration and update notifications.
"""

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class EventHook:
    """
    A list of subscribers invoked synchronously on emit.
    
    A subscriber that raises is logged and skipped; the remaining
    subscribers still run.
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: list[Callable] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Callable) -> Callable:
        """Add a handler. Returns it so this can be used as a decorator."""
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)
        return handler

    def unsubscribe(self, handler: Callable) -> bool:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)
                return True
        return False

    def emit(self, *args) -> None:
        with self._lock:
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Subscriber {handler!r} of {self.name} failed")

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)


class LogNotifier:
    """on_update_available subscriber that writes an update banner to the log."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def __call__(self, component_id: str, verdict) -> None:
        self.log.warning("=" * 44)
        self.log.warning(f"UPDATE AVAILABLE: {component_id}")
        self.log.warning(f"Current: v{verdict.current_version}")
        self.log.warning(f"Latest: v{verdict.latest_version}")
        if verdict.changelog:
            self.log.warning(f"Changelog: {verdict.changelog}")
        if verdict.download_url:
            self.log.warning(f"Download: {verdict.download_url}")
        self.log.warning("=" * 44)
