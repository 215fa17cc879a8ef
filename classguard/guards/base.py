"""
Base class for the protection guards.
"""
import abc
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List


class BaseGuard(abc.ABC):
    """Abstract base class for background protection guards.

    ``start`` and ``stop`` are idempotent and serialized, so the running
    check and the transition that follows it cannot interleave with a
    concurrent call.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"classguard.guard.{self.__class__.__name__}")
        self.running = False
        self._state_lock = threading.Lock()
        self.event_handlers: List[Callable[[Dict[str, Any]], None]] = []

    def start(self) -> None:
        """Start the guard."""
        with self._state_lock:
            if self.running:
                self.logger.debug("Guard is already running")
                return
            self._start()
            self.running = True
        self.logger.info(f"Started {self.__class__.__name__}")

    def stop(self) -> None:
        """Stop the guard."""
        with self._state_lock:
            if not self.running:
                return
            self.running = False
            self._stop()
        self.logger.info(f"Stopped {self.__class__.__name__}")

    def is_running(self) -> bool:
        return self.running

    def protect_documents(self, documents: List[str]) -> None:
        """Called with the open confidential documents on every active scan."""

    def register_handler(self, handler: Callable[[Dict[str, Any]], None]) -> None:
        """Register a callback receiving guard events (e.g. for user notification)."""
        self.event_handlers.append(handler)

    def _notify_handlers(self, event: Dict[str, Any]) -> None:
        for handler in self.event_handlers:
            try:
                handler(event)
            except Exception as e:
                self.logger.error(f"Error in event handler: {e}", exc_info=True)

    def _create_event(self, event_type: str, severity: str, message: str,
                      **data: Any) -> Dict[str, Any]:
        return {
            'event_type': event_type,
            'severity': severity,
            'message': message,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'guard': self.__class__.__name__,
            'data': data
        }

    @abc.abstractmethod
    def _start(self) -> None:
        """Acquire resources and begin guarding."""

    @abc.abstractmethod
    def _stop(self) -> None:
        """Release resources. Must not block on work already in flight."""
