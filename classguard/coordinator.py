"""
Protection Coordinator

Turns the clipboard and duplication guards on while at least one open
document is confidential, and off again once none is.
"""
import logging
import threading
from typing import Callable, Iterable, List, Optional

from .core import ClassificationLevel, ProtectionState
from .guards.base import BaseGuard
from .store import ClassificationStore

logger = logging.getLogger(__name__)


class ProtectionCoordinator:
    """Owns the enhanced-protection state and the guard lifecycle."""

    def __init__(
        self,
        store: ClassificationStore,
        clipboard_guard: BaseGuard,
        duplication_guard: BaseGuard,
        open_documents: Optional[Callable[[], Iterable[str]]] = None
    ) -> None:
        """
        Args:
            store: Classification store used to scan open documents
            clipboard_guard: Guard scrubbing the clipboard
            duplication_guard: Guard removing duplicates
            open_documents: Returns the identities of the currently open documents
        """
        self.store = store
        self.clipboard_guard = clipboard_guard
        self.duplication_guard = duplication_guard
        self.open_documents = open_documents or (lambda: ())
        self._state = ProtectionState.INACTIVE
        self._lock = threading.Lock()

    @property
    def state(self) -> ProtectionState:
        return self._state

    def confidential_documents(self, documents: Iterable[str]) -> List[str]:
        """Return the documents classified confidential.

        A document whose lookup fails counts as not confidential.
        """
        found = []
        for document in documents:
            try:
                if self.store.get_classification(document) is ClassificationLevel.CONFIDENTIAL:
                    found.append(document)
            except Exception as e:
                logger.warning(f"Classification lookup failed for {document}: {e}")
        return found

    def on_open_document_set_changed(self, documents: Optional[Iterable[str]] = None) -> ProtectionState:
        """
        Re-evaluate the protection state.

        While any confidential document is open, every scan hands the
        confidential documents to the guards and starts any guard that is not
        running, so a guard that failed to start is retried.

        Args:
            documents: Open document identities; queried from the provider if omitted

        Returns:
            The protection state after the scan
        """
        with self._lock:
            if documents is None:
                try:
                    documents = list(self.open_documents())
                except Exception as e:
                    logger.error(f"Could not list open documents: {e}", exc_info=True)
                    return self._state

            confidential = self.confidential_documents(documents)

            if confidential:
                self._start_guards(confidential)
                if self._state is ProtectionState.INACTIVE:
                    self._state = ProtectionState.ACTIVE
                    logger.info("Enhanced protection activated for confidential files")
            elif self._state is ProtectionState.ACTIVE:
                self._state = ProtectionState.INACTIVE
                self._stop_guards()
                logger.info("Enhanced protection deactivated - no confidential files open")

            return self._state

    def deactivate(self) -> None:
        """Stop the guards regardless of the open documents."""
        with self._lock:
            self._state = ProtectionState.INACTIVE
            self._stop_guards()

    def _start_guards(self, confidential: List[str]) -> None:
        for guard in (self.clipboard_guard, self.duplication_guard):
            try:
                guard.protect_documents(confidential)
                if not guard.is_running():
                    guard.start()
            except Exception as e:
                logger.error(f"Failed to start {guard.__class__.__name__}: {e}", exc_info=True)

    def _stop_guards(self) -> None:
        for guard in (self.clipboard_guard, self.duplication_guard):
            try:
                guard.stop()
            except Exception as e:
                logger.error(f"Failed to stop {guard.__class__.__name__}: {e}", exc_info=True)
