"""
Clipboard Guard

Scrubs the system clipboard when it holds text recently copied out of a
confidential document.
"""
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import pyperclip

from ..utils import call_with_timeout
from .base import BaseGuard

DEFAULT_INTERVAL = 1.0
DEFAULT_MAX_FRAGMENTS = 50
DEFAULT_MIN_LENGTH = 10


class PyperclipClipboard:
    """System clipboard access through pyperclip."""

    def read_text(self) -> str:
        return pyperclip.paste() or ''

    def write_text(self, text: str) -> None:
        pyperclip.copy(text)


class ClipboardGuard(BaseGuard):
    """Periodically clears the clipboard when it contains tracked fragments."""

    def __init__(
        self,
        clipboard: Optional[PyperclipClipboard] = None,
        interval: float = DEFAULT_INTERVAL,
        max_fragments: int = DEFAULT_MAX_FRAGMENTS,
        min_length: int = DEFAULT_MIN_LENGTH,
        io_timeout: float = 3.0
    ) -> None:
        """
        Initialize the clipboard guard.

        Args:
            clipboard: Object with ``read_text()`` and ``write_text(text)``
            interval: Seconds between clipboard checks
            max_fragments: Maximum number of tracked fragments (oldest evicted first)
            min_length: Fragments whose trimmed length does not exceed this are ignored
            io_timeout: Seconds to wait on a clipboard read or write
        """
        super().__init__()
        self.clipboard = clipboard or PyperclipClipboard()
        self.interval = interval
        self.max_fragments = max_fragments
        self.min_length = min_length
        self.io_timeout = io_timeout

        self._fragments: 'OrderedDict[str, None]' = OrderedDict()
        self._fragments_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='classguard-clipboard')
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def track_confidential_content(self, text: str) -> bool:
        """
        Remember text copied from a confidential document.

        Returns:
            True if the text is now tracked
        """
        if not text:
            return False
        fragment = text.strip()
        if len(fragment) <= self.min_length:
            return False

        with self._fragments_lock:
            if fragment not in self._fragments:
                self._fragments[fragment] = None
                while len(self._fragments) > self.max_fragments:
                    self._fragments.popitem(last=False)
        return True

    def tracked_fragments(self) -> List[str]:
        """Tracked fragments, oldest first."""
        with self._fragments_lock:
            return list(self._fragments)

    def clear_tracked(self) -> None:
        with self._fragments_lock:
            self._fragments.clear()

    def check_clipboard(self) -> bool:
        """
        Run one clipboard check.

        Returns:
            True if the clipboard was cleared
        """
        try:
            content = call_with_timeout(self._executor, self.clipboard.read_text,
                                        timeout=self.io_timeout)
        except Exception as e:
            self.logger.debug(f"Clipboard read failed: {e}")
            return False

        if not content:
            return False

        with self._fragments_lock:
            fragments = list(self._fragments)

        for fragment in fragments:
            if fragment in content or content in fragment:
                try:
                    call_with_timeout(self._executor, self.clipboard.write_text, '',
                                      timeout=self.io_timeout)
                except Exception as e:
                    self.logger.debug(f"Clipboard write failed: {e}")
                    return False

                with self._fragments_lock:
                    self._fragments.pop(fragment, None)

                self.logger.warning("Clipboard cleared: confidential content detected and removed")
                self._notify_handlers(self._create_event(
                    'clipboard_cleared',
                    'error',
                    'Clipboard cleared: Confidential content detected and removed'
                ))
                return True

        return False

    def _start(self) -> None:
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._monitor_loop,
            args=(self._stop_event,),
            name='classguard-clipboard-guard',
            daemon=True
        )
        self._thread.start()

    def _stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.io_timeout + self.interval)
            if self._thread.is_alive():
                self.logger.warning("Timed out waiting for clipboard guard thread to stop")
        self._thread = None
        self.clear_tracked()

    def _monitor_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            try:
                self.check_clipboard()
            except Exception as e:
                self.logger.error(f"Error in clipboard check: {e}", exc_info=True)

    def close(self) -> None:
        self.stop()
        self._executor.shutdown(wait=False)
