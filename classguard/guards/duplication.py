"""
Duplication Guard

Watches for newly created files that look like copies of a confidential
file in the same directory and removes them.
"""
import os
import re
import threading
from typing import Iterable, List, Optional, Set

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..core import ClassificationLevel
from ..store import ClassificationStore
from ..utils import normalize_path
from .base import BaseGuard

DEFAULT_DELETION_DELAY = 0.5

DUPLICATE_PATTERNS = [
    re.compile(r'\s+copy$', re.IGNORECASE),
    re.compile(r'\s*\(\d+\)$'),
    re.compile(r'_copy$', re.IGNORECASE),
    re.compile(r'-copy$', re.IGNORECASE),
]

_EXTENSION = re.compile(r'\.[^.]*$')


def strip_extension(name: str) -> str:
    return _EXTENSION.sub('', name)


def is_duplicate_name(new_name: str, original_name: str) -> bool:
    """
    Check whether ``new_name`` looks like a copy of ``original_name``.

    A name is a copy when removing one trailing copy marker (`` copy``,
    ``(N)``, ``_copy``, ``-copy``) from its extensionless base leaves exactly
    the original's extensionless base.
    """
    new_base = strip_extension(new_name)
    original_base = strip_extension(original_name)
    for pattern in DUPLICATE_PATTERNS:
        cleaned, count = pattern.subn('', new_base, count=1)
        if count and cleaned == original_base:
            return True
    return False


class _CreationHandler(FileSystemEventHandler):
    """Forwards watchdog creation events to the guard."""

    def __init__(self, guard: 'DuplicationGuard'):
        self.guard = guard

    def on_created(self, event):
        if not event.is_directory:
            self.guard.handle_created(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self.guard.handle_created(event.dest_path)


class DuplicationGuard(BaseGuard):
    """Deletes unauthorized duplicates of confidential files."""

    def __init__(
        self,
        store: ClassificationStore,
        watch_paths: Optional[Iterable[str]] = None,
        deletion_delay: float = DEFAULT_DELETION_DELAY,
        recursive: bool = True
    ) -> None:
        """
        Initialize the duplication guard.

        Args:
            store: Classification store used to find confidential originals
            watch_paths: Directories to watch (default: current directory)
            deletion_delay: Seconds to wait before deleting a duplicate
            recursive: Whether to watch subdirectories
        """
        super().__init__()
        self.store = store
        self.watch_paths: List[str] = list(watch_paths or [os.getcwd()])
        self.deletion_delay = deletion_delay
        self.recursive = recursive

        self.observer: Optional[Observer] = None
        self._handler = _CreationHandler(self)
        self._pending: Set[threading.Timer] = set()
        self._pending_lock = threading.Lock()

    def _schedule(self, observer: Observer, directory: str) -> bool:
        if not os.path.isdir(directory):
            self.logger.warning(f"Cannot watch non-directory: {directory}")
            return False
        observer.schedule(self._handler, directory, recursive=self.recursive)
        return True

    def _start(self) -> None:
        observer = Observer()
        scheduled = sum(self._schedule(observer, directory) for directory in self.watch_paths)
        if not scheduled:
            self.logger.warning("No directories to watch for duplicates")
        observer.start()
        self.observer = observer

    def is_watched(self, directory: str) -> bool:
        """Whether ``directory`` is covered by a watch path."""
        directory = normalize_path(directory)
        for watched in self.watch_paths:
            watched = normalize_path(watched)
            if directory == watched:
                return True
            if self.recursive and directory.startswith(watched.rstrip(os.sep) + os.sep):
                return True
        return False

    def protect_documents(self, documents: List[str]) -> None:
        """Watch the directories holding the given documents."""
        with self._state_lock:
            for document in documents:
                directory = os.path.dirname(normalize_path(document))
                if self.is_watched(directory):
                    continue
                self.watch_paths.append(directory)
                self.logger.info(f"Watching {directory} for duplicates")
                if self.observer is not None:
                    self._schedule(self.observer, directory)

    def _stop(self) -> None:
        observer, self.observer = self.observer, None
        if observer is None:
            return
        observer.stop()
        if observer is not threading.current_thread():
            observer.join(timeout=5.0)

    def find_original(self, new_path: str) -> Optional[str]:
        """
        Find the confidential file that ``new_path`` duplicates.

        Returns:
            Path of the confidential original, or None
        """
        new_path = normalize_path(new_path)
        directory = os.path.dirname(new_path)
        basename = os.path.basename(new_path)

        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            self.logger.debug(f"Could not read directory {directory}: {e}")
            return None

        for entry in entries:
            try:
                if entry.name == basename or not entry.is_file():
                    continue
                if not is_duplicate_name(basename, entry.name):
                    continue
                if self.store.get_classification(entry.path) is ClassificationLevel.CONFIDENTIAL:
                    return entry.path
            except Exception as e:
                self.logger.debug(f"Skipping {entry.path}: {e}")

        return None

    def handle_created(self, path: str) -> Optional[str]:
        """
        React to a newly created file.

        Returns:
            Path of the confidential original if ``path`` was scheduled for deletion
        """
        if not self.running:
            return None

        try:
            original = self.find_original(path)
        except Exception as e:
            self.logger.error(f"Error handling file creation for {path}: {e}", exc_info=True)
            return None

        if original is not None:
            self.logger.warning(f"Duplicate of confidential file detected: {path} (original: {original})")
            self._schedule_deletion(path, original)
        return original

    def _schedule_deletion(self, path: str, original: str) -> threading.Timer:
        timer = threading.Timer(self.deletion_delay, self._delete_duplicate, args=(path, original))
        timer.daemon = True
        with self._pending_lock:
            self._pending.add(timer)
        timer.start()
        return timer

    def _delete_duplicate(self, path: str, original: str) -> None:
        try:
            os.remove(path)
        except OSError as e:
            self.logger.warning(f"Could not delete duplicate {path}: {e}")
            self._notify_handlers(self._create_event(
                'duplication_detected',
                'warning',
                'Detected unauthorized duplication of confidential file',
                path=path,
                original=original
            ))
        else:
            self.logger.info(f"Deleted duplicate of confidential file: {path}")
            self._notify_handlers(self._create_event(
                'duplication_blocked',
                'error',
                'File duplication blocked: Cannot duplicate confidential files',
                path=path,
                original=original
            ))
        finally:
            with self._pending_lock:
                self._pending.discard(threading.current_thread())

    def wait_for_pending(self, timeout: Optional[float] = None) -> None:
        """Block until scheduled deletions have run."""
        with self._pending_lock:
            timers = list(self._pending)
        for timer in timers:
            timer.join(timeout)
