"""
Classification Guard - Utilities

Path helpers, logging setup and bounded I/O calls shared across the package.
"""
import os
import re
import fnmatch
import logging
from concurrent.futures import Executor, TimeoutError as FutureTimeoutError
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

BINARY_EXTENSIONS = {
    '.exe', '.dll', '.so', '.dylib', '.bin', '.obj', '.o', '.a', '.lib',
    '.zip', '.tar', '.gz', '.rar', '.7z', '.pdf', '.doc', '.docx', '.xls',
    '.xlsx', '.ppt', '.pptx', '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.svg',
    '.ico', '.mp3', '.mp4', '.avi', '.mov', '.wav'
}


def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None,
                  log_format: str = LOG_FORMAT) -> None:
    """Configure logging for classguard.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, logs to stderr only)
        log_format: Format string for log records
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level}')

    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=numeric_level, format=log_format, handlers=handlers)


def normalize_path(path: str) -> str:
    """
    Normalize a file system path for consistent comparison.

    Args:
        path: Path to normalize

    Returns:
        Normalized absolute path
    """
    return os.path.normcase(os.path.normpath(os.path.abspath(path)))


def _glob_to_regex(pattern: str) -> 're.Pattern':
    parts = []
    i = 0
    while i < len(pattern):
        if pattern.startswith('**/', i):
            parts.append('(?:.*/)?')
            i += 3
        elif pattern.startswith('**', i):
            parts.append('.*')
            i += 2
        elif pattern[i] == '*':
            parts.append('[^/]*')
            i += 1
        elif pattern[i] == '?':
            parts.append('[^/]')
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile(''.join(parts))


def should_ignore_path(path: str, ignore_patterns: Iterable[str]) -> bool:
    """
    Check if a path matches any of the ignore patterns.

    Patterns containing a slash are matched against the whole path
    (``**`` crosses directories, ``*`` does not); other patterns are
    matched against the basename only.

    Args:
        path: Path to check
        ignore_patterns: Glob patterns to match against

    Returns:
        True if the path should be ignored, False otherwise
    """
    path = normalize_path(path).replace(os.sep, '/')
    basename = path.rsplit('/', 1)[-1]

    for pattern in ignore_patterns:
        if '/' in pattern:
            if _glob_to_regex(pattern).fullmatch(path):
                return True
        elif fnmatch.fnmatchcase(basename, pattern):
            return True

    return False


def is_binary_file(file_path: str, chunk_size: int = 8192) -> bool:
    """
    Check if a file is binary.

    A file is binary when its extension is a known binary format or its
    first chunk contains a NUL byte.

    Args:
        file_path: Path to the file
        chunk_size: Number of bytes to read (default: 8KB)

    Returns:
        True if the file is binary, False otherwise
    """
    _, ext = os.path.splitext(file_path)
    if ext.lower() in BINARY_EXTENSIONS:
        return True

    try:
        with open(file_path, 'rb') as f:
            return b'\x00' in f.read(chunk_size)
    except (IOError, OSError):
        return False


def call_with_timeout(executor: Executor, func: Callable[..., Any], *args: Any,
                      timeout: float = 3.0) -> Any:
    """Run ``func`` on ``executor`` and wait at most ``timeout`` seconds.

    Raises:
        TimeoutError: If the call did not complete in time
    """
    future = executor.submit(func, *args)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        raise TimeoutError(f"{getattr(func, '__name__', func)} timed out after {timeout}s")
