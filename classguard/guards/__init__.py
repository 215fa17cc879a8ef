"""
Protection guards active while a confidential document is open.
"""
from .base import BaseGuard
from .clipboard import ClipboardGuard, PyperclipClipboard
from .duplication import DuplicationGuard, is_duplicate_name

__all__ = [
    'BaseGuard',
    'ClipboardGuard',
    'PyperclipClipboard',
    'DuplicationGuard',
    'is_duplicate_name'
]
