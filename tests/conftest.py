"""
Shared fixtures for the classguard tests.
"""
import os
import sys

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from classguard.attributes import JsonAttributeStore
from classguard.store import ClassificationStore


class FakeClipboard:
    """In-memory clipboard."""

    def __init__(self, text=''):
        self.text = text
        self.writes = []

    def read_text(self):
        return self.text

    def write_text(self, text):
        self.writes.append(text)
        self.text = text


class BrokenClipboard:
    """Clipboard that always fails, like a locked system clipboard."""

    def read_text(self):
        raise RuntimeError("clipboard unavailable")

    def write_text(self, text):
        raise RuntimeError("clipboard unavailable")


@pytest.fixture
def fake_clipboard():
    return FakeClipboard()


@pytest.fixture
def attribute_store(tmp_path):
    return JsonAttributeStore(str(tmp_path / 'attributes'))


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / 'workspace'
    path.mkdir()
    return path


@pytest.fixture
def store(tmp_path, attribute_store):
    store = ClassificationStore(
        attribute_store,
        backup_dir=str(tmp_path / 'backups'),
        temp_dir=str(tmp_path / 'tmp'),
        io_timeout=2.0
    )
    yield store
    store.close()
