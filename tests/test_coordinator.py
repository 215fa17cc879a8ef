"""
Tests for the ProtectionCoordinator.
"""
from unittest.mock import MagicMock

import pytest

from conftest import FakeClipboard
from classguard.coordinator import ProtectionCoordinator
from classguard.core import ClassificationLevel, ProtectionState
from classguard.guards.base import BaseGuard
from classguard.guards.clipboard import ClipboardGuard


class RecordingGuard(BaseGuard):
    """Guard that only counts lifecycle transitions."""

    def __init__(self):
        super().__init__()
        self.starts = 0
        self.stops = 0
        self.protected = []

    def protect_documents(self, documents):
        self.protected.append(list(documents))

    def _start(self):
        self.starts += 1

    def _stop(self):
        self.stops += 1


class FlakyGuard(RecordingGuard):
    """Guard whose first starts fail, like an exhausted inotify watch limit."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def _start(self):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise OSError('inotify watch limit reached')
        super()._start()


class TestProtectionCoordinator:

    @pytest.fixture(autouse=True)
    def setup(self, store, workspace):
        self.store = store
        self.secret = workspace / 'secret.txt'
        self.secret.write_text('the plan')
        store.set_classification(str(self.secret), ClassificationLevel.CONFIDENTIAL)
        self.memo = workspace / 'memo.txt'
        self.memo.write_text('lunch at noon')
        store.set_classification(str(self.memo), ClassificationLevel.INTERNAL)
        self.scratch = workspace / 'scratch.txt'
        self.scratch.write_text('unclassified')

        self.open_documents = set()
        self.clipboard_guard = ClipboardGuard(clipboard=FakeClipboard(), interval=10.0)
        self.duplication_guard = RecordingGuard()
        self.coordinator = ProtectionCoordinator(
            store,
            self.clipboard_guard,
            self.duplication_guard,
            open_documents=lambda: self.open_documents
        )
        yield
        self.coordinator.deactivate()
        self.clipboard_guard.close()

    def test_starts_inactive(self):
        assert self.coordinator.state is ProtectionState.INACTIVE
        assert self.coordinator.on_open_document_set_changed() is ProtectionState.INACTIVE
        assert not self.clipboard_guard.is_running()
        assert not self.duplication_guard.is_running()

    def test_non_confidential_documents_stay_inactive(self):
        self.open_documents.update({str(self.memo), str(self.scratch)})
        assert self.coordinator.on_open_document_set_changed() is ProtectionState.INACTIVE
        assert self.duplication_guard.starts == 0

    def test_open_and_close_confidential_document(self):
        self.open_documents.add(str(self.secret))
        assert self.coordinator.on_open_document_set_changed() is ProtectionState.ACTIVE
        assert self.clipboard_guard.is_running()
        assert self.duplication_guard.is_running()

        self.clipboard_guard.track_confidential_content("the plan is secret")

        self.open_documents.discard(str(self.secret))
        assert self.coordinator.on_open_document_set_changed() is ProtectionState.INACTIVE
        assert not self.clipboard_guard.is_running()
        assert not self.duplication_guard.is_running()
        assert self.clipboard_guard.tracked_fragments() == []

    def test_repeated_triggers_are_no_ops(self):
        self.open_documents.update({str(self.secret), str(self.memo)})
        for _ in range(3):
            self.coordinator.on_open_document_set_changed()
        assert self.duplication_guard.starts == 1

        self.open_documents.clear()
        for _ in range(3):
            self.coordinator.on_open_document_set_changed()
        assert self.duplication_guard.stops == 1

    def test_explicit_document_set(self):
        state = self.coordinator.on_open_document_set_changed([str(self.scratch), str(self.secret)])
        assert state is ProtectionState.ACTIVE

    def test_failed_lookup_counts_as_not_confidential(self):
        store = MagicMock()

        def lookup(path):
            if path == 'broken':
                raise OSError('xattr read failed')
            return ClassificationLevel.CONFIDENTIAL if path == 'secret' else None

        store.get_classification.side_effect = lookup
        guard_a, guard_b = RecordingGuard(), RecordingGuard()
        coordinator = ProtectionCoordinator(store, guard_a, guard_b)

        assert coordinator.on_open_document_set_changed(['broken']) is ProtectionState.INACTIVE
        assert coordinator.on_open_document_set_changed(['broken', 'secret']) is ProtectionState.ACTIVE
        assert guard_a.starts == guard_b.starts == 1

    def test_provider_failure_keeps_state(self):
        def provider():
            raise RuntimeError('editor gone')

        coordinator = ProtectionCoordinator(self.store, RecordingGuard(), RecordingGuard(),
                                            open_documents=provider)
        assert coordinator.on_open_document_set_changed() is ProtectionState.INACTIVE

    def test_guard_start_failure_does_not_break_scan(self):
        failing = FlakyGuard(failures=1)
        other = RecordingGuard()
        coordinator = ProtectionCoordinator(self.store, failing, other)

        assert coordinator.on_open_document_set_changed([str(self.secret)]) is ProtectionState.ACTIVE
        assert other.is_running()
        assert not failing.is_running()

    def test_failed_guard_is_retried_while_active(self):
        failing = FlakyGuard(failures=2)
        other = RecordingGuard()
        coordinator = ProtectionCoordinator(self.store, failing, other)
        documents = [str(self.secret)]

        coordinator.on_open_document_set_changed(documents)
        coordinator.on_open_document_set_changed(documents)
        assert not failing.is_running()

        assert coordinator.on_open_document_set_changed(documents) is ProtectionState.ACTIVE
        assert failing.is_running()
        assert failing.attempts == 3
        assert other.starts == 1

    def test_guards_receive_confidential_documents(self):
        self.open_documents.update({str(self.secret), str(self.memo), str(self.scratch)})
        self.coordinator.on_open_document_set_changed()
        self.coordinator.on_open_document_set_changed()

        assert self.duplication_guard.protected == [[str(self.secret)], [str(self.secret)]]

    def test_deactivate(self):
        self.coordinator.on_open_document_set_changed([str(self.secret)])
        self.coordinator.deactivate()
        assert self.coordinator.state is ProtectionState.INACTIVE
        assert not self.clipboard_guard.is_running()
