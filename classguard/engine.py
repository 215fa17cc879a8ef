"""
DLP Core

Aggregate owning the classification store, the policy engine, the guards and
the protection coordinator. This is the surface the editor integration calls.
"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Union

from .attributes import AttributeStore, XattrAttributeStore, create_attribute_store
from .config import Config
from .coordinator import ProtectionCoordinator
from .core import (
    Classified,
    ClassificationLevel,
    DLPAction,
    PolicyDecision,
    ProtectionState,
)
from .guards.clipboard import ClipboardGuard
from .guards.duplication import DuplicationGuard
from .integrity import IntegrityCodec
from .policies import PolicyEngine
from .store import ClassificationStore
from .utils import is_binary_file, normalize_path, should_ignore_path

logger = logging.getLogger(__name__)


class DlpCore:
    """Classification and data loss prevention for a single editor session."""

    def __init__(
        self,
        config: Optional[Config] = None,
        attributes: Optional[AttributeStore] = None,
        clipboard: Optional[Any] = None,
        open_documents: Optional[Callable[[], Iterable[str]]] = None
    ) -> None:
        """
        Initialize the core from configuration.

        Args:
            config: Configuration (default: environment and ``CLASSGUARD_CONFIG``)
            attributes: Attribute backend overriding ``storage.backend``
            clipboard: Clipboard object overriding the system clipboard
            open_documents: Returns the identities of the open documents
        """
        self.config = config or Config()
        io_timeout = self.config.get('storage.io_timeout', 3.0)

        self.codec = IntegrityCodec()
        self.store = ClassificationStore(
            attributes or create_attribute_store(
                self.config.get('storage.backend', 'auto'),
                self.config.get('storage.attribute_dir')
            ),
            codec=self.codec,
            cache_ttl=self.config.get('cache.ttl_seconds', 60.0),
            backup_dir=self.config.get('storage.backup_dir'),
            temp_dir=self.config.get('storage.temp_dir'),
            io_timeout=io_timeout
        )
        self.policy_engine = PolicyEngine()
        self.clipboard_guard = ClipboardGuard(
            clipboard=clipboard,
            interval=self.config.get('clipboard.interval', 1.0),
            max_fragments=self.config.get('clipboard.max_fragments', 50),
            min_length=self.config.get('clipboard.min_length', 10),
            io_timeout=io_timeout
        )
        self.duplication_guard = DuplicationGuard(
            self.store,
            watch_paths=self.config.get('duplication.watch_paths'),
            deletion_delay=self.config.get('duplication.deletion_delay', 0.5),
            recursive=self.config.get('duplication.recursive', True)
        )
        self.coordinator = ProtectionCoordinator(
            self.store,
            self.clipboard_guard,
            self.duplication_guard,
            open_documents=open_documents
        )

    def __enter__(self) -> 'DlpCore':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    @property
    def protection_state(self) -> ProtectionState:
        return self.coordinator.state

    def classify(self, path: str, level: Union[ClassificationLevel, str]) -> Classified:
        """
        Permanently classify a file and refresh the protection state.

        Raises:
            AlreadyClassifiedError: If the file already carries a classification
            StorageError: If the classification could not be stored
        """
        record = self.store.set_classification(path, level)
        self.on_open_document_set_changed()
        return record

    def get_classification(self, path: str) -> Optional[ClassificationLevel]:
        return self.store.get_classification(path)

    def evaluate_action(self, level: Optional[ClassificationLevel],
                        action: Union[DLPAction, str]) -> PolicyDecision:
        decision = self.policy_engine.evaluate(level, action)
        if not decision.allowed:
            logger.info(f"DLP decision for {action} on {level.value if level else 'unclassified'}: "
                        f"{decision.level.value}")
        return decision

    def evaluate_file_action(self, path: str, action: Union[DLPAction, str]) -> PolicyDecision:
        """Evaluate an operation against the classification of ``path``."""
        return self.evaluate_action(self.get_classification(path), action)

    def on_open_document_set_changed(self, documents: Optional[Iterable[str]] = None) -> ProtectionState:
        return self.coordinator.on_open_document_set_changed(documents)

    def track_copied_content(self, text: str,
                             level: Optional[ClassificationLevel] = None) -> bool:
        """
        Track text copied or cut from a document.

        Args:
            text: The copied text
            level: Classification of the source; non-confidential sources are ignored

        Returns:
            True if the text is now tracked
        """
        if level is not None and level is not ClassificationLevel.CONFIDENTIAL:
            return False
        return self.clipboard_guard.track_confidential_content(text)

    def verify(self, path: str) -> bool:
        """Check the integrity hash of a file's persisted record."""
        record = self.store.get_record(path)
        if not record.is_classified:
            return False
        return self.codec.verify(record)

    def requires_classification(self, path: str) -> bool:
        """Whether a file must be classified before it is saved."""
        if not self.config.get('classification.enforce', True):
            return False
        if should_ignore_path(path, self.config.get('classification.exclude_patterns', [])):
            return False
        if is_binary_file(path):
            return False
        return self.get_classification(path) is None

    def describe(self, path: str) -> Dict[str, Any]:
        """Summarize the classification record of a file."""
        identity = normalize_path(path)
        record = self.store.get_record(identity)
        data: Dict[str, Any] = {
            'filePath': identity,
            'classification': record.level.value if record.is_classified else 'Not classified',
            'isClassified': record.is_classified,
        }
        if record.is_classified:
            data.update({
                'createdAt': record.created_at,
                'integrityVerified': self.codec.verify(record),
            })
            data.update(self.store.read_metadata(identity))
        data['backups'] = [b['location'] for b in self.store.find_backups(identity)]
        if isinstance(self.store.attributes, XattrAttributeStore):
            data['instructions'] = f'To inspect from terminal, use: getfattr -d "{identity}"'
        return data

    def shutdown(self) -> None:
        """Stop the guards and release I/O workers."""
        self.coordinator.deactivate()
        self.clipboard_guard.close()
        self.store.close()
