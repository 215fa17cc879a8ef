"""
Classification Core

Core types shared by the classification store, the policy engine and the
protection guards.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union


class ClassificationLevel(Enum):
    """Sensitivity labels that can be permanently attached to a file."""
    PUBLIC = "public"
    INTERNAL = "internal"
    CONFIDENTIAL = "confidential"
    PERSONAL = "personal"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional['ClassificationLevel']:
        """Parse a persisted or user-supplied label.

        Unrecognized input is treated as unclassified and returns None.
        """
        if raw is None:
            return None
        value = raw.strip().lower()
        for level in cls:
            if level.value == value:
                return level
        return None


class DLPAction(Enum):
    """Operations gated by the policy engine."""
    COPY = "copy"
    CUT = "cut"
    PASTE = "paste"
    DUPLICATE = "duplicate"
    SAVE_AS = "save_as"
    RENAME = "rename"
    DELETE = "delete"
    EXTERNAL_UPLOAD = "external_upload"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional['DLPAction']:
        if raw is None:
            return None
        value = raw.strip().lower().replace('-', '_')
        for action in cls:
            if action.value == value:
                return action
        return None


class DecisionLevel(Enum):
    """Outcome of a policy evaluation."""
    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"


class ProtectionState(Enum):
    """Enhanced protection state owned by the coordinator."""
    INACTIVE = auto()
    ACTIVE = auto()


@dataclass(frozen=True)
class PolicyDecision:
    """Result of evaluating an action against a classification."""
    allowed: bool
    level: DecisionLevel
    requires_confirmation: bool = False
    message: str = ""


@dataclass(frozen=True)
class Classified:
    """A file carrying a permanent classification.

    Attributes:
        identity: Normalized absolute path of the file
        level: Classification level
        created_at: Milliseconds since epoch when the record was written
        integrity_hash: Digest binding identity, level and created_at
    """
    identity: str
    level: ClassificationLevel
    created_at: Optional[int] = None
    integrity_hash: Optional[str] = None

    @property
    def is_classified(self) -> bool:
        return True


@dataclass(frozen=True)
class Unclassified:
    """A file without a classification record."""
    identity: str

    @property
    def is_classified(self) -> bool:
        return False

    def classify(self, level: ClassificationLevel, created_at: int,
                 integrity_hash: str) -> Classified:
        """The only transition: unclassified -> classified."""
        return Classified(
            identity=self.identity,
            level=level,
            created_at=created_at,
            integrity_hash=integrity_hash
        )


ClassificationRecord = Union[Unclassified, Classified]


class ClassificationError(Exception):
    """Base exception for classification errors."""
    pass


class AlreadyClassifiedError(ClassificationError):
    """Raised when a file that already carries a classification is classified again."""

    def __init__(self, identity: str, existing: Optional[ClassificationLevel] = None):
        self.identity = identity
        self.existing = existing
        label = existing.value if existing else 'unknown'
        super().__init__(
            f"File classification is permanent and cannot be changed "
            f"({identity} is already classified as {label})"
        )


class StorageError(ClassificationError):
    """Raised when the primary classification record cannot be written."""
    pass
