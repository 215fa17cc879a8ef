"""
Classification Guard

Permanent, tamper-evident file classification with data loss prevention
policies and active protection for confidential files.
"""

__version__ = "1.0.0"

from .core import (
    ClassificationLevel,
    DLPAction,
    DecisionLevel,
    PolicyDecision,
    ProtectionState,
    Classified,
    Unclassified,
    ClassificationError,
    AlreadyClassifiedError,
    StorageError
)
from .integrity import IntegrityCodec
from .store import ClassificationStore
from .policies import PolicyEngine
from .coordinator import ProtectionCoordinator
from .engine import DlpCore
from .config import Config, load_config

__all__ = [
    'ClassificationLevel',
    'DLPAction',
    'DecisionLevel',
    'PolicyDecision',
    'ProtectionState',
    'Classified',
    'Unclassified',
    'ClassificationError',
    'AlreadyClassifiedError',
    'StorageError',
    'IntegrityCodec',
    'ClassificationStore',
    'PolicyEngine',
    'ProtectionCoordinator',
    'DlpCore',
    'Config',
    'load_config'
]
