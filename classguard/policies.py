"""
DLP Policy Engine

Decision table mapping a file classification and a requested operation to
allow, warn or block.
"""
from typing import Optional, Union

from .core import ClassificationLevel, DLPAction, DecisionLevel, PolicyDecision


def _allow() -> PolicyDecision:
    return PolicyDecision(allowed=True, level=DecisionLevel.ALLOW)


CONFIDENTIAL_BLOCKED = frozenset({
    DLPAction.COPY,
    DLPAction.CUT,
    DLPAction.DUPLICATE,
    DLPAction.SAVE_AS,
    DLPAction.RENAME,
    DLPAction.EXTERNAL_UPLOAD,
})
CONFIDENTIAL_ALLOWED = frozenset({DLPAction.PASTE, DLPAction.DELETE})

UPLOAD_WARNINGS = {
    ClassificationLevel.INTERNAL:
        'Internal files require confirmation before external upload. Proceed with caution.',
    ClassificationLevel.PERSONAL:
        'Personal files require confirmation before external upload/sharing.',
}

_ADVISORY_VERBS = {DLPAction.COPY: 'Copied', DLPAction.CUT: 'Cut'}


class PolicyEngine:
    """Evaluates operations against a classification.

    Every tier except confidential falls back to allow for operations it does
    not name. Confidential falls back to block, so an operation missing from
    the table can never leak a confidential file.
    """

    def evaluate(self, level: Optional[ClassificationLevel],
                 action: Union[DLPAction, str]) -> PolicyDecision:
        """
        Evaluate an operation.

        Args:
            level: Classification of the file, or None if unclassified
            action: Requested operation; unknown strings are unrecognized actions

        Returns:
            A fresh PolicyDecision
        """
        if not isinstance(action, DLPAction):
            action = DLPAction.parse(action)

        if level is None or level is ClassificationLevel.PUBLIC:
            return _allow()
        if level is ClassificationLevel.CONFIDENTIAL:
            return self._evaluate_confidential(action)
        return self._evaluate_restricted(level, action)

    def _evaluate_restricted(self, level: ClassificationLevel,
                             action: Optional[DLPAction]) -> PolicyDecision:
        """Internal and personal files: warn on external upload only."""
        if action is DLPAction.EXTERNAL_UPLOAD:
            return PolicyDecision(
                allowed=False,
                level=DecisionLevel.WARN,
                requires_confirmation=True,
                message=UPLOAD_WARNINGS[level]
            )
        if action in _ADVISORY_VERBS:
            return PolicyDecision(
                allowed=True,
                level=DecisionLevel.ALLOW,
                message=f"{_ADVISORY_VERBS[action]} content from {level.value} file - "
                        f"be cautious when pasting externally"
            )
        return _allow()

    def _evaluate_confidential(self, action: Optional[DLPAction]) -> PolicyDecision:
        if action in CONFIDENTIAL_ALLOWED:
            return _allow()
        if action in CONFIDENTIAL_BLOCKED:
            return PolicyDecision(
                allowed=False,
                level=DecisionLevel.BLOCK,
                message=f"{action.value} is disabled for confidential files to prevent data leakage."
            )
        return PolicyDecision(
            allowed=False,
            level=DecisionLevel.BLOCK,
            message='Action not permitted for confidential files.'
        )
