"""
Tests for the DLP policy engine.
"""
import pytest

from classguard.core import ClassificationLevel, DLPAction, DecisionLevel, PolicyDecision
from classguard.policies import PolicyEngine

ALL_ACTIONS = list(DLPAction)
ALL_LEVELS = [None] + list(ClassificationLevel)


@pytest.fixture
def engine():
    return PolicyEngine()


class TestPolicyEngine:
    """Tests for PolicyEngine.evaluate."""

    @pytest.mark.parametrize('level', ALL_LEVELS)
    @pytest.mark.parametrize('action', ALL_ACTIONS)
    def test_evaluate_is_pure(self, engine, level, action):
        assert engine.evaluate(level, action) == engine.evaluate(level, action)

    @pytest.mark.parametrize('action', ALL_ACTIONS + ['print', 'screenshot'])
    def test_unclassified_allows_everything(self, engine, action):
        decision = engine.evaluate(None, action)
        assert decision.allowed is True
        assert decision.level is DecisionLevel.ALLOW

    @pytest.mark.parametrize('action', ALL_ACTIONS + ['print'])
    def test_public_allows_everything(self, engine, action):
        assert engine.evaluate(ClassificationLevel.PUBLIC, action) == PolicyDecision(
            allowed=True, level=DecisionLevel.ALLOW
        )

    @pytest.mark.parametrize('level', [ClassificationLevel.INTERNAL, ClassificationLevel.PERSONAL])
    def test_external_upload_warns(self, engine, level):
        decision = engine.evaluate(level, DLPAction.EXTERNAL_UPLOAD)
        assert decision.level is DecisionLevel.WARN
        assert decision.allowed is False
        assert decision.requires_confirmation is True
        assert 'confirmation' in decision.message

    @pytest.mark.parametrize('level', [ClassificationLevel.INTERNAL, ClassificationLevel.PERSONAL])
    @pytest.mark.parametrize('action', [a for a in ALL_ACTIONS if a is not DLPAction.EXTERNAL_UPLOAD])
    def test_restricted_tiers_allow_other_actions(self, engine, level, action):
        decision = engine.evaluate(level, action)
        assert decision.allowed is True
        assert decision.level is DecisionLevel.ALLOW

    def test_copy_from_internal_carries_advisory(self, engine):
        decision = engine.evaluate(ClassificationLevel.INTERNAL, DLPAction.COPY)
        assert decision.allowed is True
        assert 'be cautious when pasting externally' in decision.message

    def test_unknown_action_allowed_for_internal(self, engine):
        assert engine.evaluate(ClassificationLevel.INTERNAL, 'print').allowed is True

    @pytest.mark.parametrize('action', [
        DLPAction.COPY,
        DLPAction.CUT,
        DLPAction.DUPLICATE,
        DLPAction.SAVE_AS,
        DLPAction.RENAME,
        DLPAction.EXTERNAL_UPLOAD,
    ])
    def test_confidential_blocks(self, engine, action):
        decision = engine.evaluate(ClassificationLevel.CONFIDENTIAL, action)
        assert decision.level is DecisionLevel.BLOCK
        assert decision.allowed is False
        assert decision.requires_confirmation is False
        assert decision.message == f"{action.value} is disabled for confidential files to prevent data leakage."

    @pytest.mark.parametrize('action', [DLPAction.PASTE, DLPAction.DELETE])
    def test_confidential_allows_paste_and_delete(self, engine, action):
        decision = engine.evaluate(ClassificationLevel.CONFIDENTIAL, action)
        assert decision.allowed is True
        assert decision.level is DecisionLevel.ALLOW

    @pytest.mark.parametrize('action', ['print', 'screenshot', '', None])
    def test_confidential_denies_unrecognized_actions(self, engine, action):
        decision = engine.evaluate(ClassificationLevel.CONFIDENTIAL, action)
        assert decision.level is DecisionLevel.BLOCK
        assert decision.message == 'Action not permitted for confidential files.'

    def test_raw_action_strings_are_parsed(self, engine):
        assert engine.evaluate(ClassificationLevel.CONFIDENTIAL, 'COPY').level is DecisionLevel.BLOCK
        assert engine.evaluate(ClassificationLevel.CONFIDENTIAL, 'paste').level is DecisionLevel.ALLOW
        assert engine.evaluate(ClassificationLevel.INTERNAL, 'external-upload').level is DecisionLevel.WARN
