"""Tests for the auto-close decision policy."""

import pytest

from helpdesk.triage.domain import DecisionPolicy, DecisionConfig


class TestDecisionPolicy:
    """Tests for DecisionPolicy.decide."""

    @pytest.fixture
    def policy(self):
        return DecisionPolicy()

    @pytest.mark.parametrize("confidence,threshold,expected", [
        (0.78, 0.78, True),
        (0.77, 0.78, False),
        (1.0, 0.5, True),
        (0.0, 0.0, True),
        (0.4, 1.0, False),
    ])
    def test_threshold_is_inclusive(self, policy, confidence, threshold, expected):
        """Test that auto-close happens exactly when confidence >= threshold."""
        decision = policy.decide(confidence, DecisionConfig(True, threshold))
        assert decision.auto_close is expected
        assert decision.assign_to_human is not expected

    @pytest.mark.parametrize("confidence", [0.0, 0.5, 1.0])
    def test_disabled_always_assigns_to_human(self, policy, confidence):
        """Test that a disabled toggle never auto-closes."""
        decision = policy.decide(confidence, DecisionConfig(False, 0.0))
        assert decision.auto_close is False
        assert decision.assign_to_human is True
        assert decision.outcome == "human"
        assert decision.reason == "Auto-close disabled"

    def test_reason_mentions_percentages(self, policy):
        """Test the human-readable reason."""
        decision = policy.decide(0.67, DecisionConfig(True, 0.5))
        assert decision.outcome == "auto_close"
        assert decision.reason == "Confidence (67.0%) meets threshold (50.0%)"
