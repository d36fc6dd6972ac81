"""
Decision Policy
===============

Auto-close versus human assignment.
"""

from helpdesk.triage.domain.entities import Decision, DecisionConfig


class DecisionPolicy:
    """
    Applies the auto-close toggle and confidence threshold.

    Precondition: config.confidence_threshold is within [0, 1]. The policy
    does not clamp it.
    """

    def decide(self, confidence: float, config: DecisionConfig) -> Decision:
        auto_close = config.auto_close_enabled and confidence >= config.confidence_threshold
        return Decision(auto_close=auto_close, reason=self._reason(confidence, config, auto_close))

    @staticmethod
    def _reason(confidence: float, config: DecisionConfig, auto_close: bool) -> str:
        if not config.auto_close_enabled:
            return "Auto-close disabled"
        pct = f"{confidence * 100:.1f}%"
        threshold = f"{config.confidence_threshold * 100:.1f}%"
        if auto_close:
            return f"Confidence ({pct}) meets threshold ({threshold})"
        return f"Confidence ({pct}) below threshold ({threshold})"
