"""
Keyword Classifier
==================

Rule-based ticket classification.

Confidence formula (public contract, it feeds the auto-close threshold):

    confidence = round(min(1, hits / 3), 2)    when hits > 0
    confidence = 0.4                           when hits == 0 (category "other")

where hits is the number of distinct keywords of the winning category that
occur as substrings of the lowercased text.
"""

from typing import Dict, Mapping, Optional, Sequence, Tuple

from helpdesk.config import TicketCategory
from helpdesk.triage.domain.entities import ClassificationResult


# Declaration order is the tie-break order.
DEFAULT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    TicketCategory.BILLING: ("refund", "invoice", "charge", "payment", "card", "billing"),
    TicketCategory.TECH: ("error", "bug", "stack", "500", "crash", "login", "auth", "timeout"),
    TicketCategory.SHIPPING: ("delivery", "shipment", "tracking", "package", "courier", "delayed"),
}

HITS_FOR_FULL_CONFIDENCE = 3
NO_MATCH_CONFIDENCE = 0.4


class KeywordClassifier:
    """
    Scores free text against per-category keyword sets.

    Stateless apart from its keyword table; safe to share between runs.
    """

    name = "keyword-heuristic"
    version = "v1"

    def __init__(
        self,
        keywords: Optional[Mapping[str, Sequence[str]]] = None,
        fallback_category: str = TicketCategory.OTHER
    ):
        source = DEFAULT_KEYWORDS if keywords is None else keywords
        self._keywords: Dict[str, Tuple[str, ...]] = {
            category: tuple(dict.fromkeys(word.lower() for word in words))
            for category, words in source.items()
        }
        self._fallback = fallback_category

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(self._keywords)

    def classify(self, text: Optional[str]) -> ClassificationResult:
        """
        Classify text into a category with a confidence score.

        Args:
            text: Ticket title and description; None is treated as empty

        Returns:
            ClassificationResult with category, confidence and matched keywords
        """
        lowered = (text or "").lower()

        best_category = self._fallback
        best_matches: Tuple[str, ...] = ()

        for category, words in self._keywords.items():
            matches = tuple(word for word in words if word in lowered)
            # Strict comparison keeps the first-declared category on ties
            if len(matches) > len(best_matches):
                best_category = category
                best_matches = matches

        hits = len(best_matches)
        return ClassificationResult(
            category=best_category,
            confidence=self.confidence_for(hits),
            hits=hits,
            matched_keywords=best_matches,
        )

    @staticmethod
    def confidence_for(hits: int) -> float:
        if hits <= 0:
            return NO_MATCH_CONFIDENCE
        return round(min(1.0, hits / HITS_FOR_FULL_CONFIDENCE), 2)
