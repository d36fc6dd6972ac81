"""
Article Ranker
==============

Term-overlap ranking of knowledge-base articles.

Each distinct query term (lowercase word of three or more characters that
is not a stop word) adds:

    2.0  when the article title contains it
    1.0  when any article tag contains it
    0.5  when the article body contains it

Articles scoring zero are not returned. Ties keep the candidates' input
order.
"""

import re
from typing import Iterable, List, Sequence, Tuple

from helpdesk.triage.domain.entities import Article


TITLE_WEIGHT = 2.0
TAG_WEIGHT = 1.0
BODY_WEIGHT = 0.5
MIN_TERM_LENGTH = 3

STOP_WORDS = frozenset({
    "and", "are", "but", "can", "for", "from", "had", "has", "have", "her",
    "his", "how", "its", "not", "our", "please", "the", "them", "then",
    "there", "they", "this", "that", "was", "were", "what", "when", "where",
    "which", "who", "why", "will", "with", "you", "your",
})

_WORD_RE = re.compile(r"[a-z0-9]+")


def query_terms(text: str) -> List[str]:
    """Distinct searchable terms of a query, in order of first appearance."""
    words = _WORD_RE.findall((text or "").lower())
    return list(dict.fromkeys(
        word for word in words
        if len(word) >= MIN_TERM_LENGTH and word not in STOP_WORDS
    ))


class ArticleRanker:
    """Ranks candidate articles against query text. Pure and read-only."""

    def score(self, query_text: str, article: Article) -> float:
        return self._score_terms(query_terms(query_text), article)

    def rank_scored(
        self,
        query_text: str,
        candidates: Iterable[Article],
        limit: int
    ) -> List[Tuple[Article, float]]:
        """
        Rank published candidates, keeping their scores.

        Returns:
            Up to limit (article, score) pairs, best first
        """
        terms = query_terms(query_text)
        if not terms or limit <= 0:
            return []

        scored = []
        for article in candidates:
            if not article.is_published:
                continue
            value = self._score_terms(terms, article)
            if value > 0:
                scored.append((article, value))

        # sorted() is stable: equal scores keep candidate order
        scored = sorted(scored, key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    def rank(
        self,
        query_text: str,
        candidates: Iterable[Article],
        limit: int = 3
    ) -> List[Article]:
        """Rank published candidates and return at most limit articles."""
        return [article for article, _ in self.rank_scored(query_text, candidates, limit)]

    @staticmethod
    def _score_terms(terms: Sequence[str], article: Article) -> float:
        title = (article.title or "").lower()
        body = (article.body or "").lower()
        tags = [tag.lower() for tag in article.tags]

        total = 0.0
        for term in terms:
            if term in title:
                total += TITLE_WEIGHT
            if any(term in tag for tag in tags):
                total += TAG_WEIGHT
            if term in body:
                total += BODY_WEIGHT
        return total
