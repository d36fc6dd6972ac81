"""Tests for article ranking."""

from helpdesk.config import ArticleStatus
from helpdesk.triage.domain import ArticleRanker
from helpdesk.triage.domain.ranker import query_terms

from conftest import make_article


class TestQueryTerms:
    """Tests for query term extraction."""

    def test_drops_short_words_and_stop_words(self):
        """Test that words under three characters and stop words are ignored."""
        assert query_terms("I was charged twice, please refund") == ["charged", "twice", "refund"]

    def test_deduplicates_in_order(self):
        """Test that repeated terms appear once, first occurrence first."""
        assert query_terms("Refund refund REFUND order") == ["refund", "order"]

    def test_empty(self):
        """Test that empty and None queries have no terms."""
        assert query_terms("") == []
        assert query_terms(None) == []


class TestArticleRanker:
    """Tests for ArticleRanker."""

    def test_no_candidates(self):
        """Test that ranking nothing returns nothing."""
        assert ArticleRanker().rank("refund", [], 3) == []

    def test_empty_query_or_zero_limit(self, sample_articles):
        """Test that an empty query or non-positive limit returns nothing."""
        ranker = ArticleRanker()
        assert ranker.rank("", sample_articles, 3) == []
        assert ranker.rank("refund", sample_articles, 0) == []

    def test_weights_title_over_tag_over_body(self):
        """Test the 2 / 1 / 0.5 field weights."""
        ranker = ArticleRanker()
        in_title = make_article("t", "Tracking help", "nothing here")
        in_tag = make_article("g", "Help", "nothing here", tags=("tracking",))
        in_body = make_article("b", "Help", "see tracking page")

        assert ranker.score("tracking", in_title) == 2.0
        assert ranker.score("tracking", in_tag) == 1.0
        assert ranker.score("tracking", in_body) == 0.5
        assert [a.id for a in ranker.rank("tracking", [in_body, in_tag, in_title], 3)] == ["t", "g", "b"]

    def test_drops_unpublished_and_unmatched(self, sample_articles):
        """Test that drafts and zero-score articles are not returned."""
        ranked = ArticleRanker().rank("refund", sample_articles, 10)
        assert [a.id for a in ranked] == ["kb-refund"]

    def test_stable_for_equal_scores(self):
        """Test that ties keep the input order."""
        first = make_article("first", "Login issues", "body")
        second = make_article("second", "Login problems", "body")
        ranker = ArticleRanker()

        assert [a.id for a in ranker.rank("login", [first, second], 3)] == ["first", "second"]
        assert [a.id for a in ranker.rank("login", [second, first], 3)] == ["second", "first"]

    def test_limit(self, sample_articles):
        """Test that at most limit articles are returned."""
        ranked = ArticleRanker().rank("billing refund payment tracking errors", sample_articles, 2)
        assert len(ranked) == 2

    def test_rank_scored_returns_scores(self, refund_article):
        """Test that rank_scored pairs each article with its score."""
        pairs = ArticleRanker().rank_scored("refund", [refund_article], 3)
        assert pairs == [(refund_article, 3.5)]

    def test_does_not_mutate_candidates(self, sample_articles):
        """Test that the candidate list is left untouched."""
        before = list(sample_articles)
        ArticleRanker().rank("refund payment", sample_articles, 3)
        assert sample_articles == before

    def test_archived_is_excluded(self):
        """Test that archived articles are never ranked."""
        archived = make_article("old", "Refund policy", "refund", status=ArticleStatus.ARCHIVED)
        assert ArticleRanker().rank("refund", [archived], 3) == []
