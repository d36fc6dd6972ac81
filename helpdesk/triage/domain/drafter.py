"""
Reply Drafter
=============

Templated reply generation from ticket text and ranked articles.
"""

from typing import Sequence

from helpdesk.triage.domain.entities import Article, DraftResult


MAX_CONTEXT_CHARS = 80


class ReplyDrafter:
    """Renders a draft reply and its citation list. Pure and deterministic."""

    OPENING = "Thanks for reaching out about \"{context}\". We're sorry for the trouble you've run into."
    WITH_ARTICLES = "Here's what might help:"
    CLOSING = "If this doesn't resolve it, reply to this message and a human agent will assist."
    NO_ARTICLES = (
        "We're looking into your request and a human agent will follow up with you shortly."
    )

    def draft(self, query_text: str, articles: Sequence[Article]) -> DraftResult:
        """
        Draft a reply.

        Args:
            query_text: Ticket text the reply responds to
            articles: Ranked articles to cite, in display order

        Returns:
            DraftResult whose citations follow the rendered order
        """
        opening = self.OPENING.format(context=self.summarize(query_text))

        if not articles:
            return DraftResult(draft_reply=f"{opening} {self.NO_ARTICLES}", citations=())

        lines = [opening, self.WITH_ARTICLES]
        lines.extend(f"{index}. {article.title}" for index, article in enumerate(articles, 1))
        lines.append("")
        lines.append(self.CLOSING)

        return DraftResult(
            draft_reply="\n".join(lines),
            citations=tuple(article.id for article in articles),
        )

    @staticmethod
    def summarize(query_text: str) -> str:
        """Collapse whitespace and truncate the query for the opening line."""
        context = " ".join((query_text or "").split())
        if not context:
            return "your request"
        if len(context) > MAX_CONTEXT_CHARS:
            return context[:MAX_CONTEXT_CHARS].rstrip() + "..."
        return context
