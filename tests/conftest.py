"""
Pytest configuration and shared fixtures for helpdesk triage tests.

Repositories are replaced by in-memory fakes implementing the same
interfaces, so pipeline and service tests run without a database.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

import pytest

from helpdesk.config import ArticleStatus, TicketCategory
from helpdesk.core import ResourceNotFoundException
from helpdesk.triage.application import (
    ITicketRepository, IArticleRepository, IConfigRepository,
    ISuggestionRepository, IAuditLogRepository,
    AuditTrail, TriageConfigResolver, TriagePipeline
)
from helpdesk.triage.domain import (
    Ticket, Article, AgentSuggestion, AuditLogEntry, ConfigValue,
    default_config_entries
)


# ========== In-memory repositories ==========

class InMemoryTicketRepository(ITicketRepository):
    def __init__(self):
        self.tickets: Dict[str, Ticket] = {}
        self.updates: List[Dict[str, Any]] = []

    def add(self, title: str, description: str, **kwargs) -> Ticket:
        ticket = Ticket(id=kwargs.pop("id", str(uuid4())), title=title, description=description, **kwargs)
        self.tickets[ticket.id] = ticket
        return ticket

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        return self.tickets.get(str(ticket_id))

    async def create(self, title: str, description: str, category: str) -> Ticket:
        return self.add(title, description, category=category)

    async def list_all(self, status: Optional[str] = None) -> List[Ticket]:
        tickets = [t for t in self.tickets.values() if status is None or t.status == status]
        return sorted(tickets, key=lambda t: t.created_at, reverse=True)

    async def update(self, ticket_id: str, fields: Dict[str, Any]) -> Ticket:
        ticket = self.tickets.get(str(ticket_id))
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        for name, value in fields.items():
            setattr(ticket, name, value)
        ticket.updated_at = datetime.now(timezone.utc)
        self.updates.append(dict(fields))
        return ticket


class InMemoryArticleRepository(IArticleRepository):
    def __init__(self, articles: Optional[List[Article]] = None):
        self.articles: List[Article] = list(articles or [])

    async def find_published(self, category: Optional[str] = None) -> List[Article]:
        return [
            a for a in self.articles
            if a.is_published and (category is None or a.category == category)
        ]

    async def create(self, article: Article) -> Article:
        self.articles.append(article)
        return article


class InMemoryConfigRepository(IConfigRepository):
    def __init__(self, entries: Optional[List[ConfigValue]] = None):
        self.entries: Dict[str, ConfigValue] = {e.key: e for e in (entries or [])}
        self.error: Optional[Exception] = None

    async def get_value(self, key: str) -> Optional[ConfigValue]:
        if self.error is not None:
            raise self.error
        return self.entries.get(key)

    async def list_all(self) -> List[ConfigValue]:
        return sorted(self.entries.values(), key=lambda e: (e.category, e.key))

    async def save(self, entry: ConfigValue) -> ConfigValue:
        self.entries[entry.key] = entry
        return entry


class InMemorySuggestionRepository(ISuggestionRepository):
    def __init__(self):
        self.suggestions: List[AgentSuggestion] = []

    async def create(self, suggestion: AgentSuggestion) -> AgentSuggestion:
        suggestion.id = str(uuid4())
        self.suggestions.append(suggestion)
        return suggestion

    async def get_latest_for_ticket(self, ticket_id: str) -> Optional[AgentSuggestion]:
        matching = [s for s in self.suggestions if s.ticket_id == ticket_id]
        return matching[-1] if matching else None


class InMemoryAuditLogRepository(IAuditLogRepository):
    def __init__(self):
        self.entries: List[AuditLogEntry] = []
        self.error: Optional[Exception] = None

    async def append(self, entry: AuditLogEntry) -> None:
        if self.error is not None:
            raise self.error
        self.entries.append(entry)

    async def list_by_ticket(self, ticket_id: str) -> List[AuditLogEntry]:
        return [e for e in self.entries if e.ticket_id == ticket_id]

    async def list_by_trace(self, trace_id: str) -> List[AuditLogEntry]:
        return [e for e in self.entries if e.trace_id == trace_id]

    def actions(self) -> List[str]:
        return [e.action for e in self.entries]


# ========== Sample data ==========

def make_article(id: str, title: str, body: str, tags=(), category=TicketCategory.OTHER,
                 status=ArticleStatus.PUBLISHED, age_minutes: int = 0) -> Article:
    return Article(
        id=id,
        title=title,
        body=body,
        tags=tuple(tags),
        status=status,
        category=category,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=age_minutes),
    )


@pytest.fixture
def refund_article():
    return make_article(
        "kb-refund",
        "Refund policy and process",
        "Refunds processed within 5-7 business days.",
        tags=("billing", "refunds", "policy"),
        category=TicketCategory.BILLING,
    )


@pytest.fixture
def sample_articles(refund_article):
    return [
        make_article(
            "kb-payment",
            "How to update payment method",
            "Go to Account Settings > Billing and enter your new card details.",
            tags=("billing", "payments", "account"),
            category=TicketCategory.BILLING,
            age_minutes=1,
        ),
        make_article(
            "kb-500",
            "Troubleshooting 500 errors",
            "Clear your browser cache and cookies.",
            tags=("tech", "errors", "troubleshooting"),
            category=TicketCategory.TECH,
            age_minutes=2,
        ),
        make_article(
            "kb-tracking",
            "Tracking your shipment",
            "Use the tracking number provided in your order confirmation email.",
            tags=("shipping", "delivery", "tracking"),
            category=TicketCategory.SHIPPING,
            age_minutes=3,
        ),
        refund_article,
        make_article(
            "kb-draft",
            "Refund exceptions",
            "Draft article about refund exceptions.",
            tags=("billing", "refunds"),
            category=TicketCategory.BILLING,
            status=ArticleStatus.DRAFT,
            age_minutes=5,
        ),
    ]


# ========== Fixtures ==========

@pytest.fixture
def ticket_repo():
    return InMemoryTicketRepository()


@pytest.fixture
def article_repo(sample_articles):
    return InMemoryArticleRepository(sample_articles)


@pytest.fixture
def config_repo():
    return InMemoryConfigRepository(default_config_entries())


@pytest.fixture
def suggestion_repo():
    return InMemorySuggestionRepository()


@pytest.fixture
def audit_repo():
    return InMemoryAuditLogRepository()


@pytest.fixture
def audit(audit_repo):
    return AuditTrail(audit_repo)


@pytest.fixture
def pipeline(ticket_repo, article_repo, suggestion_repo, config_repo, audit):
    return TriagePipeline(
        tickets=ticket_repo,
        articles=article_repo,
        suggestions=suggestion_repo,
        audit=audit,
        config_resolver=TriageConfigResolver(config_repo),
    )
