"""
Triage Infrastructure Layer
============================

Infrastructure implementations for ticket triage module.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Data access implementations
- Seed: YAML seeding of config entries and articles
"""

from helpdesk.triage.infrastructure.models import (
    TicketModel,
    ArticleModel,
    AgentSuggestionModel,
    AuditLogModel,
    ConfigEntryModel,
)
from helpdesk.triage.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyArticleRepository,
    SQLAlchemyConfigRepository,
    SQLAlchemySuggestionRepository,
    SQLAlchemyAuditLogRepository,
)
from helpdesk.triage.infrastructure.seed import seed_database

__all__ = [
    "TicketModel",
    "ArticleModel",
    "AgentSuggestionModel",
    "AuditLogModel",
    "ConfigEntryModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyArticleRepository",
    "SQLAlchemyConfigRepository",
    "SQLAlchemySuggestionRepository",
    "SQLAlchemyAuditLogRepository",
    "seed_database",
]
