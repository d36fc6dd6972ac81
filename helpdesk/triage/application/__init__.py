"""
Triage Application Layer
=========================

Application layer for ticket triage module.

Contains:
- Services: Business logic orchestration
- Pipeline: The classify → retrieve → draft → decide workflow
- DTOs: Data transfer objects for API serialization
"""

from helpdesk.triage.application.services import (
    ITicketRepository,
    IArticleRepository,
    IConfigRepository,
    ISuggestionRepository,
    IAuditLogRepository,
    IUnitOfWork,
    AuditTrail,
    TriageConfigResolver,
    ConfigService,
    TicketService,
    KnowledgeBaseService,
)
from helpdesk.triage.application.pipeline import TriagePipeline

__all__ = [
    # Repository Interfaces
    "ITicketRepository",
    "IArticleRepository",
    "IConfigRepository",
    "ISuggestionRepository",
    "IAuditLogRepository",
    "IUnitOfWork",
    # Services
    "AuditTrail",
    "TriageConfigResolver",
    "ConfigService",
    "TicketService",
    "KnowledgeBaseService",
    "TriagePipeline",
]
