"""
Triage Dependencies
===================

FastAPI dependency providers wiring repositories and services.

Routers depend on these providers only, so tests can swap the
repositories through app.dependency_overrides.
"""

from typing import Awaitable, Callable, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core import ApplicationException
from helpdesk.infrastructure.database import get_session, get_session_context
from helpdesk.shared.infrastructure.logging import get_context_logger
from helpdesk.triage.application import (
    ITicketRepository, IArticleRepository, IConfigRepository,
    ISuggestionRepository, IAuditLogRepository, IUnitOfWork,
    AuditTrail, TriageConfigResolver, ConfigService, TicketService,
    KnowledgeBaseService, TriagePipeline
)
from helpdesk.triage.infrastructure import (
    SQLAlchemyTicketRepository,
    SQLAlchemyArticleRepository,
    SQLAlchemyConfigRepository,
    SQLAlchemySuggestionRepository,
    SQLAlchemyAuditLogRepository,
)

BackgroundTriage = Callable[[str, str], Awaitable[None]]


# ========== Repositories ==========

def get_ticket_repository(db: AsyncSession = Depends(get_session)) -> ITicketRepository:
    return SQLAlchemyTicketRepository(db)


def get_article_repository(db: AsyncSession = Depends(get_session)) -> IArticleRepository:
    return SQLAlchemyArticleRepository(db)


def get_config_repository(db: AsyncSession = Depends(get_session)) -> IConfigRepository:
    return SQLAlchemyConfigRepository(db)


def get_suggestion_repository(db: AsyncSession = Depends(get_session)) -> ISuggestionRepository:
    return SQLAlchemySuggestionRepository(db)


def get_audit_repository() -> IAuditLogRepository:
    """Audit repository with its own sessions, independent of the request transaction."""
    return SQLAlchemyAuditLogRepository(get_session_context)


# ========== Services ==========

def get_audit_trail(repo: IAuditLogRepository = Depends(get_audit_repository)) -> AuditTrail:
    return AuditTrail(repo)


def get_ticket_service(
    tickets: ITicketRepository = Depends(get_ticket_repository),
    audit: AuditTrail = Depends(get_audit_trail)
) -> TicketService:
    return TicketService(tickets, audit)


def get_config_service(
    config: IConfigRepository = Depends(get_config_repository),
    audit: AuditTrail = Depends(get_audit_trail)
) -> ConfigService:
    return ConfigService(config, audit)


def get_kb_service(
    articles: IArticleRepository = Depends(get_article_repository)
) -> KnowledgeBaseService:
    return KnowledgeBaseService(articles)


def build_pipeline(
    tickets: ITicketRepository,
    articles: IArticleRepository,
    suggestions: ISuggestionRepository,
    config: IConfigRepository,
    audit: AuditTrail,
    unit_of_work: Optional[IUnitOfWork] = None
) -> TriagePipeline:
    return TriagePipeline(
        tickets=tickets,
        articles=articles,
        suggestions=suggestions,
        audit=audit,
        config_resolver=TriageConfigResolver(config),
        unit_of_work=unit_of_work
    )


def get_triage_pipeline(
    tickets: ITicketRepository = Depends(get_ticket_repository),
    articles: IArticleRepository = Depends(get_article_repository),
    suggestions: ISuggestionRepository = Depends(get_suggestion_repository),
    config: IConfigRepository = Depends(get_config_repository),
    audit: AuditTrail = Depends(get_audit_trail),
    db: AsyncSession = Depends(get_session)
) -> TriagePipeline:
    return build_pipeline(tickets, articles, suggestions, config, audit, unit_of_work=db)


# ========== Background triage ==========

async def run_background_triage(ticket_id: str, trace_id: str) -> None:
    """
    Triage a freshly created ticket outside the request.

    Runs in its own session; a failure is already in the audit trail, so
    it is only logged here.
    """
    log = get_context_logger(__name__, trace_id)
    try:
        async with get_session_context() as session:
            pipeline = build_pipeline(
                SQLAlchemyTicketRepository(session),
                SQLAlchemyArticleRepository(session),
                SQLAlchemySuggestionRepository(session),
                SQLAlchemyConfigRepository(session),
                AuditTrail(SQLAlchemyAuditLogRepository(get_session_context)),
                unit_of_work=session
            )
            outcome = await pipeline.triage(ticket_id, trace_id=trace_id)
    except ApplicationException as e:
        log.error(
            "Background triage failed",
            extra={"ticket_id": ticket_id, "error_type": type(e).__name__, "error": e.message}
        )
        return
    except Exception:
        log.exception("Background triage crashed", extra={"ticket_id": ticket_id})
        return

    log.info(
        "Background triage finished",
        extra={"ticket_id": ticket_id, "decision": outcome.decision}
    )


def get_background_triage() -> BackgroundTriage:
    return run_background_triage
