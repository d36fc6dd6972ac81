"""
Triage Infrastructure Repositories
====================================

SQLAlchemy implementations of triage repositories.
"""

from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import ArticleStatus, TICKET_CATEGORIES, VALID_STATUSES
from helpdesk.core import RepositoryException, ResourceNotFoundException, ValidationException
from helpdesk.infrastructure.database import get_session_context
from helpdesk.triage.application.services import (
    ITicketRepository, IArticleRepository, IConfigRepository,
    ISuggestionRepository, IAuditLogRepository
)
from helpdesk.triage.domain import (
    Ticket, Article, AgentSuggestion, AuditLogEntry, ModelInfo,
    BoolConfig, NumberConfig, StringConfig, ConfigValue, CONFIG_VARIANTS
)
from helpdesk.triage.infrastructure.models import (
    TicketModel, ArticleModel, AgentSuggestionModel, AuditLogModel, ConfigEntryModel
)


def _parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _str_id(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


# ========== Tickets ==========

class SQLAlchemyTicketRepository(ITicketRepository):
    """SQLAlchemy implementation for tickets."""

    UPDATABLE_FIELDS = {"category", "status", "agent_suggestion_id"}

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID; malformed ids are treated as missing."""
        model = await self._get_model(ticket_id)
        return self._to_domain(model) if model else None

    async def create(self, title: str, description: str, category: str) -> Ticket:
        model = TicketModel(
            id=uuid4(),
            title=title,
            description=description,
            category=category,
            created_at=datetime.now(timezone.utc)
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_domain(model)

    async def list_all(self, status: Optional[str] = None) -> List[Ticket]:
        stmt = select(TicketModel)
        if status:
            stmt = stmt.where(TicketModel.status == status)
        stmt = stmt.order_by(TicketModel.created_at.desc())

        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def update(self, ticket_id: str, fields: Dict[str, Any]) -> Ticket:
        """
        Update triage-owned fields.

        Raises:
            ValidationException: unknown field, category or status
            ResourceNotFoundException: ticket does not exist
        """
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValidationException(
                f"Fields not updatable: {', '.join(sorted(unknown))}",
                {"ticket_id": ticket_id}
            )
        if "category" in fields and fields["category"] not in TICKET_CATEGORIES:
            raise ValidationException(f"Invalid category: {fields['category']}")
        if "status" in fields and fields["status"] not in VALID_STATUSES:
            raise ValidationException(f"Invalid status: {fields['status']}")

        model = await self._get_model(ticket_id)
        if model is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        for name, value in fields.items():
            if name == "agent_suggestion_id":
                value = _parse_uuid(value)
            setattr(model, name, value)
        model.updated_at = datetime.now(timezone.utc)

        await self._session.flush()
        return self._to_domain(model)

    async def _get_model(self, ticket_id: str) -> Optional[TicketModel]:
        ticket_uuid = _parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        stmt = select(TicketModel).where(TicketModel.id == ticket_uuid)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _to_domain(model: TicketModel) -> Ticket:
        return Ticket(
            id=str(model.id),
            title=model.title,
            description=model.description,
            category=model.category,
            status=model.status,
            agent_suggestion_id=_str_id(model.agent_suggestion_id),
            created_at=model.created_at,
            updated_at=model.updated_at
        )


# ========== Articles ==========

class SQLAlchemyArticleRepository(IArticleRepository):
    """SQLAlchemy implementation for knowledge-base articles."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_published(self, category: Optional[str] = None) -> List[Article]:
        """Published articles, oldest first, optionally of one category."""
        stmt = select(ArticleModel).where(ArticleModel.status == ArticleStatus.PUBLISHED)
        if category:
            stmt = stmt.where(ArticleModel.category == category)
        stmt = stmt.order_by(ArticleModel.created_at, ArticleModel.title)

        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def create(self, article: Article) -> Article:
        model = ArticleModel(
            id=_parse_uuid(article.id) or uuid4(),
            title=article.title,
            body=article.body,
            tags=[tag.lower() for tag in article.tags],
            status=article.status,
            category=article.category,
            created_at=article.created_at
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_domain(model)

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(ArticleModel))
        return result.scalar_one()

    @staticmethod
    def _to_domain(model: ArticleModel) -> Article:
        return Article(
            id=str(model.id),
            title=model.title,
            body=model.body,
            tags=tuple(model.tags or ()),
            status=model.status,
            category=model.category,
            created_at=model.created_at
        )


# ========== Config ==========

class SQLAlchemyConfigRepository(IConfigRepository):
    """SQLAlchemy implementation for the runtime config store."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_value(self, key: str) -> Optional[ConfigValue]:
        """
        Get a config entry.

        Raises:
            ValidationException: stored row does not form a valid entry
            RepositoryException: database error
        """
        try:
            model = await self._session.get(ConfigEntryModel, key)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to read config '{key}'", {"error": str(e)}) from e
        return self._to_domain(model) if model else None

    async def list_all(self) -> List[ConfigValue]:
        stmt = select(ConfigEntryModel).order_by(ConfigEntryModel.category, ConfigEntryModel.key)
        result = await self._session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def save(self, entry: ConfigValue) -> ConfigValue:
        model = await self._session.get(ConfigEntryModel, entry.key)
        if model is None:
            model = ConfigEntryModel(key=entry.key)
            self._session.add(model)

        model.value_type = entry.type
        model.value = entry.value
        model.description = entry.description
        model.category = entry.category
        model.is_public = entry.is_public
        model.version = entry.version
        model.min_value = getattr(entry, "min_value", None)
        model.max_value = getattr(entry, "max_value", None)
        model.pattern = getattr(entry, "pattern", None)
        model.choices = list(entry.choices) if isinstance(entry, StringConfig) else None
        model.updated_at = datetime.now(timezone.utc)

        await self._session.flush()
        return entry

    @staticmethod
    def _to_domain(model: ConfigEntryModel) -> ConfigValue:
        variant = CONFIG_VARIANTS.get(model.value_type)
        if variant is None:
            raise ValidationException(
                f"Unknown config type '{model.value_type}'", {"key": model.key}
            )

        common = dict(
            key=model.key,
            value=model.value,
            description=model.description,
            category=model.category,
            is_public=model.is_public,
            version=model.version
        )
        if variant is NumberConfig:
            return NumberConfig(min_value=model.min_value, max_value=model.max_value, **common)
        if variant is StringConfig:
            return StringConfig(pattern=model.pattern, choices=tuple(model.choices or ()), **common)
        return BoolConfig(**common)


# ========== Suggestions ==========

class SQLAlchemySuggestionRepository(ISuggestionRepository):
    """SQLAlchemy implementation for agent suggestions."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, suggestion: AgentSuggestion) -> AgentSuggestion:
        """Store suggestion; returns it with its assigned id."""
        ticket_uuid = _parse_uuid(suggestion.ticket_id)
        if ticket_uuid is None:
            raise RepositoryException(f"Invalid ticket ID: {suggestion.ticket_id}")

        model = AgentSuggestionModel(
            id=uuid4(),
            ticket_id=ticket_uuid,
            trace_id=suggestion.trace_id,
            predicted_category=suggestion.predicted_category,
            article_ids=list(suggestion.article_ids),
            citations=list(suggestion.citations),
            draft_reply=suggestion.draft_reply,
            confidence=suggestion.confidence,
            auto_closed=suggestion.auto_closed,
            model_info=suggestion.model_info.to_dict(),
            created_at=suggestion.created_at
        )

        self._session.add(model)
        await self._session.flush()

        suggestion.id = str(model.id)
        return suggestion

    async def get_latest_for_ticket(self, ticket_id: str) -> Optional[AgentSuggestion]:
        ticket_uuid = _parse_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        stmt = (
            select(AgentSuggestionModel)
            .where(AgentSuggestionModel.ticket_id == ticket_uuid)
            .order_by(AgentSuggestionModel.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    @staticmethod
    def _to_domain(model: AgentSuggestionModel) -> AgentSuggestion:
        info = model.model_info or {}
        return AgentSuggestion(
            id=str(model.id),
            ticket_id=str(model.ticket_id),
            trace_id=model.trace_id,
            predicted_category=model.predicted_category,
            article_ids=list(model.article_ids or []),
            citations=list(model.citations or []),
            draft_reply=model.draft_reply,
            confidence=model.confidence,
            auto_closed=model.auto_closed,
            model_info=ModelInfo(
                provider=info.get("provider", ""),
                model=info.get("model", ""),
                prompt_version=info.get("prompt_version", ""),
                latency_ms=info.get("latency_ms", 0)
            ),
            created_at=model.created_at
        )


# ========== Audit Log ==========

class SQLAlchemyAuditLogRepository(IAuditLogRepository):
    """
    SQLAlchemy implementation for the audit log.

    Each call opens its own session from session_factory and commits it,
    so entries persist even when the caller's transaction rolls back.
    """

    def __init__(self, session_factory: Callable = get_session_context):
        self._session_factory = session_factory

    async def append(self, entry: AuditLogEntry) -> None:
        model = AuditLogModel(
            id=_parse_uuid(entry.id) or uuid4(),
            trace_id=entry.trace_id,
            ticket_id=entry.ticket_id,
            actor=entry.actor,
            action=entry.action,
            meta=dict(entry.meta),
            severity=entry.severity,
            timestamp=entry.timestamp
        )
        try:
            async with self._session_factory() as session:
                session.add(model)
        except SQLAlchemyError as e:
            raise RepositoryException(
                "Failed to append audit entry",
                {"action": entry.action, "trace_id": entry.trace_id, "error": str(e)}
            ) from e

    async def list_by_ticket(self, ticket_id: str) -> List[AuditLogEntry]:
        return await self._list(AuditLogModel.ticket_id == str(ticket_id))

    async def list_by_trace(self, trace_id: str) -> List[AuditLogEntry]:
        return await self._list(AuditLogModel.trace_id == trace_id)

    async def _list(self, condition) -> List[AuditLogEntry]:
        stmt = (
            select(AuditLogModel)
            .where(condition)
            .order_by(AuditLogModel.timestamp, AuditLogModel.seq)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_domain(model) for model in result.scalars().all()]

    @staticmethod
    def _to_domain(model: AuditLogModel) -> AuditLogEntry:
        return AuditLogEntry(
            id=str(model.id),
            trace_id=model.trace_id,
            ticket_id=model.ticket_id,
            actor=model.actor,
            action=model.action,
            meta=dict(model.meta or {}),
            severity=model.severity,
            timestamp=model.timestamp
        )
