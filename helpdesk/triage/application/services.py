"""
Triage Application Services
============================

Repository interfaces and the application services that sit around the
triage pipeline: audit writing, config resolution and updates, ticket
creation and knowledge-base search.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from helpdesk.config import (
    settings, ConfigKey, AuditAction, AuditActor, AuditSeverity, TicketCategory, TicketStatus
)
from helpdesk.core import (
    ResourceNotFoundException, ValidationException, RepositoryException
)
from helpdesk.shared.infrastructure.logging import get_logger, get_context_logger
from helpdesk.triage.domain import (
    Ticket, Article, AgentSuggestion, AuditLogEntry, ArticleRanker,
    BoolConfig, NumberConfig, ConfigValue, DecisionConfig
)

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID, None when missing."""

    @abstractmethod
    async def create(self, title: str, description: str, category: str) -> Ticket:
        """Create a new open ticket."""

    @abstractmethod
    async def list_all(self, status: Optional[str] = None) -> List[Ticket]:
        """Tickets, newest first, optionally with one status."""

    @abstractmethod
    async def update(self, ticket_id: str, fields: Dict[str, Any]) -> Ticket:
        """Update ticket fields and return the updated ticket."""


class IArticleRepository(ABC):
    """Interface for knowledge-base article access."""

    @abstractmethod
    async def find_published(self, category: Optional[str] = None) -> List[Article]:
        """Published articles, oldest first."""

    @abstractmethod
    async def create(self, article: Article) -> Article:
        """Store a new article."""


class IConfigRepository(ABC):
    """Interface for the runtime config store."""

    @abstractmethod
    async def get_value(self, key: str) -> Optional[ConfigValue]:
        """
        Get a config entry.

        Raises:
            ValidationException: if the stored entry is malformed
        """

    @abstractmethod
    async def list_all(self) -> List[ConfigValue]:
        """All entries ordered by category and key."""

    @abstractmethod
    async def save(self, entry: ConfigValue) -> ConfigValue:
        """Insert or replace an entry."""


class ISuggestionRepository(ABC):
    """Interface for agent suggestion storage."""

    @abstractmethod
    async def create(self, suggestion: AgentSuggestion) -> AgentSuggestion:
        """Store a suggestion and assign its id."""

    @abstractmethod
    async def get_latest_for_ticket(self, ticket_id: str) -> Optional[AgentSuggestion]:
        """Most recent suggestion for a ticket."""


class IAuditLogRepository(ABC):
    """Interface for the append-only audit log."""

    @abstractmethod
    async def append(self, entry: AuditLogEntry) -> None:
        """Append an entry."""

    @abstractmethod
    async def list_by_ticket(self, ticket_id: str) -> List[AuditLogEntry]:
        """Entries of a ticket, oldest first."""

    @abstractmethod
    async def list_by_trace(self, trace_id: str) -> List[AuditLogEntry]:
        """Entries of one trace, oldest first."""


class IUnitOfWork(ABC):
    """
    Transaction of the repositories a triage run writes through.

    AsyncSession provides both methods and is passed as is.
    """

    @abstractmethod
    async def commit(self) -> None:
        """Make pending writes durable."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard pending writes."""


# ========== Application Services ==========

class AuditTrail:
    """
    Best-effort audit writer.

    A failed append is logged with the trace id and does not interrupt the
    caller.
    """

    def __init__(self, repository: IAuditLogRepository):
        self._repo = repository

    async def record(
        self,
        trace_id: str,
        action: str,
        ticket_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        actor: str = AuditActor.SYSTEM,
        severity: str = AuditSeverity.INFO
    ) -> bool:
        """
        Append an audit entry.

        Returns:
            True if the entry was stored, False if the store rejected it
        """
        entry = AuditLogEntry(
            trace_id=trace_id,
            action=action,
            ticket_id=ticket_id,
            actor=actor,
            meta=meta or {},
            severity=severity,
        )
        try:
            await self._repo.append(entry)
        except Exception as e:
            get_context_logger(__name__, trace_id).error(
                "Audit append failed",
                extra={"action": action, "ticket_id": ticket_id, "error": str(e)}
            )
            return False
        return True

    async def for_ticket(self, ticket_id: str) -> List[AuditLogEntry]:
        return await self._repo.list_by_ticket(ticket_id)

    async def for_trace(self, trace_id: str) -> List[AuditLogEntry]:
        return await self._repo.list_by_trace(trace_id)


class TriageConfigResolver:
    """
    Reads the auto-close flags from the config store.

    Never raises: a missing key, a malformed entry or an unreachable store
    yields the fallback from settings.
    """

    def __init__(
        self,
        config_repository: IConfigRepository,
        default_auto_close_enabled: Optional[bool] = None,
        default_confidence_threshold: Optional[float] = None
    ):
        self._repo = config_repository
        self._default_enabled = (
            settings.default_auto_close_enabled
            if default_auto_close_enabled is None else default_auto_close_enabled
        )
        self._default_threshold = (
            settings.default_confidence_threshold
            if default_confidence_threshold is None else default_confidence_threshold
        )

    async def resolve(self, trace_id: Optional[str] = None) -> DecisionConfig:
        log = get_context_logger(__name__, trace_id)

        enabled = await self._lookup(ConfigKey.AUTO_CLOSE_ENABLED, self._default_enabled, log)
        threshold = await self._lookup(ConfigKey.CONFIDENCE_THRESHOLD, self._default_threshold, log)

        return DecisionConfig(auto_close_enabled=enabled, confidence_threshold=threshold)

    async def _lookup(self, key: str, fallback: Any, log) -> Any:
        try:
            entry = await self._repo.get_value(key)
            if entry is None:
                log.info("Config key absent, using default", extra={"key": key, "default": fallback})
                return fallback
            return self._extract(key, entry)
        except (ValidationException, RepositoryException) as e:
            log.warning(
                "Config value unusable, using default",
                extra={"key": key, "default": fallback, "error": e.message}
            )
            return fallback

    @staticmethod
    def _extract(key: str, entry: ConfigValue) -> Any:
        if key == ConfigKey.AUTO_CLOSE_ENABLED:
            if not isinstance(entry, BoolConfig):
                raise ValidationException(f"{key} must be a boolean entry", {"key": key})
            return entry.value

        if not isinstance(entry, NumberConfig):
            raise ValidationException(f"{key} must be a number entry", {"key": key})
        if not 0.0 <= entry.value <= 1.0:
            raise ValidationException(
                f"{key} must lie in [0, 1], got {entry.value}", {"key": key}
            )
        return float(entry.value)


class ConfigService:
    """Validated updates of config entries."""

    def __init__(self, config_repository: IConfigRepository, audit: AuditTrail):
        self._repo = config_repository
        self._audit = audit

    async def get_entry(self, key: str) -> ConfigValue:
        entry = await self._repo.get_value(key)
        if entry is None:
            raise ResourceNotFoundException("Config", key)
        return entry

    async def list_entries(self, public_only: bool = False) -> List[ConfigValue]:
        entries = await self._repo.list_all()
        if public_only:
            return [entry for entry in entries if entry.is_public]
        return entries

    async def update_value(
        self,
        key: str,
        value: Any,
        trace_id: str,
        reason: Optional[str] = None
    ) -> Tuple[ConfigValue, Any]:
        """
        Replace the value of an existing entry.

        Returns:
            (updated entry, previous value)

        Raises:
            ResourceNotFoundException: unknown key
            ValidationException: value does not fit the entry's variant
        """
        current = await self.get_entry(key)

        updated = current.with_value(value)
        saved = await self._repo.save(updated)

        await self._audit.record(
            trace_id,
            AuditAction.SYSTEM_CONFIG_UPDATED,
            meta={
                "key": key,
                "old_value": current.value,
                "new_value": saved.value,
                "version": saved.version,
                "reason": reason,
            },
            actor=AuditActor.ADMIN,
        )
        return saved, current.value


class TicketService:
    """Ticket intake and agent replies."""

    def __init__(self, ticket_repository: ITicketRepository, audit: AuditTrail):
        self._tickets = ticket_repository
        self._audit = audit

    async def create_ticket(
        self,
        title: str,
        description: str,
        trace_id: str,
        category: Optional[str] = None
    ) -> Ticket:
        ticket = await self._tickets.create(
            title=title,
            description=description,
            category=category or TicketCategory.OTHER,
        )
        await self._audit.record(
            trace_id,
            AuditAction.TICKET_CREATED,
            ticket_id=ticket.id,
            meta={"title": ticket.title},
            actor=AuditActor.USER,
        )
        return ticket

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self._tickets.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def list_tickets(self, status: Optional[str] = None) -> List[Ticket]:
        return await self._tickets.list_all(status)

    async def reply(
        self,
        ticket_id: str,
        message: str,
        trace_id: str,
        close: bool = False
    ) -> Ticket:
        """
        Record an agent reply on a ticket.

        Closing resolves the ticket; otherwise it goes back to triaged,
        which also takes it out of the human queue.

        Raises:
            ResourceNotFoundException: ticket does not exist
        """
        ticket = await self.get_ticket(ticket_id)
        status = TicketStatus.RESOLVED if close else TicketStatus.TRIAGED
        updated = await self._tickets.update(ticket.id, {"status": status})

        await self._audit.record(
            trace_id,
            AuditAction.REPLY_SENT,
            ticket_id=updated.id,
            meta={"message": message, "close": close},
            actor=AuditActor.AGENT,
        )
        return updated


class KnowledgeBaseService:
    """Search over published articles."""

    def __init__(
        self,
        article_repository: IArticleRepository,
        ranker: Optional[ArticleRanker] = None
    ):
        self._articles = article_repository
        self._ranker = ranker or ArticleRanker()

    async def search(
        self,
        query: str,
        limit: int = 3,
        category: Optional[str] = None
    ) -> List[Tuple[Article, float]]:
        candidates = await self._articles.find_published(category)
        return self._ranker.rank_scored(query, candidates, limit)
