"""
Triage Application DTOs
========================

Data Transfer Objects for the HTTP layer.

Pydantic models for request/response validation.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Annotated, List, Optional, Dict, Any, Literal, Union
from datetime import datetime

from helpdesk.triage.domain import (
    Ticket, Article, AgentSuggestion, AuditLogEntry, TriageOutcome,
    BoolConfig, NumberConfig, StringConfig, ConfigValue
)


# ========== Type Aliases for Literals ==========
TicketCategoryStr = Literal["billing", "tech", "shipping", "other"]
TicketStatusStr = Literal["open", "triaged", "waiting_human", "resolved", "closed"]
DecisionStr = Literal["auto_close", "human"]


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """Request model for filing a ticket."""
    title: str = Field(..., min_length=3, max_length=200, description="Ticket title")
    description: str = Field(..., min_length=5, description="Ticket description")
    category: Optional[TicketCategoryStr] = Field(None, description="Category chosen by the user")

    @field_validator("description")
    @classmethod
    def validate_description_length(cls, v: str) -> str:
        """Keep descriptions to a sane size."""
        if len(v) > 10000:
            raise ValueError("Description too long (max 10000 characters)")
        return v


class TriageRequest(BaseModel):
    """Request model for a synchronous triage run."""
    ticket_id: str = Field(..., min_length=1, max_length=64, description="Ticket to triage")


class TicketReplyRequest(BaseModel):
    """Request model for an agent reply."""
    message: str = Field(..., min_length=2, max_length=10000, description="Reply sent to the customer")
    close: bool = Field(False, description="Resolve the ticket with this reply")


class ConfigUpdateRequest(BaseModel):
    """Request model for changing one config entry."""
    value: Union[bool, float, str] = Field(..., description="New value; must fit the entry's type")
    reason: Optional[str] = Field(None, max_length=500, description="Why the value changed")


# ========== Response DTOs ==========

class TicketResponse(BaseModel):
    """Ticket as returned by the API."""
    id: str
    title: str
    description: str
    category: TicketCategoryStr
    status: TicketStatusStr
    agent_suggestion_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            category=ticket.category,
            status=ticket.status,
            agent_suggestion_id=ticket.agent_suggestion_id,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at
        )


class TicketListResponse(BaseModel):
    """Tickets, newest first."""
    count: int
    tickets: List[TicketResponse]

    @classmethod
    def from_tickets(cls, tickets: List[Ticket]) -> "TicketListResponse":
        return cls(count=len(tickets), tickets=[TicketResponse.from_domain(t) for t in tickets])


class TicketCreatedResponse(BaseModel):
    """Response model for ticket creation."""
    ticket: TicketResponse
    trace_id: str
    triage_scheduled: bool


class TriageResponse(BaseModel):
    """Response model for a triage run."""
    trace_id: str
    ticket_id: str
    suggestion_id: str
    decision: DecisionStr
    category: TicketCategoryStr
    confidence: float = Field(..., ge=0.0, le=1.0)
    ticket_status: TicketStatusStr

    @classmethod
    def from_outcome(cls, ticket_id: str, outcome: TriageOutcome) -> "TriageResponse":
        return cls(
            trace_id=outcome.trace_id,
            ticket_id=ticket_id,
            suggestion_id=outcome.suggestion_id,
            decision=outcome.decision,
            category=outcome.category,
            confidence=outcome.confidence,
            ticket_status=outcome.ticket_status
        )


class ModelInfoResponse(BaseModel):
    """Suggestion provenance."""
    provider: str
    model: str
    prompt_version: str
    latency_ms: int


class SuggestionResponse(BaseModel):
    """Agent suggestion as returned by the API."""
    id: str
    ticket_id: str
    trace_id: str
    predicted_category: TicketCategoryStr
    article_ids: List[str]
    citations: List[str]
    draft_reply: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    auto_closed: bool
    model_info: ModelInfoResponse
    created_at: datetime

    @classmethod
    def from_domain(cls, suggestion: AgentSuggestion) -> "SuggestionResponse":
        return cls(
            id=suggestion.id,
            ticket_id=suggestion.ticket_id,
            trace_id=suggestion.trace_id,
            predicted_category=suggestion.predicted_category,
            article_ids=list(suggestion.article_ids),
            citations=list(suggestion.citations),
            draft_reply=suggestion.draft_reply,
            confidence=suggestion.confidence,
            auto_closed=suggestion.auto_closed,
            model_info=ModelInfoResponse(**suggestion.model_info.to_dict()),
            created_at=suggestion.created_at
        )


class AuditEntryResponse(BaseModel):
    """Audit log entry as returned by the API."""
    id: Optional[str]
    trace_id: str
    ticket_id: Optional[str]
    actor: str
    action: str
    severity: str
    meta: Dict[str, Any]
    timestamp: datetime

    @classmethod
    def from_domain(cls, entry: AuditLogEntry) -> "AuditEntryResponse":
        return cls(
            id=entry.id,
            trace_id=entry.trace_id,
            ticket_id=entry.ticket_id,
            actor=entry.actor,
            action=entry.action,
            severity=entry.severity,
            meta=dict(entry.meta),
            timestamp=entry.timestamp
        )


class AuditTrailResponse(BaseModel):
    """Ordered audit entries."""
    count: int
    entries: List[AuditEntryResponse]

    @classmethod
    def from_entries(cls, entries: List[AuditLogEntry]) -> "AuditTrailResponse":
        return cls(
            count=len(entries),
            entries=[AuditEntryResponse.from_domain(entry) for entry in entries]
        )


class ArticleSearchResult(BaseModel):
    """One ranked article."""
    id: str
    title: str
    excerpt: str
    tags: List[str]
    category: str
    score: float

    @classmethod
    def from_domain(cls, article: Article, score: float) -> "ArticleSearchResult":
        return cls(
            id=article.id,
            title=article.title,
            excerpt=article.excerpt,
            tags=list(article.tags),
            category=article.category,
            score=score
        )


class KBSearchResponse(BaseModel):
    """Response model for knowledge-base search."""
    query: str
    count: int
    results: List[ArticleSearchResult]


# ========== Config DTOs ==========

class _ConfigEntryDTO(BaseModel):
    key: str
    description: str
    category: str
    is_public: bool
    version: str


class BoolConfigDTO(_ConfigEntryDTO):
    type: Literal["boolean"] = "boolean"
    value: bool


class NumberConfigDTO(_ConfigEntryDTO):
    type: Literal["number"] = "number"
    value: float
    min_value: Optional[float] = None
    max_value: Optional[float] = None


class StringConfigDTO(_ConfigEntryDTO):
    type: Literal["string"] = "string"
    value: str
    pattern: Optional[str] = None
    choices: List[str] = Field(default_factory=list)


ConfigEntryDTO = Annotated[
    Union[BoolConfigDTO, NumberConfigDTO, StringConfigDTO],
    Field(discriminator="type")
]


def config_to_dto(entry: ConfigValue) -> Union[BoolConfigDTO, NumberConfigDTO, StringConfigDTO]:
    """Convert a config entry to its response model."""
    common = dict(
        key=entry.key,
        description=entry.description,
        category=entry.category,
        is_public=entry.is_public,
        version=entry.version
    )
    if isinstance(entry, BoolConfig):
        return BoolConfigDTO(value=entry.value, **common)
    if isinstance(entry, NumberConfig):
        return NumberConfigDTO(
            value=entry.value, min_value=entry.min_value, max_value=entry.max_value, **common
        )
    if isinstance(entry, StringConfig):
        return StringConfigDTO(
            value=entry.value, pattern=entry.pattern, choices=list(entry.choices), **common
        )
    raise TypeError(f"Unknown config entry type: {type(entry).__name__}")


class ConfigListResponse(BaseModel):
    """All config entries."""
    count: int
    entries: List[ConfigEntryDTO]


class ConfigUpdateResponse(BaseModel):
    """Result of a config update."""
    entry: ConfigEntryDTO
    old_value: Union[bool, float, str]
    trace_id: str
