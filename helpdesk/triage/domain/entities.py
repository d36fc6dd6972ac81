"""
Triage Domain Entities
======================

Domain entities for the ticket triage module.

Contains pure Python business objects for tickets, knowledge-base
articles, agent suggestions, audit entries and the triage run itself.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple

from helpdesk.config import (
    TicketCategory, TicketStatus, ArticleStatus,
    AuditActor, AuditSeverity
)
from helpdesk.core import DomainException, ValidationException


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Ticket:
    """
    Support ticket as seen by triage.

    Triage only changes category, status and agent_suggestion_id.
    """
    id: str
    title: str
    description: str
    category: str = TicketCategory.OTHER
    status: str = TicketStatus.OPEN
    agent_suggestion_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @property
    def full_text(self) -> str:
        """Get combined title and description for classification."""
        return f"{self.title or ''}\n\n{self.description or ''}"

    @property
    def query_text(self) -> str:
        """Text used for article retrieval: description, or title when blank."""
        description = (self.description or "").strip()
        return description or (self.title or "").strip()


@dataclass(frozen=True)
class Article:
    """Knowledge-base article. Read-only to triage."""
    id: str
    title: str
    body: str
    tags: Tuple[str, ...] = ()
    status: str = ArticleStatus.DRAFT
    category: str = TicketCategory.OTHER
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_published(self) -> bool:
        return self.status == ArticleStatus.PUBLISHED

    @property
    def excerpt(self) -> str:
        """First 150 characters of the body."""
        if len(self.body) <= 150:
            return self.body
        return self.body[:150] + "..."


@dataclass(frozen=True)
class ClassificationResult:
    """
    Result of keyword classification.

    confidence is part of the public contract: it is compared against the
    configured auto-close threshold.
    """
    category: str
    confidence: float  # 0.0 to 1.0
    hits: int = 0
    matched_keywords: Tuple[str, ...] = ()

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationException("Confidence must be between 0 and 1")


@dataclass(frozen=True)
class DraftResult:
    """Drafted reply and the ids of the articles it cites, in rendered order."""
    draft_reply: str
    citations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DecisionConfig:
    """
    Inputs of the auto-close decision.

    confidence_threshold must already be validated to lie in [0, 1].
    """
    auto_close_enabled: bool
    confidence_threshold: float


@dataclass(frozen=True)
class Decision:
    """Auto-close or human assignment; exactly one of the two is true."""
    auto_close: bool
    reason: str = ""

    @property
    def assign_to_human(self) -> bool:
        return not self.auto_close

    @property
    def outcome(self) -> str:
        return "auto_close" if self.auto_close else "human"


@dataclass(frozen=True)
class ModelInfo:
    """Provenance of a suggestion."""
    provider: str
    model: str
    prompt_version: str
    latency_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "prompt_version": self.prompt_version,
            "latency_ms": self.latency_ms,
        }


@dataclass
class AgentSuggestion:
    """
    Output of one triage run.

    Created exactly once per run and never updated by triage afterwards.
    """
    ticket_id: str
    trace_id: str
    predicted_category: str
    draft_reply: str
    confidence: float
    auto_closed: bool
    model_info: ModelInfo
    article_ids: List[str] = field(default_factory=list)
    citations: List[str] = field(default_factory=list)
    id: Optional[str] = None  # assigned by the repository
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationException(
                "Suggestion confidence must be between 0 and 1",
                {"confidence": self.confidence}
            )


@dataclass(frozen=True)
class AuditLogEntry:
    """Append-only audit record. Entries of one triage run share a trace_id."""
    trace_id: str
    action: str
    ticket_id: Optional[str] = None
    actor: str = AuditActor.SYSTEM
    meta: Dict[str, Any] = field(default_factory=dict)
    severity: str = AuditSeverity.INFO
    timestamp: datetime = field(default_factory=utcnow)
    id: Optional[str] = None


class TriageState(str):
    """States of a triage run."""
    STARTED = "started"
    CLASSIFIED = "classified"
    RETRIEVED = "retrieved"
    DRAFTED = "drafted"
    DECIDED = "decided"
    COMPLETED = "completed"
    FAILED = "failed"


_NEXT_STATE = {
    TriageState.STARTED: TriageState.CLASSIFIED,
    TriageState.CLASSIFIED: TriageState.RETRIEVED,
    TriageState.RETRIEVED: TriageState.DRAFTED,
    TriageState.DRAFTED: TriageState.DECIDED,
    TriageState.DECIDED: TriageState.COMPLETED,
}


@dataclass
class TriageRun:
    """
    State machine of a single triage run.

    started → classified → retrieved → drafted → decided → completed,
    or failed from any state that is not terminal.
    """
    trace_id: str
    ticket_id: str
    state: str = TriageState.STARTED
    history: List[str] = field(default_factory=lambda: [TriageState.STARTED])

    @property
    def is_terminal(self) -> bool:
        return self.state in (TriageState.COMPLETED, TriageState.FAILED)

    def advance(self, to_state: str) -> None:
        """Move to the next state; anything but the successor is rejected."""
        expected = _NEXT_STATE.get(self.state)
        if to_state != expected:
            raise DomainException(
                f"Illegal triage transition {self.state} -> {to_state}",
                {"trace_id": self.trace_id, "ticket_id": self.ticket_id}
            )
        self.state = to_state
        self.history.append(to_state)

    def fail(self) -> None:
        if self.is_terminal:
            raise DomainException(
                f"Cannot fail a triage run in state {self.state}",
                {"trace_id": self.trace_id, "ticket_id": self.ticket_id}
            )
        self.state = TriageState.FAILED
        self.history.append(TriageState.FAILED)


@dataclass(frozen=True)
class TriageOutcome:
    """What a successful triage run returns to its caller."""
    trace_id: str
    suggestion_id: str
    decision: str
    category: str
    confidence: float
    ticket_status: str

    @property
    def auto_closed(self) -> bool:
        return self.decision == "auto_close"
