"""
Triage Infrastructure Models
=============================

SQLAlchemy ORM models for the triage module.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    String, DateTime, Float, Integer, Text, Boolean, Uuid, ForeignKey, JSON, Index
)
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.infrastructure.database import Base
from helpdesk.config import TicketCategory, TicketStatus, ArticleStatus, AuditActor, AuditSeverity


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketModel(Base):
    """
    Database model for Ticket entity.
    """
    __tablename__ = "tickets"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Ticket content
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Triage results
    category: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketCategory.OTHER, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketStatus.OPEN, index=True
    )
    agent_suggestion_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class ArticleModel(Base):
    """
    Database model for knowledge-base articles.
    """
    __tablename__ = "articles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ArticleStatus.DRAFT, index=True
    )
    category: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketCategory.OTHER, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )


class AgentSuggestionModel(Base):
    """
    Database model for AgentSuggestion entity.

    One row per triage run; never updated.
    """
    __tablename__ = "agent_suggestions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Foreign key to ticket
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    trace_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Triage results
    predicted_category: Mapped[str] = mapped_column(String(20), nullable=False)
    article_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    citations: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    draft_reply: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    auto_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Provenance: provider, model, prompt_version, latency_ms
    model_info: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )


class AuditLogModel(Base):
    """
    Database model for the append-only audit log.

    ticket_id is a plain string so failure entries can reference tickets
    that do not exist. seq orders entries that share a timestamp.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_ticket_timestamp", "ticket_id", "timestamp"),
        Index("ix_audit_logs_trace_timestamp", "trace_id", "timestamp"),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[UUID] = mapped_column(Uuid, unique=True, nullable=False, default=uuid4)

    trace_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ticket_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    actor: Mapped[str] = mapped_column(String(20), nullable=False, default=AuditActor.SYSTEM)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    meta: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    severity: Mapped[str] = mapped_column(String(10), nullable=False, default=AuditSeverity.INFO)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow
    )


class ConfigEntryModel(Base):
    """
    Database model for runtime config entries.

    value_type selects the variant; the constraint columns that do not
    apply to it stay NULL.
    """
    __tablename__ = "config_entries"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_type: Mapped[str] = mapped_column(String(10), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)

    # Validation constraints
    min_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pattern: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    choices: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    # Metadata
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="system")
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0.0")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow
    )
