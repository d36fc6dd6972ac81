"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-triage", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Triage ==========
    default_auto_close_enabled: bool = Field(
        default=True,
        description="Fallback for the autoCloseEnabled config entry when it is absent or invalid"
    )
    default_confidence_threshold: float = Field(
        default=0.78,
        description="Fallback for the confidenceThreshold config entry when it is absent or invalid",
        ge=0.0,
        le=1.0
    )
    kb_article_limit: int = Field(
        default=3,
        description="Number of knowledge-base articles retrieved per triage run",
        ge=1,
        le=20
    )
    triage_on_create: bool = Field(
        default=True,
        description="Schedule a background triage run when a ticket is created"
    )

    # ========== Seeding ==========
    seed_path: Path = Field(
        default=Path("seed.yaml"),
        description="YAML file with default config entries and sample articles"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketCategory(str):
    """Ticket categories assigned by triage."""
    BILLING = "billing"
    TECH = "tech"
    SHIPPING = "shipping"
    OTHER = "other"         # Fallback when no keyword matches


class TicketStatus(str):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    TRIAGED = "triaged"
    WAITING_HUMAN = "waiting_human"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ArticleStatus(str):
    """Knowledge-base article statuses."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class AuditActor(str):
    """Who performed an audited action."""
    SYSTEM = "system"
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"


class AuditAction(str):
    """Audit log action vocabulary."""
    # Triage pipeline
    AGENT_PLAN = "AGENT_PLAN"
    AGENT_CLASSIFIED = "AGENT_CLASSIFIED"
    KB_RETRIEVED = "KB_RETRIEVED"
    DRAFT_GENERATED = "DRAFT_GENERATED"
    DECISION_MADE = "DECISION_MADE"
    AUTO_CLOSED = "AUTO_CLOSED"
    ASSIGNED_TO_HUMAN = "ASSIGNED_TO_HUMAN"
    AGENT_WORKFLOW_FAILED = "AGENT_WORKFLOW_FAILED"

    # API
    TICKET_CREATED = "TICKET_CREATED"
    REPLY_SENT = "REPLY_SENT"
    SYSTEM_CONFIG_UPDATED = "SYSTEM_CONFIG_UPDATED"


class AuditSeverity(str):
    """Audit entry severities."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ConfigKey(str):
    """Config store keys read by triage."""
    AUTO_CLOSE_ENABLED = "autoCloseEnabled"
    CONFIDENCE_THRESHOLD = "confidenceThreshold"


# ========== Lists for validation ==========

TICKET_CATEGORIES = [
    TicketCategory.BILLING, TicketCategory.TECH,
    TicketCategory.SHIPPING, TicketCategory.OTHER
]
VALID_STATUSES = [
    TicketStatus.OPEN, TicketStatus.TRIAGED, TicketStatus.WAITING_HUMAN,
    TicketStatus.RESOLVED, TicketStatus.CLOSED
]
VALID_ARTICLE_STATUSES = [
    ArticleStatus.DRAFT, ArticleStatus.PUBLISHED, ArticleStatus.ARCHIVED
]
