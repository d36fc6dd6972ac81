"""
Triage Domain Layer
===================

Domain layer for ticket triage module.

Contains:
- Entities: Ticket, Article, AgentSuggestion, AuditLogEntry, TriageRun
- Value Objects: ClassificationResult, DraftResult, Decision, config entries
- Domain Services: KeywordClassifier, ArticleRanker, ReplyDrafter, DecisionPolicy

This layer is framework-agnostic and contains pure business logic.
"""

from helpdesk.triage.domain.entities import (
    Ticket,
    Article,
    ClassificationResult,
    DraftResult,
    DecisionConfig,
    Decision,
    ModelInfo,
    AgentSuggestion,
    AuditLogEntry,
    TriageState,
    TriageRun,
    TriageOutcome,
)
from helpdesk.triage.domain.config_values import (
    BoolConfig,
    NumberConfig,
    StringConfig,
    ConfigValue,
    CONFIG_VARIANTS,
    default_config_entries,
)
from helpdesk.triage.domain.classifier import KeywordClassifier
from helpdesk.triage.domain.ranker import ArticleRanker
from helpdesk.triage.domain.drafter import ReplyDrafter
from helpdesk.triage.domain.policy import DecisionPolicy

__all__ = [
    # Entities
    "Ticket",
    "Article",
    "ClassificationResult",
    "DraftResult",
    "DecisionConfig",
    "Decision",
    "ModelInfo",
    "AgentSuggestion",
    "AuditLogEntry",
    "TriageState",
    "TriageRun",
    "TriageOutcome",
    # Config entries
    "BoolConfig",
    "NumberConfig",
    "StringConfig",
    "ConfigValue",
    "CONFIG_VARIANTS",
    "default_config_entries",
    # Domain services
    "KeywordClassifier",
    "ArticleRanker",
    "ReplyDrafter",
    "DecisionPolicy",
]
