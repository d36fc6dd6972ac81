"""
Triage Pipeline
===============

Orchestrates one triage run per ticket:

    load ticket → classify → retrieve articles → draft reply → resolve config
    → decide → persist suggestion → update ticket → final audit entry

Every run gets a trace id shared by all of its audit entries. A run that
fails records an AGENT_WORKFLOW_FAILED entry and re-raises; retries are the
caller's decision and always start a new run.

With a unit of work, the suggestion and ticket update are committed before
the final audit entry, and a failed run is rolled back before its failure
entry is written. Audit entries go through their own sessions, so neither
waits on the run's open transaction.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from helpdesk.config import settings, AuditAction, AuditSeverity, TicketStatus
from helpdesk.core import (
    ApplicationException, ResourceNotFoundException, TriageStageException
)
from helpdesk.shared.infrastructure.logging import get_context_logger
from helpdesk.triage.domain import (
    AgentSuggestion, ModelInfo, TriageRun, TriageState, TriageOutcome,
    KeywordClassifier, ArticleRanker, ReplyDrafter, DecisionPolicy
)
from helpdesk.triage.application.services import (
    ITicketRepository, IArticleRepository, ISuggestionRepository, IUnitOfWork,
    AuditTrail, TriageConfigResolver
)


PLAN_STEPS = ["classify", "retrieve", "draft", "decision"]
PROMPT_VERSION = "v1"


class TriagePipeline:
    """
    Runs the triage workflow for a ticket.

    Steps within a run are strictly sequential. The pipeline holds no
    per-run state, so one instance may serve concurrent runs for
    different tickets.
    """

    def __init__(
        self,
        tickets: ITicketRepository,
        articles: IArticleRepository,
        suggestions: ISuggestionRepository,
        audit: AuditTrail,
        config_resolver: TriageConfigResolver,
        classifier: Optional[KeywordClassifier] = None,
        ranker: Optional[ArticleRanker] = None,
        drafter: Optional[ReplyDrafter] = None,
        policy: Optional[DecisionPolicy] = None,
        article_limit: Optional[int] = None,
        unit_of_work: Optional[IUnitOfWork] = None
    ):
        self._tickets = tickets
        self._articles = articles
        self._suggestions = suggestions
        self._audit = audit
        self._config = config_resolver
        self._classifier = classifier or KeywordClassifier()
        self._ranker = ranker or ArticleRanker()
        self._drafter = drafter or ReplyDrafter()
        self._policy = policy or DecisionPolicy()
        self._article_limit = article_limit or settings.kb_article_limit
        self._uow = unit_of_work

    async def triage(self, ticket_id: str, trace_id: Optional[str] = None) -> TriageOutcome:
        """
        Triage a ticket.

        Args:
            ticket_id: Ticket to triage
            trace_id: Trace id to use instead of a fresh one

        Returns:
            TriageOutcome with trace id, suggestion id and decision

        Raises:
            ResourceNotFoundException: ticket does not exist
            ApplicationException: a stage failed (details carry stage and trace_id)
            TriageStageException: unexpected error inside a stage
        """
        run = TriageRun(trace_id=trace_id or str(uuid.uuid4()), ticket_id=str(ticket_id))
        log = get_context_logger(__name__, run.trace_id)
        log.info("Triage started", extra={"ticket_id": run.ticket_id})

        async with self._stage(run, "load_ticket"):
            ticket = await self._tickets.get_by_id(run.ticket_id)
            if ticket is None:
                raise ResourceNotFoundException("Ticket", run.ticket_id)
            await self._record(run, AuditAction.AGENT_PLAN, {"steps": PLAN_STEPS})

        async with self._stage(run, "classify"):
            classification = self._classifier.classify(ticket.full_text)
            run.advance(TriageState.CLASSIFIED)
            await self._record(run, AuditAction.AGENT_CLASSIFIED, {
                "category": classification.category,
                "confidence": classification.confidence,
                "hits": classification.hits,
                "matched_keywords": list(classification.matched_keywords),
            })

        query = ticket.query_text

        async with self._stage(run, "retrieve"):
            candidates = await self._articles.find_published()
            ranked = self._ranker.rank(query, candidates, self._article_limit)
            article_ids = [article.id for article in ranked]
            run.advance(TriageState.RETRIEVED)
            await self._record(run, AuditAction.KB_RETRIEVED, {"article_ids": article_ids})

        async with self._stage(run, "draft"):
            started = time.perf_counter()
            drafted = self._drafter.draft(query, ranked)
            latency_ms = int((time.perf_counter() - started) * 1000)
            run.advance(TriageState.DRAFTED)
            await self._record(run, AuditAction.DRAFT_GENERATED, {
                "citations": list(drafted.citations),
                "latency_ms": latency_ms,
            })

        async with self._stage(run, "decide"):
            decision_config = await self._config.resolve(run.trace_id)
            decision = self._policy.decide(classification.confidence, decision_config)
            run.advance(TriageState.DECIDED)
            await self._record(run, AuditAction.DECISION_MADE, {
                "auto_close_enabled": decision_config.auto_close_enabled,
                "threshold": decision_config.confidence_threshold,
                "confidence": classification.confidence,
                "decision": decision.outcome,
                "reason": decision.reason,
            })

        async with self._stage(run, "persist_suggestion"):
            suggestion = await self._suggestions.create(AgentSuggestion(
                ticket_id=ticket.id,
                trace_id=run.trace_id,
                predicted_category=classification.category,
                article_ids=article_ids,
                citations=list(drafted.citations),
                draft_reply=drafted.draft_reply,
                confidence=classification.confidence,
                auto_closed=decision.auto_close,
                model_info=ModelInfo(
                    provider=self._classifier.name,
                    model=f"{self._classifier.name}-{self._classifier.version}",
                    prompt_version=PROMPT_VERSION,
                    latency_ms=latency_ms,
                ),
            ))

        status = TicketStatus.RESOLVED if decision.auto_close else TicketStatus.WAITING_HUMAN

        async with self._stage(run, "update_ticket"):
            await self._tickets.update(ticket.id, {
                "category": classification.category,
                "status": status,
                "agent_suggestion_id": suggestion.id,
            })
            if self._uow is not None:
                await self._uow.commit()

        async with self._stage(run, "finalize"):
            final_action = AuditAction.AUTO_CLOSED if decision.auto_close else AuditAction.ASSIGNED_TO_HUMAN
            await self._record(run, final_action, {"suggestion_id": suggestion.id})
            run.advance(TriageState.COMPLETED)

        log.info(
            "Triage completed",
            extra={
                "ticket_id": run.ticket_id,
                "category": classification.category,
                "confidence": classification.confidence,
                "decision": decision.outcome,
                "suggestion_id": suggestion.id,
            }
        )

        return TriageOutcome(
            trace_id=run.trace_id,
            suggestion_id=suggestion.id,
            decision=decision.outcome,
            category=classification.category,
            confidence=classification.confidence,
            ticket_status=status,
        )

    async def _record(self, run: TriageRun, action: str, meta: dict) -> None:
        await self._audit.record(run.trace_id, action, ticket_id=run.ticket_id, meta=meta)

    @asynccontextmanager
    async def _stage(self, run: TriageRun, stage: str) -> AsyncIterator[None]:
        """
        Run one stage; on error fail the run, audit the failure and re-raise.

        Application exceptions keep their type and gain stage/trace_id
        details. Anything else is wrapped in TriageStageException.
        """
        try:
            yield
        except ApplicationException as e:
            e.details.setdefault("stage", stage)
            e.details.setdefault("trace_id", run.trace_id)
            await self._fail(run, stage, e)
            raise
        except Exception as e:
            await self._fail(run, stage, e)
            raise TriageStageException(stage, run.trace_id, str(e)) from e

    async def _fail(self, run: TriageRun, stage: str, error: Exception) -> None:
        run.fail()
        log = get_context_logger(__name__, run.trace_id)
        if self._uow is not None:
            try:
                await self._uow.rollback()
            except Exception as e:
                log.warning("Rollback after failure did not succeed", extra={"error": str(e)})
        log.error(
            "Triage failed",
            extra={
                "ticket_id": run.ticket_id,
                "stage": stage,
                "error_type": type(error).__name__,
                "error": str(error),
            }
        )
        await self._audit.record(
            run.trace_id,
            AuditAction.AGENT_WORKFLOW_FAILED,
            ticket_id=run.ticket_id,
            meta={"stage": stage, "error": str(error)},
            severity=AuditSeverity.ERROR,
        )
