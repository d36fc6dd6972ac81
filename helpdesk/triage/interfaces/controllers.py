"""
Triage Controllers (API Routes)
================================

FastAPI routes for running triage and reading its results.

Controllers delegate to application services.
"""

from fastapi import APIRouter, Depends, Request

from helpdesk.core import ResourceNotFoundException
from helpdesk.triage.application import TriagePipeline, AuditTrail, ISuggestionRepository
from helpdesk.triage.application.dto import (
    TriageRequest, TriageResponse, SuggestionResponse, AuditTrailResponse
)
from helpdesk.triage.interfaces.dependencies import (
    get_triage_pipeline, get_audit_trail, get_suggestion_repository
)
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["Ticket Triage"])


# ========== Example payloads for Swagger ==========

TRIAGE_RESPONSE_EXAMPLE = {
    "trace_id": "5f0e1c8a-7a4b-4c53-9d0e-2f3b7f6c9a11",
    "ticket_id": "123e4567-e89b-12d3-a456-426614174000",
    "suggestion_id": "9b2f6a44-0c1d-4e8f-a3b5-6d7e8f901234",
    "decision": "human",
    "category": "billing",
    "confidence": 0.67,
    "ticket_status": "waiting_human"
}


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TriageResponse,
    summary="Triage a ticket",
    description="""
    Run the triage workflow synchronously for one ticket:

    1. Classify the ticket into billing / tech / shipping / other
    2. Retrieve up to three relevant published articles
    3. Draft a reply citing them
    4. Auto-close when enabled and confidence meets the threshold,
       otherwise assign to a human

    Every step is written to the audit log under one trace id. Running
    triage again creates a new suggestion and a new trace.
    """,
    responses={
        200: {
            "description": "Ticket triaged",
            "content": {"application/json": {"example": TRIAGE_RESPONSE_EXAMPLE}}
        },
        404: {"description": "Ticket not found"}
    }
)
async def triage_ticket(
    request: Request,
    payload: TriageRequest,
    pipeline: TriagePipeline = Depends(get_triage_pipeline)
):
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.info(
        "Triage requested",
        extra={"correlation_id": correlation_id, "ticket_id": payload.ticket_id}
    )

    outcome = await pipeline.triage(payload.ticket_id)
    return TriageResponse.from_outcome(payload.ticket_id, outcome)


@router.get(
    "/suggestions/{ticket_id}",
    response_model=SuggestionResponse,
    summary="Latest suggestion for a ticket",
    responses={404: {"description": "No suggestion for this ticket"}}
)
async def get_suggestion(
    ticket_id: str,
    suggestions: ISuggestionRepository = Depends(get_suggestion_repository)
):
    suggestion = await suggestions.get_latest_for_ticket(ticket_id)
    if suggestion is None:
        raise ResourceNotFoundException("AgentSuggestion", details={"ticket_id": ticket_id})
    return SuggestionResponse.from_domain(suggestion)


@router.get(
    "/audit/{ticket_id}",
    response_model=AuditTrailResponse,
    summary="Audit trail of a ticket",
    description="All audit entries referencing the ticket, oldest first."
)
async def get_ticket_audit(
    ticket_id: str,
    audit: AuditTrail = Depends(get_audit_trail)
):
    return AuditTrailResponse.from_entries(await audit.for_ticket(ticket_id))


@router.get(
    "/traces/{trace_id}",
    response_model=AuditTrailResponse,
    summary="Audit entries of one triage run",
    description="Entries sharing the trace id, oldest first."
)
async def get_trace(
    trace_id: str,
    audit: AuditTrail = Depends(get_audit_trail)
):
    return AuditTrailResponse.from_entries(await audit.for_trace(trace_id))


# Export router for inclusion in main app
triage_router = router
