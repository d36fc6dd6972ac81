"""
Ticket Controllers
==================

Ticket intake and agent replies. Creating a ticket schedules a background
triage run that shares the request's correlation id as its trace id.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import settings
from helpdesk.infrastructure.database import get_session
from helpdesk.triage.application import TicketService
from helpdesk.triage.application.dto import (
    TicketCreateRequest, TicketReplyRequest, TicketResponse, TicketListResponse,
    TicketCreatedResponse, TicketStatusStr
)
from helpdesk.triage.interfaces.dependencies import (
    BackgroundTriage, get_ticket_service, get_background_triage
)
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post(
    "",
    response_model=TicketCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="File a ticket"
)
async def create_ticket(
    request: Request,
    payload: TicketCreateRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
    service: TicketService = Depends(get_ticket_service),
    background_triage: BackgroundTriage = Depends(get_background_triage)
):
    trace_id = getattr(request.state, "correlation_id", None) or str(uuid.uuid4())

    ticket = await service.create_ticket(
        title=payload.title.strip(),
        description=payload.description.strip(),
        trace_id=trace_id,
        category=payload.category
    )

    # The background run reads the ticket through its own session
    await db.commit()

    if settings.triage_on_create:
        background_tasks.add_task(background_triage, ticket.id, trace_id)

    logger.info(
        "Ticket created",
        extra={
            "correlation_id": trace_id,
            "ticket_id": ticket.id,
            "triage_scheduled": settings.triage_on_create
        }
    )

    return TicketCreatedResponse(
        ticket=TicketResponse.from_domain(ticket),
        trace_id=trace_id,
        triage_scheduled=settings.triage_on_create
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket",
    responses={404: {"description": "Ticket not found"}}
)
async def get_ticket(
    ticket_id: str,
    service: TicketService = Depends(get_ticket_service)
):
    return TicketResponse.from_domain(await service.get_ticket(ticket_id))


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="Tickets newest first. Filter by `status=waiting_human` to get the human queue."
)
async def list_tickets(
    status_filter: Optional[TicketStatusStr] = Query(
        default=None, alias="status", description="Only tickets with this status"
    ),
    service: TicketService = Depends(get_ticket_service)
):
    return TicketListResponse.from_tickets(await service.list_tickets(status_filter))


@router.post(
    "/{ticket_id}/reply",
    response_model=TicketResponse,
    summary="Reply to a ticket",
    description="""
    Record an agent reply. With `close` the ticket is resolved, otherwise
    it moves to `triaged`. The reply is audited as REPLY_SENT.
    """,
    responses={404: {"description": "Ticket not found"}}
)
async def reply_to_ticket(
    ticket_id: str,
    request: Request,
    payload: TicketReplyRequest,
    service: TicketService = Depends(get_ticket_service)
):
    trace_id = getattr(request.state, "correlation_id", None) or str(uuid.uuid4())

    ticket = await service.reply(ticket_id, payload.message.strip(), trace_id, close=payload.close)

    logger.info(
        "Reply sent",
        extra={"correlation_id": trace_id, "ticket_id": ticket.id, "status": ticket.status}
    )

    return TicketResponse.from_domain(ticket)


tickets_router = router
