"""
Config Controllers
==================

Read and update runtime config entries, including the auto-close toggle
and confidence threshold used by triage.
"""

import uuid

from fastapi import APIRouter, Depends, Request

from helpdesk.triage.application import ConfigService
from helpdesk.triage.application.dto import (
    ConfigEntryDTO, ConfigListResponse, ConfigUpdateRequest, ConfigUpdateResponse, config_to_dto
)
from helpdesk.triage.interfaces.dependencies import get_config_service
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/config", tags=["Config"])


@router.get("", response_model=ConfigListResponse, summary="List config entries")
async def list_config(service: ConfigService = Depends(get_config_service)):
    entries = await service.list_entries()
    return ConfigListResponse(count=len(entries), entries=[config_to_dto(e) for e in entries])


@router.get("/public", response_model=ConfigListResponse, summary="List public config entries")
async def list_public_config(service: ConfigService = Depends(get_config_service)):
    entries = await service.list_entries(public_only=True)
    return ConfigListResponse(count=len(entries), entries=[config_to_dto(e) for e in entries])


@router.get(
    "/{key}",
    response_model=ConfigEntryDTO,
    summary="Get a config entry",
    responses={404: {"description": "Unknown key"}}
)
async def get_config_entry(key: str, service: ConfigService = Depends(get_config_service)):
    return config_to_dto(await service.get_entry(key))


@router.put(
    "/{key}",
    response_model=ConfigUpdateResponse,
    summary="Update a config entry",
    description="""
    Replace the value of an existing entry. The value must match the
    entry's type and constraints (bounds for numbers, pattern and allowed
    values for strings). Each update bumps the entry's patch version.
    """,
    responses={
        404: {"description": "Unknown key"},
        422: {"description": "Value does not fit the entry"}
    }
)
async def update_config(
    key: str,
    request: Request,
    payload: ConfigUpdateRequest,
    service: ConfigService = Depends(get_config_service)
):
    trace_id = getattr(request.state, "correlation_id", None) or str(uuid.uuid4())

    saved, old_value = await service.update_value(key, payload.value, trace_id, payload.reason)

    logger.info(
        "Config updated",
        extra={"correlation_id": trace_id, "key": key, "version": saved.version}
    )

    return ConfigUpdateResponse(entry=config_to_dto(saved), old_value=old_value, trace_id=trace_id)


config_router = router
