"""
Reschedule Module - API Router

- GET  /requests/{id}/reschedule          proposals on a request (active, confirmed, history)
- POST /requests/{id}/reschedule          propose a new time
- GET  /reschedule-requests               proposals waiting for my answer
- POST /reschedule-requests/{id}/respond  accept or reject
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.database import get_db
from housing_desk.modules.auth.dependencies import CurrentUser
from housing_desk.modules.requests.dependencies import RequestServiceDep
from housing_desk.modules.reschedule.schemas import (
    RequestRescheduleState,
    RescheduleCreate,
    RescheduleRespond,
    RescheduleResponse,
)
from housing_desk.modules.reschedule.service import RescheduleService

router = APIRouter(tags=["Reschedule"])


async def get_reschedule_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RescheduleService:
    return RescheduleService(db)


RescheduleServiceDep = Annotated[RescheduleService, Depends(get_reschedule_service)]


@router.get("/requests/{request_id}/reschedule", response_model=RequestRescheduleState)
async def get_request_reschedules(
    request_id: uuid.UUID,
    current_user: CurrentUser,
    requests: RequestServiceDep,
    service: RescheduleServiceDep,
) -> RequestRescheduleState:
    """Pending proposal, recently confirmed proposal and full history."""
    request = await requests.get_for_user(request_id, current_user)
    active = await service.active_for_request(request.id)
    confirmed = await service.confirmed_for_request(request.id)
    history = await service.for_request(request.id)
    return RequestRescheduleState(
        active=RescheduleResponse.model_validate(active) if active else None,
        confirmed=RescheduleResponse.model_validate(confirmed) if confirmed else None,
        history=[RescheduleResponse.model_validate(r) for r in history],
    )


@router.post(
    "/requests/{request_id}/reschedule",
    response_model=RescheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def propose_reschedule(
    request_id: uuid.UUID,
    data: RescheduleCreate,
    current_user: CurrentUser,
    requests: RequestServiceDep,
    service: RescheduleServiceDep,
) -> RescheduleResponse:
    """Propose a new date/time to the other party of the request."""
    request = await requests.get_or_404(request_id)
    reschedule = await service.propose(request, current_user, data)
    return RescheduleResponse.model_validate(reschedule)


@router.get("/reschedule-requests", response_model=list[RescheduleResponse])
async def list_pending_reschedules(
    current_user: CurrentUser,
    service: RescheduleServiceDep,
) -> list[RescheduleResponse]:
    """Proposals waiting for my answer."""
    pending = await service.pending_for_user(current_user.id)
    return [RescheduleResponse.model_validate(r) for r in pending]


@router.post("/reschedule-requests/{reschedule_id}/respond", response_model=RescheduleResponse)
async def respond_to_reschedule(
    reschedule_id: uuid.UUID,
    data: RescheduleRespond,
    current_user: CurrentUser,
    service: RescheduleServiceDep,
) -> RescheduleResponse:
    reschedule = await service.respond(
        reschedule_id,
        current_user,
        accepted=data.accepted,
        response_note=data.response_note,
    )
    return RescheduleResponse.model_validate(reschedule)
