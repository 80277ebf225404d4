"""
Requests Module - API Router

Lifecycle endpoints:
- POST /requests/{id}/assign    staff assigns, or executor takes
- POST /requests/{id}/accept    executor
- POST /requests/{id}/start     executor
- POST /requests/{id}/pause     executor
- POST /requests/{id}/resume    executor
- POST /requests/{id}/complete  executor
- POST /requests/{id}/approve   resident / staff
- POST /requests/{id}/reject    resident / staff
- POST /requests/{id}/cancel    resident (before work) / staff
- POST /requests/{id}/decline   executor
- POST /requests/{id}/rate      resident

Illegal moves answer 409 INVALID_TRANSITION and leave the request untouched.
"""
import uuid

from fastapi import APIRouter, Query, status

from housing_desk.core.exceptions import ForbiddenError
from housing_desk.modules.auth.dependencies import CurrentUser
from housing_desk.modules.executors.models import ExecutorSpecialization
from housing_desk.modules.requests.dependencies import RequestServiceDep
from housing_desk.modules.requests.models import RequestStatus
from housing_desk.modules.requests.schemas import (
    ApproveRequest,
    AssignRequest,
    DeclineRequest,
    ExecutorBoardResponse,
    RateRequest,
    ReasonRequest,
    RejectRequest,
    RequestCreate,
    RequestListResponse,
    RequestResponse,
    ResidentRequestsResponse,
)

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.get("", response_model=RequestListResponse, summary="List requests")
async def list_requests(
    current_user: CurrentUser,
    service: RequestServiceDep,
    status: RequestStatus | None = None,
    category: ExecutorSpecialization | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> RequestListResponse:
    """
    Requests newest first.

    Staff see everything; residents their own; executors those assigned to them.
    """
    scope: dict[str, uuid.UUID] = {}
    if current_user.is_resident:
        scope["resident_id"] = current_user.id
    elif current_user.is_executor:
        scope["executor_id"] = current_user.id
    elif not current_user.is_staff:
        raise ForbiddenError("You cannot list requests")

    items, total = await service.list_requests(
        status=status,
        category=category.value if category else None,
        page=page,
        page_size=page_size,
        **scope,
    )
    return RequestListResponse(
        items=[RequestResponse.from_request(r) for r in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: RequestCreate,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    """File a new request."""
    request = await service.create(data, current_user)
    return RequestResponse.from_request(request)


@router.get("/board", response_model=ExecutorBoardResponse, summary="Executor board")
async def executor_board(current_user: CurrentUser, service: RequestServiceDep) -> ExecutorBoardResponse:
    """Available, assigned, in-progress and completed columns for the current executor."""
    if not current_user.is_executor:
        raise ForbiddenError("Only executors have a board")
    return await service.executor_board(current_user)


@router.get("/mine", response_model=ResidentRequestsResponse, summary="Resident requests")
async def resident_requests(current_user: CurrentUser, service: RequestServiceDep) -> ResidentRequestsResponse:
    """The resident's requests split into active, awaiting approval and history."""
    if not current_user.is_resident:
        raise ForbiddenError("Only residents have this view")
    return await service.resident_view(current_user)


@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: uuid.UUID,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.get_for_user(request_id, current_user)
    return RequestResponse.from_request(request)


# ============== Transitions ==============

@router.post("/{request_id}/assign", response_model=RequestResponse)
async def assign_request(
    request_id: uuid.UUID,
    data: AssignRequest,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.assign(request_id, current_user, data.executor_id)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/accept", response_model=RequestResponse)
async def accept_request(
    request_id: uuid.UUID,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.accept(request_id, current_user)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/start", response_model=RequestResponse)
async def start_work(
    request_id: uuid.UUID,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.start(request_id, current_user)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/pause", response_model=RequestResponse)
async def pause_work(
    request_id: uuid.UUID,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.pause(request_id, current_user)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/resume", response_model=RequestResponse)
async def resume_work(
    request_id: uuid.UUID,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.resume(request_id, current_user)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/complete", response_model=RequestResponse)
async def complete_work(
    request_id: uuid.UUID,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.complete(request_id, current_user)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/approve", response_model=RequestResponse)
async def approve_request(
    request_id: uuid.UUID,
    data: ApproveRequest,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.approve(request_id, current_user, data.rating, data.feedback)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/reject", response_model=RequestResponse)
async def reject_request(
    request_id: uuid.UUID,
    data: RejectRequest,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.reject(request_id, current_user, data.reason)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/cancel", response_model=RequestResponse)
async def cancel_request(
    request_id: uuid.UUID,
    current_user: CurrentUser,
    service: RequestServiceDep,
    data: ReasonRequest | None = None,
) -> RequestResponse:
    """Cancel; the reason body is optional."""
    request = await service.cancel(request_id, current_user, data.reason if data else None)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/decline", response_model=RequestResponse)
async def decline_request(
    request_id: uuid.UUID,
    data: DeclineRequest,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.decline(request_id, current_user, data.reason)
    return RequestResponse.from_request(request)


@router.post("/{request_id}/rate", response_model=RequestResponse)
async def rate_request(
    request_id: uuid.UUID,
    data: RateRequest,
    current_user: CurrentUser,
    service: RequestServiceDep,
) -> RequestResponse:
    request = await service.rate(request_id, current_user, data.rating, data.feedback)
    return RequestResponse.from_request(request)
