"""
Dashboard views derived from a set of requests.

The executor board and the resident view are pure functions of the
request rows; the service loads the rows and these functions sort them
into columns.
"""
import uuid
from collections.abc import Iterable
from datetime import datetime

from housing_desk.modules.requests.models import RequestStatus, ServiceRequest
from housing_desk.modules.requests.schemas import (
    ExecutorBoardResponse,
    RequestResponse,
    ResidentRequestsResponse,
)
from housing_desk.modules.reschedule.models import RescheduleRequest
from housing_desk.modules.reschedule.schemas import RescheduleResponse

S = RequestStatus

RESIDENT_ACTIVE = frozenset({S.NEW, S.ASSIGNED, S.ACCEPTED, S.IN_PROGRESS})
RESIDENT_HISTORY = frozenset({S.COMPLETED, S.CANCELLED})


def classify_for_executor(
    requests: Iterable[ServiceRequest],
    executor_id: uuid.UUID,
    specialization: str,
) -> dict[str, list[ServiceRequest]]:
    """
    Split requests into executor board columns.

    available: unassigned requests in the executor's trade
    assigned: assigned to them, not yet started
    in_progress: being worked
    completed: finished, approved or awaiting approval
    """
    columns: dict[str, list[ServiceRequest]] = {
        "available": [],
        "assigned": [],
        "in_progress": [],
        "completed": [],
    }
    for request in requests:
        status = request.status
        if status == S.NEW.value:
            if request.category == specialization:
                columns["available"].append(request)
            continue
        if request.executor_id != executor_id:
            continue
        if status in (S.ASSIGNED.value, S.ACCEPTED.value):
            columns["assigned"].append(request)
        elif status == S.IN_PROGRESS.value:
            columns["in_progress"].append(request)
        elif status in (S.COMPLETED.value, S.PENDING_APPROVAL.value):
            columns["completed"].append(request)
    return columns


def classify_for_resident(
    requests: Iterable[ServiceRequest],
    resident_id: uuid.UUID,
) -> dict[str, list[ServiceRequest]]:
    columns: dict[str, list[ServiceRequest]] = {
        "active": [],
        "awaiting_approval": [],
        "history": [],
    }
    for request in requests:
        if request.resident_id != resident_id:
            continue
        if request.status in {s.value for s in RESIDENT_ACTIVE}:
            columns["active"].append(request)
        elif request.status == S.PENDING_APPROVAL.value:
            columns["awaiting_approval"].append(request)
        elif request.status in {s.value for s in RESIDENT_HISTORY}:
            columns["history"].append(request)
    return columns


def build_executor_board(
    requests: Iterable[ServiceRequest],
    executor_id: uuid.UUID,
    specialization: str,
    pending_reschedules: Iterable[RescheduleRequest] = (),
    now: datetime | None = None,
) -> ExecutorBoardResponse:
    columns = classify_for_executor(requests, executor_id, specialization)
    return ExecutorBoardResponse(
        **{
            name: [RequestResponse.from_request(r, now) for r in rows]
            for name, rows in columns.items()
        },
        pending_reschedules=[RescheduleResponse.model_validate(r) for r in pending_reschedules],
    )


def build_resident_view(
    requests: Iterable[ServiceRequest],
    resident_id: uuid.UUID,
    pending_reschedules: Iterable[RescheduleRequest] = (),
    now: datetime | None = None,
) -> ResidentRequestsResponse:
    columns = classify_for_resident(requests, resident_id)
    return ResidentRequestsResponse(
        **{
            name: [RequestResponse.from_request(r, now) for r in rows]
            for name, rows in columns.items()
        },
        pending_reschedules=[RescheduleResponse.model_validate(r) for r in pending_reschedules],
    )
