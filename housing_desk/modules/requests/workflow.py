"""
Request status state machine.

Each operation lists the statuses it may start from and the status it
lands in. Actor checks (who may trigger what) live in the service; this
module only answers "is this move legal from here".
"""
from enum import Enum

from housing_desk.core.exceptions import InvalidTransitionError
from housing_desk.modules.requests.models import RequestStatus

S = RequestStatus


class RequestOperation(str, Enum):
    ASSIGN = "assign"
    ACCEPT = "accept"
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    COMPLETE = "complete"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    DECLINE = "decline"
    RATE = "rate"


# operation -> (allowed source statuses, target status)
TRANSITIONS: dict[RequestOperation, tuple[frozenset[RequestStatus], RequestStatus]] = {
    RequestOperation.ASSIGN: (frozenset({S.NEW, S.ASSIGNED}), S.ASSIGNED),
    RequestOperation.ACCEPT: (frozenset({S.ASSIGNED}), S.ACCEPTED),
    RequestOperation.START: (frozenset({S.ASSIGNED, S.ACCEPTED}), S.IN_PROGRESS),
    RequestOperation.PAUSE: (frozenset({S.IN_PROGRESS}), S.IN_PROGRESS),
    RequestOperation.RESUME: (frozenset({S.IN_PROGRESS}), S.IN_PROGRESS),
    RequestOperation.COMPLETE: (frozenset({S.IN_PROGRESS}), S.PENDING_APPROVAL),
    RequestOperation.APPROVE: (frozenset({S.PENDING_APPROVAL}), S.COMPLETED),
    RequestOperation.REJECT: (frozenset({S.PENDING_APPROVAL}), S.IN_PROGRESS),
    RequestOperation.CANCEL: (frozenset({S.NEW, S.ASSIGNED, S.ACCEPTED}), S.CANCELLED),
    RequestOperation.DECLINE: (frozenset({S.ASSIGNED, S.ACCEPTED, S.IN_PROGRESS}), S.NEW),
    RequestOperation.RATE: (frozenset({S.COMPLETED}), S.COMPLETED),
}

# Staff may cancel anything that has not finished
STAFF_CANCELLABLE: frozenset[RequestStatus] = frozenset(
    s for s in RequestStatus if s not in (S.COMPLETED, S.CANCELLED)
)

# Statuses in which the resident and executor may negotiate a new time
RESCHEDULABLE: frozenset[RequestStatus] = frozenset({S.ASSIGNED, S.ACCEPTED, S.IN_PROGRESS})


def allowed_from(operation: RequestOperation, staff: bool = False) -> frozenset[RequestStatus]:
    if operation is RequestOperation.CANCEL and staff:
        return STAFF_CANCELLABLE
    return TRANSITIONS[operation][0]


def target_of(operation: RequestOperation) -> RequestStatus:
    return TRANSITIONS[operation][1]


def can_transition(current: str, operation: RequestOperation, staff: bool = False) -> bool:
    return current in {s.value for s in allowed_from(operation, staff)}


def ensure_transition(
    current: str,
    operation: RequestOperation,
    staff: bool = False,
) -> RequestStatus:
    """
    Return the target status, or raise if `operation` is illegal from `current`.

    Raises:
        InvalidTransitionError: 409 carrying current/target/allowed statuses
    """
    target = target_of(operation)
    if not can_transition(current, operation, staff):
        raise InvalidTransitionError(
            "Request",
            current,
            target.value,
            sorted(s.value for s in allowed_from(operation, staff)),
        )
    return target
