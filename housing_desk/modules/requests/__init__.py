"""
Requests Module - Service requests, status workflow, work timer and boards.
"""
from housing_desk.modules.requests.models import (
    CancelledBy,
    RequestPriority,
    RequestStatus,
    ServiceRequest,
)

__all__ = [
    "CancelledBy",
    "RequestPriority",
    "RequestStatus",
    "ServiceRequest",
]
