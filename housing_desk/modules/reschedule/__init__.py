"""
Reschedule Module - Time-change proposals between resident and executor.
"""
from housing_desk.modules.reschedule.models import (
    RescheduleInitiator,
    RescheduleReason,
    RescheduleRequest,
    RescheduleStatus,
)

__all__ = [
    "RescheduleInitiator",
    "RescheduleReason",
    "RescheduleRequest",
    "RescheduleStatus",
]
