"""
Activity Module - Audit trail of request transitions for staff.
"""
from housing_desk.modules.activity.models import ActivityLog

__all__ = ["ActivityLog"]
