"""
Notifications Module - In-app notifications

Fan-out for request, reschedule and marketplace events.
"""
from housing_desk.modules.notifications.models import Notification, NotificationType
from housing_desk.modules.notifications.service import NotificationService

__all__ = [
    "Notification",
    "NotificationService",
    "NotificationType",
]
