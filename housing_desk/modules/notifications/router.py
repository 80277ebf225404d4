"""
Notification Module - API Routes
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.database import get_db
from housing_desk.modules.auth.dependencies import CurrentUser
from housing_desk.modules.notifications.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from housing_desk.modules.notifications.service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


async def get_notification_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationService:
    return NotificationService(db)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_user: CurrentUser,
    service: NotificationServiceDep,
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> NotificationListResponse:
    """Get my notifications."""
    items, total = await service.get_notifications(
        current_user.id,
        page=page,
        page_size=page_size,
        unread_only=unread_only,
    )
    unread = await service.get_unread_count(current_user.id)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread_count=unread,
        page=page,
        page_size=page_size,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(current_user: CurrentUser, service: NotificationServiceDep) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=await service.get_unread_count(current_user.id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> NotificationResponse:
    notification = await service.mark_as_read(current_user.id, notification_id)
    return NotificationResponse.model_validate(notification)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_as_read(current_user: CurrentUser, service: NotificationServiceDep) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await service.mark_all_as_read(current_user.id))
