"""Notification inbox endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Header, Query

from fillahole.core.context import AppContext, get_context
from fillahole.models.notification import NotificationRecord
from fillahole.services import notification_service


router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationRecord])
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Header(..., alias="X-User-ID", description="Recipient user ID"),
    ctx: AppContext = Depends(get_context),
):
    return notification_service.list_notifications(ctx, user_id, limit=limit)


@router.post("/{notification_id}/read", response_model=NotificationRecord)
def mark_notification_read(
    notification_id: str,
    user_id: str = Header(..., alias="X-User-ID", description="Recipient user ID"),
    ctx: AppContext = Depends(get_context),
):
    return notification_service.mark_read(ctx, notification_id, user_id)
