"""Notification route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.routes import service_error
from backend.database.db import get_db_session
from backend.services import notification_service
from backend.api.auth_dependencies import require_user

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/notifications")
async def get_notifications(
    limit: Optional[int] = Query(None, ge=1, le=100),
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get the caller's non-archived notifications, newest first."""
    try:
        notifications = await notification_service.get_user_notifications(session, user["id"], limit=limit)
        unread_count = sum(1 for n in notifications if not n["is_read"])
        return {"success": True, "notifications": notifications, "unread_count": unread_count}
    except Exception as e:
        logger.error(f"Error fetching notifications: {e}")
        raise HTTPException(status_code=500, detail="Error fetching notifications")


@router.put("/api/notifications/{notification_id}/read")
async def mark_notification_as_read(
    notification_id: int,
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Mark one of the caller's notifications as read."""
    try:
        notification = await notification_service.mark_as_read(session, notification_id, user["id"])
        return {"success": True, "notification": notification}
    except ValueError as e:
        raise service_error(e)
    except Exception as e:
        logger.error(f"Error marking notification as read: {e}")
        raise HTTPException(status_code=500, detail="Error marking notification as read")
