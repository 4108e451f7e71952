"""
Notification service for managing user notifications.

Handles creation, retrieval, and status updates for in-app notifications.
TEAM_REQUEST notifications carry the team id in ``related_id`` and act as
team invitations.
"""

from typing import List, Dict, Optional, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from backend.database.models import Notification, NotificationType, NotificationStatus
from backend.services.exceptions import NotFoundError
from backend.utils.datetime_utils import utcnow, isoformat
import json
import logging

logger = logging.getLogger(__name__)


async def create_notification(
    session: AsyncSession,
    user_id: int,
    type: str,
    title: str,
    message: str,
    related_id: Optional[int] = None,
    data: Optional[Dict] = None,
) -> Dict:
    """
    Create a single notification for a user.

    Args:
        session: Database session
        user_id: ID of the user to notify
        type: Notification type (NotificationType enum value)
        title: Notification title
        message: Notification message text
        related_id: Optional related entity id (team id for team notifications)
        data: Optional JSON metadata (dict will be serialized to JSON string)

    Returns:
        Dict containing the created notification data

    Raises:
        ValueError: If required fields are missing or invalid
    """
    if not user_id:
        raise ValueError("user_id is required")
    if not type:
        raise ValueError("type is required")
    if not title:
        raise ValueError("title is required")
    if not message:
        raise ValueError("message is required")

    # Serialize data dict to JSON string if provided
    data_json = None
    if data is not None:
        data_json = json.dumps(data)

    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        related_id=related_id,
        data=data_json,
        status=NotificationStatus.UNREAD.value,
    )

    session.add(notification)
    await session.flush()
    await session.refresh(notification)

    return notification_to_dict(notification)


async def get_user_notifications(
    session: AsyncSession, user_id: int, limit: Optional[int] = None
) -> List[Dict]:
    """
    Get a user's notifications, excluding archived ones, newest first.

    Args:
        session: Database session
        user_id: ID of the user
        limit: Optional maximum number of notifications

    Returns:
        List of notification dicts
    """
    query = (
        select(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.status != NotificationStatus.ARCHIVED.value,
        )
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    if limit:
        query = query.limit(limit)

    result = await session.execute(query)
    return [notification_to_dict(n) for n in result.scalars().all()]


async def mark_as_read(session: AsyncSession, notification_id: int, user_id: int) -> Dict:
    """
    Mark a notification as read.

    Does not record an action; invitations marked read this way can still be
    accepted or rejected.

    Args:
        session: Database session
        notification_id: ID of the notification
        user_id: ID of the user (for ownership verification)

    Returns:
        Updated notification dict

    Raises:
        NotFoundError: If the notification doesn't exist or doesn't belong to the user
    """
    result = await session.execute(
        select(Notification).where(
            Notification.id == notification_id, Notification.user_id == user_id
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundError("Notification not found")

    if notification.status == NotificationStatus.UNREAD.value:
        notification.status = NotificationStatus.READ.value
        notification.read_at = utcnow()
        await session.flush()
        await session.refresh(notification)

    return notification_to_dict(notification)


async def archive_team_invitations(
    session: AsyncSession, user_id: int, team_ids: Iterable[int]
) -> int:
    """
    Archive a user's TEAM_REQUEST notifications for the given teams.

    Returns:
        Number of notifications archived
    """
    team_ids = list(team_ids)
    if not team_ids:
        return 0
    result = await session.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.type == NotificationType.TEAM_REQUEST.value,
            Notification.related_id.in_(team_ids),
        )
        .values(status=NotificationStatus.ARCHIVED.value)
    )
    return result.rowcount


async def delete_team_invitations(session: AsyncSession, user_id: int, team_id: int) -> int:
    """
    Delete a user's TEAM_REQUEST notifications for one team.

    Returns:
        Number of notifications deleted
    """
    result = await session.execute(
        delete(Notification).where(
            Notification.user_id == user_id,
            Notification.type == NotificationType.TEAM_REQUEST.value,
            Notification.related_id == team_id,
        )
    )
    return result.rowcount


def notification_to_dict(notification: Notification) -> Dict:
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "related_id": notification.related_id,
        "data": json.loads(notification.data) if notification.data else None,
        "status": notification.status,
        "action_taken": notification.action_taken,
        "is_read": notification.status != NotificationStatus.UNREAD.value,
        "read_at": isoformat(notification.read_at),
        "created_at": isoformat(notification.created_at),
    }
