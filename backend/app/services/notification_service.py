"""
Notification Service.

Creates notifications as side effects of custody events and manages their
read state. Creation methods only ``flush``; the caller's transaction
decides whether they are committed together with the event that caused them.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from backend.app.models.notification import Notification, NotificationType
from backend.app.models.user import User
from backend.app.models.enums import UserRole


class NotificationService:

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        package_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """Create a single notification."""
        notif = Notification(
            user_id=user_id,
            package_id=package_id,
            type=type,
            title=title,
            message=message,
            metadata_payload=metadata
        )
        db.add(notif)
        await db.flush()
        return notif

    @staticmethod
    async def notify_admins(
        db: AsyncSession,
        title: str,
        message: str,
        type: NotificationType = NotificationType.WARNING,
        package_id: Optional[int] = None
    ) -> int:
        """Send the same notification to every active admin."""
        result = await db.execute(
            select(User.id).where(User.role == UserRole.ADMIN, User.is_active == True)
        )
        admin_ids = result.scalars().all()

        db.add_all([
            Notification(user_id=uid, package_id=package_id, title=title, message=message, type=type)
            for uid in admin_ids
        ])
        await db.flush()
        return len(admin_ids)

    @staticmethod
    async def broadcast(
        db: AsyncSession,
        title: str,
        message: str,
        role: Optional[UserRole] = None,
        type: NotificationType = NotificationType.INFO
    ) -> int:
        """Broadcast notification to all users or filtered by role."""
        query = select(User.id).where(User.is_active == True)
        if role:
            query = query.where(User.role == role)

        result = await db.execute(query)
        user_ids = result.scalars().all()

        notifications = [
            Notification(user_id=uid, title=title, message=message, type=type)
            for uid in user_ids
        ]

        if notifications:
            db.add_all(notifications)

        return len(notifications)

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        unread_only: bool = False,
        limit: int = 50
    ) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read == False)
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def mark_read(db: AsyncSession, notification_id: int, user_id: int) -> bool:
        """Mark a notification as read."""
        stmt = update(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).values(
            is_read=True,
            read_at=datetime.now(timezone.utc)
        )
        result = await db.execute(stmt)
        return result.rowcount > 0

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: int) -> int:
        """Mark all notifications for user as read."""
        stmt = update(Notification).where(
            Notification.user_id == user_id,
            Notification.is_read == False
        ).values(
            is_read=True,
            read_at=datetime.now(timezone.utc)
        )
        result = await db.execute(stmt)
        return result.rowcount

    @staticmethod
    async def delete(db: AsyncSession, notification_id: int, user_id: int) -> bool:
        """Delete one of the user's own notifications."""
        stmt = delete(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id
        )
        result = await db.execute(stmt)
        return result.rowcount > 0
