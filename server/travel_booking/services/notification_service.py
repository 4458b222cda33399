"""Notification service for user-facing messages."""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.events import Aggregate, ChangeEvent, aggregate_cache
from ..models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for notification operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def add(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: str = "info",
        booking_id: UUID | None = None,
    ) -> Notification:
        """
        Stage a notification in the current transaction.

        The caller commits and then publishes NOTIFICATION_CREATED for the user.
        """
        notification = Notification(
            user_id=user_id,
            booking_id=booking_id,
            title=title,
            message=message,
            type=type,
            is_read=False,
        )
        self.db.add(notification)
        return notification

    async def list_for_user(self, user_id: UUID, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def unread_count(self, user_id: UUID) -> int:
        """Unread notifications of a user, served from the aggregate cache."""

        async def compute() -> int:
            stmt = select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            result = await self.db.execute(stmt)
            return result.scalar_one()

        return await aggregate_cache.get_or_compute(Aggregate.UNREAD_NOTIFICATIONS, compute, scope=user_id)

    async def mark_read(self, user_id: UUID, notification_ids: list[UUID] | None = None) -> int:
        """
        Mark notifications of a user as read.

        Args:
            user_id: Owner of the notifications
            notification_ids: Notifications to mark; all unread ones when None

        Returns:
            Number of notifications updated
        """
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        if notification_ids is not None:
            stmt = stmt.where(Notification.id.in_(notification_ids))

        result = await self.db.execute(stmt)
        await self.db.commit()

        updated = result.rowcount or 0
        if updated:
            aggregate_cache.publish(ChangeEvent.NOTIFICATION_READ, scope=user_id)

        logger.info(
            "Notifications marked as read",
            extra={"user_id": str(user_id), "updated": updated}
        )
        return updated
