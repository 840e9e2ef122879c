from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, update, desc, func
from sqlalchemy.exc import SQLAlchemyError
import logging

from snapshare.exceptions import NotFoundError, handle_storage_error
from snapshare.models.notification import Notification
from snapshare.models.user import User
from snapshare.schemas.notification_schema import NotificationResponse, NotificationType
from snapshare.schemas.user_schema import UserSummary
from snapshare.websocket.manager import get_connection_registry

logger = logging.getLogger(__name__)

NOTIFICATION_LIST_LIMIT = 50

class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.registry = get_connection_registry()

    def create_notification(
        self,
        user_id: str,
        from_user_id: Optional[str],
        type: NotificationType,
        post_id: Optional[int] = None,
        comment_id: Optional[int] = None,
        content: Optional[str] = None,
    ) -> Optional[Notification]:
        """Stage a notification in the caller's transaction.

        Nothing is created when the actor is the recipient. The caller
        commits, then hands the row to `deliver`.
        """
        if from_user_id is not None and from_user_id == user_id:
            return None

        notification = Notification(
            user_id=user_id,
            from_user_id=from_user_id,
            type=NotificationType(type).value,
            post_id=post_id,
            comment_id=comment_id,
            content=content,
            is_read=False,
        )
        self.db.add(notification)
        return notification

    async def deliver(self, notification: Optional[Notification]) -> bool:
        """Best-effort push of a committed notification to its recipient"""
        if notification is None:
            return False

        payload = NotificationResponse.model_validate(notification).model_dump(mode="json")
        delivered = await self.registry.send_to(
            notification.user_id,
            {"type": "new_notification", "notification": payload},
        )
        if delivered:
            logger.debug(f"Delivered notification {notification.id} to user {notification.user_id}")
        return delivered

    async def get_notifications(self, user_id: str) -> List[dict]:
        """Latest notifications for a user with the actor's profile"""
        stmt = select(
            Notification, User
        ).outerjoin(
            User, Notification.from_user_id == User.id
        ).where(
            Notification.user_id == user_id
        ).order_by(
            desc(Notification.created_at), desc(Notification.id)
        ).limit(NOTIFICATION_LIST_LIMIT)

        result = await self.db.execute(stmt)

        notifications = []
        for notification, from_user in result.all():
            item = NotificationResponse.model_validate(notification)
            if from_user is not None:
                item.from_user = UserSummary.model_validate(from_user)
            notifications.append(item.model_dump())
        return notifications

    async def get_unread_count(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(Notification).where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read.is_(False)
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def mark_as_read(self, notification_id: int, user_id: str) -> None:
        """Mark one of the user's notifications as read"""
        try:
            stmt = update(Notification).where(
                and_(
                    Notification.id == notification_id,
                    Notification.user_id == user_id
                )
            ).values(is_read=True).execution_options(synchronize_session=False)
            result = await self.db.execute(stmt)

            if result.rowcount == 0:
                raise NotFoundError("Notification", notification_id)

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("mark_as_read", e)

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark all of the user's notifications as read"""
        try:
            stmt = update(Notification).where(
                and_(
                    Notification.user_id == user_id,
                    Notification.is_read.is_(False)
                )
            ).values(is_read=True).execution_options(synchronize_session=False)
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("mark_all_as_read", e)

        logger.info(f"Marked {result.rowcount} notifications as read for user {user_id}")
        return result.rowcount
