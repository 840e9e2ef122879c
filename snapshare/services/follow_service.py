from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, delete, desc, exists, update
from sqlalchemy.exc import SQLAlchemyError
import logging

from snapshare.exceptions import (
    DuplicateError, NotFoundError, ValidationError, handle_storage_error
)
from snapshare.models.follow import Follow
from snapshare.models.notification import Notification
from snapshare.models.user import User
from snapshare.schemas.notification_schema import NotificationType
from snapshare.services.counter_service import decrement, increment
from snapshare.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

SUGGESTED_USERS_LIMIT = 10

class FollowService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    async def is_following(self, follower_id: str, following_id: str) -> bool:
        stmt = select(
            exists().where(
                and_(
                    Follow.follower_id == follower_id,
                    Follow.following_id == following_id
                )
            )
        )
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    async def follow_user(self, follower_id: str, following_id: str) -> Follow:
        """Create a follow relationship and bump both counters"""
        if follower_id == following_id:
            raise ValidationError("You cannot follow yourself")

        target = await self.db.get(User, following_id)
        if not target:
            raise NotFoundError("User", following_id)

        if await self.is_following(follower_id, following_id):
            raise DuplicateError("Already following this user")

        notification: Optional[Notification] = None

        try:
            follow = Follow(follower_id=follower_id, following_id=following_id)
            self.db.add(follow)

            await self.db.execute(
                update(User)
                .where(User.id == following_id)
                .values(follower_count=increment(User.follower_count))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                update(User)
                .where(User.id == follower_id)
                .values(following_count=increment(User.following_count))
                .execution_options(synchronize_session=False)
            )

            notification = self.notifications.create_notification(
                user_id=following_id,
                from_user_id=follower_id,
                type=NotificationType.FOLLOW,
            )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("follow_user", e)

        logger.info(f"Created follow: {follower_id} -> {following_id}")
        await self.notifications.deliver(notification)
        return follow

    async def unfollow_user(self, follower_id: str, following_id: str) -> None:
        """Remove a follow relationship; NotFoundError if there is none"""
        try:
            result = await self.db.execute(
                delete(Follow).where(
                    and_(
                        Follow.follower_id == follower_id,
                        Follow.following_id == following_id
                    )
                )
            )

            if result.rowcount == 0:
                raise NotFoundError("Follow relationship")

            await self.db.execute(
                update(User)
                .where(User.id == following_id)
                .values(follower_count=decrement(User.follower_count))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                update(User)
                .where(User.id == follower_id)
                .values(following_count=decrement(User.following_count))
                .execution_options(synchronize_session=False)
            )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("unfollow_user", e)

        logger.info(f"Removed follow: {follower_id} -> {following_id}")

    async def get_followers(self, user_id: str) -> List[User]:
        """Users following user_id, most recent first"""
        stmt = select(User).join(
            Follow, Follow.follower_id == User.id
        ).where(
            Follow.following_id == user_id
        ).order_by(
            desc(Follow.created_at), desc(Follow.id)
        ).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_following(self, user_id: str) -> List[User]:
        """Users that user_id follows, most recent first"""
        stmt = select(User).join(
            Follow, Follow.following_id == User.id
        ).where(
            Follow.follower_id == user_id
        ).order_by(
            desc(Follow.created_at), desc(Follow.id)
        ).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_suggested_users(self, user_id: str) -> List[User]:
        """Popular users the caller does not follow yet"""
        already_following = select(Follow.following_id).where(Follow.follower_id == user_id)

        stmt = select(User).where(
            and_(
                User.id != user_id,
                User.id.not_in(already_following)
            )
        ).order_by(
            desc(User.follower_count), desc(User.created_at)
        ).limit(SUGGESTED_USERS_LIMIT).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
