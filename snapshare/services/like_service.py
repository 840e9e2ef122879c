from typing import Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, delete, exists, update
from sqlalchemy.exc import SQLAlchemyError
import logging

from snapshare.exceptions import DuplicateError, NotFoundError, handle_storage_error
from snapshare.models.comment import Comment
from snapshare.models.like import CommentTarget, Like, LikeTarget, PostTarget
from snapshare.models.notification import Notification
from snapshare.models.post import Post
from snapshare.schemas.notification_schema import NotificationType
from snapshare.services.counter_service import decrement, increment
from snapshare.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

class LikeService:
    """Likes on posts and comments, keyed by a LikeTarget"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    def _target_model(self, target: LikeTarget):
        if isinstance(target, PostTarget):
            return Post, target.post_id
        return Comment, target.comment_id

    def _like_filter(self, user_id: str, target: LikeTarget):
        if isinstance(target, PostTarget):
            return and_(Like.user_id == user_id, Like.post_id == target.post_id)
        return and_(Like.user_id == user_id, Like.comment_id == target.comment_id)

    async def _get_target(self, target: LikeTarget):
        model, target_id = self._target_model(target)
        entity = await self.db.get(model, target_id, populate_existing=True)
        if entity is None:
            raise NotFoundError(model.__name__, target_id)
        return entity

    async def has_liked(self, user_id: str, target: LikeTarget) -> bool:
        stmt = select(exists().where(self._like_filter(user_id, target)))
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    async def get_likes_count(self, target: LikeTarget) -> int:
        model, target_id = self._target_model(target)
        result = await self.db.execute(
            select(model.likes_count).where(model.id == target_id)
        )
        return result.scalar() or 0

    async def like(self, user_id: str, target: LikeTarget) -> Like:
        """Insert the like, bump the counter and notify the post owner"""
        entity = await self._get_target(target)
        if await self.has_liked(user_id, target):
            raise DuplicateError("Already liked")

        model, target_id = self._target_model(target)
        notification: Optional[Notification] = None

        try:
            like = Like.for_target(user_id, target)
            self.db.add(like)
            await self.db.execute(
                update(model)
                .where(model.id == target_id)
                .values(likes_count=increment(model.likes_count))
                .execution_options(synchronize_session=False)
            )

            # Comment likes stay silent
            if isinstance(target, PostTarget):
                notification = self.notifications.create_notification(
                    user_id=entity.user_id,
                    from_user_id=user_id,
                    type=NotificationType.LIKE,
                    post_id=target.post_id,
                )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("like", e)

        logger.info(f"User {user_id} liked {target}")
        await self.notifications.deliver(notification)
        return like

    async def unlike(self, user_id: str, target: LikeTarget) -> bool:
        """Remove the like; the counter only moves when a row was deleted"""
        model, target_id = self._target_model(target)

        try:
            result = await self.db.execute(
                delete(Like).where(self._like_filter(user_id, target))
            )
            removed = result.rowcount > 0

            if removed:
                await self.db.execute(
                    update(model)
                    .where(model.id == target_id)
                    .values(likes_count=decrement(model.likes_count))
                    .execution_options(synchronize_session=False)
                )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("unlike", e)

        if removed:
            logger.info(f"User {user_id} unliked {target}")
        return removed

    async def toggle(self, user_id: str, target: LikeTarget) -> Tuple[bool, int]:
        """Flip the like state; returns (liked, likes_count)"""
        if await self.has_liked(user_id, target):
            await self.unlike(user_id, target)
            liked = False
        else:
            try:
                await self.like(user_id, target)
            except DuplicateError:
                # A concurrent request liked first; the end state is the same
                pass
            liked = True

        return liked, await self.get_likes_count(target)

    async def like_post(self, user_id: str, post_id: int) -> Like:
        return await self.like(user_id, PostTarget(post_id))

    async def unlike_post(self, user_id: str, post_id: int) -> bool:
        return await self.unlike(user_id, PostTarget(post_id))

    async def has_liked_post(self, user_id: str, post_id: int) -> bool:
        return await self.has_liked(user_id, PostTarget(post_id))

    async def toggle_post_like(self, user_id: str, post_id: int) -> Tuple[bool, int]:
        return await self.toggle(user_id, PostTarget(post_id))

    async def like_comment(self, user_id: str, comment_id: int) -> Like:
        return await self.like(user_id, CommentTarget(comment_id))

    async def unlike_comment(self, user_id: str, comment_id: int) -> bool:
        return await self.unlike(user_id, CommentTarget(comment_id))

    async def has_liked_comment(self, user_id: str, comment_id: int) -> bool:
        return await self.has_liked(user_id, CommentTarget(comment_id))

    async def toggle_comment_like(self, user_id: str, comment_id: int) -> Tuple[bool, int]:
        return await self.toggle(user_id, CommentTarget(comment_id))
