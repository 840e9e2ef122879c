from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, delete, desc, update
from sqlalchemy.exc import SQLAlchemyError
import logging

from snapshare.exceptions import (
    ForbiddenError, NotFoundError, ValidationError, handle_storage_error
)
from snapshare.models.comment import Comment
from snapshare.models.post import Post
from snapshare.models.user import User
from snapshare.schemas.comment_schema import CommentResponse
from snapshare.schemas.notification_schema import NotificationType
from snapshare.schemas.user_schema import UserSummary
from snapshare.services.counter_service import decrement, increment
from snapshare.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

NOTIFICATION_PREVIEW_LENGTH = 100

def _clean_content(content: Optional[str]) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment content cannot be empty")
    return content

class CommentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.notifications = NotificationService(db)

    async def create_comment(
        self,
        post_id: int,
        user_id: str,
        content: str,
        parent_id: Optional[int] = None
    ) -> dict:
        """Add a comment (or reply) and notify the post owner"""
        content = _clean_content(content)

        post = await self.db.get(Post, post_id, populate_existing=True)
        if not post:
            raise NotFoundError("Post", post_id)

        if parent_id is not None:
            parent_stmt = select(Comment.id).where(
                and_(
                    Comment.id == parent_id,
                    Comment.post_id == post_id
                )
            )
            parent_result = await self.db.execute(parent_stmt)
            if parent_result.scalar_one_or_none() is None:
                raise NotFoundError("Parent comment", parent_id)

        try:
            comment = Comment(
                post_id=post_id,
                user_id=user_id,
                content=content,
                parent_id=parent_id
            )
            self.db.add(comment)
            await self.db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(comments_count=increment(Post.comments_count))
                .execution_options(synchronize_session=False)
            )
            # Flush for the comment id referenced by the notification
            await self.db.flush()

            notification = self.notifications.create_notification(
                user_id=post.user_id,
                from_user_id=user_id,
                type=NotificationType.COMMENT,
                post_id=post_id,
                comment_id=comment.id,
                content=content[:NOTIFICATION_PREVIEW_LENGTH],
            )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("create_comment", e)

        logger.info(f"Created comment {comment.id} by user {user_id} on post {post_id}")
        await self.notifications.deliver(notification)

        return await self.get_comment_with_user(comment.id)

    async def get_comment(self, comment_id: int) -> Optional[Comment]:
        """Get a comment by ID"""
        return await self.db.get(Comment, comment_id, populate_existing=True)

    def _with_user(self):
        return select(
            Comment, User
        ).join(
            User, Comment.user_id == User.id
        ).execution_options(populate_existing=True)

    def _to_dict(self, comment: Comment, user: User) -> dict:
        item = CommentResponse.model_validate(comment)
        item.user = UserSummary.model_validate(user)
        return item.model_dump()

    async def get_comment_with_user(self, comment_id: int) -> dict:
        stmt = self._with_user().where(Comment.id == comment_id)
        result = await self.db.execute(stmt)
        row = result.first()

        if not row:
            raise NotFoundError("Comment", comment_id)

        return self._to_dict(row.Comment, row.User)

    async def get_post_comments(self, post_id: int) -> List[dict]:
        """Comments on a post, newest first, with author profiles"""
        stmt = self._with_user().where(
            Comment.post_id == post_id
        ).order_by(
            desc(Comment.created_at), desc(Comment.id)
        )

        result = await self.db.execute(stmt)
        return [self._to_dict(row.Comment, row.User) for row in result.all()]

    async def update_comment(self, comment_id: int, requester_id: str, content: str) -> dict:
        """Edit a comment; only its author may"""
        content = _clean_content(content)

        comment = await self.get_comment(comment_id)
        if not comment:
            raise NotFoundError("Comment", comment_id)
        if comment.user_id != requester_id:
            raise ForbiddenError("You can only edit your own comments")

        try:
            comment.content = content
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("update_comment", e)

        return await self.get_comment_with_user(comment_id)

    async def _collect_thread(self, comment_id: int) -> List[int]:
        """The comment id plus every reply beneath it"""
        thread_ids = [comment_id]
        frontier = [comment_id]

        while frontier:
            result = await self.db.execute(
                select(Comment.id).where(Comment.parent_id.in_(frontier))
            )
            frontier = list(result.scalars().all())
            thread_ids.extend(frontier)

        return thread_ids

    async def delete_comment(self, comment_id: int, requester_id: str) -> int:
        """Delete a comment with its replies; author or post owner only.

        Returns the number of comments removed.
        """
        comment = await self.get_comment(comment_id)
        if not comment:
            raise NotFoundError("Comment", comment_id)

        post_id = comment.post_id
        post_owner_stmt = select(Post.user_id).where(Post.id == post_id)
        post_owner = (await self.db.execute(post_owner_stmt)).scalar_one_or_none()

        if requester_id not in (comment.user_id, post_owner):
            raise ForbiddenError("You can only delete your own comments")

        try:
            thread_ids = await self._collect_thread(comment_id)

            await self.db.execute(
                delete(Comment).where(Comment.id.in_(thread_ids))
            )
            await self.db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(comments_count=decrement(Post.comments_count, len(thread_ids)))
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("delete_comment", e)

        logger.info(f"User {requester_id} deleted comment {comment_id} ({len(thread_ids)} rows)")
        return len(thread_ids)
