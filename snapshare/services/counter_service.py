"""
Denormalized counter maintenance.

Hot paths adjust counters with `increment`/`decrement` inside the same
transaction as the relationship write. `CounterReconciler` recomputes them
from the relationship tables to repair drift left by partial failures.
"""
import logging
from collections import Counter
from typing import Dict, List, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.exceptions import handle_storage_error
from snapshare.models.comment import Comment
from snapshare.models.follow import Follow
from snapshare.models.like import Like
from snapshare.models.post import Post
from snapshare.models.story import Story
from snapshare.models.story_view import StoryView
from snapshare.models.user import User

logger = logging.getLogger(__name__)


def increment(column, amount: int = 1):
    return column + amount


def decrement(column, amount: int = 1):
    """Decrement floored at zero, tolerating earlier drift"""
    return case((column > amount, column - amount), else_=0)


class CounterReconciler:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def reconcile(self) -> Dict[str, int]:
        """Recompute every counter; returns corrections per counter"""
        corrections: Counter = Counter()

        try:
            users = (await self.db.execute(
                select(User.id, User.follower_count, User.following_count, User.post_count)
            )).all()
            followers = await self._grouped_counts(Follow.following_id)
            following = await self._grouped_counts(Follow.follower_id)
            posts_by_user = await self._grouped_counts(Post.user_id)

            for row in users:
                expected = {
                    "follower_count": followers.get(row.id, 0),
                    "following_count": following.get(row.id, 0),
                    "post_count": posts_by_user.get(row.id, 0),
                }
                await self._apply(User, row, expected, corrections, "users")

            posts = (await self.db.execute(
                select(Post.id, Post.likes_count, Post.comments_count)
            )).all()
            post_likes = await self._grouped_counts(Like.post_id, Like.post_id.is_not(None))
            post_comments = await self._grouped_counts(Comment.post_id)

            for row in posts:
                expected = {
                    "likes_count": post_likes.get(row.id, 0),
                    "comments_count": post_comments.get(row.id, 0),
                }
                await self._apply(Post, row, expected, corrections, "posts")

            comments = (await self.db.execute(select(Comment.id, Comment.likes_count))).all()
            comment_likes = await self._grouped_counts(Like.comment_id, Like.comment_id.is_not(None))

            for row in comments:
                expected = {"likes_count": comment_likes.get(row.id, 0)}
                await self._apply(Comment, row, expected, corrections, "comments")

            stories = (await self.db.execute(select(Story.id, Story.views_count))).all()
            story_views = await self._grouped_counts(StoryView.story_id)

            for row in stories:
                expected = {"views_count": story_views.get(row.id, 0)}
                await self._apply(Story, row, expected, corrections, "stories")

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("reconcile_counters", e)

        total = sum(corrections.values())
        if total:
            logger.warning(f"Counter reconciliation corrected {total} values: {dict(corrections)}")
        else:
            logger.info("Counter reconciliation found no drift")

        return dict(corrections)

    async def _grouped_counts(self, column, *conditions) -> Dict:
        stmt = select(column, func.count()).group_by(column)
        if conditions:
            stmt = stmt.where(*conditions)
        result = await self.db.execute(stmt)
        return {key: count for key, count in result.all()}

    async def _apply(self, model, row, expected: Dict[str, int], corrections: Counter, table: str):
        drifted: List[Tuple[str, int]] = [
            (field, value) for field, value in expected.items()
            if getattr(row, field) != value
        ]
        if not drifted:
            return

        for field, value in drifted:
            logger.info(
                f"Repairing {table}.{field} for {row.id}: {getattr(row, field)} -> {value}"
            )
            corrections[f"{table}.{field}"] += 1

        await self.db.execute(
            update(model)
            .where(model.id == row.id)
            .values(**dict(drifted))
            .execution_options(synchronize_session=False)
        )
