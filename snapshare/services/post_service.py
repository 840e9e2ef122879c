from typing import List, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, delete, desc, exists, literal, update
from sqlalchemy.exc import SQLAlchemyError
import logging

from snapshare.config import settings
from snapshare.exceptions import (
    DuplicateError, ForbiddenError, NotFoundError, ValidationError, handle_storage_error
)
from snapshare.models.follow import Follow
from snapshare.models.like import Like
from snapshare.models.post import MEDIA_TYPES, Post
from snapshare.models.saved_post import SavedPost
from snapshare.models.user import User
from snapshare.schemas.post_schema import PostUpdate, PostWithUser
from snapshare.schemas.user_schema import UserSummary
from snapshare.services.counter_service import decrement, increment

logger = logging.getLogger(__name__)

class PostService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_post(
        self,
        user_id: str,
        media: Union[str, List[str], None],
        media_type: Optional[str],
        caption: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Post:
        """Create a post and bump the owner's post count"""
        urls = [media] if isinstance(media, str) else list(media or [])
        urls = [url.strip() for url in urls if url and url.strip()]
        if not urls:
            raise ValidationError("Media is required")
        if media_type not in MEDIA_TYPES:
            raise ValidationError(f"Media type must be one of: {', '.join(MEDIA_TYPES)}")

        try:
            post = Post(
                user_id=user_id,
                media=urls,
                media_type=media_type,
                caption=caption,
                location=location,
            )
            self.db.add(post)
            await self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(post_count=increment(User.post_count))
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            await self.db.refresh(post)
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("create_post", e)

        logger.info(f"User {user_id} created post {post.id}")
        return post

    async def get_post(self, post_id: int) -> Optional[Post]:
        """Get a post by ID"""
        return await self.db.get(Post, post_id, populate_existing=True)

    def _enriched_select(self, viewer_id: Optional[str]):
        """Posts joined with their owner plus the viewer's like/save flags"""
        if viewer_id is None:
            has_liked = literal(False).label("has_liked")
            has_saved = literal(False).label("has_saved")
        else:
            has_liked = exists().where(
                and_(Like.post_id == Post.id, Like.user_id == viewer_id)
            ).correlate(Post).label("has_liked")
            has_saved = exists().where(
                and_(SavedPost.post_id == Post.id, SavedPost.user_id == viewer_id)
            ).correlate(Post).label("has_saved")

        return select(
            Post, User, has_liked, has_saved
        ).join(
            User, Post.user_id == User.id
        ).execution_options(populate_existing=True)

    def _to_dict(self, row) -> dict:
        post = PostWithUser.model_validate(row.Post)
        post.user = UserSummary.model_validate(row.User)
        post.has_liked = bool(row.has_liked)
        post.has_saved = bool(row.has_saved)
        return post.model_dump()

    async def get_post_with_user(self, post_id: int, viewer_id: Optional[str]) -> dict:
        """Get a post with owner profile and the viewer's like/save status"""
        stmt = self._enriched_select(viewer_id).where(Post.id == post_id)
        result = await self.db.execute(stmt)
        row = result.first()

        if not row:
            raise NotFoundError("Post", post_id)

        return self._to_dict(row)

    async def get_feed_posts(
        self,
        user_id: str,
        offset: int = 0,
        limit: int = settings.FEED_DEFAULT_LIMIT
    ) -> List[dict]:
        """Newest posts first, scoped by FEED_SCOPE"""
        offset = max(offset, 0)
        limit = max(1, min(limit, settings.FEED_MAX_LIMIT))

        stmt = self._enriched_select(user_id)

        if settings.FEED_SCOPE == "following":
            following_ids = select(Follow.following_id).where(Follow.follower_id == user_id)
            stmt = stmt.where(
                (Post.user_id == user_id) | Post.user_id.in_(following_ids)
            )

        stmt = stmt.order_by(
            desc(Post.created_at), desc(Post.id)
        ).offset(offset).limit(limit)

        result = await self.db.execute(stmt)
        return [self._to_dict(row) for row in result.all()]

    async def get_user_posts(
        self,
        user_id: str,
        viewer_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 20
    ) -> List[dict]:
        """Get posts by a specific user"""
        stmt = self._enriched_select(viewer_id).where(
            Post.user_id == user_id
        ).order_by(
            desc(Post.created_at), desc(Post.id)
        ).offset(offset).limit(limit)

        result = await self.db.execute(stmt)
        return [self._to_dict(row) for row in result.all()]

    async def get_saved_posts(
        self,
        user_id: str,
        requester_id: str,
        offset: int = 0,
        limit: int = 20
    ) -> List[dict]:
        """Posts saved by a user, most recently saved first; owner only"""
        if user_id != requester_id:
            raise ForbiddenError("Saved posts are private")

        stmt = self._enriched_select(user_id).join(
            SavedPost, and_(SavedPost.post_id == Post.id, SavedPost.user_id == user_id)
        ).order_by(
            desc(SavedPost.created_at), desc(SavedPost.id)
        ).offset(offset).limit(limit)

        result = await self.db.execute(stmt)
        return [self._to_dict(row) for row in result.all()]

    async def _get_owned_post(self, post_id: int, requester_id: str) -> Post:
        post = await self.get_post(post_id)
        if not post:
            raise NotFoundError("Post", post_id)
        if post.user_id != requester_id:
            raise ForbiddenError("You can only modify your own posts")
        return post

    async def update_post(self, post_id: int, requester_id: str, post_update: PostUpdate) -> dict:
        """Update caption/location of the requester's own post"""
        post = await self._get_owned_post(post_id, requester_id)

        try:
            update_data = post_update.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                setattr(post, field, value)

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("update_post", e)

        return await self.get_post_with_user(post_id, requester_id)

    async def delete_post(self, post_id: int, requester_id: str) -> None:
        """Delete the requester's own post; comments, likes and saves cascade"""
        post = await self._get_owned_post(post_id, requester_id)
        owner_id = post.user_id

        try:
            await self.db.execute(
                delete(Post).where(Post.id == post_id)
            )
            await self.db.execute(
                update(User)
                .where(User.id == owner_id)
                .values(post_count=decrement(User.post_count))
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("delete_post", e)

        logger.info(f"User {requester_id} deleted post {post_id}")

    async def has_saved_post(self, user_id: str, post_id: int) -> bool:
        stmt = select(
            exists().where(and_(SavedPost.user_id == user_id, SavedPost.post_id == post_id))
        )
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    async def save_post(self, user_id: str, post_id: int) -> SavedPost:
        """Bookmark a post; DuplicateError if already saved"""
        if not await self.get_post(post_id):
            raise NotFoundError("Post", post_id)
        if await self.has_saved_post(user_id, post_id):
            raise DuplicateError("Post already saved")

        try:
            saved = SavedPost(user_id=user_id, post_id=post_id)
            self.db.add(saved)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("save_post", e)

        return saved

    async def unsave_post(self, user_id: str, post_id: int) -> bool:
        """Remove a bookmark; returns False when there was none"""
        try:
            result = await self.db.execute(
                delete(SavedPost).where(
                    and_(SavedPost.user_id == user_id, SavedPost.post_id == post_id)
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("unsave_post", e)

        return result.rowcount > 0

    async def toggle_save(self, user_id: str, post_id: int) -> bool:
        """Flip the save state; returns True when the post is now saved"""
        if await self.has_saved_post(user_id, post_id):
            await self.unsave_post(user_id, post_id)
            return False

        try:
            await self.save_post(user_id, post_id)
        except DuplicateError:
            # Lost a race with a concurrent save; the end state is the same
            pass
        return True
