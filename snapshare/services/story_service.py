from datetime import datetime, timedelta
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, delete, desc, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from snapshare.config import settings
from snapshare.db.base import utcnow
from snapshare.exceptions import (
    ForbiddenError, NotFoundError, ValidationError, handle_storage_error
)
from snapshare.models.follow import Follow
from snapshare.models.story import STORY_MEDIA_TYPES, Story
from snapshare.models.story_view import StoryView
from snapshare.models.user import User
from snapshare.schemas.story_schema import StoryResponse
from snapshare.schemas.user_schema import UserSummary
from snapshare.services.counter_service import increment

logger = logging.getLogger(__name__)

class StoryService:
    """Stories are active while expires_at > now; `now` is injectable for tests"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_story(
        self,
        user_id: str,
        media_url: str,
        media_type: str,
        now: Optional[datetime] = None
    ) -> Story:
        media_url = (media_url or "").strip()
        if not media_url:
            raise ValidationError("Media URL is required")
        if media_type not in STORY_MEDIA_TYPES:
            raise ValidationError(f"Media type must be one of: {', '.join(STORY_MEDIA_TYPES)}")

        created_at = now or utcnow()

        try:
            story = Story(
                user_id=user_id,
                media_url=media_url,
                media_type=media_type,
                created_at=created_at,
                expires_at=created_at + timedelta(hours=settings.STORY_TTL_HOURS),
            )
            self.db.add(story)
            await self.db.commit()
            await self.db.refresh(story)
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("create_story", e)

        logger.info(f"User {user_id} posted story {story.id} (expires {story.expires_at})")
        return story

    async def get_story(self, story_id: int) -> Optional[Story]:
        return await self.db.get(Story, story_id, populate_existing=True)

    async def get_active_stories(self, user_id: str, now: Optional[datetime] = None) -> List[Story]:
        """A user's unexpired stories, newest first"""
        now = now or utcnow()
        stmt = select(Story).where(
            and_(
                Story.user_id == user_id,
                Story.expires_at > now
            )
        ).order_by(
            desc(Story.created_at), desc(Story.id)
        ).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_following_stories(self, user_id: str, now: Optional[datetime] = None) -> List[dict]:
        """Active stories of followed users, grouped per user"""
        now = now or utcnow()
        following_ids = select(Follow.following_id).where(Follow.follower_id == user_id)

        stmt = select(
            Story, User
        ).join(
            User, Story.user_id == User.id
        ).where(
            and_(
                Story.user_id.in_(following_ids),
                Story.expires_at > now
            )
        ).order_by(
            desc(Story.created_at), desc(Story.id)
        ).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)

        # Users ordered by their most recent story
        grouped: Dict[str, dict] = {}
        for story, user in result.all():
            entry = grouped.setdefault(user.id, {
                "user": UserSummary.model_validate(user).model_dump(),
                "stories": [],
            })
            entry["stories"].append(StoryResponse.model_validate(story).model_dump())

        return list(grouped.values())

    async def view_story(self, story_id: int, viewer_id: str, now: Optional[datetime] = None) -> bool:
        """Record a view once per viewer; returns True on the first view"""
        now = now or utcnow()

        story = await self.get_story(story_id)
        if not story or story.expires_at <= now:
            raise NotFoundError("Story", story_id)

        existing = await self.db.execute(
            select(StoryView.id).where(
                and_(
                    StoryView.story_id == story_id,
                    StoryView.viewer_id == viewer_id
                )
            )
        )
        if existing.scalar_one_or_none() is not None:
            return False

        try:
            self.db.add(StoryView(story_id=story_id, viewer_id=viewer_id))
            await self.db.execute(
                update(Story)
                .where(Story.id == story_id)
                .values(views_count=increment(Story.views_count))
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except IntegrityError:
            # A concurrent first view won; this one is a repeat
            await self.db.rollback()
            return False
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("view_story", e)

        return True

    async def delete_story(self, story_id: int, requester_id: str) -> None:
        story = await self.get_story(story_id)
        if not story:
            raise NotFoundError("Story", story_id)
        if story.user_id != requester_id:
            raise ForbiddenError("You can only delete your own stories")

        try:
            await self.db.execute(delete(Story).where(Story.id == story_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("delete_story", e)

        logger.info(f"User {requester_id} deleted story {story_id}")

    async def delete_expired_stories(self, now: Optional[datetime] = None) -> int:
        """Hard-delete stories past expiry; views cascade. Returns rows removed."""
        now = now or utcnow()

        try:
            result = await self.db.execute(
                delete(Story)
                .where(Story.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("delete_expired_stories", e)

        if result.rowcount:
            logger.info(f"Deleted {result.rowcount} expired stories")
        return result.rowcount
