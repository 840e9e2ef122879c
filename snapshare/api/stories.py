from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from snapshare.schemas.story_schema import StoryCreate, StoryResponse, UserStories
from snapshare.services.auth_service import AuthenticatedIdentity, get_current_identity
from snapshare.services.story_service import StoryService
from snapshare.db.session import get_db
from snapshare.utils.rate_limit import limiter, WRITE_LIMIT

router = APIRouter()

@router.post("", response_model=StoryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def create_story(
    request: Request,
    story_data: StoryCreate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Post a story that expires after the configured TTL"""
    story_service = StoryService(db)
    return await story_service.create_story(
        identity.user_id, story_data.media_url, story_data.media_type
    )

@router.get("", response_model=List[UserStories])
async def get_following_stories(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Active stories from the accounts the caller follows"""
    story_service = StoryService(db)
    return await story_service.get_following_stories(identity.user_id)

@router.get("/user/{user_id}", response_model=List[StoryResponse])
async def get_user_stories(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    story_service = StoryService(db)
    return await story_service.get_active_stories(user_id)

@router.post("/{story_id}/view")
async def view_story(
    story_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Record that the caller viewed a story"""
    story_service = StoryService(db)
    first_view = await story_service.view_story(story_id, identity.user_id)
    return {"success": True, "first_view": first_view}

@router.delete("/{story_id}")
async def delete_story(
    story_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    story_service = StoryService(db)
    await story_service.delete_story(story_id, identity.user_id)
    return {"success": True, "message": "Story deleted successfully"}
