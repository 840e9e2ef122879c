from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from snapshare.schemas.follow_schema import FollowStatus
from snapshare.schemas.user_schema import UserPublic
from snapshare.services.follow_service import FollowService
from snapshare.services.auth_service import AuthenticatedIdentity, get_current_identity
from snapshare.db.session import get_db
from snapshare.utils.rate_limit import limiter, WRITE_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/{user_id}/follow", response_model=FollowStatus, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def follow_user(
    request: Request,
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Follow a user"""
    follow_service = FollowService(db)
    await follow_service.follow_user(identity.user_id, user_id)
    return FollowStatus(follower_id=identity.user_id, following_id=user_id, is_following=True)

@router.delete("/{user_id}/follow", response_model=FollowStatus)
@limiter.limit(WRITE_LIMIT)
async def unfollow_user(
    request: Request,
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Unfollow a user"""
    follow_service = FollowService(db)
    await follow_service.unfollow_user(identity.user_id, user_id)
    return FollowStatus(follower_id=identity.user_id, following_id=user_id, is_following=False)

@router.get("/{user_id}/follow-status", response_model=FollowStatus)
async def get_follow_status(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Whether the caller follows user_id"""
    follow_service = FollowService(db)
    is_following = await follow_service.is_following(identity.user_id, user_id)
    return FollowStatus(follower_id=identity.user_id, following_id=user_id, is_following=is_following)

@router.get("/{user_id}/followers", response_model=List[UserPublic])
async def get_followers(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    follow_service = FollowService(db)
    return await follow_service.get_followers(user_id)

@router.get("/{user_id}/following", response_model=List[UserPublic])
async def get_following(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    follow_service = FollowService(db)
    return await follow_service.get_following(user_id)
