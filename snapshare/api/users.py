from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from snapshare.schemas.user_schema import UserPrivate, UserPublic, UserUpdate
from snapshare.schemas.post_schema import PostWithUser
from snapshare.services.auth_service import AuthenticatedIdentity, get_current_identity
from snapshare.services.follow_service import FollowService
from snapshare.services.post_service import PostService
from snapshare.services.user_service import UserService
from snapshare.db.session import get_db
from snapshare.exceptions import NotFoundError

router = APIRouter()

@router.get("/search", response_model=List[UserPublic])
async def search_users(
    q: str = Query("", max_length=100),
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Search users by username or name"""
    user_service = UserService(db)
    return await user_service.search_users(q, exclude_user_id=identity.user_id)

@router.get("/suggested", response_model=List[UserPublic])
async def get_suggested_users(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Popular users the caller does not follow yet"""
    follow_service = FollowService(db)
    return await follow_service.get_suggested_users(identity.user_id)

@router.patch("/me", response_model=UserPrivate)
async def update_me(
    user_update: UserUpdate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Update the caller's profile"""
    user_service = UserService(db)
    return await user_service.update_user(identity.user_id, user_update)

@router.get("/{username}", response_model=UserPublic)
async def get_user_by_username(
    username: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    user_service = UserService(db)
    user = await user_service.get_user_by_username(username)
    if not user:
        raise NotFoundError("User", username)
    return user

@router.get("/{user_id}/posts", response_model=List[PostWithUser])
async def get_user_posts(
    user_id: str,
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    post_service = PostService(db)
    return await post_service.get_user_posts(user_id, identity.user_id, offset, limit)

@router.get("/{user_id}/saved", response_model=List[PostWithUser])
async def get_saved_posts(
    user_id: str,
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Posts the caller has saved"""
    post_service = PostService(db)
    return await post_service.get_saved_posts(user_id, identity.user_id, offset, limit)
