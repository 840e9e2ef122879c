from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from snapshare.config import settings
from snapshare.schemas.comment_schema import CommentCreate, CommentResponse
from snapshare.schemas.like_schema import LikeToggleResponse
from snapshare.schemas.post_schema import PostCreate, PostUpdate, PostWithUser, SaveToggleResponse
from snapshare.services.auth_service import AuthenticatedIdentity, get_current_identity
from snapshare.services.comment_service import CommentService
from snapshare.services.like_service import LikeService
from snapshare.services.post_service import PostService
from snapshare.db.session import get_db
from snapshare.utils.rate_limit import limiter, WRITE_LIMIT
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=PostWithUser, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def create_post(
    request: Request,
    post_data: PostCreate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Create a new post from already-hosted media URLs"""
    post_service = PostService(db)
    post = await post_service.create_post(
        identity.user_id,
        post_data.media,
        post_data.media_type,
        caption=post_data.caption,
        location=post_data.location,
    )
    return await post_service.get_post_with_user(post.id, identity.user_id)

@router.get("/feed", response_model=List[PostWithUser])
async def get_feed(
    offset: int = Query(0, ge=0),
    limit: int = Query(settings.FEED_DEFAULT_LIMIT, ge=1, le=settings.FEED_MAX_LIMIT),
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's feed"""
    post_service = PostService(db)
    return await post_service.get_feed_posts(identity.user_id, offset, limit)

@router.get("/{post_id}", response_model=PostWithUser)
async def get_post(
    post_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Get a post by ID"""
    post_service = PostService(db)
    return await post_service.get_post_with_user(post_id, identity.user_id)

@router.patch("/{post_id}", response_model=PostWithUser)
async def update_post(
    post_id: int,
    post_update: PostUpdate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Update a post"""
    post_service = PostService(db)
    return await post_service.update_post(post_id, identity.user_id, post_update)

@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Delete a post"""
    post_service = PostService(db)
    await post_service.delete_post(post_id, identity.user_id)
    return {"success": True, "message": "Post deleted successfully"}

@router.post("/{post_id}/like", response_model=LikeToggleResponse)
@limiter.limit(WRITE_LIMIT)
async def toggle_like(
    request: Request,
    post_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Like the post, or unlike it if already liked"""
    like_service = LikeService(db)
    liked, likes_count = await like_service.toggle_post_like(identity.user_id, post_id)
    return LikeToggleResponse(liked=liked, likes_count=likes_count)

@router.post("/{post_id}/save", response_model=SaveToggleResponse)
async def toggle_save(
    post_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Save the post, or unsave it if already saved"""
    post_service = PostService(db)
    saved = await post_service.toggle_save(identity.user_id, post_id)
    return SaveToggleResponse(saved=saved)

@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def create_comment(
    request: Request,
    post_id: int,
    comment_data: CommentCreate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Comment on a post"""
    comment_service = CommentService(db)
    return await comment_service.create_comment(
        post_id,
        identity.user_id,
        comment_data.content,
        parent_id=comment_data.parent_id,
    )

@router.get("/{post_id}/comments", response_model=List[CommentResponse])
async def get_post_comments(
    post_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """List a post's comments, newest first"""
    comment_service = CommentService(db)
    return await comment_service.get_post_comments(post_id)
