from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from snapshare.schemas.comment_schema import CommentResponse, CommentUpdate
from snapshare.schemas.like_schema import LikeToggleResponse
from snapshare.services.auth_service import AuthenticatedIdentity, get_current_identity
from snapshare.services.comment_service import CommentService
from snapshare.services.like_service import LikeService
from snapshare.db.session import get_db
from snapshare.utils.rate_limit import limiter, WRITE_LIMIT

router = APIRouter()

@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    comment_update: CommentUpdate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Edit your own comment"""
    comment_service = CommentService(db)
    return await comment_service.update_comment(comment_id, identity.user_id, comment_update.content)

@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Delete a comment (author or post owner)"""
    comment_service = CommentService(db)
    deleted = await comment_service.delete_comment(comment_id, identity.user_id)
    return {"success": True, "message": "Comment deleted successfully", "deleted": deleted}

@router.post("/{comment_id}/like", response_model=LikeToggleResponse)
@limiter.limit(WRITE_LIMIT)
async def toggle_comment_like(
    request: Request,
    comment_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    like_service = LikeService(db)
    liked, likes_count = await like_service.toggle_comment_like(identity.user_id, comment_id)
    return LikeToggleResponse(liked=liked, likes_count=likes_count)
