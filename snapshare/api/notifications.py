from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from snapshare.schemas.notification_schema import NotificationResponse, UnreadCount
from snapshare.services.notification_service import NotificationService
from snapshare.services.auth_service import AuthenticatedIdentity, get_current_identity
from snapshare.db.session import get_db

router = APIRouter()

@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's latest notifications"""
    service = NotificationService(db)
    return await service.get_notifications(identity.user_id)

@router.get("/unread-count", response_model=UnreadCount)
async def get_unread_count(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    service = NotificationService(db)
    return UnreadCount(unread_count=await service.get_unread_count(identity.user_id))

@router.put("/read-all")
async def mark_all_as_read(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Mark every notification as read"""
    service = NotificationService(db)
    updated = await service.mark_all_as_read(identity.user_id)
    return {"success": True, "updated": updated}

@router.put("/{notification_id}/read")
async def mark_as_read(
    notification_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Mark one notification as read"""
    service = NotificationService(db)
    await service.mark_as_read(notification_id, identity.user_id)
    return {"success": True}
