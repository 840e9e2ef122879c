from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from snapshare.schemas.message_schema import ConversationResponse, MessageCreate, MessageResponse
from snapshare.services.auth_service import AuthenticatedIdentity, get_current_identity
from snapshare.services.message_service import MessageService
from snapshare.db.session import get_db
from snapshare.utils.rate_limit import limiter, WRITE_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def send_message(
    request: Request,
    message_data: MessageCreate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Store a direct message and push it to the receiver if online"""
    message_service = MessageService(db)
    message = await message_service.send_message(
        identity.user_id,
        message_data.receiver_id,
        message_data.content,
        message_data.message_type,
    )

    delivered = await message_service.deliver(message)
    logger.debug(f"Message {message.id} delivered live: {delivered}")
    return message

@router.get("/conversations", response_model=List[ConversationResponse])
async def get_conversations(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """The caller's conversations, most recent first"""
    message_service = MessageService(db)
    return await message_service.get_conversations(identity.user_id)

@router.get("/{user_id}", response_model=List[MessageResponse])
async def get_conversation(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Messages exchanged with user_id, newest first"""
    message_service = MessageService(db)
    return await message_service.get_conversation(identity.user_id, user_id)

@router.put("/{user_id}/read")
async def mark_conversation_read(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Mark messages received from user_id as read"""
    message_service = MessageService(db)
    updated = await message_service.mark_messages_as_read(user_id, identity.user_id)
    return {"success": True, "updated": updated}

@router.delete("/id/{message_id}")
async def delete_message(
    message_id: int,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    message_service = MessageService(db)
    await message_service.delete_message(message_id, identity.user_id)
    return {"success": True, "message": "Message deleted successfully"}
