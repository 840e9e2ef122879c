from typing import Dict, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, delete, desc, func, update
from sqlalchemy.exc import SQLAlchemyError
import logging

from snapshare.exceptions import (
    ForbiddenError, NotFoundError, ValidationError, handle_storage_error
)
from snapshare.models.message import MESSAGE_TYPES, Message
from snapshare.models.user import User
from snapshare.schemas.message_schema import MessageResponse
from snapshare.schemas.user_schema import UserSummary
from snapshare.websocket.manager import get_connection_registry

logger = logging.getLogger(__name__)

def new_message_event(sender_id: str, content: str, timestamp, **extra) -> dict:
    """The frame pushed to a recipient for an incoming message"""
    return {
        "type": "new_message",
        "senderId": sender_id,
        "content": content,
        "timestamp": timestamp,
        **extra,
    }

class MessageService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.registry = get_connection_registry()

    async def send_message(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        message_type: str = "text"
    ) -> Message:
        """Persist a direct message; delivery is a separate, best-effort step"""
        content = (content or "").strip()
        if not content:
            raise ValidationError("Message content cannot be empty")
        if message_type not in MESSAGE_TYPES:
            raise ValidationError(f"Message type must be one of: {', '.join(MESSAGE_TYPES)}")

        if not await self.db.get(User, receiver_id):
            raise NotFoundError("User", receiver_id)

        try:
            message = Message(
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
                message_type=message_type,
                is_read=False,
            )
            self.db.add(message)
            await self.db.commit()
            await self.db.refresh(message)
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("send_message", e)

        logger.info(f"Stored message {message.id} from {sender_id} to {receiver_id}")
        return message

    async def deliver(self, message: Message) -> bool:
        """Push a stored message to the receiver if they are connected"""
        payload = MessageResponse.model_validate(message).model_dump(mode="json")
        return await self.registry.send_to(
            message.receiver_id,
            new_message_event(
                message.sender_id,
                message.content,
                payload["created_at"],
                message=payload,
            ),
        )

    async def get_conversation(self, user_a: str, user_b: str) -> List[Message]:
        """All messages between two users, newest first"""
        stmt = select(Message).where(
            or_(
                and_(Message.sender_id == user_a, Message.receiver_id == user_b),
                and_(Message.sender_id == user_b, Message.receiver_id == user_a),
            )
        ).order_by(
            desc(Message.created_at), desc(Message.id)
        ).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_conversations(self, user_id: str) -> List[dict]:
        """One entry per conversation partner with the latest message"""
        stmt = select(Message).where(
            or_(Message.sender_id == user_id, Message.receiver_id == user_id)
        ).order_by(
            desc(Message.created_at), desc(Message.id)
        ).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)

        latest: Dict[str, Message] = {}
        for message in result.scalars():
            other_id = message.receiver_id if message.sender_id == user_id else message.sender_id
            latest.setdefault(other_id, message)

        if not latest:
            return []

        unread_stmt = select(
            Message.sender_id, func.count()
        ).where(
            and_(
                Message.receiver_id == user_id,
                Message.is_read.is_(False)
            )
        ).group_by(Message.sender_id)
        unread = dict((await self.db.execute(unread_stmt)).all())

        users_result = await self.db.execute(select(User).where(User.id.in_(list(latest))))
        users = {user.id: user for user in users_result.scalars()}

        conversations = []
        for other_id, message in latest.items():
            user = users.get(other_id)
            if user is None:
                continue
            conversations.append({
                "user": UserSummary.model_validate(user).model_dump(),
                "last_message": MessageResponse.model_validate(message).model_dump(),
                "unread_count": unread.get(other_id, 0),
            })
        return conversations

    async def mark_messages_as_read(self, sender_id: str, receiver_id: str) -> int:
        """Flag every unread message from sender to receiver as read"""
        try:
            result = await self.db.execute(
                update(Message)
                .where(
                    and_(
                        Message.sender_id == sender_id,
                        Message.receiver_id == receiver_id,
                        Message.is_read.is_(False)
                    )
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("mark_messages_as_read", e)

        return result.rowcount

    async def delete_message(self, message_id: int, requester_id: str) -> None:
        message = await self.db.get(Message, message_id)
        if not message:
            raise NotFoundError("Message", message_id)
        if message.sender_id != requester_id:
            raise ForbiddenError("You can only delete messages you sent")

        try:
            await self.db.execute(delete(Message).where(Message.id == message_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("delete_message", e)

        logger.info(f"User {requester_id} deleted message {message_id}")
