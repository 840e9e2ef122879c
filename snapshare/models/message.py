from sqlalchemy import Column, String, Text, Boolean, ForeignKey, Index
from snapshare.db.base import BaseModel

MESSAGE_TYPES = ("text", "image", "video")

class Message(BaseModel):
    __tablename__ = "messages"

    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), default="text", nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index('ix_messages_sender_id', 'sender_id'),
        Index('ix_messages_receiver_id', 'receiver_id'),
        Index('ix_messages_created_at', 'created_at'),
    )
