from sqlalchemy import Column, String, Text, Integer, ForeignKey, Boolean, Index
from snapshare.db.base import BaseModel

class Notification(BaseModel):
    __tablename__ = "notifications"

    # Recipient
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    from_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(20), nullable=False)  # like, comment, follow
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)
    content = Column(Text)
    is_read = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index('ix_notifications_user_id', 'user_id'),
        Index('ix_notifications_created_at', 'created_at'),
        Index('ix_notifications_is_read', 'is_read'),
    )
