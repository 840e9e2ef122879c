from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Index
from snapshare.db.base import BaseModel

STORY_MEDIA_TYPES = ("image", "video")

class Story(BaseModel):
    __tablename__ = "stories"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    media_url = Column(String(500), nullable=False)
    media_type = Column(String(20), nullable=False)
    # Fixed at creation; a story is active while expires_at > now
    expires_at = Column(DateTime, nullable=False)
    views_count = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index('ix_stories_user_id', 'user_id'),
        Index('ix_stories_expires_at', 'expires_at'),
    )
