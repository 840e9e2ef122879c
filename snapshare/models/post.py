from sqlalchemy import Column, String, Text, Integer, ForeignKey, DateTime, JSON, Index
from snapshare.db.base import BaseModel, utcnow

MEDIA_TYPES = ("image", "video", "carousel")

class Post(BaseModel):
    __tablename__ = "posts"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # Ordered list of hosted media URLs
    media = Column(JSON, nullable=False)
    media_type = Column(String(20), nullable=False)
    caption = Column(Text)
    location = Column(String(255))
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Denormalized counts
    likes_count = Column(Integer, default=0, nullable=False)
    comments_count = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index('ix_posts_user_id', 'user_id'),
        Index('ix_posts_created_at', 'created_at'),
    )
