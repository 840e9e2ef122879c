from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint, Index
from snapshare.db.base import BaseModel

class SavedPost(BaseModel):
    __tablename__ = "saved_posts"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'post_id', name='unique_saved_post'),
        Index('ix_saved_posts_user_id', 'user_id'),
    )
