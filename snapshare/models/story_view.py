from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from snapshare.db.base import BaseModel

class StoryView(BaseModel):
    __tablename__ = "story_views"

    story_id = Column(Integer, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False)
    viewer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint('story_id', 'viewer_id', name='unique_story_view'),
    )
