from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from enum import Enum
from snapshare.schemas.user_schema import UserSummary

class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"

class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    from_user_id: Optional[str] = None
    type: NotificationType
    post_id: Optional[int] = None
    comment_id: Optional[int] = None
    content: Optional[str] = None
    is_read: bool
    created_at: datetime
    from_user: Optional[UserSummary] = None

class UnreadCount(BaseModel):
    unread_count: int
