from pydantic import BaseModel, ConfigDict, Field
from typing import Literal
from datetime import datetime
from snapshare.schemas.user_schema import UserSummary

class MessageCreate(BaseModel):
    receiver_id: str
    content: str = Field(..., max_length=5000)
    message_type: Literal["text", "image", "video"] = "text"

class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: str
    receiver_id: str
    content: str
    message_type: str
    is_read: bool
    created_at: datetime

class ConversationResponse(BaseModel):
    user: UserSummary
    last_message: MessageResponse
    unread_count: int = 0
