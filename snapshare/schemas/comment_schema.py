from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from snapshare.schemas.user_schema import UserSummary

class CommentCreate(BaseModel):
    content: str = Field(..., max_length=2000)
    parent_id: Optional[int] = None

class CommentUpdate(BaseModel):
    content: str = Field(..., max_length=2000)

class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    user_id: str
    content: str
    parent_id: Optional[int] = None
    likes_count: int = 0
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None
