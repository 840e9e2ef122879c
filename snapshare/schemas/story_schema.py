from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal
from datetime import datetime
from snapshare.schemas.user_schema import UserSummary

class StoryCreate(BaseModel):
    media_url: str = Field(..., min_length=1, max_length=500)
    media_type: Literal["image", "video"]

class StoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    media_url: str
    media_type: str
    views_count: int = 0
    created_at: datetime
    expires_at: datetime

class UserStories(BaseModel):
    user: UserSummary
    stories: List[StoryResponse]
