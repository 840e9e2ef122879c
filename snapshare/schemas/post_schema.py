from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal, Union
from datetime import datetime
from snapshare.schemas.user_schema import UserSummary

class PostCreate(BaseModel):
    media: Union[str, List[str]]
    media_type: Literal["image", "video", "carousel"]
    caption: Optional[str] = Field(None, max_length=2200)
    location: Optional[str] = Field(None, max_length=255)

    @field_validator("media")
    @classmethod
    def normalize_media(cls, value):
        urls = [value] if isinstance(value, str) else list(value)
        urls = [url.strip() for url in urls if url and url.strip()]
        if not urls:
            raise ValueError("at least one media URL is required")
        return urls

class PostUpdate(BaseModel):
    caption: Optional[str] = Field(None, max_length=2200)
    location: Optional[str] = Field(None, max_length=255)

class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    media: List[str]
    media_type: str
    caption: Optional[str] = None
    location: Optional[str] = None
    likes_count: int = 0
    comments_count: int = 0
    created_at: datetime

class PostWithUser(PostResponse):
    user: Optional[UserSummary] = None
    has_liked: bool = False
    has_saved: bool = False

class SaveToggleResponse(BaseModel):
    saved: bool
