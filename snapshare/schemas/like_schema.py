from pydantic import BaseModel

class LikeToggleResponse(BaseModel):
    liked: bool
    likes_count: int
