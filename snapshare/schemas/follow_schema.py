from pydantic import BaseModel

class FollowStatus(BaseModel):
    follower_id: str
    following_id: str
    is_following: bool
