"""
Models package for SnapShare
"""
from snapshare.db.base import Base, BaseModel
from snapshare.models.user import User
from snapshare.models.post import Post
from snapshare.models.comment import Comment
from snapshare.models.like import Like, LikeTarget, PostTarget, CommentTarget
from snapshare.models.follow import Follow
from snapshare.models.saved_post import SavedPost
from snapshare.models.message import Message
from snapshare.models.story import Story
from snapshare.models.story_view import StoryView
from snapshare.models.notification import Notification

__all__ = [
    'Base',
    'BaseModel',
    'User',
    'Post',
    'Comment',
    'Like',
    'LikeTarget',
    'PostTarget',
    'CommentTarget',
    'Follow',
    'SavedPost',
    'Message',
    'Story',
    'StoryView',
    'Notification',
]
