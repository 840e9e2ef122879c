from dataclasses import dataclass
from typing import Union
from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, Index
from snapshare.db.base import BaseModel


@dataclass(frozen=True)
class PostTarget:
    post_id: int


@dataclass(frozen=True)
class CommentTarget:
    comment_id: int


LikeTarget = Union[PostTarget, CommentTarget]


class Like(BaseModel):
    __tablename__ = "likes"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True)
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)

    __table_args__ = (
        # One like per (user, target)
        Index(
            'ix_likes_user_post', 'user_id', 'post_id', unique=True,
            postgresql_where=post_id.is_not(None),
            sqlite_where=post_id.is_not(None),
        ),
        Index(
            'ix_likes_user_comment', 'user_id', 'comment_id', unique=True,
            postgresql_where=comment_id.is_not(None),
            sqlite_where=comment_id.is_not(None),
        ),

        # Exactly one target column is set
        CheckConstraint(
            '(post_id IS NOT NULL AND comment_id IS NULL) OR (post_id IS NULL AND comment_id IS NOT NULL)',
            name='check_like_target'
        ),

        Index('ix_likes_post_id', 'post_id'),
        Index('ix_likes_comment_id', 'comment_id'),
    )

    @classmethod
    def for_target(cls, user_id: str, target: LikeTarget) -> "Like":
        if isinstance(target, PostTarget):
            return cls(user_id=user_id, post_id=target.post_id)
        return cls(user_id=user_id, comment_id=target.comment_id)

    @property
    def target(self) -> LikeTarget:
        if self.post_id is not None:
            return PostTarget(self.post_id)
        return CommentTarget(self.comment_id)
