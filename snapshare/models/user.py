from sqlalchemy import Column, String, Boolean, Text, DateTime, Integer, Index
from snapshare.db.base import BaseModel, generate_uuid, utcnow

class User(BaseModel):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    # Null for accounts created through an external identity provider
    hashed_password = Column(String(255), nullable=True)
    first_name = Column(String(100))
    last_name = Column(String(100))
    bio = Column(Text)
    avatar_url = Column(String(500))
    is_private = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Denormalized counts, kept in step with follows/posts inside the same transaction
    follower_count = Column(Integer, default=0, nullable=False)
    following_count = Column(Integer, default=0, nullable=False)
    post_count = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index('ix_users_created_at', 'created_at'),
        Index('ix_users_follower_count', 'follower_count'),
    )