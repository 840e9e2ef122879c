"""
User Service for handling user-related business logic
"""
import logging
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, desc, func
from sqlalchemy.exc import SQLAlchemyError

from snapshare.exceptions import DuplicateError, NotFoundError, ValidationError, handle_storage_error
from snapshare.models.user import User
from snapshare.schemas.user_schema import UserUpdate

logger = logging.getLogger(__name__)

SEARCH_MIN_QUERY_LENGTH = 2
SEARCH_RESULTS_LIMIT = 20
# Columns that accept no null from a profile update
REQUIRED_PROFILE_FIELDS = ("username", "is_private")

def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.db.get(User, user_id, populate_existing=True)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        stmt = select(User).where(
            User.username == username.strip().lower()
        ).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(
            User.email == email.strip().lower()
        ).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_user(self, user_id: str, user_update: UserUpdate) -> User:
        """Update profile fields; counters are not writable here"""
        user = await self.get_user(user_id)
        if not user:
            raise NotFoundError("User", user_id)

        update_data = user_update.model_dump(exclude_unset=True)

        for field in REQUIRED_PROFILE_FIELDS:
            if field in update_data and update_data[field] is None:
                raise ValidationError(f"{field} cannot be null")

        if "username" in update_data:
            username = update_data["username"].strip().lower()
            if username != user.username:
                existing = await self.get_user_by_username(username)
                if existing:
                    raise DuplicateError("Username already taken")
            update_data["username"] = username

        try:
            for field, value in update_data.items():
                setattr(user, field, value)

            await self.db.commit()
            await self.db.refresh(user)
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("update_user", e)

        logger.info(f"Updated profile for user {user_id}: {sorted(update_data)}")
        return user

    async def search_users(self, query: str, exclude_user_id: Optional[str] = None) -> List[User]:
        """Case-insensitive partial match on username and names"""
        query = (query or "").strip()
        if len(query) < SEARCH_MIN_QUERY_LENGTH:
            return []

        pattern = f"%{escape_like(query.lower())}%"
        conditions = [
            or_(
                func.lower(User.username).like(pattern, escape="\\"),
                func.lower(User.first_name).like(pattern, escape="\\"),
                func.lower(User.last_name).like(pattern, escape="\\"),
            )
        ]
        if exclude_user_id:
            conditions.append(User.id != exclude_user_id)

        stmt = select(User).where(
            and_(*conditions)
        ).order_by(
            desc(User.follower_count), User.username
        ).limit(SEARCH_RESULTS_LIMIT).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
