from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, Request
from sqlalchemy import select, or_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from snapshare.config import settings
from snapshare.db.session import get_db
from snapshare.exceptions import DuplicateError, UnauthorizedError, handle_storage_error
from snapshare.models.user import User
from snapshare.schemas.auth_schema import TokenData
from snapshare.schemas.user_schema import UserCreate
from snapshare.services.redis_service import RedisService

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> Optional[TokenData]:
    """Decode and validate an access token without touching storage"""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None

    username = payload.get("sub")
    user_id = payload.get("user_id")
    if username is None or user_id is None:
        return None

    return TokenData(username=username, user_id=user_id)

class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.redis = RedisService()

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash"""
        return pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        """Hash a password"""
        return pwd_context.hash(password)

    async def create_user(self, user_data: UserCreate) -> User:
        """Register a new user; username and email are stored lower-case"""
        username = user_data.username.strip().lower()
        email = user_data.email.strip().lower()

        try:
            stmt = select(User.username, User.email).where(
                or_(User.username == username, User.email == email)
            )
            result = await self.db.execute(stmt)
            for existing in result.all():
                if existing.email == email:
                    raise DuplicateError("Email already registered")
                raise DuplicateError("Username already taken")

            user = User(
                username=username,
                email=email,
                hashed_password=self.get_password_hash(user_data.password),
                first_name=user_data.first_name,
                last_name=user_data.last_name,
                bio=user_data.bio,
            )

            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except SQLAlchemyError as e:
            await self.db.rollback()
            handle_storage_error("create_user", e)

        logger.info(f"Registered user {user.id} ({user.username})")
        return user

    async def authenticate_user(self, username_or_email: str, password: str) -> Optional[User]:
        """Return the user when the credentials match"""
        identifier = username_or_email.strip().lower()
        stmt = select(User).where(
            or_(User.username == identifier, User.email == identifier)
        )
        result = await self.db.execute(stmt)
        user = result.scalar_one_or_none()

        if not user or not user.hashed_password:
            return None
        if not self.verify_password(password, user.hashed_password):
            return None

        return user

    def issue_token(self, user: User) -> str:
        return create_access_token({"sub": user.username, "user_id": user.id})

    async def verify_token(self, token: str) -> Optional[TokenData]:
        """Verify a JWT token, rejecting revoked ones"""
        token_data = decode_access_token(token)
        if token_data is None:
            return None

        if await self.redis.get(f"blacklist:{token}"):
            return None

        return token_data

    async def blacklist_token(self, token: str) -> None:
        """Revoke a token until it would have expired anyway"""
        await self.redis.setex(
            f"blacklist:{token}",
            settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "1",
        )


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The caller's identity, resolved once per request"""
    user_id: str
    username: str
    scheme: str
    token: str


class BearerTokenScheme:
    name = "bearer"

    def extract(self, request: Request) -> Optional[str]:
        authorization = request.headers.get("Authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() != "bearer" or not credentials:
            return None
        return credentials.strip()


class SessionCookieScheme:
    name = "session"

    def extract(self, request: Request) -> Optional[str]:
        return request.cookies.get(settings.SESSION_COOKIE_NAME)


IDENTITY_SCHEMES: Sequence = (BearerTokenScheme(), SessionCookieScheme())


async def resolve_identity(request: Request, db: AsyncSession) -> Optional[AuthenticatedIdentity]:
    """Try each scheme in order; the first one carrying a valid token wins"""
    auth_service = AuthService(db)

    for scheme in IDENTITY_SCHEMES:
        token = scheme.extract(request)
        if not token:
            continue

        token_data = await auth_service.verify_token(token)
        if token_data is None:
            logger.debug(f"Rejected {scheme.name} credentials")
            continue

        stmt = select(func.count()).select_from(User).where(User.id == token_data.user_id)
        result = await db.execute(stmt)
        if not result.scalar():
            continue

        return AuthenticatedIdentity(
            user_id=token_data.user_id,
            username=token_data.username,
            scheme=scheme.name,
            token=token,
        )

    return None


async def get_current_identity(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> AuthenticatedIdentity:
    """Dependency resolving the caller or failing with 401"""
    identity = await resolve_identity(request, db)
    if identity is None:
        raise UnauthorizedError("Could not validate credentials")
    return identity


async def get_current_user(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency loading the authenticated user row"""
    user = await db.get(User, identity.user_id)
    if user is None:
        raise UnauthorizedError("Could not validate credentials")
    return user
