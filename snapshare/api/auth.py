from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from snapshare.schemas.user_schema import UserCreate, UserPrivate
from snapshare.schemas.auth_schema import LoginRequest, TokenResponse
from snapshare.services.auth_service import (
    AuthService, AuthenticatedIdentity, get_current_identity, get_current_user
)
from snapshare.db.session import get_db
from snapshare.exceptions import UnauthorizedError
from snapshare.models.user import User
from snapshare.utils.rate_limit import limiter, AUTH_LIMIT
from snapshare.config import settings
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/register", response_model=UserPrivate, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
async def register(
    request: Request,
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user"""
    auth_service = AuthService(db)
    return await auth_service.create_user(user_data)

@router.post("/login", response_model=TokenResponse)
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login and return a token; the same token is set as the session cookie"""
    auth_service = AuthService(db)

    user = await auth_service.authenticate_user(
        credentials.username_or_email,
        credentials.password
    )
    if not user:
        logger.info(f"Failed login for {credentials.username_or_email}")
        raise UnauthorizedError("Incorrect username or password")

    access_token = auth_service.issue_token(user)
    expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=access_token,
        max_age=expires_in,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )

    logger.info(f"User {user.id} logged in")
    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
        user=UserPrivate.model_validate(user),
    )

@router.post("/logout")
async def logout(
    response: Response,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the current token and clear the session cookie"""
    auth_service = AuthService(db)
    await auth_service.blacklist_token(identity.token)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)

    logger.info(f"User {identity.user_id} logged out")
    return {"success": True, "message": "Logged out successfully"}

@router.get("/user", response_model=UserPrivate)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the authenticated user's profile"""
    return current_user
