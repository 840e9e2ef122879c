from pydantic import BaseModel, Field
from snapshare.schemas.user_schema import UserPrivate

class LoginRequest(BaseModel):
    """Schema for login request"""
    username_or_email: str = Field(..., description="Username or email address")
    password: str = Field(..., min_length=1, max_length=100, description="Password")

class TokenResponse(BaseModel):
    """Schema for token response"""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration in seconds")
    user: UserPrivate

class TokenData(BaseModel):
    """Schema for token payload data"""
    user_id: str = Field(..., description="User ID")
    username: str = Field(..., description="Username")
