import pytest
from httpx import AsyncClient
from snapshare.config import settings
from snapshare.exceptions import DuplicateError
from snapshare.schemas.user_schema import UserCreate
from snapshare.services.auth_service import AuthService, create_access_token

@pytest.mark.asyncio
async def test_register_user(test_client: AsyncClient):
    """Test user registration"""
    user_data = {
        "username": "NewUser",
        "email": "NewUser@Example.com",
        "password": "Password123!",
        "first_name": "New",
        "last_name": "User"
    }

    response = await test_client.post("/api/auth/register", json=user_data)

    assert response.status_code == 201
    data = response.json()
    assert data["username"] == "newuser"
    assert data["email"] == "newuser@example.com"
    assert data["follower_count"] == 0
    assert "id" in data
    assert "password" not in data
    assert "hashed_password" not in data

@pytest.mark.asyncio
async def test_register_duplicate_email(test_client: AsyncClient, create_user):
    """Test duplicate registration answers 409"""
    await create_user("taken")

    response = await test_client.post("/api/auth/register", json={
        "username": "other",
        "email": "TAKEN@example.com",
        "password": "Password123!",
    })

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "Email already registered",
        "error_type": "DuplicateError",
    }

@pytest.mark.asyncio
async def test_create_user_duplicate_username(test_db, create_user):
    await create_user("alice")

    with pytest.raises(DuplicateError):
        await AuthService(test_db).create_user(UserCreate(
            username="Alice",
            email="someone@example.com",
            password="Password123!",
        ))

@pytest.mark.asyncio
async def test_register_validation_error(test_client: AsyncClient):
    """Test schema violations answer 400 with a flat message"""
    response = await test_client.post("/api/auth/register", json={
        "username": "ab",
        "email": "not-an-email",
        "password": "short",
    })

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "username" in body["message"]

@pytest.mark.asyncio
async def test_login_user(test_client: AsyncClient, create_user):
    """Test user login"""
    await create_user("loginuser")

    response = await test_client.post("/api/auth/login", json={
        "username_or_email": "loginuser@example.com",
        "password": "Password123!"
    })

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    assert data["user"]["username"] == "loginuser"
    assert response.cookies.get(settings.SESSION_COOKIE_NAME) == data["access_token"]

@pytest.mark.asyncio
async def test_login_wrong_password(test_client: AsyncClient, create_user):
    await create_user("loginuser")

    response = await test_client.post("/api/auth/login", json={
        "username_or_email": "loginuser",
        "password": "WrongPassword!"
    })

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect username or password"

@pytest.mark.asyncio
async def test_protected_endpoint(test_client: AsyncClient, create_user, headers_for):
    """Test accessing protected endpoint with a bearer token"""
    user = await create_user("protecteduser")

    response = await test_client.get("/api/auth/user", headers=headers_for(user))

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == user.id
    assert data["email"] == "protecteduser@example.com"

@pytest.mark.asyncio
async def test_session_cookie_identity(test_client: AsyncClient, create_user):
    """Test the session cookie alone authenticates"""
    user = await create_user("cookieuser")
    token = create_access_token({"sub": user.username, "user_id": user.id})

    response = await test_client.get(
        "/api/auth/user",
        cookies={settings.SESSION_COOKIE_NAME: token}
    )

    assert response.status_code == 200
    assert response.json()["username"] == "cookieuser"

@pytest.mark.asyncio
async def test_unauthenticated_request(test_client: AsyncClient):
    response = await test_client.get("/api/posts/feed")
    assert response.status_code == 401

    response = await test_client.get(
        "/api/posts/feed",
        headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401

@pytest.mark.asyncio
async def test_token_for_deleted_user_rejected(test_client: AsyncClient):
    token = create_access_token({"sub": "ghost", "user_id": "00000000-0000-0000-0000-000000000000"})

    response = await test_client.get(
        "/api/auth/user",
        headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401

@pytest.mark.asyncio
async def test_logout_revokes_token(test_client: AsyncClient, create_user, headers_for):
    """Test a logged-out token no longer authenticates"""
    user = await create_user("leaving")
    headers = headers_for(user)

    response = await test_client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200

    response = await test_client.get("/api/auth/user", headers=headers)
    assert response.status_code == 401

@pytest.mark.asyncio
async def test_health(test_client: AsyncClient):
    response = await test_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
