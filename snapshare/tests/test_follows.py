import pytest
from httpx import AsyncClient
from sqlalchemy import select, func
from snapshare.exceptions import DuplicateError, NotFoundError, ValidationError
from snapshare.models.follow import Follow
from snapshare.models.user import User
from snapshare.services.follow_service import FollowService
from snapshare.services.user_service import UserService

async def counts(db, user_id):
    row = (await db.execute(
        select(User.follower_count, User.following_count).where(User.id == user_id)
    )).one()
    return tuple(row)

async def assert_counts_match_rows(db):
    users = (await db.execute(select(User.id))).scalars().all()
    for user_id in users:
        followers = (await db.execute(
            select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
        )).scalar()
        following = (await db.execute(
            select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
        )).scalar()
        assert await counts(db, user_id) == (followers, following)

@pytest.mark.asyncio
async def test_follow_and_unfollow_restore_counts(test_db, create_user):
    a = await create_user("alice")
    b = await create_user("bob")
    service = FollowService(test_db)

    before = (await counts(test_db, a.id), await counts(test_db, b.id))

    await service.follow_user(a.id, b.id)
    assert await counts(test_db, a.id) == (0, 1)
    assert await counts(test_db, b.id) == (1, 0)
    assert await service.is_following(a.id, b.id)
    assert not await service.is_following(b.id, a.id)

    await service.unfollow_user(a.id, b.id)
    assert (await counts(test_db, a.id), await counts(test_db, b.id)) == before

@pytest.mark.asyncio
async def test_counts_match_rows_after_sequence(test_db, create_user):
    users = [await create_user(f"member{i}") for i in range(4)]
    service = FollowService(test_db)

    await service.follow_user(users[0].id, users[1].id)
    await service.follow_user(users[0].id, users[2].id)
    await service.follow_user(users[1].id, users[2].id)
    await service.follow_user(users[3].id, users[0].id)
    await service.unfollow_user(users[0].id, users[2].id)
    await service.follow_user(users[2].id, users[0].id)

    await assert_counts_match_rows(test_db)

@pytest.mark.asyncio
async def test_self_follow_rejected_without_mutation(test_db, create_user):
    a = await create_user("alice")

    with pytest.raises(ValidationError):
        await FollowService(test_db).follow_user(a.id, a.id)

    assert await counts(test_db, a.id) == (0, 0)

@pytest.mark.asyncio
async def test_duplicate_follow_rejected_without_mutation(test_db, create_user):
    a = await create_user("alice")
    b = await create_user("bob")
    service = FollowService(test_db)
    await service.follow_user(a.id, b.id)

    with pytest.raises(DuplicateError):
        await service.follow_user(a.id, b.id)

    assert await counts(test_db, a.id) == (0, 1)
    assert await counts(test_db, b.id) == (1, 0)

@pytest.mark.asyncio
async def test_follow_missing_user_and_unfollow_without_follow(test_db, create_user):
    a = await create_user("alice")
    b = await create_user("bob")
    service = FollowService(test_db)

    with pytest.raises(NotFoundError):
        await service.follow_user(a.id, "no-such-user")
    with pytest.raises(NotFoundError):
        await service.unfollow_user(a.id, b.id)

    assert await counts(test_db, b.id) == (0, 0)

@pytest.mark.asyncio
async def test_followers_and_following_lists(test_client: AsyncClient, test_db, create_user, headers_for):
    a = await create_user("alice")
    b = await create_user("bob")
    c = await create_user("carol")
    service = FollowService(test_db)
    await service.follow_user(a.id, c.id)
    await service.follow_user(b.id, c.id)

    response = await test_client.get(f"/api/users/{c.id}/followers", headers=headers_for(a))
    assert {u["username"] for u in response.json()} == {"alice", "bob"}

    response = await test_client.get(f"/api/users/{a.id}/following", headers=headers_for(a))
    assert [u["username"] for u in response.json()] == ["carol"]

@pytest.mark.asyncio
async def test_follow_endpoints(test_client: AsyncClient, create_user, headers_for):
    a = await create_user("alice")
    b = await create_user("bob")
    headers = headers_for(a)

    response = await test_client.post(f"/api/users/{b.id}/follow", headers=headers)
    assert response.status_code == 201
    assert response.json()["is_following"] is True

    response = await test_client.post(f"/api/users/{b.id}/follow", headers=headers)
    assert response.status_code == 409

    response = await test_client.post(f"/api/users/{a.id}/follow", headers=headers)
    assert response.status_code == 400

    response = await test_client.get(f"/api/users/{b.id}/follow-status", headers=headers)
    assert response.json()["is_following"] is True

    response = await test_client.delete(f"/api/users/{b.id}/follow", headers=headers)
    assert response.status_code == 200
    assert response.json()["is_following"] is False

@pytest.mark.asyncio
async def test_suggested_users(test_db, create_user):
    me = await create_user("meuser")
    followed = await create_user("followed")
    popular = await create_user("popular")
    quiet = await create_user("quiet")
    extras = [await create_user(f"extra{i}") for i in range(10)]
    service = FollowService(test_db)

    await service.follow_user(me.id, followed.id)
    await service.follow_user(quiet.id, popular.id)
    await service.follow_user(extras[0].id, popular.id)

    suggested = await service.get_suggested_users(me.id)
    ids = [u.id for u in suggested]

    assert len(suggested) == 10
    assert ids[0] == popular.id
    assert me.id not in ids
    assert followed.id not in ids

@pytest.mark.asyncio
async def test_search_users(test_client: AsyncClient, test_db, create_user, headers_for):
    me = await create_user("searcher")
    await create_user("johnny", first_name="John")
    await create_user("jdoe", last_name="Johnson")
    await create_user("zed")

    users = await UserService(test_db).search_users("JOHN", exclude_user_id=me.id)
    assert {u.username for u in users} == {"johnny", "jdoe"}

    assert await UserService(test_db).search_users(" j ") == []

    response = await test_client.get("/api/users/search", params={"q": "sea"}, headers=headers_for(me))
    assert response.json() == []

@pytest.mark.asyncio
async def test_search_users_capped(test_db, create_user):
    for i in range(25):
        await create_user(f"bulk{i:02d}")

    users = await UserService(test_db).search_users("bulk")

    assert len(users) == 20

@pytest.mark.asyncio
async def test_profile_update_and_lookup(test_client: AsyncClient, create_user, headers_for):
    me = await create_user("original")
    await create_user("taken")
    headers = headers_for(me)

    response = await test_client.patch("/api/users/me", json={"bio": "hello", "username": "Renamed"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["username"] == "renamed"
    assert response.json()["bio"] == "hello"

    response = await test_client.patch("/api/users/me", json={"username": "taken"}, headers=headers)
    assert response.status_code == 409

    response = await test_client.get("/api/users/RENAMED", headers=headers)
    assert response.status_code == 200
    assert response.json()["id"] == me.id

    response = await test_client.get("/api/users/nobody", headers=headers)
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_profile_update_rejects_null_required_fields(test_client: AsyncClient, create_user, headers_for):
    me = await create_user("original")
    headers = headers_for(me)

    response = await test_client.patch("/api/users/me", json={"username": None}, headers=headers)
    assert response.status_code == 400
    assert response.json()["success"] is False

    response = await test_client.patch("/api/users/me", json={"is_private": None}, headers=headers)
    assert response.status_code == 400

    response = await test_client.patch("/api/users/me", json={"bio": "set"}, headers=headers)
    assert response.json()["bio"] == "set"
    response = await test_client.patch("/api/users/me", json={"bio": None}, headers=headers)
    assert response.status_code == 200
    assert response.json()["bio"] is None
    assert response.json()["username"] == "original"

@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(test_db, create_user):
    await create_user("ab_cd")
    await create_user("abxcd")
    await create_user("percent", last_name="100%off")
    service = UserService(test_db)

    assert {u.username for u in await service.search_users("b_c")} == {"ab_cd"}
    assert {u.username for u in await service.search_users("0%o")} == {"percent"}
    assert await service.search_users("%%") == []
