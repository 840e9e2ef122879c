import pytest
from httpx import AsyncClient
from sqlalchemy import select
from snapshare.exceptions import ForbiddenError, NotFoundError, ValidationError
from snapshare.models.notification import Notification
from snapshare.models.post import Post
from snapshare.services.comment_service import CommentService
from snapshare.services.post_service import PostService

async def comments_count(db, post_id):
    return (await db.execute(select(Post.comments_count).where(Post.id == post_id))).scalar()

@pytest.fixture
def make_post(test_db):
    async def _make_post(user):
        return await PostService(test_db).create_post(user.id, "https://cdn.example.com/a.jpg", "image")
    return _make_post

@pytest.mark.asyncio
async def test_create_comment_endpoint(test_client: AsyncClient, test_db, create_user, headers_for, make_post):
    owner = await create_user("owner")
    commenter = await create_user("commenter")
    post = await make_post(owner)

    response = await test_client.post(
        f"/api/posts/{post.id}/comments",
        json={"content": "  looks great  "},
        headers=headers_for(commenter)
    )

    assert response.status_code == 201
    data = response.json()
    assert data["content"] == "looks great"
    assert data["user"]["username"] == "commenter"

    notification = (await test_db.execute(select(Notification))).scalar_one()
    assert notification.type == "comment"
    assert notification.user_id == owner.id
    assert notification.comment_id == data["id"]

@pytest.mark.asyncio
async def test_empty_comment_rejected(test_db, create_user, make_post):
    owner = await create_user("owner")
    post = await make_post(owner)

    with pytest.raises(ValidationError):
        await CommentService(test_db).create_comment(post.id, owner.id, "   ")
    assert await comments_count(test_db, post.id) == 0

@pytest.mark.asyncio
async def test_comment_on_missing_post(test_db, create_user):
    user = await create_user()

    with pytest.raises(NotFoundError):
        await CommentService(test_db).create_comment(555, user.id, "hello")

@pytest.mark.asyncio
async def test_comment_count_restored_after_delete(test_db, create_user, make_post):
    """Create increments comments_count by one; delete restores it"""
    owner = await create_user("owner")
    post = await make_post(owner)
    service = CommentService(test_db)

    await service.create_comment(post.id, owner.id, "first")
    before = await comments_count(test_db, post.id)

    comment = await service.create_comment(post.id, owner.id, "second")
    assert await comments_count(test_db, post.id) == before + 1

    await service.delete_comment(comment["id"], owner.id)
    assert await comments_count(test_db, post.id) == before

@pytest.mark.asyncio
async def test_delete_parent_removes_replies(test_db, create_user, make_post):
    owner = await create_user("owner")
    post = await make_post(owner)
    service = CommentService(test_db)

    parent = await service.create_comment(post.id, owner.id, "parent")
    reply = await service.create_comment(post.id, owner.id, "reply", parent_id=parent["id"])
    await service.create_comment(post.id, owner.id, "nested", parent_id=reply["id"])
    await service.create_comment(post.id, owner.id, "unrelated")
    assert await comments_count(test_db, post.id) == 4

    removed = await service.delete_comment(parent["id"], owner.id)

    assert removed == 3
    assert await comments_count(test_db, post.id) == 1
    assert [c["content"] for c in await service.get_post_comments(post.id)] == ["unrelated"]

@pytest.mark.asyncio
async def test_reply_parent_must_be_on_same_post(test_db, create_user, make_post):
    owner = await create_user("owner")
    first = await make_post(owner)
    second = await make_post(owner)
    service = CommentService(test_db)
    parent = await service.create_comment(first.id, owner.id, "parent")

    with pytest.raises(NotFoundError):
        await service.create_comment(second.id, owner.id, "reply", parent_id=parent["id"])

@pytest.mark.asyncio
async def test_update_comment_author_only(test_client: AsyncClient, test_db, create_user, headers_for, make_post):
    owner = await create_user("owner")
    author = await create_user("author")
    post = await make_post(owner)
    comment = await CommentService(test_db).create_comment(post.id, author.id, "original")

    response = await test_client.put(
        f"/api/comments/{comment['id']}", json={"content": "changed"}, headers=headers_for(owner)
    )
    assert response.status_code == 403

    response = await test_client.put(
        f"/api/comments/{comment['id']}", json={"content": "edited"}, headers=headers_for(author)
    )
    assert response.status_code == 200
    assert response.json()["content"] == "edited"

@pytest.mark.asyncio
async def test_delete_comment_permissions(test_db, create_user, make_post):
    owner = await create_user("owner")
    author = await create_user("author")
    stranger = await create_user("stranger")
    post = await make_post(owner)
    service = CommentService(test_db)

    first = await service.create_comment(post.id, author.id, "one")
    second = await service.create_comment(post.id, author.id, "two")

    with pytest.raises(ForbiddenError):
        await service.delete_comment(first["id"], stranger.id)

    # Post owner may moderate, author may delete their own
    assert await service.delete_comment(first["id"], owner.id) == 1
    assert await service.delete_comment(second["id"], author.id) == 1
    assert await comments_count(test_db, post.id) == 0

@pytest.mark.asyncio
async def test_comments_newest_first(test_client: AsyncClient, test_db, create_user, headers_for, make_post):
    owner = await create_user("owner")
    post = await make_post(owner)
    service = CommentService(test_db)
    for content in ("a", "b", "c"):
        await service.create_comment(post.id, owner.id, content)

    response = await test_client.get(f"/api/posts/{post.id}/comments", headers=headers_for(owner))

    assert [c["content"] for c in response.json()] == ["c", "b", "a"]
