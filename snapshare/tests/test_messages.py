import pytest
from httpx import AsyncClient
from snapshare.exceptions import ForbiddenError, NotFoundError, ValidationError
from snapshare.services.message_service import MessageService

@pytest.mark.asyncio
async def test_message_persisted_without_connection(test_client: AsyncClient, test_db, create_user, headers_for, registry):
    """A message is stored even when the receiver is offline"""
    sender = await create_user("sender")
    receiver = await create_user("receiver")
    assert not registry.is_connected(receiver.id)

    response = await test_client.post(
        "/api/messages",
        json={"receiver_id": receiver.id, "content": "hey there"},
        headers=headers_for(sender)
    )

    assert response.status_code == 201
    assert response.json()["is_read"] is False

    conversation = await MessageService(test_db).get_conversation(receiver.id, sender.id)
    assert [m.content for m in conversation] == ["hey there"]

@pytest.mark.asyncio
async def test_message_pushed_to_connected_receiver(test_client: AsyncClient, create_user, headers_for, registry, fake_connection):
    sender = await create_user("sender")
    receiver = await create_user("receiver")
    connection = fake_connection()
    await registry.register(receiver.id, connection)

    response = await test_client.post(
        "/api/messages",
        json={"receiver_id": receiver.id, "content": "live"},
        headers=headers_for(sender)
    )

    assert response.status_code == 201
    assert len(connection.sent) == 1
    event = connection.sent[0]
    assert event["type"] == "new_message"
    assert event["senderId"] == sender.id
    assert event["content"] == "live"
    assert event["message"]["id"] == response.json()["id"]

@pytest.mark.asyncio
async def test_send_message_validation(test_db, create_user):
    sender = await create_user("sender")
    receiver = await create_user("receiver")
    service = MessageService(test_db)

    with pytest.raises(ValidationError):
        await service.send_message(sender.id, receiver.id, "   ")
    with pytest.raises(ValidationError):
        await service.send_message(sender.id, receiver.id, "hi", message_type="sticker")
    with pytest.raises(NotFoundError):
        await service.send_message(sender.id, "missing-user", "hi")

@pytest.mark.asyncio
async def test_conversations_and_unread_counts(test_client: AsyncClient, test_db, create_user, headers_for):
    me = await create_user("meuser")
    alice = await create_user("alice")
    bob = await create_user("bob")
    service = MessageService(test_db)

    await service.send_message(alice.id, me.id, "one")
    await service.send_message(me.id, alice.id, "two")
    await service.send_message(bob.id, me.id, "three")
    await service.send_message(bob.id, me.id, "four")

    conversations = await service.get_conversations(me.id)
    summary = [(c["user"]["username"], c["last_message"]["content"], c["unread_count"]) for c in conversations]
    assert summary == [("bob", "four", 2), ("alice", "two", 1)]

    response = await test_client.put(f"/api/messages/{bob.id}/read", headers=headers_for(me))
    assert response.json()["updated"] == 2

    response = await test_client.get("/api/messages/conversations", headers=headers_for(me))
    unread = {c["user"]["username"]: c["unread_count"] for c in response.json()}
    assert unread == {"bob": 0, "alice": 1}

@pytest.mark.asyncio
async def test_conversation_newest_first(test_client: AsyncClient, test_db, create_user, headers_for):
    me = await create_user("meuser")
    friend = await create_user("friend")
    service = MessageService(test_db)
    for content in ("a", "b", "c"):
        await service.send_message(me.id, friend.id, content)

    response = await test_client.get(f"/api/messages/{friend.id}", headers=headers_for(me))

    assert [m["content"] for m in response.json()] == ["c", "b", "a"]

@pytest.mark.asyncio
async def test_delete_message_sender_only(test_db, create_user):
    sender = await create_user("sender")
    receiver = await create_user("receiver")
    service = MessageService(test_db)
    message = await service.send_message(sender.id, receiver.id, "oops")

    with pytest.raises(ForbiddenError):
        await service.delete_message(message.id, receiver.id)

    await service.delete_message(message.id, sender.id)
    assert await service.get_conversation(sender.id, receiver.id) == []
