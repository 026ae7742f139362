import asyncio

import pytest
from bson import ObjectId

from wyzar_messaging.errors import ForbiddenError, NotFoundError, ValidationError
from wyzar_messaging.repositories.conversation_repository import ConversationRepository


async def test_get_or_create_twice_concurrently_yields_one_conversation(db, chat_service, alice, bob):
    first, second = await asyncio.gather(
        chat_service.get_or_create_conversation(alice, bob),
        chat_service.get_or_create_conversation(bob, alice),
    )
    assert first["_id"] == second["_id"]
    assert await db.conversations.count_documents({}) == 1


async def test_conversation_is_scoped_by_product(db, chat_service, alice, bob, product):
    general = await chat_service.get_or_create_conversation(alice, bob)
    about_product = await chat_service.get_or_create_conversation(bob, alice, product)
    again = await chat_service.get_or_create_conversation(alice, bob, product)
    assert general["_id"] != about_product["_id"]
    assert about_product["_id"] == again["_id"]
    assert about_product["product_id"] == product
    assert await db.conversations.count_documents({}) == 2


async def test_cannot_open_conversation_with_self(chat_service, alice):
    with pytest.raises(ValidationError):
        await chat_service.get_or_create_conversation(alice, alice)


async def test_hello_scenario(db, chat_service, alice, bob):
    message, conversation_id = await chat_service.send_message(alice, bob, "Hello")

    convo = await ConversationRepository(db).get_by_id(conversation_id)
    assert convo["unread_counts"][bob] == 1
    assert convo["last_message_preview"] == "Hello"
    assert convo["last_message_id"] == message["_id"]

    await chat_service.mark_read(conversation_id, bob)

    convo = await ConversationRepository(db).get_by_id(conversation_id)
    assert convo["unread_counts"][bob] == 0
    stored = await db.messages.find_one({"_id": ObjectId(message["_id"])})
    assert stored["is_read"] is True
    assert stored["read_at"] is not None


async def test_body_limits(chat_service, alice, bob):
    with pytest.raises(ValidationError):
        await chat_service.send_message(alice, bob, "")
    with pytest.raises(ValidationError):
        await chat_service.send_message(alice, bob, "   ")
    with pytest.raises(ValidationError):
        await chat_service.send_message(alice, bob, "x" * 2001)

    message, _ = await chat_service.send_message(alice, bob, "x" * 2000)
    assert len(message["body"]) == 2000


async def test_attachment_only_message_is_accepted(chat_service, alice, bob):
    message, _ = await chat_service.send_message(alice, bob, None, attachments=["https://ik.imagekit.io/wyzar/a.jpg"])
    assert message["body"] == ""
    assert message["attachments"] == ["https://ik.imagekit.io/wyzar/a.jpg"]


async def test_attachment_only_preview(db, chat_service, alice, bob):
    _, conversation_id = await chat_service.send_message(alice, bob, "", attachments=["https://x/1.jpg", "https://x/2.jpg"])
    convo = await ConversationRepository(db).get_by_id(conversation_id)
    assert convo["last_message_preview"] == "Sent 2 images"


async def test_too_many_attachments(chat_service, alice, bob):
    with pytest.raises(ValidationError):
        await chat_service.send_message(alice, bob, "pics", attachments=[f"https://x/{i}.jpg" for i in range(6)])


async def test_append_message_to_unknown_conversation(chat_service, alice, bob):
    with pytest.raises(NotFoundError):
        await chat_service.append_message(str(ObjectId()), alice, bob, "hi")
    with pytest.raises(NotFoundError):
        await chat_service.append_message("not-an-id", alice, bob, "hi")


async def test_append_message_requires_both_participants(chat_service, make_user, alice, bob):
    carol = await make_user("carol@example.co.zw")
    convo = await chat_service.get_or_create_conversation(alice, bob)
    with pytest.raises(ValidationError):
        await chat_service.append_message(convo["_id"], alice, carol, "hi")


async def test_append_message_rejects_self(chat_service, alice, bob):
    convo = await chat_service.get_or_create_conversation(alice, bob)
    with pytest.raises(ValidationError):
        await chat_service.append_message(convo["_id"], alice, alice, "hi")


async def test_unknown_receiver_and_product(chat_service, alice, bob, missing_id):
    with pytest.raises(NotFoundError):
        await chat_service.send_message(alice, missing_id, "hi")
    with pytest.raises(NotFoundError):
        await chat_service.send_message(alice, bob, "hi", product_id=missing_id)


async def test_blocked_sender_creates_no_message(db, chat_service, make_user, alice):
    bob = await make_user("blocker@example.co.zw", blocked_users=[alice])
    with pytest.raises(ForbiddenError):
        await chat_service.send_message(alice, bob, "let me in")
    assert await db.messages.count_documents({}) == 0
    assert await db.conversations.count_documents({}) == 0


async def test_sender_who_blocked_receiver_cannot_message(db, chat_service, make_user, bob):
    alice = await make_user("alice2@example.co.zw", blocked_users=[bob])
    with pytest.raises(ForbiddenError):
        await chat_service.send_message(alice, bob, "hi")
    assert await db.messages.count_documents({}) == 0


async def test_concurrent_sends_into_one_conversation_lose_no_updates(db, chat_service, alice, bob):
    convo = await chat_service.get_or_create_conversation(alice, bob)
    await asyncio.gather(*(chat_service.append_message(convo["_id"], alice, bob, f"msg {i}") for i in range(10)))
    stored = await ConversationRepository(db).get_by_id(convo["_id"])
    assert stored["unread_counts"][bob] == 10


async def test_concurrent_sends_from_many_senders(chat_service, make_user, bob):
    senders = [await make_user(f"buyer{i}@example.co.zw") for i in range(5)]
    await asyncio.gather(*(chat_service.send_message(s, bob, "is this available?") for s in senders))
    assert await chat_service.total_unread(bob) == 5


async def test_mark_read_is_idempotent(db, chat_service, alice, bob):
    _, conversation_id = await chat_service.send_message(alice, bob, "one")
    await chat_service.send_message(alice, bob, "two")

    assert await chat_service.mark_read(conversation_id, bob) == 2
    assert await chat_service.mark_read(conversation_id, bob) == 0
    convo = await ConversationRepository(db).get_by_id(conversation_id)
    assert convo["unread_counts"][bob] == 0


async def test_mark_read_only_touches_messages_for_reader(db, chat_service, alice, bob):
    _, conversation_id = await chat_service.send_message(alice, bob, "to bob")
    await chat_service.send_message(bob, alice, "to alice")
    await chat_service.mark_read(conversation_id, bob)
    assert await db.messages.count_documents({"receiver_id": alice, "is_read": False}) == 1


async def test_mark_read_access(chat_service, make_user, alice, bob, missing_id):
    carol = await make_user("carol@example.co.zw")
    _, conversation_id = await chat_service.send_message(alice, bob, "hi")
    with pytest.raises(ForbiddenError):
        await chat_service.mark_read(conversation_id, carol)
    with pytest.raises(NotFoundError):
        await chat_service.mark_read(missing_id, bob)


async def test_history_is_ordered_and_paginated(chat_service, alice, bob):
    conversation_id = None
    for i in range(7):
        sender, receiver = (alice, bob) if i % 2 == 0 else (bob, alice)
        _, conversation_id = await chat_service.send_message(sender, receiver, f"msg {i}")

    latest, cursor = await chat_service.get_history(conversation_id, alice, limit=4)
    assert [m["body"] for m in latest] == ["msg 3", "msg 4", "msg 5", "msg 6"]
    assert cursor is not None

    older, cursor = await chat_service.get_history(conversation_id, alice, limit=4, cursor=cursor)
    assert [m["body"] for m in older] == ["msg 0", "msg 1", "msg 2"]
    assert cursor is None

    everything = older + latest
    stamps = [m["created_at"] for m in everything]
    assert stamps == sorted(stamps)


async def test_history_with_bad_cursor(chat_service, alice, bob):
    _, conversation_id = await chat_service.send_message(alice, bob, "hi")
    with pytest.raises(ValidationError):
        await chat_service.get_history(conversation_id, alice, cursor="garbage")


async def test_list_conversations(chat_service, make_user, alice, bob, product):
    carol = await make_user("carol@example.co.zw")
    await chat_service.send_message(bob, alice, "about the panel", product_id=product)
    await chat_service.send_message(carol, alice, "hi alice")

    items, _ = await chat_service.list_conversations(alice)

    assert [c["other_user"]["_id"] for c in items] == [carol, bob]
    assert items[0]["product"] is None
    assert items[1]["product"]["name"] == "Solar Panel 200W"
    assert items[1]["other_user"]["seller_details"] == {"business_name": "Bob's Electronics"}
    assert all(c["unread_count"] == 1 for c in items)
    assert "blocked_users" not in items[0]["other_user"]


async def test_search_messages(chat_service, make_user, alice, bob):
    carol = await make_user("carol@example.co.zw")
    await chat_service.send_message(alice, bob, "Is the SOLAR panel available?")
    await chat_service.send_message(bob, alice, "Yes, solar panels in stock")
    await chat_service.send_message(bob, carol, "solar for carol")

    hits = await chat_service.search_messages(alice, "solar")
    assert len(hits) == 2
    assert hits[0]["body"] == "Yes, solar panels in stock"

    assert await chat_service.search_messages(alice, "a.b") == []
    with pytest.raises(ValidationError):
        await chat_service.search_messages(alice, " s ")


def test_templates(chat_service):
    titles = [t["title"] for t in chat_service.get_templates()]
    assert titles[0] == "Greeting"
    assert "Payment" in titles
