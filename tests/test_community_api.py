"""Community tests — shared chat room, forum, direct messages.

Learn: Tests cover:
1. Chat messages reach every client; staff messages are flagged
2. Forum ownership: authors edit their own content, staff edit anything,
   only staff pin or lock, locks bind non-staff only
3. Thread counters (replies, last activity, views) follow the posts table
4. Direct-message events reach the two parties and nobody else
"""

import pytest


# ═══════════════════════════════════════════════════════════
# Chat
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_chat_message_broadcast(customer_client, customer, other_customer, connect):
    me = connect(customer)
    other = connect(other_customer)
    anonymous = connect()

    r = await customer_client.post("/api/chat/messages", json={"message": "  hello  "})
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "hello"
    assert body["username"] == customer.username
    assert body["isAdminMessage"] is False

    for conn in (me, other, anonymous):
        assert conn.frames == [{"type": "chat_message", "data": body}]


@pytest.mark.asyncio
async def test_staff_chat_messages_are_flagged(moderator_client, customer_client):
    await customer_client.post("/api/chat/messages", json={"message": "first"})
    await moderator_client.post("/api/chat/messages", json={"message": "second"})

    messages = (await customer_client.get("/api/chat/messages")).json()
    assert [m["message"] for m in messages] == ["first", "second"]
    assert [m["isAdminMessage"] for m in messages] == [False, True]
    assert messages[1]["role"] == "moderator"


@pytest.mark.asyncio
@pytest.mark.parametrize("message", ["", "   "])
async def test_blank_chat_message_rejected(customer_client, connect, message):
    watcher = connect()
    r = await customer_client.post("/api/chat/messages", json={"message": message})
    assert r.status_code == 400
    assert watcher.frames == []


@pytest.mark.asyncio
async def test_chat_requires_session(client):
    assert (await client.get("/api/chat/messages")).status_code == 401


# ═══════════════════════════════════════════════════════════
# Forum
# ═══════════════════════════════════════════════════════════


async def _category(admin_client, **fields) -> dict:
    r = await admin_client.post("/api/admin/forum/categories", json={"name": "General", **fields})
    assert r.status_code == 201
    return r.json()


async def _thread(client, category: dict, title: str = "Help") -> dict:
    r = await client.post(
        "/api/forum/threads",
        json={"categoryId": category["id"], "title": title, "content": "Opening post"},
    )
    assert r.status_code == 201
    return r.json()


@pytest.mark.asyncio
async def test_forum_category_crud(admin_client, customer_client, connect):
    watcher = connect()
    c = await _category(admin_client, description="Anything goes")
    assert watcher.events("forum_category_created") == [c]

    r = await admin_client.patch(f"/api/admin/forum/categories/{c['id']}", json={"isLocked": True})
    assert r.json()["isLocked"] is True
    assert watcher.events("forum_category_updated") == [r.json()]

    listed = (await customer_client.get("/api/forum/categories")).json()
    assert [(x["name"], x["threadCount"]) for x in listed] == [("General", 0)]

    assert (await admin_client.delete(f"/api/admin/forum/categories/{c['id']}")).status_code == 204
    assert watcher.events("forum_category_deleted") == [{"id": c["id"]}]


@pytest.mark.asyncio
async def test_forum_categories_are_admin_managed(moderator_client, customer_client):
    assert (await customer_client.post("/api/admin/forum/categories", json={"name": "x"})).status_code == 403
    assert (await moderator_client.post("/api/admin/forum/categories", json={"name": "x"})).status_code == 403


@pytest.mark.asyncio
async def test_create_thread_with_opening_post(admin_client, customer_client, customer, connect):
    c = await _category(admin_client)
    watcher = connect()

    t = await _thread(customer_client, c)
    assert t["createdByUsername"] == customer.username
    assert t["replyCount"] == 0
    assert t["lastPostById"] == str(customer.id)
    assert watcher.frames == [{"type": "forum_thread_created", "data": t}]

    posts = (await customer_client.get(f"/api/forum/threads/{t['id']}/posts")).json()
    assert [p["content"] for p in posts] == ["Opening post"]

    listed = (await customer_client.get("/api/forum/categories")).json()
    assert listed[0]["threadCount"] == 1


@pytest.mark.asyncio
async def test_thread_view_counts_without_broadcast(admin_client, customer_client, connect):
    t = await _thread(customer_client, await _category(admin_client))
    watcher = connect()

    await customer_client.get(f"/api/forum/threads/{t['id']}")
    r = await customer_client.get(f"/api/forum/threads/{t['id']}")
    assert r.json()["viewCount"] == 2
    assert watcher.frames == []


@pytest.mark.asyncio
async def test_replies_update_thread_activity(admin_client, customer_client, other_client, other_customer, connect):
    t = await _thread(customer_client, await _category(admin_client))
    watcher = connect()

    r = await other_client.post(f"/api/forum/threads/{t['id']}/posts", json={"content": "Try rebooting"})
    assert r.status_code == 201
    reply = r.json()
    assert reply["threadId"] == t["id"]
    assert watcher.events("forum_post_created") == [reply]

    thread = (await customer_client.get(f"/api/forum/threads/{t['id']}")).json()
    assert thread["replyCount"] == 1
    assert thread["lastPostById"] == str(other_customer.id)

    r = await other_client.delete(f"/api/forum/posts/{reply['id']}")
    assert r.status_code == 204
    assert watcher.events("forum_post_deleted") == [{"id": reply["id"], "threadId": t["id"]}]
    thread = (await customer_client.get(f"/api/forum/threads/{t['id']}")).json()
    assert thread["replyCount"] == 0


@pytest.mark.asyncio
async def test_opening_post_cannot_be_deleted_alone(admin_client, customer_client):
    t = await _thread(customer_client, await _category(admin_client))
    opening = (await customer_client.get(f"/api/forum/threads/{t['id']}/posts")).json()[0]
    assert (await customer_client.delete(f"/api/forum/posts/{opening['id']}")).status_code == 400


@pytest.mark.asyncio
async def test_post_ownership(admin_client, customer_client, other_client, moderator_client, connect):
    t = await _thread(customer_client, await _category(admin_client))
    post = (await customer_client.post(f"/api/forum/threads/{t['id']}/posts", json={"content": "v1"})).json()
    watcher = connect()

    assert (await other_client.patch(f"/api/forum/posts/{post['id']}", json={"content": "hijack"})).status_code == 403
    assert (await other_client.delete(f"/api/forum/posts/{post['id']}")).status_code == 403

    r = await customer_client.patch(f"/api/forum/posts/{post['id']}", json={"content": "v2"})
    assert r.status_code == 200
    assert r.json()["isEdited"] is True
    assert r.json()["content"] == "v2"

    r = await moderator_client.patch(f"/api/forum/posts/{post['id']}", json={"content": "v3"})
    assert r.status_code == 200
    assert watcher.types() == ["forum_post_updated", "forum_post_updated"]


@pytest.mark.asyncio
async def test_only_staff_pin_and_lock(admin_client, customer_client, moderator_client, connect):
    c = await _category(admin_client)
    t = await _thread(customer_client, c)
    watcher = connect()

    assert (await customer_client.patch(f"/api/forum/threads/{t['id']}", json={"isPinned": True})).status_code == 403
    assert watcher.frames == []

    r = await customer_client.patch(f"/api/forum/threads/{t['id']}", json={"title": "Solved"})
    assert r.json()["title"] == "Solved"

    r = await moderator_client.patch(f"/api/forum/threads/{t['id']}", json={"isPinned": True, "isLocked": True})
    assert r.status_code == 200
    assert watcher.events("forum_thread_updated")[-1] == r.json()

    # Locked thread: customers can't reply, staff can
    assert (await customer_client.post(f"/api/forum/threads/{t['id']}/posts", json={"content": "x"})).status_code == 403
    assert (await moderator_client.post(f"/api/forum/threads/{t['id']}/posts", json={"content": "x"})).status_code == 201


@pytest.mark.asyncio
async def test_pinned_threads_listed_first(admin_client, customer_client):
    c = await _category(admin_client)
    older = await _thread(customer_client, c, "Older")
    newer = await _thread(customer_client, c, "Newer")

    listed = (await customer_client.get(f"/api/forum/threads?categoryId={c['id']}")).json()
    assert [x["id"] for x in listed] == [newer["id"], older["id"]]

    await admin_client.patch(f"/api/forum/threads/{older['id']}", json={"isPinned": True})
    listed = (await customer_client.get("/api/forum/threads")).json()
    assert [x["id"] for x in listed] == [older["id"], newer["id"]]


@pytest.mark.asyncio
async def test_locked_category_refuses_customer_threads(admin_client, customer_client, moderator_client):
    c = await _category(admin_client, isLocked=True)
    r = await customer_client.post(
        "/api/forum/threads", json={"categoryId": c["id"], "title": "Hi", "content": "x"}
    )
    assert r.status_code == 403
    await _thread(moderator_client, c)


@pytest.mark.asyncio
async def test_delete_thread(admin_client, customer_client, other_client, connect):
    c = await _category(admin_client)
    t = await _thread(customer_client, c)
    watcher = connect()

    assert (await other_client.delete(f"/api/forum/threads/{t['id']}")).status_code == 403
    assert (await customer_client.delete(f"/api/forum/threads/{t['id']}")).status_code == 204
    assert watcher.frames == [
        {"type": "forum_thread_deleted", "data": {"id": t["id"], "categoryId": c["id"]}}
    ]
    assert (await customer_client.get(f"/api/forum/threads/{t['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_deleting_category_removes_threads(admin_client, customer_client):
    c = await _category(admin_client)
    t = await _thread(customer_client, c)
    await admin_client.delete(f"/api/admin/forum/categories/{c['id']}")
    assert (await customer_client.get(f"/api/forum/threads/{t['id']}")).status_code == 404
    assert (await customer_client.get("/api/forum/threads")).json() == []


# ═══════════════════════════════════════════════════════════
# Direct messages
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_direct_message_reaches_only_the_two_parties(
    customer_client, customer, other_customer, admin, connect
):
    sender = connect(customer)
    recipient = connect(other_customer)
    bystander = connect(admin)
    anonymous = connect()

    r = await customer_client.post(
        "/api/messages", json={"toUserId": str(other_customer.id), "content": "psst"}
    )
    assert r.status_code == 201
    body = r.json()
    assert body["fromUserId"] == str(customer.id)
    assert body["isRead"] is False

    assert sender.events("direct_message_sent") == [body]
    assert recipient.events("direct_message_sent") == [body]
    assert bystander.frames == []
    assert anonymous.frames == []


@pytest.mark.asyncio
async def test_conversation_and_read_receipts(
    customer_client, other_client, customer, other_customer, connect
):
    await customer_client.post("/api/messages", json={"toUserId": str(other_customer.id), "content": "one"})
    await customer_client.post("/api/messages", json={"toUserId": str(other_customer.id), "content": "two"})
    await other_client.post("/api/messages", json={"toUserId": str(customer.id), "content": "three"})

    thread = (await other_client.get(f"/api/messages/{customer.id}")).json()
    assert [m["content"] for m in thread] == ["one", "two", "three"]

    assert (await other_client.get("/api/messages/unread/count")).json() == {"count": 2}
    convos = (await other_client.get("/api/messages/conversations")).json()
    assert len(convos) == 1
    assert convos[0]["userId"] == str(customer.id)
    assert convos[0]["username"] == customer.username
    assert convos[0]["lastMessage"] == "three"
    assert convos[0]["unreadCount"] == 2

    sender = connect(customer)
    r = await other_client.patch(f"/api/messages/{customer.id}/read")
    assert r.json() == {"userId": str(other_customer.id), "fromUserId": str(customer.id), "updated": 2}
    assert sender.events("direct_messages_read") == [r.json()]
    assert (await other_client.get("/api/messages/unread/count")).json() == {"count": 0}

    # Nothing left to mark: no event
    await other_client.patch(f"/api/messages/{customer.id}/read")
    assert len(sender.events("direct_messages_read")) == 1


@pytest.mark.asyncio
async def test_cannot_message_self_or_nobody(customer_client, customer):
    r = await customer_client.post("/api/messages", json={"toUserId": str(customer.id), "content": "hi"})
    assert r.status_code == 400
    r = await customer_client.post(
        "/api/messages", json={"toUserId": "00000000-0000-0000-0000-000000000000", "content": "hi"}
    )
    assert r.status_code == 404
