"""Content tests — FAQ, announcements and notifications, tags, collections, favorites.

Learn: Tests cover:
1. Each admin mutation emits exactly one event whose payload is the response body
2. Unique names (FAQ products, tags) fail with 409 and emit nothing
3. Deleting an FAQ product removes its items and emits a single event
4. Announcements land in every active user's inbox before the events go out
5. Collections and favorites never show files the caller's role can't see
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from akcent.db.models import AuditLog, DownloadFile, FaqItem, FileFavorite, Notification
from akcent.services.file_service import FileService


async def _count(session_factory, model, *where) -> int:
    async with session_factory() as session:
        q = select(func.count()).select_from(model)
        for clause in where:
            q = q.where(clause)
        return await session.scalar(q)


# ═══════════════════════════════════════════════════════════
# FAQ
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_faq_product(admin_client, customer_client, customer, connect, session_factory):
    watcher = connect(customer)
    r = await admin_client.post(
        "/api/admin/faq/products", json={"name": "Loader", "description": "Launcher", "displayOrder": 2}
    )
    assert r.status_code == 201
    body = r.json()
    assert body["displayOrder"] == 2
    assert watcher.frames == [{"type": "faq_product_created", "data": body}]

    listed = (await customer_client.get("/api/faq/products")).json()
    assert [p["name"] for p in listed] == ["Loader"]

    async with session_factory() as session:
        log = (await session.execute(select(AuditLog))).scalars().one()
    assert (log.action, log.entity_type, log.entity_id) == ("CREATE", "faq_product", body["id"])


@pytest.mark.asyncio
async def test_faq_products_ordered_by_display_order_then_name(admin_client, customer_client):
    for name, order in [("Zeta", 0), ("Alpha", 1), ("Beta", 0)]:
        await admin_client.post("/api/admin/faq/products", json={"name": name, "displayOrder": order})
    listed = (await customer_client.get("/api/faq/products")).json()
    assert [p["name"] for p in listed] == ["Beta", "Zeta", "Alpha"]


@pytest.mark.asyncio
async def test_duplicate_faq_product_name(admin_client, connect):
    await admin_client.post("/api/admin/faq/products", json={"name": "Loader"})
    watcher = connect()

    r = await admin_client.post("/api/admin/faq/products", json={"name": "Loader"})
    assert r.status_code == 409
    assert watcher.frames == []


@pytest.mark.asyncio
async def test_rename_faq_product_onto_existing_name(admin_client, connect):
    await admin_client.post("/api/admin/faq/products", json={"name": "Loader"})
    other = (await admin_client.post("/api/admin/faq/products", json={"name": "Spoofer"})).json()
    watcher = connect()

    r = await admin_client.patch(f"/api/admin/faq/products/{other['id']}", json={"name": "Loader"})
    assert r.status_code == 409
    assert watcher.frames == []

    r = await admin_client.patch(f"/api/admin/faq/products/{other['id']}", json={"description": "HWID"})
    assert r.status_code == 200
    assert watcher.events("faq_product_updated") == [r.json()]


@pytest.mark.asyncio
async def test_faq_items(admin_client, customer_client, connect):
    product = (await admin_client.post("/api/admin/faq/products", json={"name": "Loader"})).json()
    watcher = connect()

    r = await admin_client.post(
        "/api/admin/faq/items",
        json={"productId": product["id"], "issue": "Crashes on start", "solutions": [" Run as admin ", ""]},
    )
    assert r.status_code == 201
    item = r.json()
    assert item["solutions"] == ["Run as admin"]
    assert watcher.events("faq_item_created") == [item]

    listed = (await customer_client.get(f"/api/faq/items/{product['id']}")).json()
    assert [i["id"] for i in listed] == [item["id"]]

    r = await admin_client.patch(f"/api/admin/faq/items/{item['id']}", json={"issue": "Crashes"})
    assert r.json()["issue"] == "Crashes"
    assert watcher.events("faq_item_updated") == [r.json()]

    r = await admin_client.delete(f"/api/admin/faq/items/{item['id']}")
    assert r.status_code == 204
    assert watcher.events("faq_item_deleted") == [{"id": item["id"], "productId": product["id"]}]


@pytest.mark.asyncio
@pytest.mark.parametrize("solutions", [[], ["   "]])
async def test_faq_item_needs_a_solution(admin_client, solutions):
    product = (await admin_client.post("/api/admin/faq/products", json={"name": "Loader"})).json()
    r = await admin_client.post(
        "/api/admin/faq/items",
        json={"productId": product["id"], "issue": "Crash", "solutions": solutions},
    )
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "solutions"


@pytest.mark.asyncio
async def test_faq_item_for_unknown_product(admin_client):
    r = await admin_client.post(
        "/api/admin/faq/items",
        json={"productId": "00000000-0000-0000-0000-000000000000", "issue": "x", "solutions": ["y"]},
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_delete_faq_product_cascades_with_one_event(admin_client, connect, session_factory):
    product = (await admin_client.post("/api/admin/faq/products", json={"name": "Loader"})).json()
    for n in range(3):
        await admin_client.post(
            "/api/admin/faq/items",
            json={"productId": product["id"], "issue": f"Issue {n}", "solutions": ["Reboot"]},
        )
    assert await _count(session_factory, FaqItem) == 3
    watcher = connect()

    r = await admin_client.delete(f"/api/admin/faq/products/{product['id']}")
    assert r.status_code == 204
    assert watcher.frames == [{"type": "faq_product_deleted", "data": {"id": product["id"]}}]
    assert await _count(session_factory, FaqItem) == 0


@pytest.mark.asyncio
async def test_faq_management_is_admin_only(moderator_client, customer_client):
    assert (await moderator_client.post("/api/admin/faq/products", json={"name": "X"})).status_code == 403
    assert (await customer_client.post("/api/admin/faq/products", json={"name": "X"})).status_code == 403


# ═══════════════════════════════════════════════════════════
# Announcements and notifications
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_announcement_notifies_every_active_user(
    admin_client, customer_client, admin, customer, make_user, connect, session_factory
):
    inactive = await make_user("gone", is_active=False)
    watcher = connect(customer)

    r = await admin_client.post(
        "/api/admin/announcements",
        json={"title": "Maintenance", "content": "Down at 02:00", "priority": "high"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["priority"] == "high"
    assert body["createdById"] == str(admin.id)

    assert watcher.types() == ["announcement_created", "new_notification"]
    assert watcher.events("announcement_created") == [body]
    fanout = watcher.events("new_notification")[0]
    assert fanout["type"] == "announcement"
    assert fanout["relatedEntityId"] == body["id"]
    assert sorted(fanout["userIds"]) == sorted([str(admin.id), str(customer.id)])
    assert str(inactive.id) not in fanout["userIds"]

    inbox = (await customer_client.get("/api/notifications")).json()
    assert len(inbox) == 1
    assert inbox[0]["relatedEntityId"] == body["id"]
    assert inbox[0]["isRead"] is False
    assert await _count(session_factory, Notification) == 2


@pytest.mark.asyncio
async def test_announcement_validation(admin_client, connect):
    watcher = connect()
    r = await admin_client.post(
        "/api/admin/announcements", json={"title": "", "content": "", "priority": "panic"}
    )
    assert r.status_code == 400
    assert sorted(e["field"] for e in r.json()["errors"]) == ["content", "priority", "title"]
    assert watcher.frames == []


@pytest.mark.asyncio
async def test_inactive_announcements_hidden_from_public_list(admin_client, customer_client, connect):
    a = (await admin_client.post("/api/admin/announcements", json={"title": "Hi", "content": "x"})).json()
    watcher = connect()

    r = await admin_client.patch(f"/api/admin/announcements/{a['id']}", json={"isActive": False})
    assert r.status_code == 200
    assert watcher.events("announcement_updated") == [r.json()]

    assert (await customer_client.get("/api/announcements")).json() == []
    assert (await admin_client.get("/api/admin/announcements")).json() == []
    everything = (await admin_client.get("/api/admin/announcements?includeInactive=true")).json()
    assert [x["id"] for x in everything] == [a["id"]]


@pytest.mark.asyncio
async def test_delete_announcement(admin_client, connect):
    a = (await admin_client.post("/api/admin/announcements", json={"title": "Hi", "content": "x"})).json()
    watcher = connect()
    assert (await admin_client.delete(f"/api/admin/announcements/{a['id']}")).status_code == 204
    assert watcher.frames == [{"type": "announcement_deleted", "data": {"id": a["id"]}}]
    assert (await admin_client.delete(f"/api/admin/announcements/{a['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_announcement_triggers_webhook(admin_client, webhooks):
    await admin_client.post(
        "/api/admin/webhooks",
        json={
            "name": "ops",
            "type": "slack",
            "webhookUrl": "https://hooks.slack.com/services/T/B/x",
            "events": ["announcement"],
        },
    )
    await admin_client.post("/api/admin/announcements", json={"title": "Patch", "content": "v2 is out"})
    assert webhooks.payloads() == [{"text": "*Patch*\nv2 is out"}]


@pytest.mark.asyncio
async def test_mark_notification_read(admin_client, customer_client, other_client, customer, connect):
    await admin_client.post("/api/admin/announcements", json={"title": "Hi", "content": "x"})
    note = (await customer_client.get("/api/notifications")).json()[0]
    me = connect(customer)

    # Someone else's notification looks like it doesn't exist
    assert (await other_client.patch(f"/api/notifications/{note['id']}/read")).status_code == 404

    r = await customer_client.patch(f"/api/notifications/{note['id']}/read")
    assert r.status_code == 200
    assert r.json()["isRead"] is True
    assert me.events("notification_read") == [{"id": note["id"], "userId": str(customer.id)}]
    assert (await customer_client.get("/api/notifications/unread-count")).json() == {"count": 0}


@pytest.mark.asyncio
async def test_mark_all_notifications_read(admin_client, customer_client, other_customer, customer, connect):
    await admin_client.post("/api/admin/announcements", json={"title": "One", "content": "x"})
    await admin_client.post("/api/admin/announcements", json={"title": "Two", "content": "y"})
    assert (await customer_client.get("/api/notifications/unread-count")).json() == {"count": 2}
    me = connect(customer)
    other = connect(other_customer)

    r = await customer_client.post("/api/notifications/read-all")
    assert r.json() == {"count": 2}
    assert me.events("notifications_read_all") == [{"userId": str(customer.id)}]
    assert other.frames == []
    assert (await customer_client.get("/api/notifications/unread-count")).json() == {"count": 0}


# ═══════════════════════════════════════════════════════════
# Tags
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_tag_lifecycle(admin_client, customer_client, connect):
    watcher = connect()

    r = await admin_client.post("/api/admin/tags", json={"name": "stable", "color": "#22c55e"})
    assert r.status_code == 201
    tag = r.json()
    assert watcher.events("tag_created") == [tag]
    assert [t["name"] for t in (await customer_client.get("/api/tags")).json()] == ["stable"]

    r = await admin_client.patch(f"/api/admin/tags/{tag['id']}", json={"color": "#000000"})
    assert r.json()["color"] == "#000000"
    assert watcher.events("tag_updated") == [r.json()]

    assert (await admin_client.delete(f"/api/admin/tags/{tag['id']}")).status_code == 204
    assert watcher.events("tag_deleted") == [{"id": tag["id"]}]
    assert (await customer_client.get("/api/tags")).json() == []


@pytest.mark.asyncio
async def test_duplicate_tag_name(admin_client, connect):
    await admin_client.post("/api/admin/tags", json={"name": "beta"})
    watcher = connect()
    r = await admin_client.post("/api/admin/tags", json={"name": "beta"})
    assert r.status_code == 409
    assert watcher.frames == []


@pytest.mark.asyncio
async def test_tag_color_must_be_hex(admin_client):
    r = await admin_client.post("/api/admin/tags", json={"name": "beta", "color": "green"})
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "color"


@pytest.mark.asyncio
async def test_attach_and_detach_tag(admin_client, customer_client, upload, connect):
    f = (await upload(admin_client)).json()
    tag = (await admin_client.post("/api/admin/tags", json={"name": "beta"})).json()
    watcher = connect()
    link = {"fileId": f["id"], "tagId": tag["id"]}

    r = await admin_client.post(f"/api/admin/files/{f['id']}/tags/{tag['id']}")
    assert r.status_code == 201
    assert r.json() == link
    assert (await admin_client.post(f"/api/admin/files/{f['id']}/tags/{tag['id']}")).status_code == 200
    assert watcher.events("file_tag_added") == [link]

    file_tags = (await customer_client.get(f"/api/files/{f['id']}/tags")).json()
    assert [t["id"] for t in file_tags] == [tag["id"]]

    assert (await admin_client.delete(f"/api/admin/files/{f['id']}/tags/{tag['id']}")).status_code == 204
    assert (await admin_client.delete(f"/api/admin/files/{f['id']}/tags/{tag['id']}")).status_code == 204
    assert watcher.events("file_tag_removed") == [link]
    assert (await customer_client.get(f"/api/files/{f['id']}/tags")).json() == []


@pytest.mark.asyncio
async def test_deleting_tag_detaches_it(admin_client, customer_client, upload):
    f = (await upload(admin_client)).json()
    tag = (await admin_client.post("/api/admin/tags", json={"name": "beta"})).json()
    await admin_client.post(f"/api/admin/files/{f['id']}/tags/{tag['id']}")
    await admin_client.delete(f"/api/admin/tags/{tag['id']}")
    assert (await customer_client.get(f"/api/files/{f['id']}/tags")).json() == []


# ═══════════════════════════════════════════════════════════
# Collections
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_collection_lifecycle(admin_client, customer_client, admin, upload, connect):
    f = (await upload(admin_client)).json()
    watcher = connect()

    r = await admin_client.post("/api/admin/collections", json={"name": "Starter pack"})
    assert r.status_code == 201
    c = r.json()
    assert watcher.events("collection_created") == [c]

    r = await admin_client.post(
        f"/api/admin/collections/{c['id']}/files/{f['id']}", json={"displayOrder": 3}
    )
    assert r.status_code == 201
    assert r.json() == {"collectionId": c["id"], "fileId": f["id"], "displayOrder": 3}
    assert watcher.events("collection_file_added") == [r.json()]

    # Re-adding is a no-op
    r = await admin_client.post(f"/api/admin/collections/{c['id']}/files/{f['id']}")
    assert r.status_code == 200
    assert r.json()["displayOrder"] == 3
    assert len(watcher.events("collection_file_added")) == 1

    summary = (await customer_client.get("/api/collections")).json()
    assert summary[0]["fileCount"] == 1
    assert summary[0]["createdByUsername"] == admin.username

    r = await admin_client.patch(f"/api/admin/collections/{c['id']}", json={"description": "Basics"})
    assert r.json()["description"] == "Basics"
    assert watcher.events("collection_updated") == [r.json()]

    assert (await admin_client.delete(f"/api/admin/collections/{c['id']}/files/{f['id']}")).status_code == 204
    assert watcher.events("collection_file_removed") == [{"collectionId": c["id"], "fileId": f["id"]}]

    assert (await admin_client.delete(f"/api/admin/collections/{c['id']}")).status_code == 204
    assert watcher.events("collection_deleted") == [{"id": c["id"]}]
    assert (await customer_client.get(f"/api/collections/{c['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_collection_files_respect_roles_and_order(
    admin_client, customer_client, moderator_client, upload
):
    c = (await admin_client.post("/api/admin/collections", json={"name": "Pack"})).json()
    second = (await upload(admin_client, name="Second", allowed_roles=["customer"])).json()
    first = (await upload(admin_client, name="First", allowed_roles=["customer"])).json()
    staff_only = (await upload(admin_client, name="Staff", allowed_roles=["admin"])).json()
    for f, order in [(second, 2), (first, 1), (staff_only, 0)]:
        await admin_client.post(
            f"/api/admin/collections/{c['id']}/files/{f['id']}", json={"displayOrder": order}
        )

    seen = (await customer_client.get(f"/api/collections/{c['id']}/files")).json()
    assert [f["name"] for f in seen] == ["First", "Second"]

    staff_view = (await moderator_client.get(f"/api/collections/{c['id']}/files")).json()
    assert [f["name"] for f in staff_view] == ["Staff", "First", "Second"]


@pytest.mark.asyncio
async def test_collection_management_is_admin_only(customer_client, moderator_client):
    assert (await customer_client.post("/api/admin/collections", json={"name": "x"})).status_code == 403
    assert (await moderator_client.post("/api/admin/collections", json={"name": "x"})).status_code == 403


# ═══════════════════════════════════════════════════════════
# Favorites
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_favorites_are_idempotent_and_private(
    admin_client, customer_client, upload, customer, other_customer, connect
):
    f = (await upload(admin_client, allowed_roles=["customer"])).json()
    me = connect(customer)
    other = connect(other_customer)

    assert (await customer_client.post(f"/api/favorites/{f['id']}")).status_code == 201
    assert (await customer_client.post(f"/api/favorites/{f['id']}")).status_code == 200
    assert me.events("favorite_added") == [{"fileId": f["id"], "userId": str(customer.id)}]
    assert other.frames == []

    assert (await customer_client.get(f"/api/favorites/check/{f['id']}")).json() == {"isFavorite": True}
    favs = (await customer_client.get("/api/favorites")).json()
    assert [x["id"] for x in favs] == [f["id"]]
    assert "favoritedAt" in favs[0]

    assert (await customer_client.delete(f"/api/favorites/{f['id']}")).status_code == 204
    assert (await customer_client.delete(f"/api/favorites/{f['id']}")).status_code == 204
    assert me.events("favorite_removed") == [{"fileId": f["id"], "userId": str(customer.id)}]
    assert (await customer_client.get(f"/api/favorites/check/{f['id']}")).json() == {"isFavorite": False}


@pytest.mark.asyncio
async def test_cannot_favorite_hidden_file(admin_client, customer_client, upload):
    f = (await upload(admin_client, allowed_roles=["admin"])).json()
    assert (await customer_client.post(f"/api/favorites/{f['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_favorite_disappears_when_access_is_revoked(admin_client, customer_client, upload):
    f = (await upload(admin_client, allowed_roles=["customer"])).json()
    await customer_client.post(f"/api/favorites/{f['id']}")
    await admin_client.patch(f"/api/admin/files/{f['id']}", json={"allowedRoles": ["admin"]})
    assert (await customer_client.get("/api/favorites")).json() == []


@pytest.mark.asyncio
async def test_cannot_favorite_archived_or_expired_file(
    admin_client, customer_client, upload, session_factory, connect, customer
):
    archived = (await upload(admin_client, name="Old", allowed_roles=["customer"])).json()
    await admin_client.patch(f"/api/admin/files/{archived['id']}", json={"isArchived": True})
    expired = (await upload(admin_client, name="Trial", allowed_roles=["customer"])).json()
    async with session_factory() as session:
        await session.execute(
            update(DownloadFile)
            .where(DownloadFile.id == uuid.UUID(expired["id"]))
            .values(expires_at=datetime.now(timezone.utc) - timedelta(days=1))
        )
        await session.commit()
    me = connect(customer)

    for f in (archived, expired):
        assert (await customer_client.post(f"/api/favorites/{f['id']}")).status_code == 404
    assert me.frames == []
    assert await _count(session_factory, FileFavorite) == 0


@pytest.mark.asyncio
async def test_concurrent_favorite_reports_existing(
    monkeypatch, admin_client, upload, session_factory, customer
):
    f = (await upload(admin_client, allowed_roles=["customer"])).json()
    file_id = uuid.UUID(f["id"])
    async with session_factory() as session:
        session.add(FileFavorite(user_id=customer.id, file_id=file_id))
        await session.commit()

    # The other request's insert lands between our check and our commit
    async def stale_check(self, user_id, file_id):
        return False

    monkeypatch.setattr(FileService, "is_favorite", stale_check)
    async with session_factory() as session:
        assert await FileService(session).add_favorite(customer, file_id) is False

    assert await _count(session_factory, FileFavorite) == 1
