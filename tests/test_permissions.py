"""Permission table tests.

Learn: Role checks in handlers and services go through has_permission(),
so editing one PERMISSIONS entry is enough to move an ability between
roles. These tests narrow or widen entries and watch the behaviour follow.
"""

import re
from pathlib import Path

import pytest

import akcent
from akcent.auth.permissions import (
    ADMIN_ONLY,
    ALL_ROLES,
    PERMISSIONS,
    STAFF_ROLES,
    has_permission,
)

_SOURCE = Path(akcent.__file__).parent
_NAMED = re.compile(r"""(?:require|has_permission)\([^)]*?"([a-z_]+\.[a-z_]+)"\)""")


def _named_permissions() -> set[str]:
    names = set()
    for path in _SOURCE.rglob("*.py"):
        names.update(_NAMED.findall(path.read_text()))
    return names


# ═══════════════════════════════════════════════════════════
# The table
# ═══════════════════════════════════════════════════════════


def test_every_named_permission_is_in_the_table():
    assert _named_permissions() - set(PERMISSIONS) == set()


def test_every_table_entry_is_checked_somewhere():
    assert set(PERMISSIONS) - _named_permissions() == set()


def test_unknown_permission_denies():
    assert not has_permission("admin", "nuclear.launch")


@pytest.mark.parametrize(
    "role, allowed",
    [("admin", True), ("moderator", False), ("customer", False)],
)
def test_user_count_is_admin_only(role, allowed):
    assert has_permission(role, "users.count") is allowed


# ═══════════════════════════════════════════════════════════
# Behaviour follows the table
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_moderator_stats_omit_user_count(moderator_client, admin_client):
    assert "totalUsers" not in (await moderator_client.get("/api/stats")).json()
    assert "totalUsers" in (await admin_client.get("/api/stats")).json()


@pytest.mark.asyncio
async def test_widening_user_count_reaches_customers(monkeypatch, customer_client):
    monkeypatch.setitem(PERMISSIONS, "users.count", ALL_ROLES)
    assert "totalUsers" in (await customer_client.get("/api/stats")).json()


@pytest.mark.asyncio
async def test_narrowing_forum_moderation_locks_out_moderators(
    monkeypatch, admin_client, customer_client, moderator_client
):
    c = (await admin_client.post("/api/admin/forum/categories", json={"name": "General"})).json()
    t = (
        await customer_client.post(
            "/api/forum/threads",
            json={"categoryId": c["id"], "title": "Help", "content": "Opening post"},
        )
    ).json()

    monkeypatch.setitem(PERMISSIONS, "forum.moderate", ADMIN_ONLY)
    r = await moderator_client.patch(f"/api/forum/threads/{t['id']}", json={"isPinned": True})
    assert r.status_code == 403
    r = await admin_client.patch(f"/api/forum/threads/{t['id']}", json={"isPinned": True})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_chat_flag_follows_the_table(monkeypatch, moderator_client, admin_client):
    monkeypatch.setitem(PERMISSIONS, "chat.moderate", ADMIN_ONLY)
    await moderator_client.post("/api/chat/messages", json={"message": "mod"})
    await admin_client.post("/api/chat/messages", json={"message": "admin"})

    messages = (await admin_client.get("/api/chat/messages")).json()
    assert [m["isAdminMessage"] for m in messages] == [False, True]


def test_staff_roles_hold_moderation():
    assert PERMISSIONS["forum.moderate"] == STAFF_ROLES
    assert PERMISSIONS["chat.moderate"] == STAFF_ROLES
