"""Auth tests — invite-code registration, login, session cookie, logout.

Learn: Tests cover:
1. Registration consumes an invite code exactly once
2. Duplicate usernames and bad codes are refused without side effects
3. Login sets the session cookie and records the client IP
4. Inactive accounts can neither log in nor use an existing session
"""

import pytest
from sqlalchemy import func, select

from akcent.config import settings
from akcent.db.models import InviteCode, User


async def _invite(session_factory, code: str = "welcome-code", role: str = "customer"):
    async with session_factory() as session:
        invite = InviteCode(code=code, role=role)
        session.add(invite)
        await session.commit()
        return invite


async def _user_count(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(User))


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_with_invite_code(client, session_factory, admin, customer, connect):
    """The new account takes the code's role and gets a session cookie."""
    await _invite(session_factory, role="moderator")
    staff = connect(admin)
    bystander = connect(customer)

    r = await client.post(
        "/api/register",
        json={"username": "newbie", "password": "hunter22", "inviteCode": "welcome-code"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["username"] == "newbie"
    assert body["role"] == "moderator"
    assert "passwordHash" not in body and "password" not in body
    assert settings.session_cookie_name in r.cookies

    assert staff.events("user_created") == [body]
    assert bystander.events("user_created") == []

    async with session_factory() as session:
        code = (await session.execute(select(InviteCode))).scalars().one()
        assert code.is_used is True
        assert str(code.used_by_id) == body["id"]


@pytest.mark.asyncio
async def test_invite_code_consumed_exactly_once(client, session_factory):
    await _invite(session_factory)
    r1 = await client.post(
        "/api/register",
        json={"username": "first", "password": "hunter22", "inviteCode": "welcome-code"},
    )
    assert r1.status_code == 201

    r2 = await client.post(
        "/api/register",
        json={"username": "second", "password": "hunter22", "inviteCode": "welcome-code"},
    )
    assert r2.status_code == 400
    assert await _user_count(session_factory) == 1


@pytest.mark.asyncio
async def test_register_unknown_code(client, session_factory):
    r = await client.post(
        "/api/register",
        json={"username": "nobody", "password": "hunter22", "inviteCode": "made-up"},
    )
    assert r.status_code == 400
    assert await _user_count(session_factory) == 0


@pytest.mark.asyncio
async def test_register_duplicate_username_keeps_code(client, session_factory, customer, connect):
    """A taken username fails with 409, leaves the code unused and emits nothing."""
    await _invite(session_factory)
    watcher = connect()

    r = await client.post(
        "/api/register",
        json={"username": customer.username, "password": "hunter22", "inviteCode": "welcome-code"},
    )
    assert r.status_code == 409
    assert watcher.frames == []

    async with session_factory() as session:
        code = (await session.execute(select(InviteCode))).scalars().one()
        assert code.is_used is False


@pytest.mark.asyncio
async def test_register_validation_lists_every_field(client):
    r = await client.post("/api/register", json={"username": "x", "password": "abc"})
    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert {"username", "password", "inviteCode"} <= fields


# ═══════════════════════════════════════════════════════════
# Login / logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_sets_cookie_and_records_ip(client, admin_client, customer):
    r = await client.post(
        "/api/login",
        json={"username": customer.username, "password": "secret-pw"},
        headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )
    assert r.status_code == 200
    assert r.json()["lastLoginAt"] is not None
    assert settings.session_cookie_name in r.cookies

    users = (await admin_client.get("/api/admin/users")).json()
    me = next(u for u in users if u["username"] == customer.username)
    assert me["lastIpAddress"] == "203.0.113.9"


@pytest.mark.asyncio
async def test_session_cookie_authenticates(client, customer):
    await client.post(
        "/api/login", json={"username": customer.username, "password": "secret-pw"}
    )
    r = await client.get("/api/user")
    assert r.status_code == 200
    assert r.json()["username"] == customer.username


@pytest.mark.asyncio
async def test_login_wrong_password(client, customer):
    r = await client.post(
        "/api/login", json={"username": customer.username, "password": "nope-nope"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_inactive_account(client, make_user):
    await make_user("sleeper", is_active=False)
    r = await client.post("/api/login", json={"username": "sleeper", "password": "secret-pw"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Account is inactive"


@pytest.mark.asyncio
async def test_user_requires_session(client):
    r = await client.get("/api/user")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_user_with_bearer_token(customer_client, customer):
    r = await customer_client.get("/api/user")
    assert r.status_code == 200
    assert r.json()["id"] == str(customer.id)


@pytest.mark.asyncio
async def test_garbage_token_is_anonymous(client):
    r = await client.get("/api/user", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_logout_clears_cookie(client, customer):
    await client.post(
        "/api/login", json={"username": customer.username, "password": "secret-pw"}
    )
    r = await client.post("/api/logout")
    assert r.status_code == 204
    assert settings.session_cookie_name in r.headers.get("set-cookie", "")
    assert (await client.get("/api/user")).status_code == 401
