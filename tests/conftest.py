"""Test fixtures — a fresh in-memory database and app instance per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI + aiosqlite:

1. Each test gets its own in-memory SQLite engine. StaticPool keeps the
   single connection alive, so every session sees the same database.
2. The app's get_db is overridden with sessions from that engine; routes
   commit for real and tests read the results back with a new session.
3. create_app() is called per test, so the push-channel registry, blob
   store and webhook notifier start empty every time.

Authentication uses real session tokens sent as Bearer headers, so the
whole auth pipeline runs in every request. Push-channel assertions go
through FakeConnection objects registered straight into the registry.
"""

import json
import os
import tempfile

os.environ.setdefault("AKCENT_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AKCENT_BCRYPT_ROUNDS", "4")
os.environ.setdefault("AKCENT_REDIS_URL", "redis://127.0.0.1:1/0")
os.environ.setdefault("AKCENT_UPLOAD_DIR", tempfile.mkdtemp(prefix="akcent-uploads-"))
os.environ["AKCENT_ENVIRONMENT"] = "development"

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from akcent.auth.password import hash_password  # noqa: E402
from akcent.auth.session import create_session_token  # noqa: E402
from akcent.db.engine import build_engine, create_tables, get_db  # noqa: E402
from akcent.db.models import User  # noqa: E402
from akcent.main import create_app  # noqa: E402
from akcent.services.webhook_service import WebhookNotifier  # noqa: E402
from akcent.storage.blob import BlobStore  # noqa: E402

BASE_URL = "http://akcent.test"
PASSWORD = "secret-pw"
MAX_UPLOAD_BYTES = 64 * 1024


# ═══════════════════════════════════════════════════════════
# Test doubles
# ═══════════════════════════════════════════════════════════


class FakeConnection:
    """Stands in for a websocket in the registry and records every frame."""

    def __init__(self, user_id=None, role=None, fail: bool = False):
        self.user_id = str(user_id) if user_id is not None else None
        self.role = role
        self.is_open = True
        self.fail = fail
        self.frames: list[dict] = []
        self.close_code = None

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.frames.append(json.loads(text))

    async def close(self, code: int, reason: str = "") -> None:
        self.is_open = False
        self.close_code = code

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]

    def events(self, event_type: str) -> list:
        """Payloads of every received event of one type."""
        return [f["data"] for f in self.frames if f["type"] == event_type]


class WebhookRecorder:
    """httpx.MockTransport handler that records outgoing webhook posts."""

    def __init__(self):
        self.status_code = 204
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


# ═══════════════════════════════════════════════════════════
# Database
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def engine():
    eng = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(eng)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_user(session_factory, username: str, role: str, **fields) -> User:
    async with session_factory() as session:
        user = User(
            username=username,
            password_hash=hash_password(PASSWORD),
            role=role,
            **fields,
        )
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture()
async def admin(session_factory):
    return await create_user(session_factory, "root", "admin")


@pytest_asyncio.fixture()
async def moderator(session_factory):
    return await create_user(session_factory, "mod", "moderator")


@pytest_asyncio.fixture()
async def customer(session_factory):
    return await create_user(session_factory, "buyer", "customer")


@pytest_asyncio.fixture()
async def other_customer(session_factory):
    return await create_user(session_factory, "buyer2", "customer")


# ═══════════════════════════════════════════════════════════
# App and clients
# ═══════════════════════════════════════════════════════════


@pytest.fixture()
def webhooks():
    return WebhookRecorder()


@pytest_asyncio.fixture()
async def app(session_factory, webhooks, tmp_path):
    application = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    application.state.blob_store = BlobStore(tmp_path / "uploads", MAX_UPLOAD_BYTES)
    application.state.blob_store.ensure_root()
    application.state.notifier = WebhookNotifier(
        timeout=5.0, transport=httpx.MockTransport(webhooks)
    )
    yield application
    application.dependency_overrides.clear()


def _client(app, user=None, **kwargs) -> AsyncClient:
    headers = {}
    if user is not None:
        token = create_session_token(str(user.id), user.role)
        headers["Authorization"] = f"Bearer {token}"
    return AsyncClient(
        transport=ASGITransport(app=app, **kwargs), base_url=BASE_URL, headers=headers
    )


@pytest_asyncio.fixture()
async def client(app):
    """Anonymous client."""
    async with _client(app) as ac:
        yield ac


@pytest_asyncio.fixture()
async def admin_client(app, admin):
    async with _client(app, admin) as ac:
        yield ac


@pytest_asyncio.fixture()
async def moderator_client(app, moderator):
    async with _client(app, moderator) as ac:
        yield ac


@pytest_asyncio.fixture()
async def customer_client(app, customer):
    async with _client(app, customer) as ac:
        yield ac


@pytest_asyncio.fixture()
async def other_client(app, other_customer):
    async with _client(app, other_customer) as ac:
        yield ac


@pytest.fixture()
def connect(app):
    """Register a fake push-channel connection for a user (or anonymous)."""

    def _connect(user=None, fail: bool = False) -> FakeConnection:
        conn = FakeConnection(
            user_id=user.id if user is not None else None,
            role=user.role if user is not None else None,
            fail=fail,
        )
        app.state.registry.register(conn)
        return conn

    return _connect


@pytest.fixture()
def upload():
    """Upload a file through the admin API and return the response."""

    async def _upload(
        client: AsyncClient,
        name: str = "Loader",
        allowed_roles=("admin", "moderator", "customer"),
        content: bytes = b"MZ\x90\x00binary",
        filename: str = "loader.exe",
        **fields,
    ) -> httpx.Response:
        data = {"name": name, "allowedRoles": json.dumps(list(allowed_roles))}
        data.update({k: str(v) for k, v in fields.items()})
        files = {"file": (filename, content, "application/octet-stream")}
        return await client.post("/api/admin/files", data=data, files=files)

    return _upload


@pytest.fixture()
def make_user(session_factory):
    """Create an extra account: await make_user("name", "role", is_active=False)."""

    async def _make(username: str, role: str = "customer", **fields) -> User:
        return await create_user(session_factory, username, role, **fields)

    return _make
