"""Akcent CLI — bootstrap the database and watch the push channel.

Usage:
    akcent init-db                              # Create every table
    akcent create-admin alice                   # First admin (prompts for password)
    akcent create-invite --role moderator       # Mint an invite code
    akcent listen -u alice                      # Print live events and stale cache keys
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from akcent import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"


def _api_url() -> str:
    return os.environ.get("AKCENT_API_URL", DEFAULT_API_URL).rstrip("/")


def _ws_url(api_url: str) -> str:
    if api_url.startswith("https://"):
        return "wss://" + api_url[len("https://"):] + "/realtime-ws"
    return "ws://" + api_url.removeprefix("http://") + "/realtime-ws"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when a loop is already running (e.g. Click's
    CliRunner inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="akcent")
def main():
    """Akcent — file dashboard administration."""


# ---------------------------------------------------------------------------
# akcent init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
def init_db():
    """Create database tables that don't exist yet."""
    from akcent.db.engine import create_tables, engine

    async def _impl():
        await create_tables()
        await engine.dispose()

    _run(_impl())
    click.secho("Tables created", fg="green")


# ---------------------------------------------------------------------------
# akcent create-admin / create-invite
# ---------------------------------------------------------------------------


@main.command("create-admin")
@click.argument("username")
@click.password_option(help="Password (prompted when omitted)")
def create_admin(username: str, password: str):
    """Create an admin account without an invite code."""
    if len(password) < 6:
        _fail("Password must be at least 6 characters")
    from akcent.auth.permissions import Role
    from akcent.db.engine import async_session_factory, create_tables, engine
    from akcent.services.errors import ConflictError
    from akcent.services.user_service import UserService

    async def _impl():
        await create_tables()
        try:
            async with async_session_factory() as db:
                return await UserService(db).create_user(username, password, Role.ADMIN.value)
        finally:
            await engine.dispose()

    try:
        user = _run(_impl())
    except ConflictError as e:
        _fail(e.detail)
    click.secho(f"Admin {user.username} created ({user.id})", fg="green")


@main.command("create-invite")
@click.option(
    "--role",
    type=click.Choice(["admin", "moderator", "customer"]),
    default="customer",
    show_default=True,
)
def create_invite(role: str):
    """Mint an invite code and print it."""
    from akcent.auth.permissions import Role
    from akcent.db.engine import async_session_factory, create_tables, engine
    from akcent.services.invite_service import InviteService

    async def _impl():
        await create_tables()
        try:
            async with async_session_factory() as db:
                return await InviteService(db).create_code(Role(role))
        finally:
            await engine.dispose()

    invite = _run(_impl())
    click.echo(invite.code)


# ---------------------------------------------------------------------------
# akcent listen
# ---------------------------------------------------------------------------


@main.command()
@click.option("--username", "-u", help="Log in as this user (anonymous in development otherwise)")
@click.option("--password", "-p", help="Password (prompted when a username is given)")
@click.option("--api-url", default=None, help="Backend URL (or set AKCENT_API_URL)")
def listen(username: Optional[str], password: Optional[str], api_url: Optional[str]):
    """Attach to the push channel and print events as they arrive.

    Each event is shown with the cache keys it makes stale.
    """
    if username and not password:
        password = click.prompt("Password", hide_input=True)
    try:
        _run(_listen_impl((api_url or _api_url()).rstrip("/"), username, password))
    except KeyboardInterrupt:
        pass


async def _login(api_url: str, username: str, password: str) -> str:
    from akcent.config import settings

    async with httpx.AsyncClient(base_url=api_url, timeout=30.0) as c:
        r = await c.post("/api/login", json={"username": username, "password": password})
        if r.status_code != 200:
            _fail(r.json().get("detail", f"login failed ({r.status_code})"))
        token = r.cookies.get(settings.session_cookie_name)
        if not token:
            _fail("login succeeded but no session cookie was returned")
        return token


async def _listen_impl(api_url: str, username: Optional[str], password: Optional[str]):
    from akcent.realtime.client import RealtimeClient
    from akcent.realtime.dispatcher import InvalidationDispatcher, QueryCache

    token = await _login(api_url, username, password) if username else None

    def show(event_type: str, data) -> None:
        keys = dispatcher.keys_for(event_type)
        click.secho(event_type, fg="cyan", bold=True, nl=False)
        click.echo(f"  stale: {', '.join(k[0] for k in keys) or '—'}")
        click.echo(json.dumps(data, indent=2, default=str))

    dispatcher = InvalidationDispatcher(QueryCache(), handler=show)
    client = RealtimeClient(_ws_url(api_url), dispatcher, token=token)
    click.echo(f"Listening on {_ws_url(api_url)} (Ctrl+C to stop)")
    await client.run()


if __name__ == "__main__":
    main()
