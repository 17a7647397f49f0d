"""Ngobrol CLI — run the server and manage the database.

Usage:
    ngobrol init-db                          # Create tables from the ORM models
    ngobrol serve --port 8080                # Run the API with uvicorn
    ngobrol deactivate-user alice@example.com  # Soft-disable an account
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Optional

import click

from ngobrol import __version__
from ngobrol.config import settings

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop — normal CLI invocation
        return asyncio.run(coro)
    else:
        # Already inside an event loop (e.g. test runner) — run in a thread
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _database_url(database_url: Optional[str]) -> str:
    return database_url or settings.database_url


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="ngobrol")
def cli():
    """Ngobrol — chat backend auth and rooms service."""


# ---------------------------------------------------------------------------
# init-db
# ---------------------------------------------------------------------------


@cli.command("init-db")
@click.option("--database-url", help="Override NGOBROL_DATABASE_URL")
def init_db(database_url: Optional[str]):
    """Create all tables (no-op for tables that already exist)."""
    _run(_init_db_impl(_database_url(database_url)))
    click.secho("Database schema ready.", fg="green")


async def _init_db_impl(url: str) -> None:
    from ngobrol.db.engine import build_engine
    from ngobrol.db.models import Base

    engine = build_engine(url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", default=None, help="Bind address (default: NGOBROL_HOST)")
@click.option("--port", "-p", default=None, type=int, help="Port (default: NGOBROL_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "ngobrol.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# deactivate-user
# ---------------------------------------------------------------------------


@cli.command("deactivate-user")
@click.argument("identifier")
@click.option("--database-url", help="Override NGOBROL_DATABASE_URL")
def deactivate_user(identifier: str, database_url: Optional[str]):
    """Soft-disable a user by email or username.

    The account can no longer log in and its outstanding tokens stop
    resolving immediately.
    """
    user_id = _run(_deactivate_impl(identifier, _database_url(database_url)))
    if user_id is None:
        click.secho(f"No active user matches '{identifier}'", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Deactivated user {user_id}", fg="green")


async def _deactivate_impl(identifier: str, url: str) -> Optional[str]:
    from ngobrol.db.engine import build_engine, build_session_factory
    from ngobrol.db.user_store import UserStore

    engine = build_engine(url)
    try:
        async with build_session_factory(engine)() as db:
            users = UserStore(db)
            if "@" in identifier:
                user = await users.find_by_email(identifier.strip().lower())
            else:
                user = await users.find_by_username(identifier)
            if user is None:
                return None
            await users.deactivate(user.id)
            await db.commit()
            return str(user.id)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    cli()
