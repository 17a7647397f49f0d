"""CLI tests — Click's CliRunner against a throwaway SQLite file."""

import asyncio

from click.testing import CliRunner

from ngobrol.cli.main import cli
from ngobrol.db.engine import build_engine, build_session_factory
from ngobrol.db.user_store import UserStore


def _seed_user(url: str, username: str) -> None:
    async def seed():
        engine = build_engine(url)
        try:
            async with build_session_factory(engine)() as db:
                await UserStore(db).create(
                    username=username,
                    email=f"{username}@example.com",
                    password_hash="x",
                )
                await db.commit()
        finally:
            await engine.dispose()

    asyncio.run(seed())


def _is_active(url: str, username: str) -> bool:
    async def check():
        engine = build_engine(url)
        try:
            async with build_session_factory(engine)() as db:
                return await UserStore(db).find_by_username(username) is not None
        finally:
            await engine.dispose()

    return asyncio.run(check())


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "ngobrol" in result.output


def test_init_db_is_idempotent(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    runner = CliRunner()
    for _ in range(2):
        result = runner.invoke(cli, ["init-db", "--database-url", url])
        assert result.exit_code == 0, result.output
        assert "ready" in result.output


def test_deactivate_user_by_email_and_username(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    runner = CliRunner()
    assert runner.invoke(cli, ["init-db", "--database-url", url]).exit_code == 0
    _seed_user(url, "alice")
    _seed_user(url, "bob")

    result = runner.invoke(
        cli, ["deactivate-user", "Alice@Example.com", "--database-url", url]
    )
    assert result.exit_code == 0, result.output
    assert "Deactivated" in result.output
    assert _is_active(url, "alice") is False

    result = runner.invoke(cli, ["deactivate-user", "bob", "--database-url", url])
    assert result.exit_code == 0, result.output
    assert _is_active(url, "bob") is False


def test_deactivate_unknown_user(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    runner = CliRunner()
    runner.invoke(cli, ["init-db", "--database-url", url])

    result = runner.invoke(cli, ["deactivate-user", "ghost", "--database-url", url])
    assert result.exit_code == 1
    assert "No active user" in result.output
