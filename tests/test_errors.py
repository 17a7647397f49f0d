"""Error envelope tests.

Learn: Every failure (domain errors, framework validation, unknown
routes, database and cache outages) must leave as
{"error": {"code", "message", "details"?, "timestamp"}}, and server-side
failures must not leak their internals.
"""

from datetime import datetime

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from ngobrol.errors import AppError, ErrorCode, error_body, field_errors
from ngobrol.services.room_service import RoomService


def _assert_envelope(body: dict, code: str):
    assert set(body) == {"error"}
    error = body["error"]
    assert error["code"] == code
    assert error["message"]
    ts = datetime.fromisoformat(error["timestamp"])
    assert ts.utcoffset() is not None


# ═══════════════════════════════════════════════════════════
# Building blocks
# ═══════════════════════════════════════════════════════════


def test_app_error_defaults_from_code():
    err = AppError(ErrorCode.ROOM_FULL)
    assert err.status_code == 409
    assert err.message == "Room has reached maximum capacity"
    assert err.is_server_error is False


def test_app_error_message_override_and_details():
    body = AppError(ErrorCode.VALIDATION_ERROR, "Bad input", details={"name": ["too short"]}).to_body()
    assert body["error"]["message"] == "Bad input"
    assert body["error"]["details"] == {"name": ["too short"]}


def test_internal_detail_never_in_body():
    err = AppError(ErrorCode.DATABASE_ERROR, internal="connection refused on 10.0.0.5")
    assert err.is_server_error is True
    assert "10.0.0.5" not in str(err.to_body())


def test_details_omitted_when_absent():
    assert "details" not in error_body(ErrorCode.NOT_FOUND)["error"]


@pytest.mark.parametrize(
    "code, status",
    [
        (ErrorCode.MISSING_TOKEN, 401),
        (ErrorCode.TOKEN_EXPIRED, 401),
        (ErrorCode.ACCOUNT_LOCKED, 403),
        (ErrorCode.PRIVATE_NO_ACCESS, 403),
        (ErrorCode.USER_NOT_FOUND, 404),
        (ErrorCode.METHOD_NOT_ALLOWED, 405),
        (ErrorCode.ALREADY_JOINED, 409),
        (ErrorCode.INVALID_UUID, 422),
        (ErrorCode.LOGIN_ATTEMPTS, 429),
        (ErrorCode.REDIS_ERROR, 500),
    ],
)
def test_status_by_code(code, status):
    assert AppError(code).status_code == status


def test_every_code_has_status_and_message():
    for code in ErrorCode:
        err = AppError(code)
        assert 400 <= err.status_code < 600
        assert err.message


def test_field_errors_groups_by_field():
    errors = [
        {"loc": ("body", "email"), "msg": "bad email"},
        {"loc": ("body", "email"), "msg": "still bad"},
        {"loc": (), "msg": "whole thing"},
    ]
    assert field_errors(errors, skip=("body",)) == {
        "email": ["bad email", "still bad"],
        "input": ["whole thing"],
    }


# ═══════════════════════════════════════════════════════════
# Over HTTP
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_unknown_route(client):
    r = await client.get("/api/does-not-exist")
    assert r.status_code == 404
    _assert_envelope(r.json(), "RESOURCE_NOT_FOUND")


@pytest.mark.asyncio
async def test_method_not_allowed(client):
    r = await client.delete("/api/auth/login")
    assert r.status_code == 405
    _assert_envelope(r.json(), "METHOD_NOT_ALLOWED")


@pytest.mark.asyncio
async def test_malformed_json(client):
    r = await client.post(
        "/api/auth/login",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 422
    _assert_envelope(r.json(), "VALIDATION_ERROR")


@pytest.mark.asyncio
async def test_domain_error_envelope(client, register):
    await register("dupe")
    r = await client.post(
        "/api/auth/register",
        json={"username": "dupe_two", "email": "dupe@example.com", "password": "password_123"},
    )
    assert r.status_code == 409
    _assert_envelope(r.json(), "USER_EMAIL_EXISTS")


@pytest.mark.asyncio
async def test_database_failure_is_generic(client, register, monkeypatch):
    headers, _ = await register()

    async def broken(self, *args, **kwargs):
        raise OperationalError("SELECT secret_table", {}, Exception("password=hunter2"))

    monkeypatch.setattr(RoomService, "list_rooms", broken)
    r = await client.get("/api/rooms", headers=headers)
    assert r.status_code == 500
    _assert_envelope(r.json(), "DATABASE_ERROR")
    assert "hunter2" not in r.text
    assert "secret_table" not in r.text


@pytest.mark.asyncio
async def test_redis_failure_is_generic(client, register, monkeypatch):
    headers, _ = await register()

    async def broken(self, *args, **kwargs):
        raise RedisConnectionError("redis://:topsecret@cache:6379 refused")

    monkeypatch.setattr(RoomService, "list_rooms", broken)
    r = await client.get("/api/rooms", headers=headers)
    assert r.status_code == 500
    _assert_envelope(r.json(), "REDIS_ERROR")
    assert "topsecret" not in r.text
