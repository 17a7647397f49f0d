"""Auth API tests.

Learn: Tests cover:
1. Registration + duplicate prevention (email, username)
2. Login → {user, token}
3. Protected /me endpoint, profile update
4. Logout
"""

import uuid

import pytest


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    """Register a new user account."""
    r = await client.post(
        "/api/auth/register",
        json={
            "username": "alice",
            "email": "alice@example.com",
            "password": "secure_password_123",
            "display_name": "Alice",
        },
    )
    assert r.status_code == 201
    data = r.json()
    assert data["token"]
    assert data["token_type"] == "bearer"
    user = data["user"]
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert user["display_name"] == "Alice"
    assert user["status"] == "offline"
    assert "id" in user
    assert "password_hash" not in user
    assert "password" not in user


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    """Can't register with the same email twice."""
    body = {"username": "first", "email": "dup@example.com", "password": "password_123"}
    r1 = await client.post("/api/auth/register", json=body)
    assert r1.status_code == 201

    r2 = await client.post(
        "/api/auth/register", json={**body, "username": "second", "email": "DUP@example.com"}
    )
    assert r2.status_code == 409
    assert r2.json()["error"]["code"] == "USER_EMAIL_EXISTS"


@pytest.mark.asyncio
async def test_register_duplicate_username(client):
    body = {"username": "same", "email": "one@example.com", "password": "password_123"}
    assert (await client.post("/api/auth/register", json=body)).status_code == 201

    r = await client.post("/api/auth/register", json={**body, "email": "two@example.com"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "USER_USERNAME_EXISTS"


@pytest.mark.asyncio
async def test_register_short_password(client):
    """Password must be at least 8 characters."""
    r = await client.post(
        "/api/auth/register",
        json={"username": "shorty", "email": "short@example.com", "password": "abc"},
    )
    assert r.status_code == 422
    error = r.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "password" in error["details"]


@pytest.mark.asyncio
async def test_register_invalid_email_and_username(client):
    r = await client.post(
        "/api/auth/register",
        json={"username": "no spaces!", "email": "nope", "password": "password_123"},
    )
    assert r.status_code == 422
    details = r.json()["error"]["details"]
    assert set(details) == {"username", "email"}


@pytest.mark.asyncio
async def test_register_missing_fields(client):
    r = await client.post("/api/auth/register", json={})
    assert r.status_code == 422
    details = r.json()["error"]["details"]
    assert {"username", "email", "password"} <= set(details)


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, register, password):
    """Login with valid credentials returns a token and the user, now online."""
    _, user = await register("loginuser")
    r = await client.post(
        "/api/auth/login",
        json={"email": "LoginUser@Example.com", "password": password},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["token"]
    assert data["user"]["id"] == user["id"]
    assert data["user"]["status"] == "online"


@pytest.mark.asyncio
async def test_login_wrong_password(client, register):
    await register("wrongpw")
    r = await client.post(
        "/api/auth/login",
        json={"email": "wrongpw@example.com", "password": "not-the-password"},
    )
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "AUTH_INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_unknown_email_same_response(client, register):
    await register("known")
    wrong = await client.post(
        "/api/auth/login", json={"email": "known@example.com", "password": "nope-nope"}
    )
    unknown = await client.post(
        "/api/auth/login", json={"email": "ghost@example.com", "password": "nope-nope"}
    )
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["error"]["code"] == unknown.json()["error"]["code"]
    assert wrong.json()["error"]["message"] == unknown.json()["error"]["message"]


# ═══════════════════════════════════════════════════════════
# Current user
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_token(client, register):
    """Access /me with a valid token."""
    headers, user = await register("me_user")
    r = await client.get("/api/auth/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]
    assert r.json()["username"] == "me_user"


@pytest.mark.asyncio
async def test_me_without_token(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "AUTH_MISSING_TOKEN"


@pytest.mark.asyncio
async def test_me_with_garbage_token(client):
    r = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "AUTH_INVALID_TOKEN"


@pytest.mark.asyncio
async def test_update_me(client, register):
    headers, _ = await register("patchme", display_name="Before")
    r = await client.patch(
        "/api/auth/me",
        json={"display_name": "After", "status": "away"},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["display_name"] == "After"
    assert r.json()["status"] == "away"
    assert r.json()["username"] == "patchme"


@pytest.mark.asyncio
async def test_update_me_rejects_null_username(client, register):
    headers, _ = await register()
    r = await client.patch("/api/auth/me", json={"username": None}, headers=headers)
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_update_me_taken_username(client, register):
    await register("taken_name")
    headers, _ = await register()
    r = await client.patch("/api/auth/me", json={"username": "taken_name"}, headers=headers)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "USER_USERNAME_EXISTS"


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout(client, register, password):
    headers, _ = await register("leaver")
    await client.post(
        "/api/auth/login", json={"email": "leaver@example.com", "password": password}
    )

    r = await client.post("/api/auth/logout", headers=headers)
    assert r.status_code == 200
    assert r.json()["message"]

    me = await client.get("/api/auth/me", headers=headers)
    # Tokens are stateless: still valid, but the user shows offline
    assert me.status_code == 200
    assert me.json()["status"] == "offline"


@pytest.mark.asyncio
async def test_logout_requires_token(client):
    r = await client.post("/api/auth/logout")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_register_ids_are_unique(client, register):
    ids = {(await register())[1]["id"] for _ in range(3)}
    assert len(ids) == 3
    assert all(uuid.UUID(i) for i in ids)
